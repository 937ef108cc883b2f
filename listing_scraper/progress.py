"""
Run progress tracking.

Counts finished, failed and empty requests, saved products and errors, and
persists a snapshot to progress.json after every update so a run can be
watched from outside.
"""

import json
import logging
import time
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class QueryProgress:
    """Outcome of one search page."""
    url: str
    query: Optional[str]
    products: int = 0
    attempts: int = 0
    status: str = 'pending'  # saved | empty | failed
    error: Optional[str] = None


class RunStats:
    """Track and persist scraping progress in real-time."""

    def __init__(self, progress_file: Optional[Union[str, Path]] = None, total_requests: int = 0):
        """
        Initialize progress tracker.

        Args:
            progress_file: Path to JSON file for progress persistence (None disables it)
            total_requests: Number of search pages scheduled
        """
        self.progress_file = Path(progress_file) if progress_file else None
        self.total_requests = total_requests
        self.start_time = time.time()
        self.products_saved = 0
        self.errors = 0
        self.queries: Dict[str, QueryProgress] = {}
        self._error_log: List[Dict[str, Any]] = []

    @property
    def finished(self) -> int:
        return sum(1 for q in self.queries.values() if q.status in ('saved', 'empty', 'failed'))

    @property
    def failed(self) -> int:
        return sum(1 for q in self.queries.values() if q.status == 'failed')

    @property
    def empty(self) -> int:
        return sum(1 for q in self.queries.values() if q.status == 'empty')

    def record_saved(self, url: str, query: Optional[str], products: int, attempts: int) -> None:
        self.products_saved += products
        self.queries[url] = QueryProgress(url, query, products, attempts, 'saved')
        self._save_progress()

    def record_empty(self, url: str, query: Optional[str], attempts: int) -> None:
        self.queries[url] = QueryProgress(url, query, 0, attempts, 'empty')
        self._save_progress()

    def record_error(self, url: str, error_message: str = "") -> None:
        """Record an error occurrence (the request may still be retried)."""
        self.errors += 1
        self._error_log.append({
            'url': url,
            'error': error_message,
            'timestamp': datetime.now().isoformat(),
        })
        self._save_progress()

    def record_failed(self, url: str, query: Optional[str], error_message: str) -> None:
        self.queries[url] = QueryProgress(url, query, 0, 0, 'failed', error_message)
        self._save_progress()

    def get_summary(self) -> Dict[str, Any]:
        """Get progress summary."""
        elapsed = time.time() - self.start_time
        return {
            'total_requests': self.total_requests,
            'finished_requests': self.finished,
            'failed_requests': self.failed,
            'empty_requests': self.empty,
            'products_saved': self.products_saved,
            'errors': self.errors,
            'elapsed_seconds': round(elapsed, 2),
            'rate_per_minute': round(self.products_saved / (elapsed / 60), 2) if elapsed > 0 else 0,
        }

    def _save_progress(self) -> None:
        """Save progress to JSON file."""
        if self.progress_file is None:
            return

        progress_data = self.get_summary()
        progress_data['queries'] = [asdict(q) for q in self.queries.values()]
        progress_data['recent_errors'] = self._error_log[-10:]
        progress_data['last_updated'] = datetime.now().isoformat()

        try:
            with open(self.progress_file, 'w', encoding='utf-8') as f:
                json.dump(progress_data, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save progress: {e}")

        logger.debug(
            f"Progress: {self.finished}/{self.total_requests} requests, "
            f"{self.products_saved} products"
        )


def load_progress(progress_file: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """Load a progress snapshot written by RunStats."""
    path = Path(progress_file)
    if not path.exists():
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
