"""
Record persistence.

DatasetSink appends records as JSON Lines, one file per dataset. KeyValueStore
keeps run artefacts (screenshots, HTML snapshots, the failed URL list) as
individual files. Layout under the storage directory::

    datasets/<name>/items.jsonl
    key_value_stores/<name>/<key>
"""

import asyncio
import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from .models import DATASET_FIELDS, ProductRecord

logger = logging.getLogger(__name__)


class RecordSink(Protocol):
    """Append-only destination for product records."""

    async def push(self, records: Iterable[ProductRecord]) -> int: ...


class DatasetSink:
    """JSON Lines dataset with serialized appends."""

    def __init__(self, storage_dir: Union[str, Path], name: str = 'default', purge: bool = False):
        self.directory = Path(storage_dir) / 'datasets' / name
        self.directory.mkdir(parents=True, exist_ok=True)
        self.path = self.directory / 'items.jsonl'
        if purge and self.path.exists():
            self.path.unlink()
            logger.info(f"Purged previous dataset at {self.path}")
        self._lock = asyncio.Lock()
        self.count = 0

    async def push(self, records: Iterable[ProductRecord]) -> int:
        """
        Append records to the dataset.

        Returns:
            Number of records written
        """
        rows = [record.to_dict() for record in records]
        if not rows:
            return 0

        async with self._lock:
            with open(self.path, 'a', encoding='utf-8') as f:
                for row in rows:
                    f.write(json.dumps(row, ensure_ascii=False) + '\n')
            self.count += len(rows)

        logger.debug(f"Appended {len(rows)} records to {self.path}")
        return len(rows)

    def read_items(self) -> List[Dict[str, Any]]:
        """Load every stored row (used for exports)."""
        if not self.path.exists():
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            return [json.loads(line) for line in f if line.strip()]

    def export_csv(self, output_path: Union[str, Path]) -> int:
        """Write the dataset to a CSV file. Returns the number of rows written."""
        output_path = Path(output_path)
        if output_path.parent:
            output_path.parent.mkdir(parents=True, exist_ok=True)

        items = self.read_items()
        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=DATASET_FIELDS, extrasaction='ignore')
            writer.writeheader()
            for item in items:
                writer.writerow(item)

        logger.info(f"Saved {len(items)} products to {output_path}")
        return len(items)


class KeyValueStore:
    """Directory-backed store for run artefacts."""

    def __init__(self, storage_dir: Union[str, Path], name: str = 'default'):
        self.directory = Path(storage_dir) / 'key_value_stores' / name
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe_key = ''.join(c if c.isalnum() or c in '-_.' else '_' for c in key)
        return self.directory / safe_key

    def set_value(self, key: str, value: Any) -> Path:
        """Store bytes, text, or any JSON-serializable value under key."""
        path = self._path(key)
        if isinstance(value, bytes):
            path.write_bytes(value)
        elif isinstance(value, str):
            path.write_text(value, encoding='utf-8')
        else:
            path.write_text(json.dumps(value, indent=2, default=str), encoding='utf-8')
        return path

    def get_value(self, key: str, default: Optional[Any] = None) -> Any:
        """Read a JSON value back; returns default when the key is missing."""
        path = self._path(key)
        if not path.exists():
            return default
        return json.loads(path.read_text(encoding='utf-8'))
