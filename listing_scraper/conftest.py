"""
Shared fixtures: an in-memory page handle and a minimal site profile.
"""

from typing import Dict, Iterable, List, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import ScraperOptions
from .sites import SiteConfig


class FakePage:
    """
    PageHandle test double.

    counts maps selectors to match counts. Selectors not in counts, and the
    scroll height, read from the signals list: values are consumed in order
    and the last one repeats. Selectors in visible pass wait_for_selector,
    everything else times out. errors maps a method name to an exception the
    method raises; click_errors does the same per clicked selector.
    """

    def __init__(
        self,
        url: str = 'https://www.zepto.com/search?query=milk',
        html: str = '',
        signals: Optional[Iterable[int]] = None,
        counts: Optional[Dict[str, int]] = None,
        visible: Iterable[str] = (),
        body: str = '',
        errors: Optional[Dict[str, Exception]] = None,
        click_effects: Optional[Dict[str, Dict[str, int]]] = None,
        click_errors: Optional[Dict[str, Exception]] = None,
        fail_scroll_after: Optional[int] = None
    ):
        self.url = url
        self.html = html
        self.signals: List[int] = list(signals or [])
        self.counts = dict(counts or {})
        self.visible = set(visible)
        self.body = body
        self.errors = dict(errors or {})
        self.click_effects = dict(click_effects or {})
        self.click_errors = dict(click_errors or {})
        self.fail_scroll_after = fail_scroll_after

        self.calls: List[str] = []
        self.clicks: List[tuple] = []
        self.typed: List[tuple] = []
        self.scrolled_by: List[int] = []
        self.visited: List[str] = []
        self.bottom_scrolls = 0
        self.reloads = 0
        self.closed = False

    def _maybe_fail(self, name: str) -> None:
        self.calls.append(name)
        if name in self.errors:
            raise self.errors[name]

    def _next_signal(self) -> int:
        if not self.signals:
            return 0
        if len(self.signals) > 1:
            return self.signals.pop(0)
        return self.signals[0]

    async def goto(self, url, timeout_ms):
        self._maybe_fail('goto')
        self.visited.append(url)
        self.url = url

    async def wait_for_load_state(self, state='domcontentloaded', timeout_ms=None):
        self._maybe_fail('wait_for_load_state')

    async def wait_for_selector(self, selector, timeout_ms):
        self._maybe_fail('wait_for_selector')
        if selector not in self.visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout_ms}ms exceeded waiting for {selector}")

    async def count(self, selector):
        self._maybe_fail('count')
        if selector in self.counts:
            return self.counts[selector]
        return self._next_signal()

    async def click(self, selector, timeout_ms, force=False):
        self._maybe_fail('click')
        if selector in self.click_errors:
            raise self.click_errors[selector]
        self.clicks.append((selector, force))
        self.counts.update(self.click_effects.get(selector, {}))

    async def clear_input(self, selector):
        self._maybe_fail('clear_input')

    async def type_text(self, selector, text, delay_ms=0):
        self._maybe_fail('type_text')
        self.typed.append((selector, text))

    async def scroll_to_bottom(self):
        self._maybe_fail('scroll_to_bottom')
        self.bottom_scrolls += 1
        if self.fail_scroll_after is not None and self.bottom_scrolls > self.fail_scroll_after:
            raise PlaywrightTimeoutError("Execution context was destroyed")

    async def scroll_by(self, dy):
        self._maybe_fail('scroll_by')
        self.scrolled_by.append(dy)

    async def scroll_to_top(self):
        self._maybe_fail('scroll_to_top')

    async def scroll_height(self):
        self._maybe_fail('scroll_height')
        return self._next_signal()

    async def body_text(self):
        self._maybe_fail('body_text')
        return self.body

    async def content(self):
        self._maybe_fail('content')
        return self.html

    async def reload(self, timeout_ms=None):
        self._maybe_fail('reload')
        self.reloads += 1

    async def screenshot(self):
        self._maybe_fail('screenshot')
        return b'\x89PNG fake'

    async def close(self):
        self.closed = True


@pytest.fixture
def test_site():
    return SiteConfig(
        name='test',
        platform_name='Test Shop',
        base_url='https://shop.test',
        search_url_template='https://shop.test/s?q={query}',
        query_param='q',
        listing_selector='a.card',
        results_selectors=['a.card'],
        stability_signal='height',
    )


@pytest.fixture
def fast_options(tmp_path):
    """Options with every wait set to zero."""
    return ScraperOptions(
        settle_seconds=0,
        retry_pause_seconds=0,
        storage_dir=tmp_path,
    )
