"""
Page automation handle.

The scraping logic only talks to a PageHandle. PlaywrightPage implements it on
top of playwright.async_api.Page; tests use in-memory fakes. Timeouts are in
milliseconds, as in Playwright. Playwright's TimeoutError and Error are
propagated unchanged so callers can decide which failures are transient.
"""

from typing import Optional, Protocol

from playwright.async_api import Page


class PageHandle(Protocol):
    """Capabilities the scraper needs from a browser page."""

    @property
    def url(self) -> str: ...

    async def goto(self, url: str, timeout_ms: int) -> None: ...

    async def wait_for_load_state(self, state: str = 'domcontentloaded', timeout_ms: Optional[int] = None) -> None: ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None: ...

    async def count(self, selector: str) -> int: ...

    async def click(self, selector: str, timeout_ms: int, force: bool = False) -> None: ...

    async def clear_input(self, selector: str) -> None: ...

    async def type_text(self, selector: str, text: str, delay_ms: int = 0) -> None: ...

    async def scroll_to_bottom(self) -> None: ...

    async def scroll_by(self, dy: int) -> None: ...

    async def scroll_to_top(self) -> None: ...

    async def scroll_height(self) -> int: ...

    async def body_text(self) -> str: ...

    async def content(self) -> str: ...

    async def reload(self, timeout_ms: Optional[int] = None) -> None: ...

    async def screenshot(self) -> bytes: ...

    async def close(self) -> None: ...


class PlaywrightPage:
    """PageHandle backed by a Playwright page."""

    def __init__(self, page: Page):
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str, timeout_ms: int) -> None:
        await self._page.goto(url, wait_until='domcontentloaded', timeout=timeout_ms)

    async def wait_for_load_state(self, state: str = 'domcontentloaded', timeout_ms: Optional[int] = None) -> None:
        await self._page.wait_for_load_state(state, timeout=timeout_ms)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        await self._page.wait_for_selector(selector, timeout=timeout_ms)

    async def count(self, selector: str) -> int:
        return await self._page.locator(selector).count()

    async def click(self, selector: str, timeout_ms: int, force: bool = False) -> None:
        await self._page.locator(selector).first.click(timeout=timeout_ms, force=force)

    async def clear_input(self, selector: str) -> None:
        await self._page.locator(selector).first.focus()
        await self._page.keyboard.press('Control+A')
        await self._page.keyboard.press('Backspace')

    async def type_text(self, selector: str, text: str, delay_ms: int = 0) -> None:
        await self._page.locator(selector).first.press_sequentially(text, delay=delay_ms)

    async def scroll_to_bottom(self) -> None:
        await self._page.evaluate("window.scrollTo(0, document.body.scrollHeight)")

    async def scroll_by(self, dy: int) -> None:
        await self._page.evaluate("(dy) => window.scrollBy(0, dy)", dy)

    async def scroll_to_top(self) -> None:
        await self._page.evaluate("window.scrollTo(0, 0)")

    async def scroll_height(self) -> int:
        return await self._page.evaluate("document.body.scrollHeight")

    async def body_text(self) -> str:
        return await self._page.evaluate("document.body.innerText || ''")

    async def content(self) -> str:
        return await self._page.content()

    async def reload(self, timeout_ms: Optional[int] = None) -> None:
        await self._page.reload(wait_until='domcontentloaded', timeout=timeout_ms)

    async def screenshot(self) -> bytes:
        return await self._page.screenshot(full_page=True)

    async def close(self) -> None:
        await self._page.close()
