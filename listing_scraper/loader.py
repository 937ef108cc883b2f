"""
Infinite-scroll loader.

Scrolls a search results page to the bottom until the listing stops growing,
then scrolls back to the top so every card is rendered before extraction.
"""

import asyncio
import logging
from dataclasses import dataclass

from playwright.async_api import Error as PlaywrightError

from .page import PageHandle
from .sites import SiteConfig

logger = logging.getLogger(__name__)

STALL_THRESHOLD = 3  # Stop after this many scrolls without growth
NUDGE_PIXELS = 500


@dataclass
class ScrollResult:
    """Outcome of a scroll-to-stability run."""
    iterations: int
    signal: int
    stable: bool


async def read_signal(page: PageHandle, site: SiteConfig) -> int:
    """Measure how much of the listing is loaded (card count or page height)."""
    if site.stability_signal == 'height':
        return await page.scroll_height()
    return await page.count(site.listing_selector)


async def scroll_to_stability(
    page: PageHandle,
    site: SiteConfig,
    max_iterations: int = 50,
    settle_seconds: float = 1.5,
    stall_threshold: int = STALL_THRESHOLD,
    nudge_on_stall: bool = True
) -> ScrollResult:
    """
    Scroll until the stability signal stops changing.

    After each scroll-to-bottom the loop waits settle_seconds and re-reads the
    signal. Consecutive unchanged reads are counted and the loop ends once the
    count reaches stall_threshold, or when max_iterations scrolls were made.
    On the first unchanged read of a streak the page is nudged up and back
    down, since some lazy loaders only fire on a direction change.

    Playwright errors while scrolling or measuring are logged and end the
    loop; whatever has loaded so far is kept.

    Args:
        page: Page already showing search results
        site: Site profile (listing selector and signal kind)
        max_iterations: Maximum number of scrolls
        settle_seconds: Wait after each scroll
        stall_threshold: Unchanged reads needed to stop early
        nudge_on_stall: Nudge the page on the first unchanged read

    Returns:
        ScrollResult with the scroll count, last signal and whether the
        listing settled before the budget ran out
    """
    logger.info(f"Scrolling until all products are loaded (max {max_iterations} scrolls)...")

    previous_signal = 0
    no_change_count = 0
    iterations = 0
    stable = False

    try:
        while iterations < max_iterations:
            iterations += 1

            await page.scroll_to_bottom()
            await asyncio.sleep(settle_seconds)
            current_signal = await read_signal(page, site)

            if current_signal == previous_signal and no_change_count == 0 and nudge_on_stall:
                await page.scroll_by(-NUDGE_PIXELS)
                await asyncio.sleep(settle_seconds / 5)
                await page.scroll_to_bottom()
                await asyncio.sleep(settle_seconds)
                current_signal = await read_signal(page, site)

            logger.info(f"  - Scroll {iterations}: {site.stability_signal} = {current_signal}")

            if current_signal == previous_signal:
                no_change_count += 1
                logger.debug(f"    No new products ({no_change_count}/{stall_threshold})")
                if no_change_count >= stall_threshold:
                    stable = True
                    logger.info(f"All products loaded after {iterations} scrolls ({current_signal})")
                    break
            else:
                no_change_count = 0
                previous_signal = current_signal

        if not stable:
            logger.info(f"Reached maximum scroll limit ({max_iterations}). Signal: {previous_signal}")

    except PlaywrightError as e:
        logger.warning(f"Auto-scroll failed after {iterations} scrolls: {e}")

    try:
        await page.scroll_to_top()
        await asyncio.sleep(min(settle_seconds, 0.5))
    except PlaywrightError as e:
        logger.warning(f"Could not scroll back to top: {e}")

    return ScrollResult(iterations=iterations, signal=previous_signal, stable=stable)
