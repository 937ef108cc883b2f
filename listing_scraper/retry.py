"""
Retry shell around scrolling and extraction.

A search page is accepted once an attempt yields at least min_products
records. Otherwise the page is reloaded and the wait/scroll/extract sequence
runs again, up to max_attempts times. The last extraction is returned even
when it falls short; an empty result means the page is a no-op.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import ScraperOptions
from .extractor import ExtractionResult, extract_products
from .loader import scroll_to_stability
from .models import ProductRecord
from .page import PageHandle
from .sites import SiteConfig

logger = logging.getLogger(__name__)

RESULTS_WAIT_ATTEMPTS = 3
RESULTS_TIMEOUT_MS = 15000
ADD_BUTTON_PATTERN = re.compile(r'\bADD\b', re.IGNORECASE)

Extractor = Callable[[str, SiteConfig, Optional[str]], ExtractionResult]


@dataclass
class ListingResult:
    """Products collected from one search page."""
    products: List[ProductRecord] = field(default_factory=list)
    delivery_time: Optional[str] = None
    attempts: int = 0
    reloads: int = 0


async def wait_for_results(
    page: PageHandle,
    site: SiteConfig,
    attempts: int = RESULTS_WAIT_ATTEMPTS,
    timeout_ms: int = RESULTS_TIMEOUT_MS,
    pause_seconds: float = 2.0
) -> bool:
    """
    Wait until the search results are rendered.

    Each round tries the site's result selectors in order, then falls back to
    checking the page text for a price or an ADD button.

    Returns:
        True once results are detected, False after all rounds
    """
    for attempt in range(1, attempts + 1):
        logger.info(f"Attempt {attempt}/{attempts}: Waiting for search results...")

        for selector in site.results_selectors:
            try:
                await page.wait_for_selector(selector, timeout_ms)
            except PlaywrightTimeoutError:
                logger.debug(f"Selector {selector} not found within {timeout_ms}ms")
                continue

            count = await page.count(selector)
            if count > 0:
                logger.info(f"Found {count} elements matching: {selector}")
                return True

        try:
            body_text = await page.body_text()
        except PlaywrightError as e:
            logger.debug(f"Could not read page text: {e}")
            body_text = ''

        if '₹' in body_text or ADD_BUTTON_PATTERN.search(body_text):
            logger.info("Found products via text content check")
            return True

        if attempt < attempts:
            logger.info(f"Retry {attempt}: Products not found yet, waiting {pause_seconds:.1f}s...")
            await asyncio.sleep(pause_seconds)

    logger.warning(f"No search results found after {attempts} attempts")
    return False


async def _reload(page: PageHandle, options: ScraperOptions) -> None:
    logger.info("Reloading page and retrying...")
    await page.reload(timeout_ms=options.navigation_timeout)
    await asyncio.sleep(options.retry_pause_seconds)


async def collect_listing(
    page: PageHandle,
    site: SiteConfig,
    options: ScraperOptions,
    extract: Extractor = extract_products
) -> ListingResult:
    """
    Scroll and extract a search results page, reloading when too few records come back.

    Args:
        page: Page already navigated to the search URL
        site: Site profile
        options: Run options (attempt bound, minimum records, scroll budget)
        extract: Snapshot extractor, replaceable in tests

    Returns:
        ListingResult with the last extraction and attempt bookkeeping

    Raises:
        playwright.async_api.Error: If a reload fails (navigation failure)
    """
    extraction = ExtractionResult()
    attempt = 0
    reloads = 0

    while attempt < options.max_attempts:
        attempt += 1
        logger.info(f"Attempt {attempt}/{options.max_attempts} to scrape products...")

        found = await wait_for_results(page, site, pause_seconds=options.retry_pause_seconds)
        if not found:
            logger.warning(f"No search results detected on attempt {attempt}")
            if attempt < options.max_attempts:
                await _reload(page, options)
                reloads += 1
                continue
            break

        await scroll_to_stability(
            page,
            site,
            max_iterations=options.scroll_count,
            settle_seconds=options.settle_seconds,
        )

        html = await page.content()
        extraction = extract(html, site, page.url)
        logger.info(f"Extracted {len(extraction.products)} products on attempt {attempt}")

        if len(extraction.products) >= options.min_products:
            logger.info(f"Success! Found {len(extraction.products)} products (>= {options.min_products})")
            break

        logger.warning(f"Only found {len(extraction.products)} products (< {options.min_products})")
        if attempt < options.max_attempts:
            await _reload(page, options)
            reloads += 1
        else:
            logger.warning(f"Max attempts reached. Proceeding with {len(extraction.products)} products.")

    return ListingResult(
        products=extraction.products,
        delivery_time=extraction.delivery_time,
        attempts=attempt,
        reloads=reloads,
    )
