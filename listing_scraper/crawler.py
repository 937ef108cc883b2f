"""
Playwright-based search listing crawler.

Owns the browser session and walks a list of CrawlTasks. For each search page
it optionally sets the delivery location, closes popups, runs the retry shell
(wait, scroll, extract) and pushes the resulting records to the dataset.

Usage:
    from listing_scraper.crawler import ListingCrawler, build_tasks

    async with ListingCrawler(options) as crawler:
        summary = await crawler.run(build_tasks(options, crawler.site))
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, quote, urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright
from tqdm import tqdm

from .config import ScraperOptions
from .location import dismiss_popups, set_location
from .models import CrawlTask
from .page import PageHandle, PlaywrightPage
from .progress import RunStats
from .retry import collect_listing
from .sink import DatasetSink, KeyValueStore, RecordSink
from .sites import SiteConfig, get_site_config

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-gpu',
]
VIEWPORT = {'width': 1920, 'height': 1080}
EXTRA_HEADERS = {
    'Accept-Language': 'en-IN,en-US;q=0.9,en;q=0.8,hi;q=0.7',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
}
USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)
LOCATION_NETWORKIDLE_TIMEOUT_MS = 8000
FAILED_URLS_KEY = 'FAILED_URLS'


def build_tasks(options: ScraperOptions, site: SiteConfig) -> List[CrawlTask]:
    """
    Turn configured queries and URLs into crawl tasks.

    Only the first task sets the delivery location; the location is stored in
    the browser context and carries over to later pages.
    """
    tasks = [
        CrawlTask(url=site.search_url_template.format(query=quote(query, safe='')), query=query)
        for query in options.search_queries
    ]
    tasks.extend(CrawlTask(url=url, query='direct_url') for url in options.search_urls)

    if tasks:
        tasks[0].set_location = True
    return tasks


def proxy_settings(proxy_url: str) -> Dict[str, str]:
    """Split a proxy URL into Playwright's proxy dict. A bare host:port is treated as http."""
    if '://' not in proxy_url:
        proxy_url = f"http://{proxy_url}"
    parsed = urlparse(proxy_url)
    server = f"{parsed.scheme or 'http'}://{parsed.hostname}"
    if parsed.port:
        server += f":{parsed.port}"
    settings = {'server': server}
    if parsed.username:
        settings['username'] = parsed.username
    if parsed.password:
        settings['password'] = parsed.password
    return settings


class ListingCrawler:
    """
    Crawls search result pages of one site.

    Tasks flagged with set_location run first, one at a time; the rest run
    concurrently up to max_concurrency, each on its own page. A task whose
    handler raises a Playwright error is retried on a fresh page with
    exponential backoff, and recorded in FAILED_URLS once retries run out.
    """

    def __init__(
        self,
        options: ScraperOptions,
        site: Optional[SiteConfig] = None,
        sink: Optional[RecordSink] = None,
        store: Optional[KeyValueStore] = None,
        stats: Optional[RunStats] = None
    ):
        self.options = options
        self.site = site or get_site_config(options.site)

        storage_dir = Path(options.storage_dir)
        storage_dir.mkdir(parents=True, exist_ok=True)
        self.sink = sink or DatasetSink(storage_dir)
        self.store = store or KeyValueStore(storage_dir)
        self.stats = stats or RunStats(storage_dir / 'progress.json')

        self._playwright = None
        self._browser = None
        self._context = None

    async def __aenter__(self):
        """Async context manager entry - launch browser."""
        self._playwright = await async_playwright().start()

        launch_kwargs: Dict[str, Any] = {'headless': self.options.headless, 'args': LAUNCH_ARGS}
        if self.options.proxy_url:
            launch_kwargs['proxy'] = proxy_settings(self.options.proxy_url)
        self._browser = await self._playwright.chromium.launch(**launch_kwargs)

        context_kwargs: Dict[str, Any] = {
            'viewport': VIEWPORT,
            'user_agent': USER_AGENT,
            'locale': 'en-IN',
            'timezone_id': 'Asia/Kolkata',
            'extra_http_headers': EXTRA_HEADERS,
        }
        if self.site.geolocation:
            latitude, longitude = self.site.geolocation
            context_kwargs['geolocation'] = {'latitude': latitude, 'longitude': longitude}
            context_kwargs['permissions'] = ['geolocation']
        self._context = await self._browser.new_context(**context_kwargs)
        self._context.set_default_navigation_timeout(self.options.navigation_timeout)

        logger.info(f"ListingCrawler browser launched (headless={self.options.headless})")
        return self

    async def __aexit__(self, *args):
        """Async context manager exit - close browser."""
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()
        logger.info("ListingCrawler browser closed")

    async def new_page(self) -> PageHandle:
        if self._context is None:
            raise RuntimeError("ListingCrawler must be used as an async context manager")
        page = await self._context.new_page()
        if self.options.debug_mode:
            page.on('console', lambda msg: logger.debug(f"[page:{msg.type}] {msg.text}"))
        return PlaywrightPage(page)

    async def close_page(self, page: PageHandle) -> None:
        try:
            await page.close()
        except PlaywrightError as e:
            logger.debug(f"Page close failed: {e}")

    # -------------------------------------------------------------------------
    # Request handling
    # -------------------------------------------------------------------------

    def search_query_for(self, task: CrawlTask) -> Optional[str]:
        """Prefer the query parameter in the URL, else the task's own query."""
        params = parse_qs(urlparse(task.url).query)
        values = params.get(self.site.query_param)
        if values and values[0]:
            return values[0]
        return task.query

    async def handle_task(self, page: PageHandle, task: CrawlTask) -> int:
        """
        Scrape one search page and push its records.

        Args:
            page: Fresh page for this task
            task: Search page to scrape

        Returns:
            Number of records written (0 when the page yielded nothing)

        Raises:
            playwright.async_api.Error: On navigation failures
        """
        options = self.options
        logger.info(f"Processing: {task.url}")

        await page.goto(task.url, options.navigation_timeout)

        if task.set_location:
            location_set = await set_location(page, self.site, options.pincode)
            if location_set:
                logger.info("Waiting for page to reload with new location...")
                await asyncio.sleep(options.settle_seconds)
                try:
                    await page.wait_for_load_state('networkidle', LOCATION_NETWORKIDLE_TIMEOUT_MS)
                except PlaywrightTimeoutError:
                    logger.debug("Network did not go idle after setting location")
            else:
                logger.warning("Continuing without a confirmed delivery location")

        await page.wait_for_load_state('domcontentloaded')
        await asyncio.sleep(options.settle_seconds)
        await dismiss_popups(page, self.site)

        if options.debug_mode:
            await self.snapshot(page, 'search-initial')

        listing = await collect_listing(page, self.site, options)

        if options.debug_mode:
            await self.snapshot(page, 'after-scroll')

        if not listing.products:
            logger.error(f"No products extracted after all retries: {task.url}")
            self.stats.record_empty(task.url, task.query, listing.attempts)
            return 0

        search_query = self.search_query_for(task)
        records = [
            product.with_provenance(
                search_query=search_query,
                search_url=task.url,
                platform_name=self.site.platform_name,
                location_code=options.pincode,
                delivery_time=listing.delivery_time,
            )
            for product in listing.products[:options.max_products_per_search]
        ]

        written = await self.sink.push(records)
        self.stats.record_saved(task.url, search_query, written, listing.attempts)
        logger.info(f"Saved {written} products for \"{search_query}\" (Delivery: {listing.delivery_time})")
        return written

    async def snapshot(self, page: PageHandle, label: str) -> None:
        """Store a full-page screenshot and the HTML for debugging."""
        stamp = datetime.now().strftime('%Y%m%d%H%M%S%f')
        try:
            self.store.set_value(f"{label}-screenshot-{stamp}.png", await page.screenshot())
            self.store.set_value(f"{label}-html-{stamp}.html", await page.content())
        except PlaywrightError as e:
            logger.error(f"Debug snapshot failed: {e}")

    async def failed_request(self, task: CrawlTask, error: Exception) -> None:
        """Bookkeeping for a task that exhausted its retries."""
        logger.error(f"Request failed: {task.url} ({error})")
        entry = {
            'url': task.url,
            'timestamp': datetime.now().isoformat(),
            'error': str(error),
        }
        try:
            failed_urls = self.store.get_value(FAILED_URLS_KEY, [])
        except ValueError as e:
            logger.warning(f"Unreadable {FAILED_URLS_KEY} entry, starting a new list: {e}")
            failed_urls = []
        failed_urls.append(entry)
        try:
            self.store.set_value(FAILED_URLS_KEY, failed_urls)
        except OSError as e:
            logger.error(f"Could not store {FAILED_URLS_KEY}: {e}")
        self.stats.record_failed(task.url, task.query, str(error))

    async def process_task(self, task: CrawlTask) -> int:
        """
        Run a task with request-level retries.

        Playwright errors are retried on a fresh page with exponential backoff.
        Any other error fails the task at once. Either way the failure is
        recorded and the run carries on with the remaining tasks.
        """
        while True:
            page = await self.new_page()
            try:
                return await self.handle_task(page, task)
            except PlaywrightError as e:
                logger.error(f"Error processing {task.url}: {e}")
                self.stats.record_error(task.url, str(e))

                if self.options.screenshot_on_error:
                    stamp = datetime.now().strftime('%Y%m%d%H%M%S%f')
                    try:
                        self.store.set_value(f"error-screenshot-{stamp}.png", await page.screenshot())
                        logger.info("Error screenshot saved")
                    except (PlaywrightError, OSError) as screenshot_error:
                        logger.error(f"Failed to capture screenshot: {screenshot_error}")

                if task.retry_count >= self.options.max_request_retries:
                    await self.failed_request(task, e)
                    return 0

                task.retry_count += 1
                backoff = self.options.retry_backoff_base ** task.retry_count
                logger.info(f"Retrying {task.url} ({task.retry_count}/{self.options.max_request_retries}) in {backoff:.1f}s")
                await asyncio.sleep(backoff)
            except Exception as e:
                # Non-browser errors are not retried
                logger.exception(f"Unexpected error processing {task.url}: {e}")
                self.stats.record_error(task.url, str(e))
                await self.failed_request(task, e)
                return 0
            finally:
                await self.close_page(page)

    async def run(self, tasks: List[CrawlTask]) -> Dict[str, Any]:
        """
        Process all tasks.

        Returns:
            Run summary from RunStats
        """
        self.stats.total_requests = len(tasks)
        if not tasks:
            logger.error("No search URLs or queries provided!")
            return self.stats.get_summary()

        logger.info(f"Starting {self.site.platform_name} scraper with {len(tasks)} URLs")

        location_tasks = [task for task in tasks if task.set_location]
        other_tasks = [task for task in tasks if not task.set_location]
        semaphore = asyncio.Semaphore(self.options.max_concurrency)

        with tqdm(total=len(tasks), desc=f"Scraping {self.site.platform_name}", unit="page") as pbar:

            async def bounded(task: CrawlTask) -> None:
                async with semaphore:
                    written = await self.process_task(task)
                pbar.set_postfix(products=self.stats.products_saved)
                pbar.update(1)
                if written:
                    pbar.write(f"  {task.query}: {written} products")

            # Location is stored on the shared context, so set it before fanning out
            for task in location_tasks:
                await bounded(task)
            await asyncio.gather(*(bounded(task) for task in other_tasks))

        summary = self.stats.get_summary()
        logger.info(f"Scraping completed: {summary['products_saved']} products from {summary['finished_requests']} pages")
        return summary
