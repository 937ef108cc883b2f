"""
Search listing scraper for quick-commerce sites.

Components:
- ListingCrawler: Playwright session and request orchestration
- collect_listing: Retry shell around scrolling and extraction
- scroll_to_stability: Infinite-scroll loader
- extract_products: Product card extraction from a page snapshot
- set_location: Delivery pincode selection
"""

from .config import ScraperOptions, load_options
from .crawler import ListingCrawler, build_tasks
from .errors import ConfigError, ScraperError, UnknownSiteError
from .extractor import ExtractionResult, extract_products
from .loader import ScrollResult, scroll_to_stability
from .location import dismiss_popups, set_location
from .models import CrawlTask, ProductRecord
from .parsing import compute_discount, parse_price, parse_rating
from .retry import ListingResult, collect_listing, wait_for_results
from .sink import DatasetSink, KeyValueStore
from .sites import SITE_CONFIGS, SiteConfig, get_site_config

__version__ = "0.1.0"

__all__ = [
    'ListingCrawler',
    'build_tasks',
    'ScraperOptions',
    'load_options',
    'ConfigError',
    'ScraperError',
    'UnknownSiteError',
    'ExtractionResult',
    'extract_products',
    'ScrollResult',
    'scroll_to_stability',
    'dismiss_popups',
    'set_location',
    'CrawlTask',
    'ProductRecord',
    'compute_discount',
    'parse_price',
    'parse_rating',
    'ListingResult',
    'collect_listing',
    'wait_for_results',
    'DatasetSink',
    'KeyValueStore',
    'SITE_CONFIGS',
    'SiteConfig',
    'get_site_config',
]
