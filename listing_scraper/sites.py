"""
Site profiles for the supported quick-commerce search pages.

Every selector here is curated against one snapshot of the site's markup and
has to be revisited when the site changes its layout.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import UnknownSiteError


@dataclass
class SiteConfig:
    """Configuration for a specific e-commerce search page."""
    name: str
    platform_name: str
    base_url: str
    search_url_template: str  # Use {query} as placeholder
    query_param: str  # URL parameter holding the search term

    # Listing: the element counted while scrolling and walked during extraction
    listing_selector: str
    card_selector: Optional[str] = None  # Inner card, when the listing element is a wrapper
    link_selector: Optional[str] = None  # Anchor inside the card; None means the listing element is the anchor

    # Identity
    url_patterns: List[str] = field(default_factory=list)  # group 1 = slug, group 2 = id
    id_attribute: Optional[str] = None
    fallback_id_prefix: str = 'product'
    product_url_template: Optional[str] = None  # Use {product_id} as placeholder

    # Card fields
    name_selectors: List[str] = field(default_factory=list)
    image_selectors: List[str] = field(default_factory=lambda: ['img'])
    price_selector: str = 'span'
    original_price_class_pattern: Optional[str] = None
    original_price_from_larger: bool = False
    discount_selector: Optional[str] = None
    pack_size_selector: Optional[str] = None
    rating_selector: Optional[str] = None
    sponsor_selector: Optional[str] = None
    out_of_stock_attribute: Optional[str] = None
    out_of_stock_text: Optional[str] = None
    delivery_time_selector: Optional[str] = None  # Page level
    card_delivery_pattern: Optional[str] = None  # Card level, regex over card text

    # Used when the primary listing selector finds nothing
    fallback_listing_selector: Optional[str] = None
    fallback_required_text: Optional[str] = None
    fallback_listing_id_prefix: str = 'fallback'

    # Page interaction
    results_selectors: List[str] = field(default_factory=list)
    popup_close_selectors: List[str] = field(default_factory=list)
    stability_signal: str = 'count'  # 'count' of listing elements or scroll 'height'

    # Location selection flow (optional)
    location_button_selectors: List[str] = field(default_factory=list)
    location_modal_selector: Optional[str] = None
    location_input_selector: Optional[str] = None
    location_result_selector: Optional[str] = None
    geolocation: Optional[Tuple[float, float]] = None  # (latitude, longitude)

    @property
    def has_location_flow(self) -> bool:
        return bool(
            self.location_button_selectors
            and self.location_modal_selector
            and self.location_input_selector
            and self.location_result_selector
        )


# =============================================================================
# Pre-configured Site Configurations
# =============================================================================

SITE_CONFIGS: Dict[str, SiteConfig] = {
    'zepto': SiteConfig(
        name='zepto',
        platform_name='Zepto',
        base_url='https://www.zepto.com',
        search_url_template='https://www.zepto.com/search?query={query}',
        query_param='query',
        listing_selector='a.B4vNQ',
        card_selector='div.cavQgJ.cTH4Df',
        url_patterns=[
            r'/pn/([^/]+)/pvid/([^/?#]+)',
            r'/(?:p|product)/([^/]+)/([^/?#]+)',
        ],
        fallback_id_prefix='zepto',
        name_selectors=[
            'div[data-slot-id="ProductName"] span',
            'div.cQAjo6.ch5GgP span',
            'h3',
            'h2',
        ],
        image_selectors=['img'],
        price_selector='span',
        original_price_class_pattern=r'(MRP|strike|original)',
        pack_size_selector='[data-slot-id="PackSize"] span',
        rating_selector='[data-slot-id="RatingInformation"]',
        sponsor_selector='[data-slot-id="SponsorTag"]',
        out_of_stock_attribute='data-is-out-of-stock',
        delivery_time_selector='[data-testid="delivery-time"] span',
        results_selectors=['a.B4vNQ'],
        popup_close_selectors=['button[aria-label*="Close"]'],
        stability_signal='count',
        location_button_selectors=[
            'button[aria-label="Select Location"]',
            'button.__4y7HY',
            'div.a0Ppr button',
        ],
        location_modal_selector='div[data-testid="address-modal"]',
        location_input_selector='div[data-testid="address-search-input"] input[type="text"]',
        location_result_selector='div[data-testid="address-search-item"]',
    ),
    'blinkit': SiteConfig(
        name='blinkit',
        platform_name='Blinkit',
        base_url='https://blinkit.com',
        search_url_template='https://blinkit.com/s/?q={query}',
        query_param='q',
        listing_selector='div[id][role="button"][tabindex="0"].tw-relative.tw-flex.tw-h-full.tw-flex-col',
        link_selector='a[href*="/prn/"]',
        url_patterns=[r'/prn/([^/]+)/prid/([^/?#]+)'],
        id_attribute='id',
        fallback_id_prefix='product',
        product_url_template='https://blinkit.com/prn/product/prid/{product_id}',
        name_selectors=['div.tw-text-300.tw-font-semibold.tw-line-clamp-2'],
        image_selectors=['img[src*="cdn.grofers.com"]', 'img'],
        price_selector='div.tw-text-200.tw-font-semibold',
        original_price_from_larger=True,
        discount_selector='svg ~ div.tw-text-050',
        pack_size_selector='div.tw-flex.tw-items-center div.tw-text-200.tw-font-medium.tw-line-clamp-1',
        out_of_stock_text='Out of Stock',
        card_delivery_pattern=r'(\d+\s*MINS?)',
        fallback_listing_selector='div[role="button"][tabindex="0"]',
        fallback_required_text='ADD',
        results_selectors=[
            'div[id][role="button"].tw-relative',
            'div.tw-text-300.tw-font-semibold.tw-line-clamp-2',
            'div.tw-text-200.tw-font-semibold',
            'img[src*="cdn.grofers.com"]',
        ],
        popup_close_selectors=[
            'button:has-text("Close")',
            'button:has-text("×")',
            '[aria-label="Close"]',
        ],
        stability_signal='height',
        geolocation=(18.5204, 73.8567),  # Pune
    ),
}


def get_site_config(name: str) -> SiteConfig:
    """Look up a site profile by name (case-insensitive)."""
    config = SITE_CONFIGS.get(name.lower().strip())
    if config is None:
        raise UnknownSiteError(name, sorted(SITE_CONFIGS))
    return config
