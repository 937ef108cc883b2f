"""
Data models for scraped listings.

ProductRecord is the only entity a scrape produces. CrawlTask describes one
search page request, including whether the delivery location should be set
while handling it.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ProductRecord:
    """One product card extracted from a search results page."""
    product_id: str
    product_slug: Optional[str] = None
    name: Optional[str] = None
    image_url: Optional[str] = None
    current_price: Optional[float] = None
    original_price: Optional[float] = None
    discount_percentage: Optional[int] = None
    pack_size: Optional[str] = None
    rating: Optional[float] = None
    is_sponsored: bool = False
    is_out_of_stock: bool = False
    source_url: Optional[str] = None
    delivery_time: Optional[str] = None
    captured_at: str = field(default_factory=_utc_now)

    # Provenance, attached after extraction
    search_query: Optional[str] = None
    search_url: Optional[str] = None
    platform_name: Optional[str] = None
    location_code: Optional[str] = None

    def has_content(self) -> bool:
        """A record is worth keeping only if it carries a name, price or image."""
        return bool(self.name) or self.current_price is not None or bool(self.image_url)

    def with_provenance(
        self,
        search_query: Optional[str],
        search_url: str,
        platform_name: str,
        location_code: Optional[str],
        delivery_time: Optional[str] = None
    ) -> "ProductRecord":
        """Return a copy carrying the request context it was scraped under."""
        return replace(
            self,
            search_query=search_query,
            search_url=search_url,
            platform_name=platform_name,
            location_code=location_code,
            delivery_time=self.delivery_time or delivery_time,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dataset row schema."""
        return {
            'productId': self.product_id,
            'productSlug': self.product_slug,
            'productName': self.name,
            'productImage': self.image_url,
            'currentPrice': self.current_price,
            'originalPrice': self.original_price,
            'discountPercentage': self.discount_percentage,
            'productWeight': self.pack_size,
            'rating': self.rating,
            'isSponsored': self.is_sponsored,
            'isOutOfStock': self.is_out_of_stock,
            'productUrl': self.source_url,
            'scrapedAt': self.captured_at,
            'deliveryTime': self.delivery_time,
            'searchQuery': self.search_query,
            'searchUrl': self.search_url,
            'platform': self.platform_name,
            'pincode': self.location_code,
        }


DATASET_FIELDS = list(ProductRecord(product_id='').to_dict().keys())


@dataclass
class CrawlTask:
    """A single search page to scrape."""
    url: str
    query: str
    set_location: bool = False
    retry_count: int = 0
