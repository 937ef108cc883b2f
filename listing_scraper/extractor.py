"""
Product card extraction from a rendered search results snapshot.

Works on the page HTML captured after scrolling (page.content()), parsed with
BeautifulSoup, so no network activity or live DOM access is involved. Field
lookups follow ordered selector chains from the site profile; prices, ratings
and discounts go through the pure helpers in parsing.py.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .models import ProductRecord
from .parsing import (
    clean_text,
    compute_discount,
    first_match,
    parse_discount,
    parse_price,
    parse_rating,
    product_identity,
)
from .sites import SiteConfig

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Records found in one snapshot plus page-level metadata."""
    products: List[ProductRecord] = field(default_factory=list)
    delivery_time: Optional[str] = None

    def __len__(self) -> int:
        return len(self.products)


def _text(element: Optional[Tag]) -> Optional[str]:
    if element is None:
        return None
    return clean_text(element.get_text(' ', strip=True))


def _image_url(card: Tag, site: SiteConfig, base_url: str) -> Optional[str]:
    for selector in site.image_selectors:
        img = card.select_one(selector)
        if img is None:
            continue
        src = img.get('src') or img.get('data-src')
        if src:
            return urljoin(base_url, src)
    return None


def _prices(card: Tag, site: SiteConfig):
    """
    Find (current, original) prices inside a card.

    The first currency token in document order is the current price. The
    original price comes from a class-flagged element (MRP/strike/original)
    or, for sites that need it, from a later price that is larger than the
    current one. An original price that is not above the current price is
    dropped.
    """
    elements = card.select(site.price_selector)

    current_price = None
    current_index = None
    for index, element in enumerate(elements):
        price = parse_price(element.get_text(' ', strip=True))
        if price is not None:
            current_price = price
            current_index = index
            break

    if current_price is None:
        return None, None

    original_price = None
    if site.original_price_class_pattern:
        class_pattern = re.compile(site.original_price_class_pattern, re.IGNORECASE)
        for element in elements:
            classes = ' '.join(element.get('class') or [])
            if class_pattern.search(classes):
                original_price = parse_price(element.get_text(' ', strip=True))
                break

    if original_price is None and site.original_price_from_larger:
        for element in elements[current_index + 1:]:
            price = parse_price(element.get_text(' ', strip=True))
            if price is not None and price > current_price:
                original_price = price

    if original_price is not None and original_price <= current_price:
        original_price = None

    return current_price, original_price


def _is_out_of_stock(element: Tag, card: Tag, site: SiteConfig) -> bool:
    if site.out_of_stock_attribute:
        for node in (card, element):
            if node.get(site.out_of_stock_attribute) == 'true':
                return True
    if site.out_of_stock_text:
        text = card.get_text(' ', strip=True).lower()
        if site.out_of_stock_text.lower() in text:
            return True
    return False


def extract_card(
    element: Tag,
    site: SiteConfig,
    index: int,
    base_url: str
) -> Optional[ProductRecord]:
    """
    Build a ProductRecord from one listing element.

    Args:
        element: Element matched by the site's listing selector
        site: Site profile with the selector chains
        index: Position of the element, used for fallback ids
        base_url: URL relative links resolve against

    Returns:
        The record, or None when the card has no name, price or image
    """
    link = element if site.link_selector is None else element.select_one(site.link_selector)
    card = (element.select_one(site.card_selector) if site.card_selector else None) or element

    href = link.get('href') if link is not None else None
    product_url = urljoin(base_url, href) if href else None
    product_id, product_slug = product_identity(
        product_url, site.url_patterns, index, site.fallback_id_prefix
    )

    if site.id_attribute:
        attribute_id = clean_text(element.get(site.id_attribute))
        if attribute_id:
            product_id = attribute_id
            if product_url is None and site.product_url_template:
                product_url = site.product_url_template.format(product_id=attribute_id)

    image_holder = link if link is not None else card
    name = first_match(
        [lambda selector=selector: _text(card.select_one(selector)) for selector in site.name_selectors]
        + [
            lambda: link.get('title') if link is not None else None,
            lambda: (image_holder.select_one('img') or {}).get('alt'),
        ]
    )

    current_price, original_price = _prices(card, site)

    discount = None
    if site.discount_selector:
        discount = parse_discount(_text(card.select_one(site.discount_selector)))
    if discount is None:
        discount = compute_discount(current_price, original_price)

    rating = None
    if site.rating_selector:
        rating = parse_rating(_text(card.select_one(site.rating_selector)))

    delivery_time = None
    if site.card_delivery_pattern:
        match = re.search(site.card_delivery_pattern, card.get_text(' ', strip=True), re.IGNORECASE)
        if match:
            delivery_time = match.group(1)

    record = ProductRecord(
        product_id=product_id,
        product_slug=product_slug,
        name=name,
        image_url=_image_url(card, site, base_url) or _image_url(image_holder, site, base_url),
        current_price=current_price,
        original_price=original_price,
        discount_percentage=discount,
        pack_size=_text(card.select_one(site.pack_size_selector)) if site.pack_size_selector else None,
        rating=rating,
        is_sponsored=bool(site.sponsor_selector and card.select_one(site.sponsor_selector)),
        is_out_of_stock=_is_out_of_stock(element, card, site),
        source_url=product_url,
        delivery_time=delivery_time,
    )

    if not record.has_content():
        return None
    return record


def _extract_fallback(soup: BeautifulSoup, site: SiteConfig, base_url: str) -> List[ProductRecord]:
    """Looser pass over generic containers that look like product cards."""
    products = []
    containers = soup.select(site.fallback_listing_selector)
    logger.debug(f"Fallback listing found {len(containers)} candidate containers")

    for index, container in enumerate(containers):
        name = first_match(
            lambda selector=selector: _text(container.select_one(selector))
            for selector in site.name_selectors
        )
        price_element = container.select_one(site.price_selector)
        if not name or price_element is None:
            continue
        if site.fallback_required_text and site.fallback_required_text not in container.get_text(' '):
            continue

        record = ProductRecord(
            product_id=clean_text(container.get('id')) or f"{site.fallback_listing_id_prefix}-{index}",
            name=name,
            image_url=_image_url(container, site, base_url),
            current_price=parse_price(_text(price_element)),
            pack_size=_text(container.select_one(site.pack_size_selector)) if site.pack_size_selector else None,
        )
        products.append(record)

    return products


def extract_products(html: str, site: SiteConfig, base_url: Optional[str] = None) -> ExtractionResult:
    """
    Extract product records from a search results page snapshot.

    Args:
        html: Page HTML captured after scrolling
        site: Site profile
        base_url: URL of the page; defaults to the site's base URL

    Returns:
        ExtractionResult with the kept records and the page delivery time
    """
    base_url = base_url or site.base_url
    soup = BeautifulSoup(html or '', 'lxml')

    delivery_time = None
    if site.delivery_time_selector:
        delivery_time = _text(soup.select_one(site.delivery_time_selector))

    listings = soup.select(site.listing_selector)
    logger.debug(f"Found {len(listings)} listing elements with selector: {site.listing_selector}")

    products: List[ProductRecord] = []
    for index, element in enumerate(listings):
        try:
            record = extract_card(element, site, index, base_url)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping card {index}: {e}")
            continue
        if record is not None:
            products.append(record)

    if not products and site.fallback_listing_selector:
        logger.info("Primary listing selector found no products, trying fallback containers")
        products = _extract_fallback(soup, site, base_url)

    return ExtractionResult(products=products, delivery_time=delivery_time)
