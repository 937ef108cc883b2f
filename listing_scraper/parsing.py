"""
Pure text parsing helpers used by the extractor.

Nothing here touches the DOM or the browser, so every function can be tested
with plain strings.
"""

import math
import re
from typing import Callable, Iterable, Optional, Sequence, Tuple

# Currency prefix followed by an amount with optional thousands separators
PRICE_PATTERN = re.compile(
    r'(?:₹|\bRs\.?|\bINR)\s*(\d+(?:,\d+)*(?:\.\d+)?)',
    re.IGNORECASE
)
RATING_PATTERN = re.compile(r'(\d+\.\d+)')
DISCOUNT_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*%')
WHITESPACE_PATTERN = re.compile(r'\s+')

MAX_RATING = 5.0


def clean_text(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace and strip; empty strings become None."""
    if not text:
        return None
    text = WHITESPACE_PATTERN.sub(' ', text).strip()
    return text or None


def parse_price(text: Optional[str]) -> Optional[float]:
    """
    Extract the first currency-prefixed amount from text.

    Handles:
    - Rupee symbol: "₹1,234.50 MRP" -> 1234.5
    - Rs. prefix: "Rs. 99" -> 99.0
    - INR prefix: "INR 1,299" -> 1299.0

    Returns:
        Parsed amount, or None when no currency token is present
    """
    if not text:
        return None

    match = PRICE_PATTERN.search(text)
    if not match:
        return None

    return float(match.group(1).replace(',', ''))


def parse_rating(text: Optional[str]) -> Optional[float]:
    """Take the first decimal-looking substring as a 0-5 rating."""
    if not text:
        return None

    match = RATING_PATTERN.search(text)
    if not match:
        return None

    rating = float(match.group(1))
    if 0.0 <= rating <= MAX_RATING:
        return rating
    return None


def parse_discount(text: Optional[str]) -> Optional[int]:
    """Read an explicit "NN%" discount badge, rounding fractional values half up."""
    if not text:
        return None

    match = DISCOUNT_PATTERN.search(text)
    if not match:
        return None

    discount = int(math.floor(float(match.group(1)) + 0.5))
    return max(0, min(100, discount))


def compute_discount(
    current_price: Optional[float],
    original_price: Optional[float]
) -> Optional[int]:
    """
    Derive the discount percentage from both prices.

    Rounds half up, so 12.5% becomes 13%. Returns None unless
    original > current > 0.
    """
    if current_price is None or original_price is None:
        return None
    if current_price <= 0 or original_price <= current_price:
        return None

    ratio = (original_price - current_price) / original_price * 100
    return int(math.floor(ratio + 0.5))


def product_identity(
    url: Optional[str],
    patterns: Sequence[str],
    index: int,
    fallback_prefix: str
) -> Tuple[str, Optional[str]]:
    """
    Derive (product_id, slug) from a product URL.

    Each pattern must capture the slug as group 1 and the id as group 2.
    Patterns are tried in order; when none matches the id falls back to a
    positional "<prefix>-<index>" value and the slug is None.
    """
    if url:
        for pattern in patterns:
            match = re.search(pattern, url)
            if match:
                slug = match.group(1) or None
                product_id = match.group(2) or f"{fallback_prefix}-{index}"
                return product_id, slug

    return f"{fallback_prefix}-{index}", None


def first_match(candidates: Iterable[Callable[[], Optional[str]]]) -> Optional[str]:
    """
    Evaluate extractors in priority order and return the first non-empty value.

    Extractors are zero-argument callables so that later (possibly costly)
    lookups only run when the earlier ones came up empty.
    """
    for candidate in candidates:
        value = clean_text(candidate())
        if value:
            return value
    return None
