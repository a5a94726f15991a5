from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import quote

from ecoscan.schemas.analysis import PlatformLink

# Appended to every search so marketplaces surface the greener variants
ECO_QUALIFIER = "eco friendly sustainable"

# Used when an alternative comes back without a usable name
FALLBACK_QUERY_NAME = "eco product"


def _collapse_whitespace(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def _encode(s: str) -> str:
    # Same escaping as JS encodeURIComponent
    return quote(s, safe="-_.!~*'()")


def eco_search_query(product_name: Optional[str]) -> str:
    name = _collapse_whitespace(product_name or "") or FALLBACK_QUERY_NAME
    return f"{name} {ECO_QUALIFIER}"


def flipkart_url(query: str) -> str:
    """
    https://www.flipkart.com/search?q=water%20bottle%20eco%20friendly%20sustainable&...
    """
    q = _encode(_collapse_whitespace(query.lower()))
    return f"https://www.flipkart.com/search?q={q}&as=on&as-show=on&otracker=search"


def amazon_url(query: str) -> str:
    """
    https://www.amazon.in/s?k=water+bottle+eco+friendly+sustainable
    """
    q = "+".join(_encode(part) for part in query.lower().split())
    return f"https://www.amazon.in/s?k={q}"


def meesho_url(query: str) -> str:
    """
    https://www.meesho.com/search?q=water%20bottle%20eco%20friendly%20sustainable&...
    """
    q = _encode(_collapse_whitespace(query.lower()))
    return f"https://www.meesho.com/search?q={q}&searchType=manual&searchIdentifier=text_search"


# Order matters: the UI renders links in this order
PLATFORMS = [
    ("flipkart", "Flipkart", flipkart_url),
    ("amazon", "Amazon", amazon_url),
    ("meesho", "Meesho", meesho_url),
]


def generate_platform_links(product_name: Optional[str]) -> List[PlatformLink]:
    """
    Marketplace search links for a product name.
    Pure: the same name always gives the same three links, in PLATFORMS order.
    """
    query = eco_search_query(product_name)
    return [
        PlatformLink(platform=platform, url=build(query), display_name=display)
        for platform, display, build in PLATFORMS
    ]
