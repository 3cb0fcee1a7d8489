"""
Reduce raw product-page HTML to the fragments most likely to carry
name and price signal, bounded to a fixed character budget.

Everything here is pure: no network, no model calls.
"""
from __future__ import annotations

import re
from typing import List, Optional

from ..config import Config

# Ordered: price blocks first so they survive truncation
RELEVANT_PATTERNS = [
    ("price_class", re.compile(r'<[^>]*class="[^"]*price[^"]*"[^>]*>[\s\S]{0,500}</[^>]+>', re.IGNORECASE)),
    ("product_class", re.compile(r'<[^>]*class="[^"]*product[^"]*"[^>]*>[\s\S]{0,1000}</[^>]+>', re.IGNORECASE)),
    ("json_script", re.compile(r'<script type="application/json"[^>]*>[\s\S]{0,5000}</script>', re.IGNORECASE)),
    ("og_meta", re.compile(r'<meta[^>]*property="og:(?:title|image|price)[^"]*"[^>]*>', re.IGNORECASE)),
    ("heading", re.compile(r'<h1[^>]*>[\s\S]{0,200}?</h1>', re.IGNORECASE)),
    ("microdata", re.compile(r'<[^>]*itemprop=["\'](?:price|name|image)["\'][^>]*>', re.IGNORECASE)),
    ("data_testid", re.compile(r'<[^>]*data-testid[^>]*>[\s\S]{0,500}</[^>]+>', re.IGNORECASE)),
    ("data_test", re.compile(r'<[^>]*data-test[^>]*>[\s\S]{0,500}</[^>]+>', re.IGNORECASE)),
]


def extract_relevant_fragments(html: str) -> List[str]:
    """
    Apply the relevance patterns in order and collect every match.

    Only the first <h1> is kept.

    Args:
        html: Raw page HTML

    Returns:
        Matched fragments in pattern order (may be empty)
    """
    if not html:
        return []

    fragments: List[str] = []
    for name, pattern in RELEVANT_PATTERNS:
        if name == "heading":
            match = pattern.search(html)
            if match:
                fragments.append(match.group(0))
            continue
        fragments.extend(m.group(0) for m in pattern.finditer(html))
    return fragments


def reduce_html(html: str, max_chars: Optional[int] = None, fragments: Optional[List[str]] = None) -> str:
    """
    Bound the HTML sent to the model.

    Joins the relevant fragments and truncates them to max_chars; when no
    pattern matches, falls back to the head of the raw document.
    """
    max_chars = max_chars or Config.MAX_REDUCED_CHARS
    if fragments is None:
        fragments = extract_relevant_fragments(html)

    if fragments:
        return "\n".join(fragments)[:max_chars]
    return (html or "")[:max_chars]
