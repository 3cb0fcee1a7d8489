"""
Text cleaning and normalization utilities.
"""
import re
from html import unescape
from typing import Optional


def normalize_whitespace(text: str) -> str:
    """
    Normalize whitespace in text.

    Examples:
        >>> normalize_whitespace("hello    world\\n\\ntest")
        'hello world test'
    """
    if not text:
        return ""

    return re.sub(r'\s+', ' ', text).strip()


def strip_html_tags(text: str) -> str:
    """
    Remove HTML tags from text and unescape entities.

    Examples:
        >>> strip_html_tags("<p>Hello <strong>world</strong></p>")
        'Hello world'
    """
    if not text:
        return ""

    text = re.sub(r'<[^>]+>', '', text)
    return unescape(text)


def clean_product_name(name: Optional[str]) -> Optional[str]:
    """
    Normalize a product name taken from markup or a model reply.

    Returns None when nothing usable is left.
    """
    if not name or not isinstance(name, str):
        return None

    cleaned = normalize_whitespace(strip_html_tags(name))
    return cleaned or None
