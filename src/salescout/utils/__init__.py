"""
Utility modules for Salescout.
"""
from .validators import is_valid_url, validate_url, check_public_url, extract_domain, parse_price
from .text_cleaning import normalize_whitespace, strip_html_tags, clean_product_name

__all__ = [
    "is_valid_url",
    "validate_url",
    "check_public_url",
    "extract_domain",
    "parse_price",
    "normalize_whitespace",
    "strip_html_tags",
    "clean_product_name",
]
