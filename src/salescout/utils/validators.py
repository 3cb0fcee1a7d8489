"""
Input validation utilities.
"""
import ipaddress
import math
import re
from typing import Optional, Union
from urllib.parse import urlparse

BLOCKED_HOSTS = {"localhost", "localhost.localdomain", "0.0.0.0"}


def is_valid_url(url: str) -> bool:
    """
    Check if a string is a valid HTTP/HTTPS URL.

    Args:
        url: URL string to validate

    Returns:
        True if URL is valid, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    try:
        result = urlparse(url)
        return all([
            result.scheme in ("http", "https"),
            result.netloc,
        ])
    except ValueError:
        return False


def validate_url(url: str) -> Optional[str]:
    """
    Validate and normalize a URL.

    Args:
        url: URL string to validate

    Returns:
        Normalized URL if valid, None otherwise

    Examples:
        >>> validate_url("https://example.com/")
        'https://example.com'
        >>> validate_url("not a url")
    """
    if not url or not isinstance(url, str):
        return None

    url = url.strip()
    if url.startswith("www."):
        url = "https://" + url

    url = url.rstrip("/")

    return url if is_valid_url(url) else None


def check_public_url(url: str) -> None:
    """
    Reject URLs that cannot or must not be fetched.

    Raises:
        ValueError: "Invalid URL format", "Invalid URL protocol" or
            "Private URLs not allowed"
    """
    try:
        parsed = urlparse(url)
        hostname = (parsed.hostname or "").lower()
    except (TypeError, ValueError):
        raise ValueError("Invalid URL format")

    if parsed.scheme not in ("http", "https"):
        if not parsed.scheme:
            raise ValueError("Invalid URL format")
        raise ValueError("Invalid URL protocol")

    if not hostname:
        raise ValueError("Invalid URL format")

    if hostname in BLOCKED_HOSTS:
        raise ValueError("Private URLs not allowed")

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return

    if address.is_private or address.is_loopback or address.is_link_local or address.is_unspecified:
        raise ValueError("Private URLs not allowed")


def extract_domain(url: str) -> str:
    """
    Host of a URL, lower-cased, without a leading "www.".

    Examples:
        >>> extract_domain("https://www.Shop.example.com/p/1")
        'shop.example.com'
    """
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def parse_price(value: Union[str, int, float, None]) -> Optional[float]:
    """
    Parse a price from a number or a display string.

    Returns None for missing, unparseable, NaN or non-positive values.

    Examples:
        >>> parse_price("$1,299.00")
        1299.0
        >>> parse_price("free")
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        price = float(value)
    elif isinstance(value, str):
        cleaned = re.sub(r"[^\d.,-]", "", value)
        # "1,299.00" -> "1299.00", "1.299,00" -> "1299.00", "12,50" -> "12.50"
        if "," in cleaned and "." in cleaned:
            if cleaned.rfind(",") > cleaned.rfind("."):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif cleaned.count(",") == 1 and len(cleaned.split(",")[1]) == 2:
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
        try:
            price = float(cleaned)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(price) or math.isinf(price) or price <= 0:
        return None
    return price
