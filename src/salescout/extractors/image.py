"""
Preview image pre-extraction from og:image / twitter:image meta tags.
"""
from __future__ import annotations

import re
from typing import Optional, Tuple

from bs4 import BeautifulSoup

IMAGE_META_KEYS = ("og:image", "twitter:image")


def _find_meta_content(soup: BeautifulSoup, key: str) -> Optional[str]:
    # meta names match case-insensitively
    matcher = re.compile(f"^{re.escape(key)}$", re.IGNORECASE)
    for attr in ("property", "name"):
        for tag in soup.find_all("meta", attrs={attr: matcher}):
            content = (tag.get("content") or "").strip()
            if content.lower().startswith(("http://", "https://")):
                return content
    return None


def pre_extract_image_with_source(html: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Find the page's canonical preview image.

    Returns:
        (image_url, source) where source is "og:image" or "twitter:image",
        or (None, None) when neither tag carries an absolute http(s) URL
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for key in IMAGE_META_KEYS:
        content = _find_meta_content(soup, key)
        if content:
            return content, key
    return None, None


def pre_extract_image(html: str) -> Optional[str]:
    """Return the og:image (falling back to twitter:image) URL, or None."""
    return pre_extract_image_with_source(html)[0]
