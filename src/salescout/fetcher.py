"""
HTML fetching with failure classification.

The fetcher is the only component that talks to third-party sites. Every
failure is raised as a FetchError carrying an ErrorKind so the batch
coordinator can decide whether the site's domain should be skipped.
"""
from __future__ import annotations

from typing import Optional

import requests

from .config import Config
from .logger import get_logger
from .models import ErrorKind
from .utils.validators import check_public_url

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = {500, 502, 503, 504}
BLOCKING_STATUS_CODES = {401, 403, 429}


class FetchError(Exception):
    """Page could not be fetched; error_kind says how far the failure reaches."""

    def __init__(
        self,
        message: str,
        error_kind: ErrorKind = ErrorKind.UNKNOWN,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.error_kind = error_kind
        self.status_code = status_code


def classify_http_status(status_code: int) -> ErrorKind:
    """
    Map an HTTP status code to an ErrorKind.

    Examples:
        >>> classify_http_status(403)
        <ErrorKind.BLOCKING: 'BLOCKING'>
        >>> classify_http_status(404)
        <ErrorKind.FATAL: 'FATAL'>
    """
    if status_code in RETRYABLE_STATUS_CODES:
        return ErrorKind.RETRYABLE
    if status_code in BLOCKING_STATUS_CODES:
        return ErrorKind.BLOCKING
    if 400 <= status_code < 500:
        return ErrorKind.FATAL
    return ErrorKind.RETRYABLE


def looks_like_bot_challenge(html: str) -> bool:
    """
    Check if HTML appears to be a bot/CAPTCHA challenge page.
    Be conservative - only flag obvious challenge pages.
    """
    h = (html or "").lower()

    # Very short pages with block wording
    if len(h) < 3000:
        if any(phrase in h for phrase in [
            "access denied",
            "checking your browser",
            "just a moment",
            "please enable javascript to continue",
        ]):
            return True

    specific_challenges = [
        "checking your browser before accessing" in h,
        ("verify you are human" in h and len(h) < 10000),
        ("please complete the captcha" in h and len(h) < 10000),
        ("cloudflare" in h and "ray id" in h and len(h) < 15000),
    ]

    return any(specific_challenges)


class HTMLFetcher:
    """
    Fetch raw product-page HTML over plain HTTP.

    Args:
        timeout_s: Request timeout in seconds
        user_agent: User-Agent header sent to sites
        session: Optional requests.Session (a new one is created otherwise)
    """

    def __init__(
        self,
        *,
        timeout_s: Optional[float] = None,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout_s = timeout_s or Config.FETCH_TIMEOUT_S
        self.user_agent = user_agent or Config.FETCH_USER_AGENT
        self.session = session or requests.Session()

    @property
    def headers(self) -> dict:
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "DNT": "1",
            "Upgrade-Insecure-Requests": "1",
        }

    def fetch(self, url: str) -> str:
        """
        Fetch a page and return its HTML.

        Raises:
            FetchError: on invalid/private URLs, transport errors, non-2xx
                responses, empty bodies and bot-challenge pages
        """
        try:
            check_public_url(url)
        except ValueError as e:
            raise FetchError(str(e), ErrorKind.FATAL) from e

        logger.debug("FETCH %s (timeout=%ss)", url, self.timeout_s)

        try:
            response = self.session.get(
                url,
                headers=self.headers,
                timeout=self.timeout_s,
                allow_redirects=True,
            )
        except requests.Timeout as e:
            raise FetchError(f"Timeout after {self.timeout_s}s", ErrorKind.RETRYABLE) from e
        except requests.ConnectionError as e:
            raise FetchError(f"Network error: {e}", ErrorKind.RETRYABLE) from e
        except requests.RequestException as e:
            raise FetchError(f"Request error: {type(e).__name__}: {e}", ErrorKind.UNKNOWN) from e

        if not response.ok:
            kind = classify_http_status(response.status_code)
            logger.warning("FETCH HTTP %d (%s) for %s", response.status_code, kind.value, url)
            raise FetchError(
                f"HTTP {response.status_code}: {response.reason}",
                kind,
                status_code=response.status_code,
            )

        html = response.text or ""
        if not html.strip():
            raise FetchError("Empty response body", ErrorKind.RETRYABLE, status_code=response.status_code)

        if looks_like_bot_challenge(html):
            logger.warning("FETCH Detected bot challenge page for URL: %s", url)
            raise FetchError("Bot challenge page (access denied)", ErrorKind.BLOCKING, status_code=response.status_code)

        logger.debug("FETCH Got %d characters from %s", len(html), url)
        return html
