"""
Validation and confidence scoring for model-extracted products.

Cross-checks the model's numbers against each other and against the raw
page text, applies fixed confidence penalties, and rejects placeholder
data. Structured-data results never pass through here: their confidence
is fixed.
"""
from __future__ import annotations

import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from ..config import Config
from ..logger import get_logger
from ..models import (
    ConfidenceAdjustment,
    ErrorKind,
    ExtractionMethod,
    ExtractionResult,
    Failure,
    PriceValidation,
    ProductRecord,
    Success,
    TestMetadata,
    clamp_confidence,
    compute_percent_off,
)
from ..schemas.scrape import LLMProductReply
from ..utils.text_cleaning import clean_product_name

logger = get_logger(__name__)

PLACEHOLDER_DOMAINS = (
    "example.com",
    "placeholder.com",
    "via.placeholder.com",
    "placehold.it",
    "dummyimage.com",
)

MAX_SALE_PRICE = 50000.0
DEFAULT_MODEL_CONFIDENCE = 50

# (penalty, floor)
INVALID_ORIGINAL_PENALTY = (20, 30)
ORIGINAL_NOT_ABOVE_SALE_PENALTY = (25, 30)
PERCENT_MISMATCH_PENALTY = (10, 40)
PRICE_NOT_IN_HTML_PENALTY = (30, 30)
PERCENT_TOLERANCE = 2


def is_placeholder_image(image_url: str, domains: Tuple[str, ...] = PLACEHOLDER_DOMAINS) -> bool:
    """
    True when the image host is, or is a subdomain of, a placeholder domain.

    Examples:
        >>> is_placeholder_image("https://via.placeholder.com/300")
        True
        >>> is_placeholder_image("https://cdn.shopify.com/x.jpg")
        False
    """
    try:
        host = (urlparse(image_url).hostname or "").lower()
    except ValueError:
        return False
    return any(host == d or host.endswith("." + d) for d in domains)


def price_variants(price: float) -> List[str]:
    """
    Plausible textual renderings of a price as it may appear in page source.

    Covers two-decimal, whole-dollar, comma-grouped thousands, minor-unit
    integer and decimal-comma forms.

    Examples:
        >>> price_variants(45.0)
        ['45.00', '45', '4500', '45,00']
        >>> price_variants(1299.5)
        ['1299.50', '1,299.50', '129950', '1299,50', '1.299,50']
    """
    variants: List[str] = []

    def add(value: str) -> None:
        if value not in variants:
            variants.append(value)

    cents = int(round(price * 100))
    whole = cents % 100 == 0

    add(f"{price:.2f}")
    if whole:
        add(str(cents // 100))
    if price >= 1000:
        add(f"{price:,.2f}")
        if whole:
            add(f"{cents // 100:,}")
    add(str(cents))
    add(f"{price:.2f}".replace(".", ","))
    if price >= 1000:
        add(f"{price:,.2f}".replace(",", "_").replace(".", ",").replace("_", "."))

    return variants


def find_price_in_html(html: str, price: float) -> PriceValidation:
    """Search the raw HTML for every rendering of price, bounded by non-digits."""
    validation = PriceValidation()
    source = html or ""

    for variant in price_variants(price):
        validation.checked_formats.append(variant)
        pattern = r"(?<![\d.,])" + re.escape(variant) + r"(?!\d)"
        if re.search(pattern, source):
            validation.matched_formats.append(variant)

    validation.found_in_html = bool(validation.matched_formats)
    return validation


class ProductValidator:
    """
    Turn a parsed model reply into a Success or Failure.

    Args:
        threshold: Minimum confidence outside test mode (default from config)
        placeholder_domains: Image hosts that are always rejected
    """

    def __init__(
        self,
        threshold: Optional[int] = None,
        placeholder_domains: Tuple[str, ...] = PLACEHOLDER_DOMAINS,
    ) -> None:
        self.threshold = Config.CONFIDENCE_THRESHOLD if threshold is None else threshold
        self.placeholder_domains = placeholder_domains

    @staticmethod
    def _penalize(
        confidence: int,
        penalty_and_floor: Tuple[int, int],
        step: str,
        reason: str,
        metadata: TestMetadata,
    ) -> int:
        """Subtract a penalty without going below its floor (or raising a lower score)."""
        penalty, floor = penalty_and_floor
        adjusted = confidence if confidence <= floor else max(floor, confidence - penalty)
        metadata.confidence_adjustments.append(
            ConfidenceAdjustment(step=step, delta=adjusted - confidence, confidence=adjusted, reason=reason)
        )
        logger.info("VALIDATE %s: %s (confidence %d -> %d)", step, reason, confidence, adjusted)
        return adjusted

    def validate(
        self,
        reply: LLMProductReply,
        raw_html: str,
        url: str,
        *,
        image_hint: Optional[str] = None,
        image_hint_source: Optional[str] = None,
        test_mode: bool = False,
        metadata: Optional[TestMetadata] = None,
    ) -> ExtractionResult:
        """
        Validate and score a model reply.

        Args:
            reply: Parsed model reply
            raw_html: Full fetched page, used for the price-presence check
            url: Product page URL
            image_hint: Pre-extracted image URL (used when the model gave none)
            image_hint_source: "og:image" or "twitter:image"
            test_mode: Keep low-confidence results and attach diagnostics
            metadata: Diagnostic trail to fill in

        Returns:
            Success with extraction_method "ai-extraction", or Failure
        """
        metadata = metadata or TestMetadata()

        if reply.error:
            return Failure(reply.error, ErrorKind.FATAL)

        # 1. Required fields
        name = clean_product_name(reply.name)
        image_url = reply.image_url
        if image_url and image_url.lower().startswith(("http://", "https://")):
            metadata.image_extraction.source = "ai"
            if image_hint and image_url == image_hint:
                metadata.image_extraction.source = image_hint_source
        elif image_hint:
            image_url = image_hint
            metadata.image_extraction.source = image_hint_source
        else:
            image_url = None
        sale_price = reply.sale_price

        if not name or not image_url or sale_price is None:
            missing = [f for f, v in (("name", name), ("imageUrl", image_url), ("salePrice", sale_price)) if not v]
            logger.warning("VALIDATE Missing required fields %s for %s", missing, url)
            return Failure("Missing required product fields", ErrorKind.FATAL, meta={"missing": missing})

        if sale_price > MAX_SALE_PRICE:
            return Failure(f"Sale price out of reasonable range: ${sale_price:.2f}", ErrorKind.FATAL)

        # 2. Placeholder images
        if is_placeholder_image(image_url, self.placeholder_domains):
            logger.warning("VALIDATE Placeholder image rejected: %s", image_url)
            return Failure("AI returned placeholder image URL", ErrorKind.FATAL)

        confidence = (
            DEFAULT_MODEL_CONFIDENCE if reply.confidence is None else clamp_confidence(reply.confidence)
        )
        metadata.confidence_adjustments.append(
            ConfidenceAdjustment(step="model", delta=0, confidence=confidence, reason="confidence reported by model")
        )

        # 3. Price ordering
        original_price = reply.original_price
        if reply.original_price_invalid or (original_price is not None and original_price > MAX_SALE_PRICE):
            original_price = None
            confidence = self._penalize(
                confidence, INVALID_ORIGINAL_PENALTY, "invalid-original-price",
                "originalPrice was not a usable number", metadata,
            )
        elif original_price is not None and original_price <= sale_price:
            confidence = self._penalize(
                confidence, ORIGINAL_NOT_ABOVE_SALE_PENALTY, "original-not-above-sale",
                f"originalPrice {original_price} <= salePrice {sale_price}", metadata,
            )
            original_price = None

        # 4. Percent-off consistency; the recomputed value is authoritative
        percent_off = compute_percent_off(original_price, sale_price)
        if original_price is not None and reply.percent_off is not None:
            if abs(reply.percent_off - percent_off) > PERCENT_TOLERANCE:
                confidence = self._penalize(
                    confidence, PERCENT_MISMATCH_PENALTY, "percent-off-mismatch",
                    f"model reported {reply.percent_off:g}%, prices give {percent_off}%", metadata,
                )

        # 5. Hallucination guard
        price_check = find_price_in_html(raw_html, sale_price)
        metadata.price_validation = price_check
        if not price_check.found_in_html:
            confidence = self._penalize(
                confidence, PRICE_NOT_IN_HTML_PENALTY, "price-not-in-html",
                f"salePrice {sale_price:.2f} not found in page source", metadata,
            )

        # 6. Threshold
        below_threshold = confidence < self.threshold
        if below_threshold and not test_mode:
            logger.warning("VALIDATE Low confidence (%d%%) for %s", confidence, url)
            return Failure(
                f"Low confidence ({confidence}%) - data may be inaccurate",
                ErrorKind.FATAL,
                meta={"confidence": confidence},
            )

        product = ProductRecord(
            name=name,
            image_url=image_url,
            original_price=original_price,
            sale_price=sale_price,
            percent_off=percent_off,
            confidence=confidence,
            url=url,
        )
        metadata.phase_used = ExtractionMethod.AI_EXTRACTION.value

        extra_meta = {"belowThreshold": True} if below_threshold else {}
        return Success(
            product=product,
            extraction_method=ExtractionMethod.AI_EXTRACTION,
            confidence=confidence,
            test_metadata=metadata if test_mode else None,
            extra_meta=extra_meta,
        )
