"""
Data models for Salescout product extraction.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Union


class ErrorKind(str, Enum):
    """
    Failure classification controlling the batch circuit breaker.

    BLOCKING: the site actively resists automated access; skip its domain for the rest of the batch.
    RETRYABLE: transient; other URLs on the same domain may still succeed.
    FATAL: this URL only.
    UNKNOWN: unclassified, handled like FATAL.
    """

    BLOCKING = "BLOCKING"
    RETRYABLE = "RETRYABLE"
    FATAL = "FATAL"
    UNKNOWN = "UNKNOWN"


class ExtractionMethod(str, Enum):
    """Phase that produced a successful record."""

    STRUCTURED_DATA = "structured-data"
    AI_EXTRACTION = "ai-extraction"


def compute_percent_off(original_price: Optional[float], sale_price: float) -> int:
    """
    Discount percentage rounded half-up, 0 when there is no valid original price.

    Examples:
        >>> compute_percent_off(100.0, 67.5)
        33
        >>> compute_percent_off(None, 20.0)
        0
    """
    if original_price is None or original_price <= sale_price or original_price <= 0:
        return 0
    return int(math.floor((original_price - sale_price) / original_price * 100 + 0.5))


def clamp_confidence(value: float) -> int:
    """Clamp a confidence value into the 0-100 integer range."""
    return int(max(0, min(100, round(value))))


@dataclass(frozen=True, slots=True)
class ProductRecord:
    """
    A validated sale record for one product page.

    Attributes:
        name: Product name
        image_url: Absolute http(s) URL of the main product image
        original_price: Price before discount, or None when not on sale
        sale_price: Current selling price
        percent_off: Integer discount percentage (0 when original_price is None)
        confidence: Reliability estimate, 0-100
        url: Product page URL
    """

    name: str
    image_url: str
    original_price: Optional[float]
    sale_price: float
    percent_off: int
    confidence: int
    url: str

    def __post_init__(self) -> None:
        if not self.image_url.lower().startswith(("http://", "https://")):
            raise ValueError(f"image_url must be an absolute http(s) URL: {self.image_url!r}")
        if self.sale_price <= 0:
            raise ValueError(f"sale_price must be positive: {self.sale_price}")
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"confidence out of range: {self.confidence}")
        if self.original_price is not None and self.original_price <= self.sale_price:
            raise ValueError("original_price must exceed sale_price")
        if self.percent_off != compute_percent_off(self.original_price, self.sale_price):
            raise ValueError(
                f"percent_off {self.percent_off} inconsistent with prices "
                f"{self.original_price} -> {self.sale_price}"
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "imageUrl": self.image_url,
            "originalPrice": self.original_price,
            "salePrice": self.sale_price,
            "percentOff": self.percent_off,
            "confidence": self.confidence,
            "url": self.url,
        }


# ============================================================================
# DIAGNOSTICS
# ============================================================================

@dataclass
class ConfidenceAdjustment:
    """One scoring step applied to a candidate."""
    step: str
    delta: int
    confidence: int
    reason: str

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "delta": self.delta,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass
class PriceValidation:
    """Outcome of the sale-price presence check."""
    found_in_html: bool = False
    checked_formats: List[str] = field(default_factory=list)
    matched_formats: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "foundInHtml": self.found_in_html,
            "checkedFormats": self.checked_formats,
            "matchedFormats": self.matched_formats,
        }


@dataclass
class ImageExtraction:
    """Where the record's image came from."""
    source: Optional[str] = None
    pre_extracted: bool = False

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "preExtracted": self.pre_extracted,
        }


@dataclass
class TestMetadata:
    """
    Diagnostic trail attached to results in test mode.

    Records which phase produced the result, how the image was found,
    which sale-price renderings were searched for, and every confidence
    adjustment in order.
    """
    __test__ = False  # not a pytest test class

    phase_used: Optional[str] = None
    image_extraction: ImageExtraction = field(default_factory=ImageExtraction)
    price_validation: PriceValidation = field(default_factory=PriceValidation)
    confidence_adjustments: List[ConfidenceAdjustment] = field(default_factory=list)
    reduced_chars: int = 0
    fragment_count: int = 0
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "phaseUsed": self.phase_used,
            "imageExtraction": self.image_extraction.to_dict(),
            "priceValidation": self.price_validation.to_dict(),
            "confidenceAdjustments": [a.to_dict() for a in self.confidence_adjustments],
            "reducedChars": self.reduced_chars,
            "fragmentCount": self.fragment_count,
            "durationMs": self.duration_ms,
        }


# ============================================================================
# EXTRACTION RESULTS
# ============================================================================

@dataclass
class Success:
    """Successful extraction for one URL."""
    product: ProductRecord
    extraction_method: ExtractionMethod
    confidence: int
    test_metadata: Optional[TestMetadata] = None
    extra_meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return True

    @property
    def meta(self) -> dict:
        meta: Dict[str, Any] = {
            "extractionMethod": self.extraction_method.value,
            "confidence": self.confidence,
        }
        if self.test_metadata is not None:
            meta["testMetadata"] = self.test_metadata.to_dict()
        meta.update(self.extra_meta)
        return meta

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": True,
            "product": self.product.to_dict(),
            "meta": self.meta,
        }


@dataclass
class Failure:
    """Failed extraction for one URL; a value, never raised."""
    error: str
    error_type: ErrorKind = ErrorKind.UNKNOWN
    meta: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "success": False,
            "error": self.error,
            "errorType": self.error_type.value,
        }
        if self.meta:
            data["meta"] = self.meta
        return data


ExtractionResult = Union[Success, Failure]


# ============================================================================
# BATCH MODELS
# ============================================================================

@dataclass
class Skipped:
    """URL not attempted because its domain already failed with a blocking error."""
    domain: str

    @property
    def reason(self) -> str:
        return f"domain {self.domain} failed on previous URL"

    def to_dict(self) -> dict:
        return {
            "success": False,
            "skipped": True,
            "domain": self.domain,
            "error": self.reason,
        }


@dataclass
class BatchItemOutcome:
    """Outcome for one URL within a batch."""
    index: int
    url: str
    outcome: Union[Success, Failure, Skipped]

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, Success)

    @property
    def skipped(self) -> bool:
        return isinstance(self.outcome, Skipped)

    def to_dict(self) -> dict:
        data = {"index": self.index, "url": self.url}
        data.update(self.outcome.to_dict())
        return data
