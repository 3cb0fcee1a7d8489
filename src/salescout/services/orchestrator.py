"""
Per-URL extraction pipeline.

Start -> StructuredData -> (Success | ImagePreExtract -> Reduce -> LLMExtract -> Validate)

The first phase that yields a usable result wins; there is no retry
between phases and no merging of phase outputs. This is the only place
where pipeline exceptions become Failure values.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import openai

from ..config import Config
from ..extractors.image import pre_extract_image_with_source
from ..extractors.relevance import extract_relevant_fragments, reduce_html
from ..extractors.structured_data import STRUCTURED_DATA_CONFIDENCE, extract_structured_product
from ..fetcher import FetchError, HTMLFetcher
from ..logger import get_logger
from ..models import (
    ErrorKind,
    ExtractionMethod,
    ExtractionResult,
    Failure,
    ProductRecord,
    Success,
    TestMetadata,
)
from .product_llm import ParseError, ProductLLMExtractor, classify_llm_error
from .validation import ProductValidator

logger = get_logger(__name__)


@dataclass
class ExtractionOptions:
    """
    Collaborators and switches for one extraction call.

    Attributes:
        llm_client: OpenAI-compatible completion client
        fetcher: Object with fetch(url) -> str raising FetchError
        test_mode: Diagnostics mode; keeps low-confidence results and attaches the trail
        logger: Logger for pipeline progress (module logger when None)
        brand_autofill: Optional predicate evaluated on successful records for the caller
        confidence_threshold: Minimum confidence outside test mode
        deadline_s: Per-URL time budget checked before the model call
        clock: Monotonic clock (injectable for tests)
    """
    llm_client: Any = None
    fetcher: Any = None
    test_mode: bool = False
    logger: Optional[logging.Logger] = None
    brand_autofill: Optional[Callable[[ProductRecord], bool]] = None
    confidence_threshold: Optional[int] = None
    deadline_s: Optional[float] = None
    model: Optional[str] = None
    clock: Callable[[], float] = field(default=time.monotonic)

    def __post_init__(self) -> None:
        if self.fetcher is None:
            self.fetcher = HTMLFetcher()
        if self.logger is None:
            self.logger = logger
        if self.confidence_threshold is None:
            self.confidence_threshold = Config.CONFIDENCE_THRESHOLD
        if self.deadline_s is None:
            self.deadline_s = Config.PIPELINE_DEADLINE_S


def _finish(result: ExtractionResult, options: ExtractionOptions, metadata: TestMetadata, started: float) -> ExtractionResult:
    metadata.duration_ms = int((options.clock() - started) * 1000)

    if isinstance(result, Success):
        if options.test_mode:
            result.test_metadata = metadata
        if options.brand_autofill is not None:
            try:
                result.extra_meta["autofillBrand"] = bool(options.brand_autofill(result.product))
            except Exception as e:
                options.logger.error("Brand autofill check failed for %s: %s", result.product.url, e, exc_info=True)
                result.extra_meta["autofillBrand"] = False
    elif options.test_mode:
        result.meta = dict(result.meta or {}, testMetadata=metadata.to_dict())

    return result


def scrape_product(url: str, options: Optional[ExtractionOptions] = None) -> ExtractionResult:
    """
    Convert one product URL into a Success or Failure.

    Args:
        url: Product page URL
        options: Collaborators and switches (defaults from config)

    Returns:
        Success(extraction_method="structured-data" | "ai-extraction") or Failure
    """
    options = options or ExtractionOptions()
    log = options.logger
    metadata = TestMetadata()
    started = options.clock()

    log.info("Starting scrape for: %s", url)

    try:
        html = options.fetcher.fetch(url)
    except FetchError as e:
        log.warning("FETCH failed for %s: %s (%s)", url, e, e.error_kind.value)
        meta = {"statusCode": e.status_code} if e.status_code else None
        return _finish(Failure(str(e), e.error_kind, meta=meta), options, metadata, started)
    except Exception as e:
        log.error("FETCH Unexpected error for %s: %s", url, e, exc_info=True)
        return _finish(Failure(f"Unexpected error: {e}", ErrorKind.UNKNOWN), options, metadata, started)

    try:
        result = _run_phases(url, html, options, metadata, started)
    except Exception as e:
        log.error("Unexpected error scraping %s: %s", url, e, exc_info=True)
        result = Failure(f"Unexpected error: {e}", ErrorKind.UNKNOWN)

    return _finish(result, options, metadata, started)


def _run_phases(
    url: str,
    html: str,
    options: ExtractionOptions,
    metadata: TestMetadata,
    started: float,
) -> ExtractionResult:
    log = options.logger

    # Phase 1: structured data
    record = extract_structured_product(html, url)
    if record is not None:
        metadata.phase_used = ExtractionMethod.STRUCTURED_DATA.value
        metadata.image_extraction.source = "json-ld"
        log.info("Structured data hit for %s (confidence: %d)", url, STRUCTURED_DATA_CONFIDENCE)
        return Success(
            product=record,
            extraction_method=ExtractionMethod.STRUCTURED_DATA,
            confidence=record.confidence,
        )

    # Phase 2: image pre-extraction
    image_hint, image_source = pre_extract_image_with_source(html)
    if image_hint:
        metadata.image_extraction.pre_extracted = True
        metadata.image_extraction.source = image_source
        log.info("IMAGE Pre-extracted %s: %s", image_source, image_hint)

    # Phase 3: relevance reduction
    fragments = extract_relevant_fragments(html)
    reduced = reduce_html(html, fragments=fragments)
    metadata.fragment_count = len(fragments)
    metadata.reduced_chars = len(reduced)
    log.info("REDUCE Extracted %d relevant HTML sections (%d chars)", len(fragments), len(reduced))

    if not reduced.strip():
        return Failure("No relevant HTML sections found for extraction", ErrorKind.FATAL)

    if options.clock() - started > options.deadline_s:
        log.warning("Pipeline deadline of %ss exceeded before AI extraction for %s", options.deadline_s, url)
        return Failure("Pipeline deadline exceeded", ErrorKind.RETRYABLE)

    # Phase 4: model extraction
    if options.llm_client is None:
        return Failure("No completion client configured for AI extraction", ErrorKind.FATAL)

    extractor = ProductLLMExtractor(options.llm_client, model=options.model)
    try:
        reply = extractor.extract(reduced, image_hint=image_hint)
    except openai.APIError as e:
        kind = classify_llm_error(e)
        log.warning("LLM call failed for %s: %s (%s)", url, e, kind.value)
        return Failure(f"AI extraction failed: {e}", kind)

    if isinstance(reply, ParseError):
        return Failure(reply.message, ErrorKind.FATAL)

    # Phase 5: validation and scoring
    validator = ProductValidator(threshold=options.confidence_threshold)
    result = validator.validate(
        reply,
        html,
        url,
        image_hint=image_hint,
        image_hint_source=image_source,
        test_mode=options.test_mode,
        metadata=metadata,
    )

    if isinstance(result, Success):
        log.info("Extracted with AI (confidence: %d): %s", result.confidence, result.product.name[:50])
    else:
        log.warning("AI extraction rejected for %s: %s", url, result.error)
    return result
