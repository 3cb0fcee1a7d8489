"""
Extraction services: model extraction, validation, per-URL pipeline and batches.
"""
from .product_llm import ProductLLMExtractor, ParseError, parse_llm_reply, build_openai_client
from .validation import ProductValidator, find_price_in_html, is_placeholder_image
from .orchestrator import ExtractionOptions, scrape_product
from .batch import BatchCoordinator, BatchEvent, BatchReport, DomainCircuitBreaker

__all__ = [
    "ProductLLMExtractor",
    "ParseError",
    "parse_llm_reply",
    "build_openai_client",
    "ProductValidator",
    "find_price_in_html",
    "is_placeholder_image",
    "ExtractionOptions",
    "scrape_product",
    "BatchCoordinator",
    "BatchEvent",
    "BatchReport",
    "DomainCircuitBreaker",
]
