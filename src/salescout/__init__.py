"""
Salescout - Product Page Sale Extraction.

Converts product page URLs into validated sale records using JSON-LD
structured data first and a single LLM call as the fallback, with
hallucination checks and a per-batch domain circuit breaker.
"""

__version__ = "1.0.0"
__author__ = "Salescout"

from .models import ProductRecord, Success, Failure, ErrorKind
from .services.orchestrator import ExtractionOptions, scrape_product
from .services.batch import BatchCoordinator

__all__ = [
    "ProductRecord",
    "Success",
    "Failure",
    "ErrorKind",
    "ExtractionOptions",
    "scrape_product",
    "BatchCoordinator",
]
