"""
HTML extraction phases.

- structured_data: JSON-LD Product markup (short-circuits the model)
- image: og:image / twitter:image pre-extraction
- relevance: HTML reduction ahead of the model call
"""
from .structured_data import extract_structured_product, STRUCTURED_DATA_CONFIDENCE
from .image import pre_extract_image, pre_extract_image_with_source
from .relevance import extract_relevant_fragments, reduce_html

__all__ = [
    "extract_structured_product",
    "STRUCTURED_DATA_CONFIDENCE",
    "pre_extract_image",
    "pre_extract_image_with_source",
    "extract_relevant_fragments",
    "reduce_html",
]
