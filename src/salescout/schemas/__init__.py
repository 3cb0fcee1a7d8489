"""
Pydantic schemas for API validation and data contracts.
"""

from .scrape import LLMProductReply, ScrapeRequest

__all__ = [
    'LLMProductReply',
    'ScrapeRequest',
]
