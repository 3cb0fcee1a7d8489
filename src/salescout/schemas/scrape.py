"""
Pydantic schemas for the model reply contract and the scrape API.

Provides strict validation at both boundaries: what the completion model
returns and what admin clients post.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config import Config
from ..utils.validators import parse_price


class LLMProductReply(BaseModel):
    """
    JSON object returned by the extraction model.

    Prices may arrive as numbers or display strings ("$129.99"); they are
    parsed here so downstream code only ever sees floats or None.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    original_price: Optional[float] = Field(default=None, alias="originalPrice")
    original_price_invalid: bool = False
    sale_price: Optional[float] = Field(default=None, alias="salePrice")
    percent_off: Optional[float] = Field(default=None, alias="percentOff")
    confidence: Optional[float] = None
    error: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def flag_unparseable_original(cls, data):
        """Remember an originalPrice that was present but not a usable number."""
        if isinstance(data, dict):
            raw = data.get("originalPrice", data.get("original_price"))
            if raw not in (None, "", 0) and parse_price(raw) is None:
                data = dict(data)
                data["original_price_invalid"] = True
        return data

    @field_validator("original_price", "sale_price", mode="before")
    @classmethod
    def parse_prices(cls, v):
        return parse_price(v)

    @field_validator("percent_off", "confidence", mode="before")
    @classmethod
    def parse_numbers(cls, v):
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, str):
            v = v.strip().rstrip("%")
        try:
            return float(v)
        except (TypeError, ValueError):
            return None

    @field_validator("name", "image_url", "error", mode="before")
    @classmethod
    def strings_only(cls, v):
        if v is None:
            return None
        if not isinstance(v, str):
            return str(v)
        return v.strip() or None


class ScrapeRequest(BaseModel):
    """Request body for /admin/scrape-product and its streaming variant."""
    model_config = ConfigDict(extra="allow")

    url: Optional[str] = Field(default=None, description="Single product URL")
    urls: List[str] = Field(default_factory=list, description="Ordered product URLs")
    test: bool = Field(default=False, description="Return diagnostics and keep low-confidence results")

    @field_validator("urls", mode="before")
    @classmethod
    def clean_urls(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("urls must be a list of strings")
        return [u.strip() for u in v if isinstance(u, str) and u.strip()]

    @model_validator(mode="after")
    def require_urls(self) -> "ScrapeRequest":
        if not self.all_urls():
            raise ValueError("URL is required")
        if len(self.all_urls()) > Config.MAX_BATCH_URLS:
            raise ValueError(f"At most {Config.MAX_BATCH_URLS} URLs per batch")
        return self

    def all_urls(self) -> List[str]:
        """URLs in request order; a lone `url` comes first."""
        urls = list(self.urls)
        if self.url and self.url.strip():
            urls.insert(0, self.url.strip())
        return urls
