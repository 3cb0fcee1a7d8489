"""
LLM-powered product extraction from reduced HTML.

Issues exactly one completion call per URL with a fixed instruction
contract, then parses the reply into a validated LLMProductReply.
Reply parsing never raises: it returns either the reply or a ParseError.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

import openai
from pydantic import ValidationError

from ..config import Config
from ..logger import get_logger
from ..models import ErrorKind
from ..schemas.scrape import LLMProductReply

logger = get_logger(__name__)


# =============================================================================
# LLM Prompts
# =============================================================================

SYSTEM_PROMPT = """You are a product page parser. Extract product information from HTML fragments of a single product page and return ONLY valid JSON.

CRITICAL PRICE RULES:
You MUST identify TWO prices if a sale is active:
1. ORIGINAL PRICE = the HIGHER, crossed-out, "was" or compare-at price
2. SALE PRICE = the LOWER, current, active selling price

ORIGINAL PRICE indicators:
- Inside <s>, <del>, <strike> tags or <compare-at-price> elements
- Classes: "compare-price", "compare-at", "was-price", "original-price", "price-regular", "line-through"
- Text: "Was $", "Originally $", "Compare at $", "Regular price $"
- data-testid="price-regular", data-test="regular-price"

SALE PRICE indicators:
- The prominent, active price
- <sale-price> elements; classes "sale-price", "current-price", "final-price", "price-sale"
- data-testid="price-sale", data-test="sale-price"

JSON PRICE FIELDS:
- JSON in <script type="application/json"> with "price" and "compare_at_price" fields is in CENTS (minor currency units): divide by 100
- Example: "price":13100,"compare_at_price":43500 means salePrice=131.00, originalPrice=435.00
- JSON-LD: "price" with "highPrice" or "compareAtPrice"

Return exactly this structure:
{
  "name": "Product Name",
  "imageUrl": "https://cdn.shop.com/products/item.jpg",
  "originalPrice": 435.00,
  "salePrice": 131.00,
  "percentOff": 70,
  "confidence": 85
}

Field rules:
- name: product title (required)
- imageUrl: main product image as an absolute URL starting with http:// or https:// (required)
- originalPrice: the HIGHER regular price; MUST be greater than salePrice, otherwise null
- salePrice: the CURRENT selling price as a number, no currency symbols (required)
- percentOff: round((originalPrice - salePrice) / originalPrice * 100); 0 when originalPrice is null
- NEVER set originalPrice equal to or below salePrice
- NEVER use placeholder images (placeholder.com, placehold.it, dummyimage.com, example.com); use a real product image or return an error

Confidence scoring:
- 90-100: both prices clearly present in structured markup or dedicated price elements
- 70-89: prices visible but only in basic HTML text
- 50-69: only one price found, or the price pair is ambiguous
- Below 50: required data missing or guessed

If the basic product data cannot be extracted, return {"error": "Could not extract product data"}.
Return ONLY the JSON object, no markdown, no explanations."""


IMAGE_HINT_TEMPLATE = "\n\nNOTE: Pre-extracted image URL: {image_url} - use this for imageUrl."

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)


# =============================================================================
# Reply parsing
# =============================================================================

@dataclass
class ParseError:
    """Model reply that could not be turned into an LLMProductReply."""
    message: str
    raw: str = ""


def strip_code_fences(text: str) -> str:
    """
    Remove markdown code-fence wrapping from a model reply.

    Examples:
        >>> strip_code_fences('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    return _FENCE_RE.sub("", text or "").strip()


def parse_llm_reply(text: Optional[str]) -> Union[LLMProductReply, ParseError]:
    """
    Parse and validate a model reply.

    Returns:
        LLMProductReply on success, ParseError when the reply is empty,
        not JSON, not an object, or fails schema validation
    """
    if not text or not text.strip():
        return ParseError("Empty response from LLM", raw=text or "")

    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("LLM JSON parse failed: %s", e)
        return ParseError("Failed to parse AI response", raw=text)

    if not isinstance(data, dict):
        return ParseError("AI response is not a JSON object", raw=text)

    try:
        return LLMProductReply.model_validate(data)
    except ValidationError as e:
        logger.warning("LLM reply failed schema validation: %s", e)
        return ParseError(f"AI response failed validation: {e.error_count()} error(s)", raw=text)


def classify_llm_error(error: Exception) -> ErrorKind:
    """
    Map a completion-client exception to an ErrorKind.

    Provider trouble is never the product site's fault, so nothing here is
    BLOCKING.
    """
    if isinstance(error, (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError)):
        return ErrorKind.RETRYABLE
    return ErrorKind.UNKNOWN


def build_openai_client(api_key: Optional[str] = None) -> openai.OpenAI:
    """Create the default completion client from configuration."""
    return openai.OpenAI(api_key=api_key or Config.OPENAI_API_KEY)


# =============================================================================
# LLM Extractor Class
# =============================================================================

class ProductLLMExtractor:
    """
    Single-call product extraction through an OpenAI-compatible client.

    The client only needs `chat.completions.create(...)`; tests pass fakes.
    """

    def __init__(
        self,
        client: Any,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout_s: Optional[float] = None,
    ):
        """
        Initialize LLM extractor.

        Args:
            client: Completion client (openai.OpenAI or compatible)
            model: Model name (default from config)
            temperature: Sampling temperature (low for consistency)
            max_tokens: Maximum response tokens
            timeout_s: Per-request timeout in seconds
        """
        if client is None:
            raise ValueError("A completion client is required for AI extraction")

        self.client = client
        self.model = model or Config.EXTRACTION_MODEL
        self.temperature = Config.LLM_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or Config.LLM_MAX_TOKENS
        self.timeout_s = timeout_s or Config.LLM_TIMEOUT_S

    def build_messages(self, reduced_html: str, image_hint: Optional[str] = None) -> list[dict]:
        user_prompt = reduced_html
        if image_hint:
            user_prompt += IMAGE_HINT_TEMPLATE.format(image_url=image_hint)
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    def complete(self, messages: list[dict]) -> str:
        """
        Issue the completion call and return the raw reply text.

        Raises:
            openai.APIError: provider failures, classified by the caller
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout_s,
        )
        return response.choices[0].message.content or ""

    def extract(self, reduced_html: str, image_hint: Optional[str] = None) -> Union[LLMProductReply, ParseError]:
        """
        Extract product fields from reduced HTML with one model call.

        Args:
            reduced_html: Output of the relevance reducer
            image_hint: Pre-extracted image URL, appended as a note

        Returns:
            LLMProductReply or ParseError (parse failures are not retried)
        """
        messages = self.build_messages(reduced_html, image_hint)
        logger.info("LLM Calling %s with %d chars", self.model, len(messages[1]["content"]))

        content = self.complete(messages)
        logger.debug("LLM Response: %s", content[:500])

        return parse_llm_reply(content)
