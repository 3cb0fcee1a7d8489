"""
Unit tests for the per-URL extraction pipeline.
"""
import itertools

import httpx
import openai

from conftest import llm_json
from salescout.fetcher import FetchError
from salescout.models import ErrorKind, ExtractionMethod, Failure, Success
from salescout.services.orchestrator import scrape_product

JSONLD_URL = "https://peakoutfitters.net/products/trail-runner"
SALE_URL = "https://coastline.net/products/linen-shirt"


class TestStructuredDataPhase:
    """Structured data short-circuits the model."""

    def test_structured_data_skips_llm(self, make_options, jsonld_html):
        options, fetcher, client = make_options({JSONLD_URL: jsonld_html})

        result = scrape_product(JSONLD_URL, options)

        assert isinstance(result, Success)
        assert result.extraction_method is ExtractionMethod.STRUCTURED_DATA
        assert result.confidence == 95
        assert result.product.sale_price == 59.99
        assert result.product.original_price is None
        assert result.product.percent_off == 0
        assert client.calls == []
        assert fetcher.calls == [JSONLD_URL]

    def test_meta_shape(self, make_options, jsonld_html):
        options, _, _ = make_options({JSONLD_URL: jsonld_html})

        result = scrape_product(JSONLD_URL, options).to_dict()

        assert result["success"] is True
        assert result["meta"] == {"extractionMethod": "structured-data", "confidence": 95}
        assert result["product"]["salePrice"] == 59.99


class TestAIPhase:
    """Fallback through reduction, the model call and validation."""

    def test_ai_extraction(self, make_options, sale_html, sale_reply):
        options, _, client = make_options({SALE_URL: sale_html}, [sale_reply])

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Success)
        assert result.extraction_method is ExtractionMethod.AI_EXTRACTION
        assert result.product.original_price == 90.0
        assert result.product.percent_off == 50
        assert result.confidence == 88
        assert len(client.calls) == 1
        assert "Pre-extracted image URL" in client.calls[0]["messages"][1]["content"]

    def test_parse_failure_is_fatal(self, make_options, sale_html):
        options, _, _ = make_options({SALE_URL: sale_html}, ["Sorry, I cannot help with that."])

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.error == "Failed to parse AI response"
        assert result.error_type is ErrorKind.FATAL

    def test_rate_limit_is_retryable(self, make_options, sale_html):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.RateLimitError("Rate limited", response=httpx.Response(429, request=request), body=None)
        options, _, _ = make_options({SALE_URL: sale_html}, [error])

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.error_type is ErrorKind.RETRYABLE

    def test_placeholder_image_rejected(self, make_options, sale_html):
        reply = llm_json(name="Linen Shirt", imageUrl="https://placeholder.com/x.png", salePrice=45.0, confidence=99)
        options, _, _ = make_options({SALE_URL: sale_html}, [reply])

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.error == "AI returned placeholder image URL"

    def test_missing_client(self, make_options, sale_html):
        options, _, _ = make_options({SALE_URL: sale_html})
        options.llm_client = None

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.error_type is ErrorKind.FATAL

    def test_deadline_exceeded_before_llm(self, make_options, sale_html, sale_reply):
        """Should give up before the model call once the budget is spent."""
        clock = itertools.count(0, 100).__next__
        options, _, client = make_options({SALE_URL: sale_html}, [sale_reply], clock=clock, deadline_s=90)

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.error == "Pipeline deadline exceeded"
        assert result.error_type is ErrorKind.RETRYABLE
        assert client.calls == []


class TestFailures:
    """Failures become values with the right ErrorKind."""

    def test_blocking_fetch(self, make_options):
        options, _, _ = make_options({SALE_URL: FetchError("HTTP 403: Forbidden", ErrorKind.BLOCKING, 403)})

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.error_type is ErrorKind.BLOCKING
        assert result.meta == {"statusCode": 403}

    def test_unexpected_error_is_unknown(self, make_options, sale_html):
        """Should never raise out of the pipeline."""
        options, _, _ = make_options({SALE_URL: sale_html}, [RuntimeError("boom")])

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.error_type is ErrorKind.UNKNOWN
        assert "boom" in result.error

    def test_unexpected_fetcher_error_is_unknown(self, make_options):
        """Should convert non-FetchError exceptions from the fetcher into a Failure."""
        options, _, client = make_options({SALE_URL: ValueError("bad")})

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.error_type is ErrorKind.UNKNOWN
        assert result.error == "Unexpected error: bad"
        assert client.calls == []


class TestOptions:
    """Diagnostics mode and the brand-autofill passthrough."""

    def test_test_mode_metadata(self, make_options, sale_html, sale_reply):
        options, _, _ = make_options({SALE_URL: sale_html}, [sale_reply], test_mode=True)

        result = scrape_product(SALE_URL, options)

        meta = result.meta["testMetadata"]
        assert meta["phaseUsed"] == "ai-extraction"
        assert meta["imageExtraction"] == {"source": "og:image", "preExtracted": True}
        assert meta["priceValidation"]["foundInHtml"] is True
        assert meta["reducedChars"] > 0
        assert meta["fragmentCount"] > 0

    def test_test_mode_failure_carries_trail(self, make_options, sale_html):
        options, _, _ = make_options({SALE_URL: sale_html}, ["{}"], test_mode=True)

        result = scrape_product(SALE_URL, options)

        assert isinstance(result, Failure)
        assert result.meta["missing"] == ["name", "salePrice"]
        assert "testMetadata" in result.meta

    def test_no_metadata_outside_test_mode(self, make_options, sale_html, sale_reply):
        options, _, _ = make_options({SALE_URL: sale_html}, [sale_reply])

        result = scrape_product(SALE_URL, options)

        assert "testMetadata" not in result.meta

    def test_brand_autofill_passthrough(self, make_options, jsonld_html):
        seen = []

        def autofill(product):
            seen.append(product.name)
            return True

        options, _, _ = make_options({JSONLD_URL: jsonld_html}, brand_autofill=autofill)

        result = scrape_product(JSONLD_URL, options)

        assert seen == ["Trail Runner GTX"]
        assert result.meta["autofillBrand"] is True

    def test_failing_brand_autofill_keeps_success(self, make_options, jsonld_html):
        """Should report autofillBrand False instead of losing the record."""
        def autofill(product):
            raise RuntimeError("brand lookup down")

        options, _, _ = make_options({JSONLD_URL: jsonld_html}, brand_autofill=autofill)

        result = scrape_product(JSONLD_URL, options)

        assert isinstance(result, Success)
        assert result.product.sale_price == 59.99
        assert result.meta["autofillBrand"] is False
