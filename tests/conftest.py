"""
Pytest configuration and fixtures for Salescout tests.
"""
import json
import sys
from pathlib import Path
from types import SimpleNamespace

# Add src to path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

import pytest
from salescout.fetcher import FetchError
from salescout.services.orchestrator import ExtractionOptions


class FakeCompletionClient:
    """
    Stand-in for openai.OpenAI exposing chat.completions.create.

    Each call pops the next queued reply; an Exception reply is raised.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=reply))]
        )


class FakeFetcher:
    """Serves canned HTML per URL; FetchError values are raised."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def fetch(self, url):
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError("HTTP 404: Not Found", status_code=404)
        if isinstance(page, Exception):
            raise page
        return page


JSONLD_PRODUCT_HTML = """
<!DOCTYPE html>
<html>
<head>
    <title>Trail Runner GTX | Peak Outfitters</title>
    <meta property="og:image" content="https://cdn.peakoutfitters.net/og/trail-runner.jpg">
    <script type="application/ld+json">
    {
        "@context": "https://schema.org/",
        "@type": "Product",
        "name": "Trail Runner GTX",
        "image": ["https://cdn.peakoutfitters.net/products/trail-runner.jpg"],
        "offers": {
            "@type": "Offer",
            "price": "59.99",
            "priceCurrency": "USD"
        }
    }
    </script>
</head>
<body>
    <h1>Trail Runner GTX</h1>
    <span class="price">$59.99</span>
</body>
</html>
"""

SALE_PAGE_HTML = """
<!DOCTYPE html>
<html>
<head>
    <title>Linen Shirt | Coastline</title>
    <meta property="og:title" content="Linen Shirt">
    <meta property="og:image" content="https://cdn.coastline.net/products/linen-shirt.jpg">
</head>
<body>
    <h1 class="product-title">Linen Shirt</h1>
    <div class="product-prices">
        <s class="price-regular">$90.00</s>
        <span class="sale-price">$45.00</span>
    </div>
    <p>Breathable linen for warm days.</p>
</body>
</html>
"""

NO_PRICE_PAGE_HTML = """
<!DOCTYPE html>
<html>
<head>
    <title>Canvas Tote | Coastline</title>
    <meta property="og:image" content="https://cdn.coastline.net/products/tote.jpg">
</head>
<body>
    <h1>Canvas Tote</h1>
    <div class="product-summary">Sturdy everyday tote bag.</div>
</body>
</html>
"""


def llm_json(**fields):
    """Serialize a model reply the way the completion API returns it."""
    return json.dumps(fields)


@pytest.fixture
def jsonld_html():
    return JSONLD_PRODUCT_HTML


@pytest.fixture
def sale_html():
    return SALE_PAGE_HTML


@pytest.fixture
def no_price_html():
    return NO_PRICE_PAGE_HTML


@pytest.fixture
def sale_reply():
    """A well-formed model reply matching SALE_PAGE_HTML."""
    return llm_json(
        name="Linen Shirt",
        imageUrl="https://cdn.coastline.net/products/linen-shirt.jpg",
        originalPrice=90.00,
        salePrice=45.00,
        percentOff=50,
        confidence=88,
    )


@pytest.fixture
def make_options():
    """Build ExtractionOptions around fake collaborators."""
    def _make(pages=None, replies=(), **kwargs):
        fetcher = FakeFetcher(pages)
        client = FakeCompletionClient(*replies)
        options = ExtractionOptions(llm_client=client, fetcher=fetcher, **kwargs)
        return options, fetcher, client
    return _make
