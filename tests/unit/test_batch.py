"""
Unit tests for batch scraping and the domain circuit breaker.
"""
import json

import pytest

from conftest import FakeFetcher
from salescout.fetcher import FetchError
from salescout.models import (
    ErrorKind,
    ExtractionMethod,
    Failure,
    ProductRecord,
    Skipped,
    Success,
)
from salescout.services.batch import BatchCoordinator, BatchEvent, DomainCircuitBreaker
from salescout.services.orchestrator import ExtractionOptions, scrape_product


def make_success(url):
    product = ProductRecord(
        name="Desk Lamp",
        image_url="https://cdn.lampco.net/lamp.jpg",
        original_price=None,
        sale_price=39.0,
        percent_off=0,
        confidence=95,
        url=url,
    )
    return Success(product, ExtractionMethod.STRUCTURED_DATA, 95)


class StubScrape:
    """Per-URL pipeline stand-in returning canned results."""

    def __init__(self, results):
        self.results = results
        self.calls = []

    def __call__(self, url, options):
        self.calls.append(url)
        return self.results[url]


@pytest.fixture
def options():
    return ExtractionOptions(fetcher=FakeFetcher())


class TestDomainCircuitBreaker:
    """Tests for DomainCircuitBreaker."""

    def test_opens_only_on_blocking(self):
        breaker = DomainCircuitBreaker()

        assert breaker.record("a.shop.net", Failure("HTTP 503", ErrorKind.RETRYABLE)) is False
        assert breaker.record("a.shop.net", Failure("HTTP 404", ErrorKind.FATAL)) is False
        assert breaker.record("a.shop.net", Failure("boom", ErrorKind.UNKNOWN)) is False
        assert not breaker.is_open("a.shop.net")

        assert breaker.record("a.shop.net", Failure("HTTP 403", ErrorKind.BLOCKING)) is True
        assert breaker.is_open("a.shop.net")
        assert breaker.failed_domains == frozenset({"a.shop.net"})

    def test_empty_domain_never_opens(self):
        breaker = DomainCircuitBreaker()

        breaker.record("", Failure("Invalid URL format", ErrorKind.BLOCKING))

        assert not breaker.is_open("")


class TestBatchRun:
    """Tests for BatchCoordinator.run."""

    def test_blocking_domain_skipped(self, options):
        """Should skip later URLs on a domain that blocked us, and only those."""
        urls = ["https://a.example.com/1", "https://a.example.com/2", "https://b.example.com/1"]
        scrape = StubScrape({
            urls[0]: Failure("HTTP 403: Forbidden", ErrorKind.BLOCKING),
            urls[2]: make_success(urls[2]),
        })

        report = BatchCoordinator(options, scrape=scrape).run(urls)

        assert scrape.calls == [urls[0], urls[2]]
        outcome = report.outcomes[1].outcome
        assert isinstance(outcome, Skipped)
        assert outcome.reason == "domain a.example.com failed on previous URL"
        assert report.counts == {"success": 1, "failure": 1, "skipped": 1}

    def test_retryable_does_not_open_breaker(self, options):
        urls = ["https://a.shop.net/1", "https://a.shop.net/2"]
        scrape = StubScrape({
            urls[0]: Failure("Timeout after 10s", ErrorKind.RETRYABLE),
            urls[1]: make_success(urls[1]),
        })

        report = BatchCoordinator(options, scrape=scrape).run(urls)

        assert scrape.calls == urls
        assert len(report.successes) == 1

    def test_www_prefix_shares_domain(self, options):
        urls = ["https://www.shop.net/1", "https://shop.net/2"]
        scrape = StubScrape({urls[0]: Failure("Bot challenge page (access denied)", ErrorKind.BLOCKING)})

        report = BatchCoordinator(options, scrape=scrape).run(urls)

        assert scrape.calls == [urls[0]]
        assert report.outcomes[1].skipped

    def test_report_dict(self, options):
        urls = ["https://a.shop.net/1", "https://a.shop.net/2", "https://b.shop.net/1"]
        scrape = StubScrape({
            urls[0]: Failure("HTTP 403: Forbidden", ErrorKind.BLOCKING),
            urls[2]: make_success(urls[2]),
        })

        data = BatchCoordinator(options, scrape=scrape).run(urls).to_dict()

        assert data["success"] is True
        assert data["total"] == 3
        assert [s["url"] for s in data["successes"]] == [urls[2]]
        assert data["failures"][0]["errorType"] == "BLOCKING"
        assert data["failures"][1] == {
            "index": 1,
            "url": urls[1],
            "success": False,
            "skipped": True,
            "domain": "a.shop.net",
            "error": "domain a.shop.net failed on previous URL",
        }

    def test_all_failed(self, options):
        urls = ["https://a.shop.net/1"]
        scrape = StubScrape({urls[0]: Failure("HTTP 404: Not Found", ErrorKind.FATAL)})

        assert BatchCoordinator(options, scrape=scrape).run(urls).to_dict()["success"] is False

    def test_duplicates_kept_in_order(self, options):
        url = "https://a.shop.net/1"
        scrape = StubScrape({url: make_success(url)})

        report = BatchCoordinator(options, scrape=scrape).run([url, url])

        assert [o.index for o in report.outcomes] == [0, 1]
        assert scrape.calls == [url, url]

    def test_breaker_is_per_batch(self, options):
        """Should not carry blocked domains into the next batch."""
        url = "https://a.shop.net/1"
        scrape = StubScrape({url: Failure("HTTP 403: Forbidden", ErrorKind.BLOCKING)})
        coordinator = BatchCoordinator(options, scrape=scrape)

        coordinator.run([url])
        coordinator.run([url])

        assert scrape.calls == [url, url]

    def test_default_pipeline_skip_makes_no_fetch(self):
        """Should make zero fetches for a skipped URL with the real pipeline."""
        fetcher = FakeFetcher({"https://a.shop.net/1": FetchError("HTTP 429: Too Many Requests", ErrorKind.BLOCKING, 429)})
        options = ExtractionOptions(fetcher=fetcher)

        BatchCoordinator(options, scrape=scrape_product).run(["https://a.shop.net/1", "https://a.shop.net/2"])

        assert fetcher.calls == ["https://a.shop.net/1"]

    def test_unexpected_fetch_error_does_not_abort_batch(self):
        """Should record UNKNOWN for a crashing fetcher and continue with the next URL."""
        urls = ["https://a.shop.net/1", "https://b.shop.net/1"]
        fetcher = FakeFetcher({urls[0]: ValueError("bad"), urls[1]: FetchError("HTTP 404: Not Found", ErrorKind.FATAL, 404)})
        options = ExtractionOptions(fetcher=fetcher)

        report = BatchCoordinator(options, scrape=scrape_product).run(urls)

        assert report.total == 2
        assert fetcher.calls == urls
        first = report.outcomes[0].outcome
        assert isinstance(first, Failure)
        assert first.error_type is ErrorKind.UNKNOWN
        assert "bad" in first.error

    def test_failing_autofill_does_not_abort_batch(self, jsonld_html):
        """Should keep both successes when the brand-autofill predicate raises."""
        urls = ["https://a.shop.net/1", "https://b.shop.net/1"]

        def autofill(product):
            raise RuntimeError("brand lookup down")

        options = ExtractionOptions(fetcher=FakeFetcher({u: jsonld_html for u in urls}), brand_autofill=autofill)

        report = BatchCoordinator(options, scrape=scrape_product).run(urls)

        assert report.total == 2
        assert len(report.successes) == 2
        assert report.successes[0].outcome.meta["autofillBrand"] is False

    def test_raising_pipeline_becomes_unknown_failure(self, options):
        """Should turn an exception from the pipeline into an UNKNOWN failure."""
        urls = ["https://a.shop.net/1", "https://a.shop.net/2"]
        calls = []

        def scrape(url, _options):
            calls.append(url)
            if url == urls[0]:
                raise RuntimeError("boom")
            return make_success(url)

        report = BatchCoordinator(options, scrape=scrape).run(urls)

        assert calls == urls
        assert report.outcomes[0].outcome.error_type is ErrorKind.UNKNOWN
        assert report.outcomes[1].succeeded


class TestBatchEvents:
    """Tests for BatchCoordinator.iter_events."""

    def test_event_sequence(self, options):
        urls = ["https://a.example.com/1", "https://a.example.com/2", "https://b.example.com/1"]
        scrape = StubScrape({
            urls[0]: Failure("HTTP 403: Forbidden", ErrorKind.BLOCKING),
            urls[2]: make_success(urls[2]),
        })

        events = list(BatchCoordinator(options, scrape=scrape).iter_events(urls))

        assert [e.name for e in events] == ["start", "scraping", "error", "skip", "scraping", "success", "complete"]
        assert events[0].data == {"index": None, "url": None, "total": 3, "progress": {"current": 0, "total": 3}}
        assert events[2].data["errorType"] == "BLOCKING"
        assert events[3].data["domain"] == "a.example.com"
        assert events[3].data["progress"] == {"current": 2, "total": 3}
        assert events[5].data["product"]["salePrice"] == 39.0
        assert events[6].data == {
            "index": None,
            "url": None,
            "progress": {"current": 3, "total": 3},
            "total": 3,
            "successCount": 1,
            "failureCount": 1,
            "skippedCount": 1,
        }

    def test_every_event_carries_index_and_url(self, options):
        url = "https://a.shop.net/1"
        scrape = StubScrape({url: make_success(url)})

        events = list(BatchCoordinator(options, scrape=scrape).iter_events([url]))

        assert all({"index", "url", "progress"} <= set(e.data) for e in events)

    def test_stream_survives_raising_pipeline(self, options):
        """Should still emit complete when a URL's pipeline raises."""
        def scrape(url, _options):
            raise RuntimeError("boom")

        events = list(BatchCoordinator(options, scrape=scrape).iter_events(["https://a.shop.net/1"]))

        assert [e.name for e in events] == ["start", "scraping", "error", "complete"]
        assert events[2].data["errorType"] == "UNKNOWN"

    def test_scraping_event_precedes_pipeline(self, options):
        """Should announce a URL before its pipeline runs."""
        url = "https://a.shop.net/1"
        scrape = StubScrape({url: make_success(url)})
        events = BatchCoordinator(options, scrape=scrape).iter_events([url])

        next(events)
        scraping = next(events)

        assert scraping.name == "scraping"
        assert scrape.calls == []

    def test_close_stops_batch(self, options):
        """Should stop before the next URL when the client disconnects."""
        urls = ["https://a.shop.net/1", "https://b.shop.net/1"]
        scrape = StubScrape({u: make_success(u) for u in urls})
        events = BatchCoordinator(options, scrape=scrape).iter_events(urls)

        assert next(events).name == "start"
        assert next(events).name == "scraping"
        assert next(events).name == "success"
        events.close()

        assert scrape.calls == [urls[0]]

    def test_to_sse(self):
        event = BatchEvent("skip", {"index": 1, "url": "https://a.shop.net/2"})

        frame = event.to_sse()

        assert frame.startswith("event: skip\ndata: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame.split("data: ", 1)[1]) == {"index": 1, "url": "https://a.shop.net/2"}
