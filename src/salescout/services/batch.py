"""
Batch scraping with a per-batch domain circuit breaker.

URLs are processed strictly in input order, one at a time. Once a URL
fails with a BLOCKING error, every later URL on the same domain in the
same batch is skipped without any network or model call. The breaker
lives only as long as one batch call.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Union

from ..logger import get_logger
from ..models import (
    BatchItemOutcome,
    ErrorKind,
    ExtractionResult,
    Failure,
    Skipped,
    Success,
)
from ..utils.validators import extract_domain
from .orchestrator import ExtractionOptions, scrape_product

logger = get_logger(__name__)


class DomainCircuitBreaker:
    """Set of domains that have actively blocked us during one batch."""

    def __init__(self) -> None:
        self._failed: Set[str] = set()

    def is_open(self, domain: str) -> bool:
        return bool(domain) and domain in self._failed

    def record(self, domain: str, failure: Failure) -> bool:
        """
        Record a failure for a domain.

        Returns:
            True if this failure opened the breaker for the domain
        """
        if not domain or failure.error_type is not ErrorKind.BLOCKING:
            return False
        opened = domain not in self._failed
        self._failed.add(domain)
        return opened

    @property
    def failed_domains(self) -> FrozenSet[str]:
        return frozenset(self._failed)


@dataclass
class BatchEvent:
    """One progress event of a streaming batch."""
    name: str
    data: Dict[str, Any]

    def to_sse(self) -> str:
        """Render as a server-sent event frame."""
        return f"event: {self.name}\ndata: {json.dumps(self.data)}\n\n"


@dataclass
class _Attempt:
    """Marker yielded right before a URL's pipeline runs."""
    index: int
    url: str


@dataclass
class BatchReport:
    """Collected outcomes of a non-streaming batch."""
    outcomes: List[BatchItemOutcome] = field(default_factory=list)

    @property
    def successes(self) -> List[BatchItemOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failures(self) -> List[BatchItemOutcome]:
        """Failed and skipped items; skipped ones carry `skipped: true`."""
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def counts(self) -> Dict[str, int]:
        skipped = sum(1 for o in self.outcomes if o.skipped)
        succeeded = len(self.successes)
        return {
            "success": succeeded,
            "failure": len(self.outcomes) - succeeded - skipped,
            "skipped": skipped,
        }

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def to_dict(self) -> dict:
        return {
            "success": bool(self.successes),
            "successes": [o.to_dict() for o in self.successes],
            "failures": [o.to_dict() for o in self.failures],
            "total": self.total,
        }


class BatchCoordinator:
    """
    Drive the per-URL pipeline over an ordered URL list.

    Both run() and iter_events() go through the same per-URL loop; they
    differ only in how outcomes are delivered.

    Args:
        options: Shared extraction options for every URL
        scrape: Per-URL pipeline (injectable for tests)
    """

    def __init__(
        self,
        options: Optional[ExtractionOptions] = None,
        scrape: Callable[[str, ExtractionOptions], ExtractionResult] = scrape_product,
    ):
        self.options = options or ExtractionOptions()
        self.scrape = scrape

    def _iter_outcomes(self, urls: List[str]) -> Iterator[Union[_Attempt, BatchItemOutcome]]:
        breaker = DomainCircuitBreaker()

        for index, url in enumerate(urls):
            domain = extract_domain(url)

            if breaker.is_open(domain):
                logger.info("BATCH Skipping %s (domain %s blocked earlier in batch)", url, domain)
                yield BatchItemOutcome(index, url, Skipped(domain))
                continue

            yield _Attempt(index, url)
            try:
                result = self.scrape(url, self.options)
            except Exception as e:
                logger.error("BATCH Unexpected error scraping %s: %s", url, e, exc_info=True)
                result = Failure(f"Unexpected error: {e}", ErrorKind.UNKNOWN)

            if isinstance(result, Failure) and breaker.record(domain, result):
                logger.warning("BATCH Domain %s blocked; skipping its remaining URLs", domain)

            yield BatchItemOutcome(index, url, result)

        if breaker.failed_domains:
            logger.info("BATCH Blocked domains this batch: %s", sorted(breaker.failed_domains))

    def run(self, urls: Iterable[str]) -> BatchReport:
        """Process every URL and collect the outcomes."""
        urls = list(urls)
        logger.info("BATCH Scraping %d URL(s)", len(urls))

        report = BatchReport([o for o in self._iter_outcomes(urls) if isinstance(o, BatchItemOutcome)])

        counts = report.counts
        logger.info(
            "BATCH Complete: %d succeeded, %d failed, %d skipped",
            counts["success"], counts["failure"], counts["skipped"],
        )
        return report

    def iter_events(self, urls: Iterable[str]) -> Iterator[BatchEvent]:
        """
        Process every URL, yielding one event per state transition.

        Events: start, scraping, skip, success, error, complete. Every payload
        carries index, url and progress; index and url are None on start and
        complete. Closing the generator (client disconnect) stops the batch
        before the next URL.
        """
        urls = list(urls)
        total = len(urls)
        counts = {"success": 0, "failure": 0, "skipped": 0}
        completed = 0

        def progress(current: int) -> dict:
            return {"current": current, "total": total}

        logger.info("BATCH Streaming %d URL(s)", total)
        yield BatchEvent("start", {"index": None, "url": None, "total": total, "progress": progress(0)})

        try:
            for item in self._iter_outcomes(urls):
                if isinstance(item, _Attempt):
                    yield BatchEvent("scraping", {"index": item.index, "url": item.url, "progress": progress(item.index + 1)})
                    continue

                completed = item.index + 1
                base = {"index": item.index, "url": item.url, "progress": progress(completed)}
                result = item.outcome

                if isinstance(result, Skipped):
                    counts["skipped"] += 1
                    yield BatchEvent("skip", dict(base, domain=result.domain, reason=result.reason))
                elif isinstance(result, Success):
                    counts["success"] += 1
                    yield BatchEvent("success", dict(base, product=result.product.to_dict(), meta=result.meta))
                else:
                    counts["failure"] += 1
                    data = dict(base, error=result.error, errorType=result.error_type.value)
                    if result.meta:
                        data["meta"] = result.meta
                    yield BatchEvent("error", data)
        except GeneratorExit:
            logger.warning("BATCH Stream closed by client after %d of %d URL(s)", completed, total)
            raise

        logger.info(
            "BATCH Complete: %d succeeded, %d failed, %d skipped",
            counts["success"], counts["failure"], counts["skipped"],
        )
        yield BatchEvent("complete", {
            "index": None,
            "url": None,
            "progress": progress(total),
            "total": total,
            "successCount": counts["success"],
            "failureCount": counts["failure"],
            "skippedCount": counts["skipped"],
        })
