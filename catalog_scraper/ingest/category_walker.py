"""Sequential pagination over one category.

A walker fetches pages of one CategoryTask in increasing order, waits out
challenges, extracts records and decides after every page whether the
listing has ended.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from catalog_scraper import metrics
from catalog_scraper.config import settings
from catalog_scraper.ingest.base import BasePageFetcher, CategoryTask, ProductRecord
from catalog_scraper.ingest.content_analyzer import ContentAnalyzer, PageState, content_analyzer
from catalog_scraper.ingest.extractor import RecordExtractor
from catalog_scraper.ingest.http_client import PermanentURLError, TransientFetchError
from catalog_scraper.ingest.rulesets import ExtractionRuleset, get_ruleset

logger = logging.getLogger(__name__)

FETCH_ERRORS = (TransientFetchError, PermanentURLError)

# (task, page, pages_total, records_on_page)
PageCallback = Callable[[CategoryTask, int, int, int], None]


class StopReason(str, Enum):
    """Why a walker stopped paginating."""

    SHORT_PAGE = "short_page"
    EMPTY_START = "empty_start"
    END_OF_LISTING = "end_of_listing"
    BUDGET_EXHAUSTED = "budget_exhausted"
    FETCH_FAILED = "fetch_failed"
    DISCOVERY_FAILED = "discovery_failed"
    STOP_REQUESTED = "stop_requested"


@dataclass
class WalkResult:
    """Outcome of walking one category."""

    task: CategoryTask
    records: List[ProductRecord] = field(default_factory=list)
    pages_completed: int = 0
    failed_pages: List[int] = field(default_factory=list)
    blocked_pages: List[int] = field(default_factory=list)
    stop_reason: Optional[StopReason] = None

    def summary(self) -> dict:
        return {
            "source": self.task.source_id.value,
            "category": self.task.display_name,
            "records": len(self.records),
            "pages_completed": self.pages_completed,
            "failed_pages": list(self.failed_pages),
            "blocked_pages": list(self.blocked_pages),
            "stop_reason": self.stop_reason.value if self.stop_reason else None,
        }


def decide_page(
    page: int,
    start_page: int,
    record_count: int,
    page_size: Optional[int],
) -> Optional[StopReason]:
    """
    Decide whether to continue after a page has been extracted.

    Args:
        page: Page just processed
        start_page: First page of the task
        record_count: Records extracted from the page
        page_size: Expected full-page record count (None disables the short-page stop)

    Returns:
        StopReason to stop, None to continue with the next page
    """
    if record_count == 0:
        if page == start_page:
            return StopReason.EMPTY_START
        return StopReason.END_OF_LISTING
    if page_size and record_count < page_size:
        return StopReason.SHORT_PAGE
    return None


class CategoryWalker:
    """Walks the pages of one category for a single source."""

    def __init__(
        self,
        ruleset: ExtractionRuleset,
        detector: Optional[ContentAnalyzer] = None,
        cooldown: Optional[float] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        on_page: Optional[PageCallback] = None,
    ):
        """
        Initialize walker.

        Args:
            ruleset: Extraction ruleset of the source
            detector: Challenge detector (defaults to the shared instance)
            cooldown: Seconds to wait between page fetches
            should_stop: Cooperative stop check, polled before each fetch
            on_page: Progress callback invoked after every extracted page
        """
        self.ruleset = ruleset
        self.extractor = RecordExtractor(ruleset)
        self.detector = detector or content_analyzer
        self.cooldown = settings.page_cooldown_seconds if cooldown is None else cooldown
        self.should_stop = should_stop or (lambda: False)
        self.on_page = on_page

    @classmethod
    def for_task(cls, task: CategoryTask, **kwargs) -> "CategoryWalker":
        return cls(get_ruleset(task.source_id), **kwargs)

    async def walk(self, task: CategoryTask, fetcher: BasePageFetcher) -> WalkResult:
        """
        Walk a category from its start page until a stop condition.

        Args:
            task: Category to walk
            fetcher: Shared page fetcher

        Returns:
            WalkResult with the collected records and page accounting.
            An unexpected error ends the walk as FETCH_FAILED and keeps the
            records of the pages already extracted.
        """
        result = WalkResult(task=task)
        try:
            return await self._walk(task, fetcher, result)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Walk of {task.display_name} failed: {e}", exc_info=True)
            return self._finish(result, StopReason.FETCH_FAILED)

    async def _walk(self, task: CategoryTask, fetcher: BasePageFetcher, result: WalkResult) -> WalkResult:
        source = task.source_id.value
        end_page = task.end_page
        prefetched: Optional[str] = None
        fetched_any = False

        logger.info(f"Walking {source} category {task.display_name} (pages {task.start_page}-{task.end_page})")

        if self.ruleset.discovers_pages:
            if self.should_stop():
                return self._finish(result, StopReason.STOP_REQUESTED)

            url = self.ruleset.page_url(task, task.start_page)
            fetched_any = True
            try:
                prefetched = await self._load(url, task, fetcher)
            except FETCH_ERRORS as e:
                logger.error(f"Pagination discovery failed for {task.display_name}: {e}")
                result.failed_pages.append(task.start_page)
                return self._finish(result, StopReason.DISCOVERY_FAILED)

            if prefetched is None:
                logger.warning(f"Blocked during pagination discovery for {task.display_name}")
                result.blocked_pages.append(task.start_page)
                return self._finish(result, StopReason.DISCOVERY_FAILED)

            discovered = self.extractor.count_pages(prefetched)
            end_page = min(discovered, task.end_page)
            logger.info(f"{task.display_name}: {discovered} pages discovered, walking {end_page}")

        pages_total = max(end_page - task.start_page + 1, 0)
        page = task.start_page

        while page <= end_page:
            document = None
            if prefetched is not None and page == task.start_page:
                document = prefetched
            else:
                if fetched_any and self.cooldown > 0 and not self.should_stop():
                    await asyncio.sleep(self.cooldown)

                if self.should_stop():
                    logger.info(f"Stop requested, leaving {task.display_name} at page {page}")
                    result.stop_reason = StopReason.STOP_REQUESTED
                    break

                url = self.ruleset.page_url(task, page)
                fetched_any = True
                try:
                    document = await self._load(url, task, fetcher)
                except FETCH_ERRORS as e:
                    result.failed_pages.append(page)
                    if self.ruleset.continue_on_fetch_error:
                        logger.warning(f"Page {page} of {task.display_name} failed, skipping: {e}")
                        page += 1
                        continue
                    logger.error(f"Page {page} of {task.display_name} failed, abandoning category: {e}")
                    result.stop_reason = StopReason.FETCH_FAILED
                    break

                if document is None:
                    logger.warning(f"Page {page} of {task.display_name} is blocked, skipping")
                    result.blocked_pages.append(page)
                    page += 1
                    continue

            records = list(self.extractor.extract(document, task, page))
            count = len(records)
            result.records.extend(records)
            if count:
                result.pages_completed += 1
                metrics.record_records(source, count)

            logger.info(f"{task.display_name} page {page}: {count} products")
            if self.on_page:
                self.on_page(task, page, pages_total, count)

            decision = decide_page(page, task.start_page, count, task.page_size)
            if decision is not None:
                if decision is StopReason.EMPTY_START:
                    logger.warning(f"No products on first page of {task.display_name}")
                    result.failed_pages.append(page)
                result.stop_reason = decision
                break

            page += 1

        return self._finish(result, result.stop_reason or StopReason.BUDGET_EXHAUSTED)

    async def _load(self, url: str, task: CategoryTask, fetcher: BasePageFetcher) -> Optional[str]:
        """
        Fetch a page and wait out any challenge.

        Returns:
            Page markup, or None when the page is hard-blocked

        Raises:
            TransientFetchError: If the page cannot be loaded
            PermanentURLError: If the URL is permanently invalid
        """
        source = task.source_id.value
        started = time.monotonic()
        try:
            handle = await fetcher.fetch(url, task.source_id)
        except FETCH_ERRORS:
            metrics.record_page(source, "failed", time.monotonic() - started)
            raise

        try:
            outcome = await self.detector.await_content(handle, self.ruleset.challenge_timeout_ms)
            if outcome.challenged:
                metrics.record_challenge(source, outcome.challenge_cleared)
            document = await handle.content()
            title = await handle.title()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            metrics.record_page(source, "failed", time.monotonic() - started)
            raise TransientFetchError(f"Failed to read {url}: {e}") from e
        finally:
            await handle.close()

        duration = time.monotonic() - started
        if self.detector.classify(title, document) is PageState.BLOCKED:
            metrics.record_page(source, "blocked", duration)
            return None

        metrics.record_page(source, "ok", duration)
        return document

    def _finish(self, result: WalkResult, reason: StopReason) -> WalkResult:
        result.stop_reason = reason
        metrics.record_walk(result.task.source_id.value, reason.value)
        logger.info(
            f"Finished {result.task.display_name}: {len(result.records)} products, "
            f"{result.pages_completed} pages, stop={reason.value}"
        )
        return result
