"""Dual-source scan orchestration with progress tracking."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from catalog_scraper.config import settings
from catalog_scraper.ingest.base import BasePageFetcher, CategoryTask, ProductRecord, SourceId
from catalog_scraper.ingest.category_walker import CategoryWalker, StopReason, WalkResult
from catalog_scraper.ingest.content_analyzer import ContentAnalyzer
from catalog_scraper.logging_config import get_logger
from catalog_scraper.worker.run_status import RunStatus, run_status

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of one orchestrated run."""

    all_records: List[ProductRecord] = field(default_factory=list)
    per_source_counts: Dict[str, int] = field(default_factory=dict)
    walks: List[WalkResult] = field(default_factory=list)

    @property
    def stopped(self) -> bool:
        return any(w.stop_reason is StopReason.STOP_REQUESTED for w in self.walks)


class ScanEngine:
    """
    Runs one sequential pipeline of category walks per source.

    Pipelines share the fetcher and report progress into RunStatus through
    callbacks; the engine is the only writer of progress.
    """

    def __init__(
        self,
        status: Optional[RunStatus] = None,
        detector: Optional[ContentAnalyzer] = None,
        page_cooldown: Optional[float] = None,
        category_cooldown: Optional[float] = None,
    ):
        self.status = status or run_status
        self.detector = detector
        self.page_cooldown = page_cooldown
        self.category_cooldown = (
            settings.category_cooldown_seconds if category_cooldown is None else category_cooldown
        )

    async def run(
        self,
        tasks: List[CategoryTask],
        fetcher: BasePageFetcher,
        concurrency: Optional[int] = None,
    ) -> RunResult:
        """
        Walk all tasks, grouped by source.

        Args:
            tasks: Category tasks of the run
            fetcher: Shared page fetcher
            concurrency: Source pipelines allowed to run at once (1 = sequential)

        Returns:
            RunResult with every collected record
        """
        concurrency = max(1, concurrency or settings.source_concurrency)

        by_source: Dict[SourceId, List[CategoryTask]] = {}
        for task in tasks:
            by_source.setdefault(task.source_id, []).append(task)

        semaphore = asyncio.Semaphore(concurrency)

        async def run_with_semaphore(source_id: SourceId, source_tasks: List[CategoryTask]) -> List[WalkResult]:
            async with semaphore:
                return await self._run_pipeline(source_id, source_tasks, fetcher)

        logger.info(
            f"Starting run: {len(tasks)} categories across {len(by_source)} sources "
            f"(concurrency={concurrency})"
        )
        outcomes = await asyncio.gather(
            *(run_with_semaphore(sid, source_tasks) for sid, source_tasks in by_source.items())
        )

        result = RunResult()
        for source_id, walks in zip(by_source.keys(), outcomes):
            count = 0
            for walk in walks:
                result.walks.append(walk)
                result.all_records.extend(walk.records)
                count += len(walk.records)
            result.per_source_counts[source_id.value] = count
            logger.info(f"{source_id.value}: {count} products from {len(walks)} categories")

        return result

    async def _run_pipeline(
        self,
        source_id: SourceId,
        tasks: List[CategoryTask],
        fetcher: BasePageFetcher,
    ) -> List[WalkResult]:
        walks: List[WalkResult] = []
        log = get_logger(__name__, site=source_id.value)

        def on_page(task: CategoryTask, page: int, pages_total: int, count: int) -> None:
            self.status.set_page(task.source_id, page, pages_total)
            if count:
                self.status.add_records(task.source_id, count)

        walker_kwargs = {
            "detector": self.detector,
            "should_stop": lambda: self.status.stop_requested,
            "on_page": on_page,
        }
        if self.page_cooldown is not None:
            walker_kwargs["cooldown"] = self.page_cooldown

        for index, task in enumerate(tasks):
            if self.status.stop_requested:
                log.info(f"Stop requested, skipping remaining {source_id.value} categories")
                break

            if index > 0 and self.category_cooldown > 0:
                await asyncio.sleep(self.category_cooldown)

            self.status.begin_category(source_id, task.display_name)
            walker = CategoryWalker.for_task(task, **walker_kwargs)
            try:
                walk = await walker.walk(task, fetcher)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.error(f"Walk failed for {task.display_name}: {e}", exc_info=True)
                walk = WalkResult(task=task, stop_reason=StopReason.FETCH_FAILED)

            walks.append(walk)
            self.status.finish_category(source_id)

        return walks
