"""Background scrape runs."""

import asyncio
import logging
import time
from typing import Callable, Optional

from catalog_scraper import metrics
from catalog_scraper.catalog.export import catalog_statistics
from catalog_scraper.catalog.merger import merge
from catalog_scraper.catalog.store import CatalogStore, catalog_store
from catalog_scraper.config import settings
from catalog_scraper.ingest.base import BasePageFetcher, SourceId
from catalog_scraper.ingest.category_extractor import load_tasks
from catalog_scraper.ingest.fetchers import create_fetcher
from catalog_scraper.ingest.scan_engine import ScanEngine
from catalog_scraper.worker.run_status import RunStatus, run_status

logger = logging.getLogger(__name__)


class RunInProgressError(RuntimeError):
    """Raised when a run is requested while another one is active."""

    def __init__(self):
        super().__init__("Scraping is already in progress")


class TaskRunner:
    """
    Starts and supervises scrape runs.

    A run:
    - loads the existing catalog
    - resolves the category tasks
    - walks both sources
    - merges and saves the catalog
    """

    def __init__(
        self,
        status: Optional[RunStatus] = None,
        store: Optional[CatalogStore] = None,
        fetcher_factory: Optional[Callable[[], BasePageFetcher]] = None,
        engine: Optional[ScanEngine] = None,
    ):
        self.status = status or run_status
        self.store = store or catalog_store
        self.fetcher_factory = fetcher_factory or create_fetcher
        self.engine = engine or ScanEngine(status=self.status)
        self._task: Optional[asyncio.Task] = None

    def start_run(self) -> asyncio.Task:
        """
        Claim the run status and start a run in the background.

        Returns:
            The scheduled run task

        Raises:
            RunInProgressError: If a run is already active
        """
        if not self.status.try_start("Loading categories..."):
            raise RunInProgressError()

        self._task = asyncio.create_task(self.run_entrypoint())
        return self._task

    def request_stop(self) -> bool:
        """Ask the active run to stop after the in-flight page."""
        requested = self.status.request_stop()
        if requested:
            logger.info("Stop requested")
        return requested

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def run_entrypoint(self):
        """
        Execute one run. The run status must already be claimed.

        Failures end the run with an error message instead of propagating.
        """
        started = time.monotonic()
        fetcher: Optional[BasePageFetcher] = None
        success = False
        catalog_records = None

        try:
            existing = self.store.load()

            fetcher = self.fetcher_factory()
            tasks = await load_tasks(fetcher)
            for source_id in SourceId:
                total = sum(1 for t in tasks if t.source_id is source_id)
                self.status.set_categories_total(source_id, total)
            self.status.set_message(f"Found {len(tasks)} categories. Scraping started.")

            result = await self.engine.run(tasks, fetcher, settings.source_concurrency)

            duration_minutes = (time.monotonic() - started) / 60
            if not result.all_records:
                self.status.finish("No products were scraped")
                success = True
                return

            merged = merge(existing, result.all_records)
            self.store.save(merged)
            catalog_records = len(merged)

            statistics = catalog_statistics(merged)
            statistics.update({
                "records_collected": len(result.all_records),
                "pages_scraped": sum(w.pages_completed for w in result.walks),
                "failed_pages": sum(len(w.failed_pages) for w in result.walks),
                "blocked_pages": sum(len(w.blocked_pages) for w in result.walks),
                "collected_per_source": dict(result.per_source_counts),
                "categories": [w.summary() for w in result.walks],
                "duration_minutes": round(duration_minutes, 2),
                "stopped": result.stopped,
            })

            self.status.finish(
                f"Completed! Scraped {len(merged)} products in {duration_minutes:.2f} minutes",
                statistics,
            )
            success = True
            logger.info(
                f"Run finished: {len(result.all_records)} collected, {len(merged)} in catalog "
                f"({duration_minutes:.2f} min)"
            )

        except asyncio.CancelledError:
            self.status.fail("Run cancelled")
            raise
        except Exception as e:
            logger.error(f"Scraping error: {e}", exc_info=True)
            self.status.fail(str(e))

        finally:
            if fetcher is not None:
                try:
                    await fetcher.close()
                except Exception as e:
                    logger.warning(f"Error closing fetcher: {e}")
            metrics.record_run(success, time.monotonic() - started, catalog_records)


# Global task runner
task_runner = TaskRunner()
