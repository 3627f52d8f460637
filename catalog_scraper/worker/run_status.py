"""Process-wide run status shared by the pipelines and the control surface."""

import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from catalog_scraper.ingest.base import SourceId


@dataclass
class SourceProgress:
    """Progress counters of one source pipeline."""

    categories_total: int = 0
    categories_done: int = 0
    current_category: str = ""
    current_page: int = 0
    pages_total: int = 0
    records_found: int = 0


class RunStatus:
    """
    Lock-guarded status of the current (or last) run.

    All mutation goes through methods; snapshot() returns a plain copy that
    is safe to serialize from any thread.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._running = False
        self._stop_requested = False
        self._started_at: Optional[datetime] = None
        self._ended_at: Optional[datetime] = None
        self._message = "Idle"
        self._error: Optional[str] = None
        self._statistics: Optional[Dict[str, Any]] = None
        self._sources: Dict[SourceId, SourceProgress] = {sid: SourceProgress() for sid in SourceId}

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def stop_requested(self) -> bool:
        with self._lock:
            return self._stop_requested

    def try_start(self, message: str = "Starting...") -> bool:
        """
        Claim the status for a new run.

        Returns:
            False (and leaves everything untouched) if a run is active
        """
        with self._lock:
            if self._running:
                return False
            self._running = True
            self._stop_requested = False
            self._started_at = datetime.now(timezone.utc)
            self._ended_at = None
            self._message = message
            self._error = None
            self._statistics = None
            self._sources = {sid: SourceProgress() for sid in SourceId}
            return True

    def request_stop(self) -> bool:
        """Ask the active run to stop. Returns whether a run was active."""
        with self._lock:
            if not self._running:
                return False
            self._stop_requested = True
            self._message = "Stopping..."
            return True

    def set_message(self, message: str) -> None:
        with self._lock:
            self._message = message

    def set_categories_total(self, source_id: SourceId, total: int) -> None:
        with self._lock:
            self._sources[source_id].categories_total = total

    def begin_category(self, source_id: SourceId, name: str) -> None:
        with self._lock:
            progress = self._sources[source_id]
            progress.current_category = name
            progress.current_page = 0
            progress.pages_total = 0
            self._message = f"Scraping {name}"

    def set_page(self, source_id: SourceId, page: int, pages_total: int) -> None:
        with self._lock:
            progress = self._sources[source_id]
            progress.current_page = page
            progress.pages_total = pages_total
            if not self._stop_requested:
                self._message = (
                    f"{source_id.value}: Category {progress.categories_done + 1}/{progress.categories_total}"
                    f" - Page {page}/{pages_total}"
                )

    def add_records(self, source_id: SourceId, count: int) -> None:
        with self._lock:
            self._sources[source_id].records_found += count

    def finish_category(self, source_id: SourceId) -> None:
        with self._lock:
            self._sources[source_id].categories_done += 1

    def finish(self, message: str, statistics: Optional[Dict[str, Any]] = None) -> None:
        """Mark the run completed."""
        with self._lock:
            self._running = False
            self._ended_at = datetime.now(timezone.utc)
            self._message = message
            self._statistics = statistics

    def fail(self, error: str) -> None:
        """Mark the run failed."""
        with self._lock:
            self._running = False
            self._ended_at = datetime.now(timezone.utc)
            self._error = error
            self._message = f"Error: {error}"

    def snapshot(self) -> Dict[str, Any]:
        """Get a consistent copy of the status."""
        with self._lock:
            categories_total = sum(p.categories_total for p in self._sources.values())
            categories_done = sum(p.categories_done for p in self._sources.values())
            progress = (categories_done / categories_total * 100) if categories_total else 0.0

            duration = None
            if self._started_at:
                end = self._ended_at or datetime.now(timezone.utc)
                duration = round((end - self._started_at).total_seconds(), 1)

            return {
                "running": self._running,
                "stop_requested": self._stop_requested,
                "message": self._message,
                "error": self._error,
                "started_at": self._started_at.isoformat() if self._started_at else None,
                "ended_at": self._ended_at.isoformat() if self._ended_at else None,
                "duration_seconds": duration,
                "records_found": sum(p.records_found for p in self._sources.values()),
                "categories_total": categories_total,
                "categories_done": categories_done,
                "progress": round(progress, 1),
                "sources": {sid.value: asdict(p) for sid, p in self._sources.items()},
                "statistics": self._statistics,
            }


# Global run status
run_status = RunStatus()
