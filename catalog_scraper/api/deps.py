"""FastAPI dependencies."""

from catalog_scraper.catalog.store import CatalogStore
from catalog_scraper.worker.tasks import TaskRunner, task_runner


def get_task_runner() -> TaskRunner:
    """Dependency for the process-wide task runner."""
    return task_runner


def get_catalog_store() -> CatalogStore:
    """Dependency for the catalog store used by the task runner."""
    return task_runner.store
