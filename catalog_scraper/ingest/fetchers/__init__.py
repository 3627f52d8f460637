"""Page fetcher backends."""

from typing import Optional

from catalog_scraper.config import settings
from catalog_scraper.ingest.base import BasePageFetcher
from catalog_scraper.ingest.fetchers.headless import PlaywrightPageFetcher
from catalog_scraper.ingest.fetchers.static import HttpPageFetcher

__all__ = [
    "HttpPageFetcher",
    "PlaywrightPageFetcher",
    "create_fetcher",
]


def create_fetcher(backend: Optional[str] = None) -> BasePageFetcher:
    """
    Create the configured fetcher backend.

    Args:
        backend: "browser" or "http" (defaults to settings.fetcher_backend)

    Returns:
        Fetcher instance

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = (backend or settings.fetcher_backend).lower()
    if backend == "browser":
        return PlaywrightPageFetcher()
    if backend == "http":
        return HttpPageFetcher()
    raise ValueError(f"Unknown fetcher backend: {backend}")
