"""Shared test fixtures."""

import pytest

from catalog_scraper.ingest.content_analyzer import ContentAnalyzer
from catalog_scraper.worker.run_status import RunStatus


@pytest.fixture
def fast_detector():
    """Challenge detector that does not sleep between polls."""
    return ContentAnalyzer(poll_interval_ms=1, settle_seconds=0)


@pytest.fixture
def status():
    return RunStatus()
