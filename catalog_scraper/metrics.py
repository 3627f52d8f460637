"""Prometheus metrics for the catalog scraper."""

import time

from prometheus_client import Counter, Gauge, Histogram, Info

from catalog_scraper import __version__

# Application info
app_info = Info("catalog_scraper", "Catalog scraper application info")
app_info.info({"version": __version__, "name": "catalog-scraper"})

# Page metrics
pages_fetched_total = Counter(
    "catalog_pages_fetched_total",
    "Total number of listing pages processed",
    ["source", "outcome"],
)

page_fetch_duration_seconds = Histogram(
    "catalog_page_fetch_duration_seconds",
    "Time spent fetching a listing page",
    ["source"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

challenges_total = Counter(
    "catalog_challenges_total",
    "Anti-bot interstitials encountered",
    ["source", "outcome"],
)

# Extraction metrics
records_extracted_total = Counter(
    "catalog_records_extracted_total",
    "Total number of product records extracted",
    ["source"],
)

category_walks_total = Counter(
    "catalog_category_walks_total",
    "Finished category walks by stop reason",
    ["source", "stop_reason"],
)

# Run metrics
runs_total = Counter(
    "catalog_runs_total",
    "Total number of scrape runs",
    ["status"],
)

run_duration_seconds = Histogram(
    "catalog_run_duration_seconds",
    "Wall-clock duration of scrape runs",
    buckets=[60, 300, 900, 1800, 3600, 7200, 14400],
)

run_last_finished_timestamp = Gauge(
    "catalog_run_last_finished_timestamp",
    "Timestamp of the last finished run",
)

catalog_size = Gauge(
    "catalog_size",
    "Number of records in the persisted catalog",
)


def record_page(source: str, outcome: str, duration: float | None = None):
    """Record one processed page (ok, blocked, failed)."""
    pages_fetched_total.labels(source=source, outcome=outcome).inc()
    if duration is not None:
        page_fetch_duration_seconds.labels(source=source).observe(duration)


def record_challenge(source: str, cleared: bool):
    """Record a challenge interstitial and whether it cleared in time."""
    outcome = "cleared" if cleared else "timeout"
    challenges_total.labels(source=source, outcome=outcome).inc()


def record_records(source: str, count: int):
    """Record extracted product records."""
    if count > 0:
        records_extracted_total.labels(source=source).inc(count)


def record_walk(source: str, stop_reason: str):
    """Record a finished category walk."""
    category_walks_total.labels(source=source, stop_reason=stop_reason).inc()


def record_run(success: bool, duration: float, catalog_records: int | None = None):
    """Record a finished run."""
    status = "success" if success else "error"
    runs_total.labels(status=status).inc()
    run_duration_seconds.observe(duration)
    run_last_finished_timestamp.set(time.time())
    if catalog_records is not None:
        catalog_size.set(catalog_records)
