#!/usr/bin/env python3
"""
Run one scrape in the foreground.

Walks every configured category of both sites, merges the results into the
catalog file and prints the final status. Ctrl+C requests a cooperative
stop; records collected so far are still merged.
"""

import asyncio
import json
import signal
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog_scraper.config import settings
from catalog_scraper.logging_config import setup_logging
from catalog_scraper.worker.tasks import RunInProgressError, task_runner


async def run_scrape() -> int:
    """Run a scrape and return a process exit code."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, task_runner.request_stop)
    except NotImplementedError:
        pass  # Windows event loops

    try:
        task_runner.start_run()
    except RunInProgressError as e:
        print(f"Error: {e}")
        return 1

    print(f"Scraping started (backend: {settings.fetcher_backend}, concurrency: {settings.source_concurrency})")
    await task_runner.wait()

    snapshot = task_runner.status.snapshot()
    print(snapshot["message"])
    if snapshot["statistics"]:
        stats = {k: v for k, v in snapshot["statistics"].items() if k != "categories"}
        print(json.dumps(stats, indent=2, ensure_ascii=False))

    return 1 if snapshot["error"] else 0


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Scrape both sites into the catalog")
    parser.add_argument(
        "--backend",
        choices=["browser", "http"],
        help="Page fetcher backend (default: from settings)",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Walk the sources one after the other",
    )
    parser.add_argument(
        "--no-discover",
        action="store_true",
        help="Skip menu discovery and use the static category list only",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window",
    )
    args = parser.parse_args()

    if args.backend:
        settings.fetcher_backend = args.backend
    if args.sequential:
        settings.source_concurrency = 1
    if args.no_discover:
        settings.shop_discover_categories = False
    if args.headful:
        settings.browser_headless = False

    setup_logging()
    sys.exit(asyncio.run(run_scrape()))
