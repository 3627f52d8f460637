"""Tests for the run coordinator."""

import json

import pytest

from catalog_scraper.catalog.store import CatalogStore
from catalog_scraper.config import settings
from catalog_scraper.ingest.base import CategoryTask, ProductRecord, SourceId
from catalog_scraper.ingest.rulesets import FARMID_RULESET, SHOP_RULESET
from catalog_scraper.ingest.scan_engine import ScanEngine
from catalog_scraper.worker.tasks import RunInProgressError, TaskRunner
from listing_pages import FakeFetcher, farmid_page, shop_page

SHOP_URL = "https://shop.aversi.ge/ka/medication/homeopathic-remedies/"


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", str(tmp_path))
    monkeypatch.setattr(settings, "shop_discover_categories", False)
    (tmp_path / settings.static_categories_filename).write_text(
        json.dumps([{"category": SHOP_URL, "startPage": 1, "endPage": 3, "perpage": 4}]),
        encoding="utf-8",
    )
    (tmp_path / settings.farmid_categories_filename).write_text(
        json.dumps({"55": "Vitamins"}), encoding="utf-8"
    )
    return tmp_path


def site_pages():
    shop = CategoryTask(SourceId.SHOP, SHOP_URL, end_page=3, page_size=4)
    farm = CategoryTask(SourceId.FARMID, "55", end_page=100, label="Vitamins")
    return {
        SHOP_RULESET.page_url(shop, 1): shop_page(4, 0),
        SHOP_RULESET.page_url(shop, 2): shop_page(2, 4),
        FARMID_RULESET.page_url(farm, 1): farmid_page(3, 0),
    }


def make_runner(status, fast_detector, data_dir, fetcher):
    return TaskRunner(
        status=status,
        store=CatalogStore(data_dir / "catalog.json"),
        fetcher_factory=lambda: fetcher,
        engine=ScanEngine(status=status, detector=fast_detector, page_cooldown=0, category_cooldown=0),
    )


@pytest.mark.asyncio
async def test_run_merges_into_catalog(status, fast_detector, data_dir):
    existing = [
        ProductRecord(identity_key="P0", title="Old title", price="9.99"),
        ProductRecord(identity_key="LEGACY", title="Kept"),
    ]
    CatalogStore(data_dir / "catalog.json").save(existing)

    fetcher = FakeFetcher(site_pages())
    runner = make_runner(status, fast_detector, data_dir, fetcher)
    runner.start_run()
    await runner.wait()

    snapshot = status.snapshot()
    assert snapshot["running"] is False
    assert snapshot["message"].startswith("Completed! Scraped 10 products in ")
    assert snapshot["message"].endswith(" minutes")
    assert snapshot["statistics"]["records_collected"] == 9
    assert snapshot["statistics"]["per_source"] == {"shop": 7, "farmid": 3}
    assert fetcher.closed is True

    saved = runner.store.load()
    assert [r.identity_key for r in saved][:2] == ["P0", "LEGACY"]
    assert saved[0].title == "Product 0"


@pytest.mark.asyncio
async def test_second_start_is_rejected(status, fast_detector, data_dir):
    runner = make_runner(status, fast_detector, data_dir, FakeFetcher(site_pages()))
    runner.start_run()
    with pytest.raises(RunInProgressError):
        runner.start_run()
    await runner.wait()


@pytest.mark.asyncio
async def test_unreadable_catalog_fails_run(status, fast_detector, data_dir):
    (data_dir / "catalog.json").write_text("{oops", encoding="utf-8")
    fetcher = FakeFetcher(site_pages())
    runner = make_runner(status, fast_detector, data_dir, fetcher)

    runner.start_run()
    await runner.wait()

    snapshot = status.snapshot()
    assert snapshot["running"] is False
    assert snapshot["message"].startswith("Error: Cannot read catalog")
    assert fetcher.requested == []


@pytest.mark.asyncio
async def test_no_categories_fails_run(status, fast_detector, data_dir):
    (data_dir / settings.static_categories_filename).unlink()
    (data_dir / settings.farmid_categories_filename).unlink()
    fetcher = FakeFetcher({})
    runner = make_runner(status, fast_detector, data_dir, fetcher)

    runner.start_run()
    await runner.wait()

    assert status.snapshot()["message"] == "Error: No categories found"
    assert fetcher.closed is True


@pytest.mark.asyncio
async def test_nothing_scraped_keeps_catalog(status, fast_detector, data_dir):
    fetcher = FakeFetcher({})
    runner = make_runner(status, fast_detector, data_dir, fetcher)

    runner.start_run()
    await runner.wait()

    assert status.snapshot()["message"] == "No products were scraped"
    assert not (data_dir / "catalog.json").exists()
