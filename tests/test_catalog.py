"""Tests for catalog merge, persistence and export."""

import csv
import io
import json
from datetime import datetime, timezone

import pytest

from catalog_scraper.catalog.export import EXPORT_FIELDS, catalog_statistics, export_csv, export_json
from catalog_scraper.catalog.merger import merge
from catalog_scraper.catalog.store import CatalogLoadError, CatalogStore
from catalog_scraper.ingest.base import ProductRecord, SourceId

OBSERVED = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def rec(key, title="Item", price="1.00", category="https://shop.aversi.ge/ka/medication/x/", **kwargs):
    return ProductRecord(identity_key=key, title=title, price=price, category_label=category, **kwargs)


def keys(records):
    return [r.identity_key for r in records]


class TestMerge:
    def test_merge_with_empty_batch_is_identity(self):
        catalog = [rec("a"), rec("b"), rec("c")]
        assert merge(catalog, []) == catalog

    def test_later_record_wins_in_first_seen_position(self):
        merged = merge([rec("a", price="1.00"), rec("b")], [rec("c"), rec("a", price="2.00")])
        assert keys(merged) == ["a", "b", "c"]
        assert merged[0].price == "2.00"

    def test_merge_is_associative_over_batches(self):
        catalog = [rec("a"), rec("b", price="5.00")]
        batch1 = [rec("b", price="6.00"), rec("c")]
        batch2 = [rec("c", price="9.00"), rec("d"), rec("a", price="0.50")]
        assert merge(merge(catalog, batch1), batch2) == merge(catalog, batch1 + batch2)

    def test_empty_keys_are_dropped(self):
        merged = merge([rec("a")], [rec(""), rec("   "), rec("b")])
        assert keys(merged) == ["a", "b"]


class TestStore:
    def test_missing_file_loads_empty(self, tmp_path):
        assert CatalogStore(tmp_path / "catalog.json").load() == []

    def test_save_and_load(self, tmp_path):
        store = CatalogStore(tmp_path / "nested" / "catalog.json")
        records = [
            rec("a", title="ანალგინი", observed_at=OBSERVED),
            rec("1001", category="FarmID 7 - Vitamins", source_id=SourceId.FARMID, page_index="2"),
        ]
        store.save(records)

        assert store.load() == records
        assert not list(store.path.parent.glob("*.tmp"))

        raw = json.loads(store.path.read_text(encoding="utf-8"))
        assert raw[0]["productCode"] == "a"
        assert raw[0]["observedAt"] == OBSERVED.isoformat()
        assert raw[1]["source"] == "aversi.ge"

    def test_loads_legacy_catalog(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([{
            "productCode": "123",
            "title": "Old product",
            "price": "4.50",
            "priceOld": "",
            "category": "https://shop.aversi.ge/ka/care-products/oral-care/",
            "pageNum": 1,
            "source": "shop.aversi.ge",
        }]), encoding="utf-8")

        records = CatalogStore(path).load()

        assert records[0].identity_key == "123"
        assert records[0].page_index == "1"
        assert records[0].source_id is SourceId.SHOP
        assert records[0].observed_at is None

    @pytest.mark.parametrize("content", ["{not json", '{"a": 1}', '[{"productCode": "1", "source": "example.com"}]'])
    def test_invalid_catalog_raises(self, tmp_path, content):
        path = tmp_path / "catalog.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(CatalogLoadError):
            CatalogStore(path).load()


class TestExport:
    def test_csv_columns_and_rows(self):
        records = [rec("a", title='Say "hi", ok'), rec("b", observed_at=OBSERVED)]
        rows = list(csv.DictReader(io.StringIO(export_csv(records))))

        assert list(rows[0].keys()) == EXPORT_FIELDS
        assert rows[0]["title"] == 'Say "hi", ok'
        assert rows[0]["observedAt"] == ""
        assert rows[1]["observedAt"] == OBSERVED.isoformat()

    def test_json_export(self):
        data = json.loads(export_json([rec("a")]))
        assert data[0]["productCode"] == "a"
        assert set(data[0]) == set(EXPORT_FIELDS)

    def test_statistics(self):
        records = [
            rec("a", price="1.00", price_original="2.00"),
            rec("b", price="", category="https://shop.aversi.ge/ka/care-products/oral-care/"),
            rec("c", price="3.00", price_original="3.00", category="FarmID 1 - X", source_id=SourceId.FARMID),
            rec("", price="4.00"),
        ]
        stats = catalog_statistics(records)

        assert stats["total_products"] == 4
        assert stats["medication_products"] == 2
        assert stats["care_products"] == 1
        assert stats["with_price"] == 3
        assert stats["with_discount"] == 1
        assert stats["with_product_code"] == 3
        assert stats["per_source"] == {"shop": 3, "farmid": 1}
