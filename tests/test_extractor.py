"""Tests for ruleset-driven record extraction."""

from catalog_scraper.ingest.base import CategoryTask, SourceId
from catalog_scraper.ingest.extractor import RecordExtractor
from catalog_scraper.ingest.rulesets import FARMID_RULESET, SHOP_RULESET, get_ruleset
from listing_pages import farmid_item, farmid_page, shop_page, shop_tile

SHOP_TASK = CategoryTask(
    source_id=SourceId.SHOP,
    locator="https://shop.aversi.ge/ka/medication/homeopathic-remedies/",
    end_page=12,
    page_size=192,
)
FARMID_TASK = CategoryTask(source_id=SourceId.FARMID, locator="1001", end_page=100, label="Vitamins")


def test_shop_tile_fields():
    html = "<html><body>" + shop_tile("A-17", "  Aspirin\n 500mg  #20 ", price="1 234,56", old_price="1 500,00") + "</body></html>"
    records = list(RecordExtractor(SHOP_RULESET).extract(html, SHOP_TASK, 3))

    assert len(records) == 1
    record = records[0]
    assert record.identity_key == "A-17"
    assert record.title == "Aspirin 500mg #20"
    assert record.price == "1234.56"
    assert record.price_original == "1500.00"
    assert record.category_label == SHOP_TASK.locator
    assert record.page_index == "3"
    assert record.source_id is SourceId.SHOP
    assert record.observed_at is not None


def test_shop_tile_without_title_is_dropped():
    html = shop_tile("A-1", "   ") + shop_tile("A-2", "Paracetamol")
    records = list(RecordExtractor(SHOP_RULESET).extract(html, SHOP_TASK, 1))
    assert [r.identity_key for r in records] == ["A-2"]


def test_shop_tile_without_code_is_kept_with_empty_key():
    html = '<div class="col-tile"><a class="product-title">No code</a></div>'
    records = list(RecordExtractor(SHOP_RULESET).extract(html, SHOP_TASK, 1))
    assert len(records) == 1
    assert records[0].identity_key == ""
    assert records[0].price == ""


def test_shop_page_count():
    records = list(RecordExtractor(SHOP_RULESET).extract(shop_page(25), SHOP_TASK, 1))
    assert len(records) == 25


def test_farmid_identity_fallbacks():
    on_node = farmid_item("501", "Vitamin C")
    on_child = '<div class="product"><span data-matid="502"></span><a class="product-title">Zinc</a></div>'
    in_link = '<div class="product"><a class="product-title" href="/ka/det?MatID=503&x=1">Iron</a></div>'
    missing = '<div class="product"><a class="product-title" href="/ka/det">Nothing</a></div>'

    records = list(RecordExtractor(FARMID_RULESET).extract(on_node + on_child + in_link + missing, FARMID_TASK, 1))

    assert [r.identity_key for r in records] == ["501", "502", "503"]
    assert records[0].price == "8.50"
    assert records[0].price_original == "10.00"
    assert records[0].category_label == "FarmID 1001 - Vitamins"
    assert records[0].source_id is SourceId.FARMID


def test_empty_document_yields_nothing():
    assert list(RecordExtractor(SHOP_RULESET).extract("", SHOP_TASK, 1)) == []
    assert list(RecordExtractor(SHOP_RULESET).extract("<html><body>nothing</body></html>", SHOP_TASK, 1)) == []


def test_count_pages():
    extractor = RecordExtractor(FARMID_RULESET)
    assert extractor.count_pages(farmid_page(3, pages=7)) == 7
    assert extractor.count_pages(farmid_page(3)) == 1
    assert RecordExtractor(SHOP_RULESET).count_pages(farmid_page(3, pages=7)) == 1


def test_page_urls():
    shop = get_ruleset(SourceId.SHOP)
    assert shop.page_url(SHOP_TASK, 2) == (
        "https://shop.aversi.ge/ka/medication/homeopathic-remedies/"
        "page-2/?items_per_page=192&sort_by=product&sort_order=asc"
    )

    farmid = get_ruleset(SourceId.FARMID)
    assert farmid.page_url(FARMID_TASK, 1) == "https://www.aversi.ge/ka/aversi/act/genDet/?FarmID=1001"
    assert farmid.page_url(FARMID_TASK, 4) == "https://www.aversi.ge/ka/aversi/act/genDet/?FarmID=1001&page=4"
