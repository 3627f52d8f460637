"""Catalog exports and summary statistics."""

import csv
import io
import json
from collections import Counter
from typing import Any, Dict, Iterable, List

from catalog_scraper.ingest.base import ProductRecord

EXPORT_FIELDS = [
    "productCode",
    "title",
    "price",
    "priceOld",
    "category",
    "pageNum",
    "source",
    "observedAt",
]


def export_csv(records: Iterable[ProductRecord]) -> str:
    """Render records as UTF-8 CSV text with a header row."""
    buf = io.StringIO()
    writer = csv.DictWriter(
        buf,
        fieldnames=EXPORT_FIELDS,
        extrasaction="ignore",
        restval="",
        lineterminator="\r\n",
    )
    writer.writeheader()
    for record in records:
        row = record.to_dict()
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return buf.getvalue()


def export_json(records: Iterable[ProductRecord]) -> str:
    """Render records as a JSON array in the catalog file format."""
    return json.dumps([r.to_dict() for r in records], ensure_ascii=False, indent=2)


def catalog_statistics(records: List[ProductRecord]) -> Dict[str, Any]:
    """
    Summarize a catalog.

    Returns:
        Totals, category-family counts, price coverage and per-source counts
    """
    by_source = Counter(r.source_id.value for r in records)
    return {
        "total_products": len(records),
        "medication_products": sum(1 for r in records if "medication" in r.category_label),
        "care_products": sum(1 for r in records if "care-products" in r.category_label),
        "with_price": sum(1 for r in records if r.price),
        "with_discount": sum(
            1 for r in records if r.price_original and r.price_original != r.price
        ),
        "with_product_code": sum(1 for r in records if r.identity_key.strip()),
        "per_source": dict(by_source),
    }
