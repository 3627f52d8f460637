"""Catalog merge by identity key."""

import logging
from typing import Dict, Iterable, List

from catalog_scraper.ingest.base import ProductRecord

logger = logging.getLogger(__name__)


def merge(existing: Iterable[ProductRecord], new_batch: Iterable[ProductRecord]) -> List[ProductRecord]:
    """
    Merge a batch of new observations into an existing catalog.

    Later records with the same identity key replace earlier ones but keep
    the first-seen position. Records with an empty or blank key cannot be
    deduplicated and are dropped.

    Args:
        existing: Current catalog
        new_batch: Records collected by the run

    Returns:
        Merged catalog
    """
    by_key: Dict[str, ProductRecord] = {}
    dropped = 0

    for records in (existing, new_batch):
        for record in records:
            key = (record.identity_key or "").strip()
            if not key:
                dropped += 1
                continue
            by_key[key] = record

    if dropped:
        logger.warning(f"Dropped {dropped} records without a product code")

    return list(by_key.values())
