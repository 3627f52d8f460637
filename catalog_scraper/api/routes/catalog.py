"""Catalog read and download endpoints."""

import logging
from enum import Enum

from fastapi import APIRouter, Depends, HTTPException, Response, status

from catalog_scraper.api.deps import get_catalog_store
from catalog_scraper.catalog.export import export_csv, export_json
from catalog_scraper.catalog.store import CatalogLoadError, CatalogStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["catalog"])

PREVIEW_LIMIT = 100


class ExportFormat(str, Enum):
    json = "json"
    csv = "csv"


def _load(store: CatalogStore):
    if not store.exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No data available")
    try:
        return store.load()
    except CatalogLoadError as e:
        logger.error(f"Catalog read failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("")
async def get_catalog(store: CatalogStore = Depends(get_catalog_store)):
    """Preview the catalog: the first records and the total count."""
    records = _load(store)
    return {
        "count": len(records),
        "products": [r.to_dict() for r in records[:PREVIEW_LIMIT]],
    }


@router.get("/download/{export_format}")
async def download_catalog(
    export_format: ExportFormat,
    store: CatalogStore = Depends(get_catalog_store),
):
    """Download the whole catalog as JSON or CSV."""
    records = _load(store)

    if export_format is ExportFormat.csv:
        body = export_csv(records)
        media_type = "text/csv; charset=utf-8"
    else:
        body = export_json(records)
        media_type = "application/json"

    filename = f"catalog.{export_format.value}"
    return Response(
        content=body,
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Row-Count": str(len(records)),
        },
    )
