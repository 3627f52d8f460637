"""Persistence of the merged catalog as a JSON document."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from catalog_scraper.config import settings
from catalog_scraper.ingest.base import ProductRecord

logger = logging.getLogger(__name__)


class CatalogLoadError(RuntimeError):
    """Raised when an existing catalog file cannot be read."""
    pass


class CatalogSaveError(RuntimeError):
    """Raised when the catalog cannot be written."""
    pass


class CatalogStore:
    """Reads and atomically replaces the catalog file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Path(settings.data_dir) / settings.catalog_filename

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> List[ProductRecord]:
        """
        Load the persisted catalog.

        Returns:
            Records in file order (empty if there is no catalog yet)

        Raises:
            CatalogLoadError: If the file exists but cannot be used
        """
        if not self.path.exists():
            logger.info(f"No catalog at {self.path}, starting empty")
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogLoadError(f"Cannot read catalog {self.path}: {e}") from e

        if not isinstance(data, list):
            raise CatalogLoadError(f"Catalog {self.path} must contain a list of records")

        try:
            records = [ProductRecord.from_dict(item) for item in data]
        except (AttributeError, TypeError, ValueError) as e:
            raise CatalogLoadError(f"Invalid record in catalog {self.path}: {e}") from e

        logger.info(f"Loaded {len(records)} existing products from {self.path}")
        return records

    def save(self, records: List[ProductRecord]) -> None:
        """
        Write the catalog, replacing the previous file atomically.

        Raises:
            CatalogSaveError: If the file cannot be written
        """
        payload = json.dumps([r.to_dict() for r in records], ensure_ascii=False, indent=2)

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CatalogSaveError(f"Cannot write catalog {self.path}: {e}") from e

        logger.info(f"Saved {len(records)} products to {self.path}")


# Global catalog store
catalog_store = CatalogStore()
