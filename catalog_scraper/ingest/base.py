"""Core data model and the page fetcher interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class SourceId(str, Enum):
    """The two listing sites."""

    SHOP = "shop"      # tile grid, predeclared page budget
    FARMID = "farmid"  # FarmID keyed categories, discovered page count

    @property
    def host(self) -> str:
        return SOURCE_HOSTS[self]


SOURCE_HOSTS = {
    SourceId.SHOP: "shop.aversi.ge",
    SourceId.FARMID: "aversi.ge",
}


@dataclass
class ProductRecord:
    """One listed item observation."""

    identity_key: str
    title: str
    price: str = ""
    price_original: str = ""
    category_label: str = ""
    page_index: str = ""
    source_id: SourceId = SourceId.SHOP
    observed_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the field names of the persisted catalog file."""
        return {
            "productCode": self.identity_key,
            "title": self.title,
            "price": self.price,
            "priceOld": self.price_original,
            "category": self.category_label,
            "pageNum": self.page_index,
            "source": self.source_id.host,
            "observedAt": self.observed_at.isoformat() if self.observed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductRecord":
        """Build a record from its persisted form.

        Raises:
            ValueError: If the source host or timestamp is not recognized
        """
        host = data.get("source") or SourceId.SHOP.host
        source_id = next(
            (sid for sid, h in SOURCE_HOSTS.items() if h == host),
            None,
        )
        if source_id is None:
            raise ValueError(f"Unknown source host: {host!r}")

        observed_at = data.get("observedAt")
        return cls(
            identity_key=str(data.get("productCode") or ""),
            title=str(data.get("title") or ""),
            price=str(data.get("price") or ""),
            price_original=str(data.get("priceOld") or ""),
            category_label=str(data.get("category") or ""),
            page_index=str(data.get("pageNum") or ""),
            source_id=source_id,
            observed_at=datetime.fromisoformat(observed_at) if observed_at else None,
        )


@dataclass(frozen=True)
class CategoryTask:
    """One unit of pagination work, immutable during a run."""

    source_id: SourceId
    locator: str                     # category URL (shop) or FarmID
    start_page: int = 1
    end_page: int = 1                # inclusive budget, content may end earlier
    page_size: Optional[int] = None  # full page record count, None if unknown
    label: str = ""

    @property
    def display_name(self) -> str:
        if self.source_id is SourceId.FARMID:
            return f"{self.locator} - {self.label}"
        return self.label or self.locator


class PageHandle(ABC):
    """A loaded document that can be re-inspected while a challenge resolves."""

    url: str
    # False when the document can never change after loading
    live = True

    @abstractmethod
    async def title(self) -> str:
        """Current document title."""

    @abstractmethod
    async def content(self) -> str:
        """Current document markup."""

    async def close(self) -> None:
        """Release the underlying page."""
        return None


class BasePageFetcher(ABC):
    """Abstract page fetching capability shared by both pipelines."""

    @abstractmethod
    async def fetch(self, url: str, source_id: SourceId) -> PageHandle:
        """
        Load a URL and return a handle to the loaded document.

        Args:
            url: Absolute URL to load
            source_id: Site the URL belongs to (selects headers/locale)

        Returns:
            PageHandle for the loaded document; the caller closes it

        Raises:
            TransientFetchError: If the page cannot be loaded in time
            PermanentURLError: If the URL is permanently invalid
        """

    async def close(self) -> None:
        """Release pooled resources."""
        return None


@dataclass
class StaticPageHandle(PageHandle):
    """Handle over already-downloaded markup; the document never changes."""

    live = False

    url: str
    html: str
    page_title: str = ""
    closed: bool = field(default=False, repr=False)

    async def title(self) -> str:
        return self.page_title

    async def content(self) -> str:
        return self.html

    async def close(self) -> None:
        self.closed = True
