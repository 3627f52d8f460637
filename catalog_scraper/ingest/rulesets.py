"""Declarative per-source extraction rulesets.

Each ruleset maps a field role to an ordered fallback chain of field rules
and carries the source's URL scheme and pagination behavior. Adding a site
means adding a ruleset here, not branching in the extractor or walker.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from catalog_scraper.config import settings
from catalog_scraper.ingest.base import CategoryTask, SourceId

# Field roles read by the extractor
IDENTITY_KEY = "identity_key"
TITLE = "title"
PRICE = "price"
PRICE_ORIGINAL = "price_original"


class Pick(str, Enum):
    """Which matching nodes a rule reads."""

    FIRST = "first"
    LAST = "last"
    ALL = "all"  # text of every match, concatenated


@dataclass(frozen=True)
class FieldRule:
    """How to read one field from an item node."""

    selector: Optional[str] = None   # None reads the item node itself
    attribute: Optional[str] = None  # None reads node text
    pattern: Optional[str] = None    # regex, first group is the value
    pick: Pick = Pick.FIRST


@dataclass(frozen=True)
class ExtractionRuleset:
    """Everything source-specific the extractor and walker need."""

    source_id: SourceId
    item_selector: str
    fields: dict[str, tuple[FieldRule, ...]] = field(default_factory=dict)
    require_identity: bool = False
    pagination_selector: Optional[str] = None  # set when page count is discovered
    continue_on_fetch_error: bool = False      # skip a failed page instead of abandoning
    challenge_timeout_ms: int = 30000

    @property
    def discovers_pages(self) -> bool:
        return self.pagination_selector is not None

    def page_url(self, task: CategoryTask, page: int) -> str:
        if self.source_id is SourceId.FARMID:
            url = settings.farmid_url_template.format(locator=task.locator)
            if page > 1:
                url += settings.farmid_page_suffix.format(page=page)
            return url

        return settings.shop_page_url_template.format(
            locator=task.locator,
            page=page,
            page_size=task.page_size or settings.shop_default_page_size,
        )

    def category_label(self, task: CategoryTask) -> str:
        if self.source_id is SourceId.FARMID:
            return f"FarmID {task.locator} - {task.label}"
        return task.locator


SHOP_RULESET = ExtractionRuleset(
    source_id=SourceId.SHOP,
    item_selector=".col-tile",
    fields={
        IDENTITY_KEY: (
            FieldRule('input[name$="[product_code]"]', attribute="value"),
        ),
        TITLE: (FieldRule(".product-title", pick=Pick.ALL),),
        PRICE: (FieldRule(".ty-price-num", pick=Pick.ALL),),
        PRICE_ORIGINAL: (FieldRule(".ty-list-price:last-child", pick=Pick.ALL),),
    },
    challenge_timeout_ms=settings.shop_challenge_timeout_ms,
)

FARMID_RULESET = ExtractionRuleset(
    source_id=SourceId.FARMID,
    item_selector=".product",
    fields={
        IDENTITY_KEY: (
            FieldRule(attribute="data-matid"),
            FieldRule("[data-matid]", attribute="data-matid"),
            FieldRule('a[href*="MatID="]', attribute="href", pattern=r"MatID=(\d+)"),
        ),
        TITLE: (FieldRule(".product-title", pick=Pick.ALL),),
        PRICE: (FieldRule(".price ins", pick=Pick.ALL),),
        PRICE_ORIGINAL: (FieldRule(".price del", pick=Pick.ALL),),
    },
    require_identity=True,
    pagination_selector=".pagination li a",
    continue_on_fetch_error=True,
    challenge_timeout_ms=settings.farmid_challenge_timeout_ms,
)

RULESETS: dict[SourceId, ExtractionRuleset] = {
    SourceId.SHOP: SHOP_RULESET,
    SourceId.FARMID: FARMID_RULESET,
}


def get_ruleset(source_id: SourceId) -> ExtractionRuleset:
    """Get the ruleset for a source."""
    return RULESETS[source_id]
