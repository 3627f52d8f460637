"""Ruleset-driven extraction of product records from listing markup."""

import logging
import re
from datetime import datetime, timezone
from typing import Iterator, Optional

from selectolax.parser import HTMLParser, Node

from catalog_scraper.ingest.base import CategoryTask, ProductRecord
from catalog_scraper.ingest.rulesets import (
    IDENTITY_KEY,
    PRICE,
    PRICE_ORIGINAL,
    TITLE,
    ExtractionRuleset,
    FieldRule,
    Pick,
)
from catalog_scraper.normalize.processor import normalize_price, normalize_text

logger = logging.getLogger(__name__)


class RecordExtractor:
    """Extracts normalized product records using one source ruleset."""

    def __init__(self, ruleset: ExtractionRuleset):
        self.ruleset = ruleset
        self._patterns: dict[str, re.Pattern] = {}

    def extract(
        self,
        document: str,
        task: CategoryTask,
        page_index: int,
        observed_at: Optional[datetime] = None,
    ) -> Iterator[ProductRecord]:
        """
        Lazily extract records from one listing page.

        Item nodes without a title (and, where the ruleset requires it,
        without an identity key) are dropped silently.

        Args:
            document: Page markup
            task: Category the page belongs to
            page_index: 1-based page number
            observed_at: Observation time (defaults to now)

        Yields:
            Normalized ProductRecord objects
        """
        if not document:
            return

        observed_at = observed_at or datetime.now(timezone.utc)
        parser = HTMLParser(document)
        category_label = self.ruleset.category_label(task)

        for node in parser.css(self.ruleset.item_selector):
            try:
                identity_key = normalize_text(self.read_field(node, IDENTITY_KEY))
                if self.ruleset.require_identity and not identity_key:
                    continue

                title = normalize_text(self.read_field(node, TITLE))
                if not title:
                    continue

                yield ProductRecord(
                    identity_key=identity_key,
                    title=title,
                    price=normalize_price(self.read_field(node, PRICE)),
                    price_original=normalize_price(self.read_field(node, PRICE_ORIGINAL)),
                    category_label=category_label,
                    page_index=str(page_index),
                    source_id=self.ruleset.source_id,
                    observed_at=observed_at,
                )
            except Exception as e:
                logger.debug(f"Failed to parse {self.ruleset.source_id.value} item: {e}")
                continue

    def read_field(self, node: Node, role: str) -> str:
        """Read a field by role, trying each rule of its fallback chain."""
        for rule in self.ruleset.fields.get(role, ()):
            value = self._apply_rule(node, rule)
            if value:
                return value
        return ""

    def count_pages(self, document: str) -> int:
        """
        Read the highest page number from the pagination controls.

        Returns:
            Highest numeric pagination link, 1 when there are none
        """
        selector = self.ruleset.pagination_selector
        if not selector or not document:
            return 1

        parser = HTMLParser(document)
        numbers = []
        for link in parser.css(selector):
            text = link.text(strip=True)
            if text.isdigit():
                numbers.append(int(text))
        return max(numbers) if numbers else 1

    def _apply_rule(self, node: Node, rule: FieldRule) -> str:
        if rule.selector is None:
            matches = [node]
        else:
            matches = node.css(rule.selector)
        if not matches:
            return ""

        if rule.pick is Pick.FIRST:
            matches = matches[:1]
        elif rule.pick is Pick.LAST:
            matches = matches[-1:]

        if rule.attribute:
            values = [m.attributes.get(rule.attribute) or "" for m in matches]
        else:
            values = [m.text(deep=True) for m in matches]
        value = "".join(values)

        if rule.pattern and value:
            match = self._compiled(rule.pattern).search(value)
            return match.group(1) if match else ""
        return value

    def _compiled(self, pattern: str) -> re.Pattern:
        if pattern not in self._patterns:
            self._patterns[pattern] = re.compile(pattern)
        return self._patterns[pattern]
