"""Normalize raw extracted field text into canonical values."""

import logging
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")
_SPACE_BEFORE_HASH = re.compile(r"\s+#")

# Currency symbols and words that appear next to prices on the listing pages
_CURRENCY = re.compile(r"₾|ლარი|GEL|[$€£]", re.IGNORECASE)

# Leading numeric part, the rest of the string is ignored
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_CENT = Decimal("0.01")


def normalize_text(raw: Any) -> str:
    """
    Collapse whitespace runs into single spaces and trim.

    Whitespace directly before a ``#`` is also collapsed so item numbers
    render as ``"Item #123"``. Never raises.

    Args:
        raw: Extracted text, a number, or None

    Returns:
        Canonical text, empty for empty/absent input
    """
    if raw is None or raw == "":
        return ""
    if not isinstance(raw, str):
        raw = str(raw)

    text = _WHITESPACE_RUN.sub(" ", raw)
    text = _SPACE_BEFORE_HASH.sub(" #", text)
    return text.strip()


def normalize_price(raw: Any) -> str:
    """
    Convert a raw price string to a two-decimal canonical form.

    ``"1 234,56 ₾"`` becomes ``"1234.56"`` and ``"12.5"`` becomes
    ``"12.50"``. A lone comma is read as the decimal separator; otherwise
    commas are thousands separators.

    Args:
        raw: Extracted price text

    Returns:
        Canonical price, or empty string when the value cannot be parsed.
        Callers must treat empty as unknown, not zero.
    """
    if raw is None or raw == "":
        return ""

    price = _WHITESPACE_RUN.sub("", str(raw))
    price = _CURRENCY.sub("", price)

    if "," in price and "." not in price:
        price = price.replace(",", ".", 1)
    else:
        price = price.replace(",", "")

    match = _LEADING_NUMBER.match(price)
    if not match:
        return ""

    try:
        rounded = Decimal(match.group()).quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        logger.debug(f"Failed to parse price: {raw!r}")
        return ""

    return f"{rounded:.2f}"
