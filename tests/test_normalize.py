"""Tests for field normalization."""

import re

import pytest

from catalog_scraper.normalize.processor import normalize_price, normalize_text

CANONICAL_PRICE = re.compile(r"^-?\d+\.\d{2}$")


def test_text_collapses_whitespace_and_hash_gap():
    assert normalize_text("a\n\nb\t #1") == "a b #1"
    assert normalize_text("  Item  #123 ") == "Item #123"
    assert normalize_text("Aspirin\r\n 500mg") == "Aspirin 500mg"


def test_text_empty_and_non_string():
    assert normalize_text(None) == ""
    assert normalize_text("") == ""
    assert normalize_text("   ") == ""
    assert normalize_text(42) == "42"


@pytest.mark.parametrize("raw", ["a\n\nb\t #1", "  x  ", "Item\t\t#5  tablet", "ანალგინი  500"])
def test_text_is_idempotent(raw):
    once = normalize_text(raw)
    assert normalize_text(once) == once


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1 234,56 ₾", "1234.56"),
        ("12.5", "12.50"),
        ("12,5", "12.50"),
        ("1,234.5", "1234.50"),
        ("3.14 ლარი", "3.14"),
        ("GEL 7", "7.00"),
        ("$19.999", "20.00"),
        ("2.345", "2.35"),
        ("0.005", "0.01"),
        ("15.00 ₾ / ცალი", "15.00"),
    ],
)
def test_price_canonical_form(raw, expected):
    assert normalize_price(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", None, "₾", "--", ".", "ფასი"])
def test_price_unparseable_is_empty(raw):
    assert normalize_price(raw) == ""


@pytest.mark.parametrize("raw", ["1 234,56 ₾", "-3,1", "1e3", "999999", "0", "7 ლარი"])
def test_price_output_shape(raw):
    value = normalize_price(raw)
    assert value == "" or CANONICAL_PRICE.match(value)
