"""
Unit Tests for order pricing

Tests cover:
1. Quantity parsing and classification
2. Line item pricing against the catalog
3. Unknown products and zero quantities
"""

import pytest
from decimal import Decimal

from menu_ledger.errors import InvalidInputError, NotFoundError
from menu_ledger.models import CatalogEntry
from menu_ledger.pricing import parse_quantity, price_items


CATALOG = {
    "soda": CatalogEntry(price=Decimal("2.50"), sold=7),
    "chips": CatalogEntry(price=Decimal("1.25")),
}


class TestParseQuantity:

    @pytest.mark.parametrize("raw, expected", [
        (3, 3),
        ("4", 4),
        (" 2 ", 2),
        (Decimal("5"), 5),
        ("2.0", 2),
        (1_000_000, 1_000_000),
        (0, 0),
    ])
    def test_valid_quantities(self, raw, expected):
        parsed = parse_quantity(raw)
        assert parsed.valid
        assert parsed.value == expected

    @pytest.mark.parametrize("raw, reason", [
        (None, "missing"),
        ("", "missing"),
        ("abc", "not a number"),
        (True, "not a number"),
        ([1], "not a number"),
        (float("nan"), "not a number"),
        (float("inf"), "not a number"),
        (-1, "negative"),
        ("-3", "negative"),
        ("1e100000000", "too large"),
        (1_000_001, "too large"),
        (0.5, "not a whole number"),
        ("2.9", "not a whole number"),
    ])
    def test_invalid_quantities_count_as_zero(self, raw, reason):
        parsed = parse_quantity(raw)
        assert not parsed.valid
        assert parsed.value == 0
        assert parsed.reason == reason


class TestPriceItems:

    def test_lines_follow_request_order(self):
        """Test that lines keep input order and totals multiply out."""
        priced = price_items({"chips": 2, "soda": 3}, CATALOG)

        assert [line.product for line in priced.lines] == ["chips", "soda"]
        assert priced.lines[0].unit_price == Decimal("1.25")
        assert priced.lines[0].line_total == Decimal("2.50")
        assert priced.lines[1].line_total == Decimal("7.50")
        assert priced.total == Decimal("10.00")

    def test_zero_and_invalid_quantities_are_dropped(self):
        priced = price_items({"soda": 0, "chips": "lots", "missing": -2}, CATALOG)

        assert priced.lines == []
        assert priced.total == 0

    def test_unknown_product_fails_whole_order(self):
        with pytest.raises(NotFoundError) as exc:
            price_items({"soda": 1, "pizza": 2}, CATALOG)

        assert exc.value.kind == "product"
        assert exc.value.key == "pizza"

    def test_catalog_is_not_modified(self):
        price_items({"soda": 3}, CATALOG)

        assert CATALOG["soda"].sold == 7
        assert CATALOG["chips"].sold == 0

    def test_strict_mode_rejects_invalid_quantity(self):
        with pytest.raises(InvalidInputError):
            price_items({"soda": "two"}, CATALOG, strict=True)

    def test_strict_mode_rejects_fractional_quantity(self):
        with pytest.raises(InvalidInputError):
            price_items({"soda": 0.5}, CATALOG, strict=True)

    def test_strict_mode_still_drops_zero(self):
        priced = price_items({"soda": 0, "chips": 1}, CATALOG, strict=True)

        assert [line.product for line in priced.lines] == ["chips"]
