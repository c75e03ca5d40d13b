"""
Tests for order arithmetic: quantities, sale prices, tax and phone helpers.
"""

import pytest

from storefront.pricing import (
    PricedLine,
    compute_tax_cents,
    display_name,
    format_e164,
    normalize_quantity,
    round_half_up,
    safe_string,
    to_sale_price_cents,
)


class TestNormalizeQuantity:
    @pytest.mark.parametrize("raw,expected", [
        (1, 1),
        (100, 100),
        ("3", 3),
        (" 7 units", 7),
        (2.9, 2),
    ])
    def test_accepts(self, raw, expected):
        assert normalize_quantity(raw) == expected

    @pytest.mark.parametrize("raw", [0, 101, -2, "abc", "", None, True, float("nan"), float("inf")])
    def test_rejects(self, raw):
        assert normalize_quantity(raw) is None


class TestSalePrice:
    def test_rounds_to_whole_dollars(self):
        # $32.00 at 20% off is $25.60 -> $26
        assert to_sale_price_cents(3200, 0.20) == 2600
        # $48.00 -> $38.40 -> $38
        assert to_sale_price_cents(4800, 0.20) == 3800

    def test_rounds_down_below_half(self):
        # $24.00 -> $19.20 -> $19
        assert to_sale_price_cents(2400, 0.20) == 1900
        assert to_sale_price_cents(2250, 0.20) == 1800

    @pytest.mark.parametrize("base, discount, expected", [
        (1, 0.20, 0),
        (999, 0.20, 800),
        (1800, 0.20, 1400),
        (3200, 0.20, 2600),
        (12345, 0.20, 9900),
        (999, 0.25, 700),
        (3200, 0.25, 2400),
        (4800, 0.25, 3600),
        (3240, 0.0, 3200),
        (None, 0.20, 0),
    ])
    def test_fixed_by_base_and_discount(self, base, discount, expected):
        assert to_sale_price_cents(base, discount) == expected
        assert to_sale_price_cents(base, discount) % 100 == 0

    def test_missing_price_is_zero(self):
        assert to_sale_price_cents(None, 0.20) == 0


class TestTax:
    def test_taxes_post_discount_subtotal(self):
        assert compute_tax_cents(10000, 0, 0.0725) == 725
        assert compute_tax_cents(10000, 2000, 0.0725) == 580

    def test_never_negative(self):
        assert compute_tax_cents(1000, 5000, 0.0725) == 0
        assert compute_tax_cents(0, 0, 0.0725) == 0

    def test_negative_discount_ignored(self):
        assert compute_tax_cents(10000, -500, 0.0725) == 725


class TestStrings:
    def test_safe_string(self):
        assert safe_string("  hello  ") == "hello"
        assert safe_string(None) == ""
        assert safe_string(12345, 3) == "123"

    def test_display_name_hides_standard(self):
        assert display_name("Gel", "Standard") == "Gel"
        assert display_name("Gel", "standard") == "Gel"
        assert display_name("Shampoo", "Liter") == "Shampoo - Liter"

    def test_format_e164(self):
        assert format_e164("(704) 555-0199") == "+17045550199"
        assert format_e164("1-704-555-0199") == "+17045550199"

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4999) == 2
        assert round_half_up(-0.4) == 0


def test_priced_line_totals():
    line = PricedLine("VAR1", "B&B Sunday Shampoo", "Liter", 3, 6400)
    assert line.total_cents == 19200
    assert line.display_name == "B&B Sunday Shampoo - Liter"
