"""
Tests for `domain/cell_parser.py`.

Covers contract rules:
- Quantities keep digits, '.', '-' only and round half up
- Offers read a decimal amount from noisy text
- A leading "total:" / "total " switches to total_line pricing
- Blank cells and the &nbsp; placeholder yield no amount
"""

from __future__ import annotations

from decimal import Decimal

from domain.cell_parser import PricingMode, parse_offer_value, parse_qty


def test_qty_strips_noise() -> None:
    """Text around a number is ignored."""
    assert parse_qty("~5 units") == 5
    assert parse_qty(" 12 pcs ") == 12


def test_qty_rounds_half_up() -> None:
    """Fractional quantities round to the nearest integer, halves up."""
    assert parse_qty("2.5") == 3
    assert parse_qty("2.49") == 2


def test_qty_blank_or_unreadable_is_none() -> None:
    """No number means no quantity."""
    assert parse_qty(None) is None
    assert parse_qty("") is None
    assert parse_qty("n/a") is None
    assert parse_qty("1.2.3") is None


def test_offer_per_unit_amount() -> None:
    """Currency symbols and thousands separators are dropped."""
    value = parse_offer_value("$1,250.50")

    assert value.amount == Decimal("1250.50")
    assert value.mode is PricingMode.PER_UNIT


def test_offer_total_prefix_with_colon() -> None:
    """'Total:' marks a line total."""
    value = parse_offer_value("Total: 5,000")

    assert value.amount == Decimal("5000")
    assert value.mode is PricingMode.TOTAL_LINE


def test_offer_total_prefix_with_space_any_case() -> None:
    """'TOTAL 300' is a line total too."""
    value = parse_offer_value("TOTAL 300")

    assert value.amount == Decimal("300")
    assert value.mode is PricingMode.TOTAL_LINE


def test_offer_whitespace_collapsed_before_prefix_check() -> None:
    """Runs of whitespace count as one space."""
    value = parse_offer_value("  total\n\t 42 ")

    assert value.amount == Decimal("42")
    assert value.mode is PricingMode.TOTAL_LINE


def test_offer_blank_and_placeholder_have_no_amount() -> None:
    """Empty cells are not offers."""
    assert parse_offer_value(None).amount is None
    assert parse_offer_value("   ").amount is None
    assert parse_offer_value("&nbsp;").amount is None


def test_offer_unreadable_keeps_mode() -> None:
    """A total with no number keeps total_line but has no amount."""
    value = parse_offer_value("total: tbd")

    assert value.amount is None
    assert value.mode is PricingMode.TOTAL_LINE


def test_offer_words_only_is_unparsed() -> None:
    """Free text without digits yields no amount."""
    value = parse_offer_value("call me")

    assert value.amount is None
    assert value.mode is PricingMode.PER_UNIT


def test_only_ascii_digits_count() -> None:
    """Digits from other scripts are noise, not numbers."""
    assert parse_qty("٥") is None
    assert parse_qty("١٢ / 7") == 7
    assert parse_offer_value("١٠٠").amount is None
