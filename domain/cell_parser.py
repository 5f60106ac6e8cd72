"""
Domain: typed values from free-text offer table cells.

Buyers type into a reply table, so the grammar is permissive but
deterministic:

- Quantity: keep only digits, '.', '-'; empty -> None; otherwise round to the
  nearest integer (halves round up). "~5 units" -> 5.
- Offer: collapse whitespace; empty or the literal "&nbsp;" -> no amount.
  A leading "total:" / "total " (any case) switches the pricing mode to
  total_line. The remainder is stripped to digits, '.', '-' and read as a
  decimal; anything unreadable yields no amount but keeps the mode.

No locale-sensitive parsing is performed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import Enum
from typing import Optional

_NUMERIC_NOISE = re.compile(r"[^0-9.\-]")
_WHITESPACE = re.compile(r"\s+")

NBSP_PLACEHOLDER = "&nbsp;"


class PricingMode(str, Enum):
    PER_UNIT = "per_unit"
    TOTAL_LINE = "total_line"


@dataclass(frozen=True, slots=True)
class OfferValue:
    """An offer cell after parsing. amount is None when nothing numeric was found."""

    amount: Optional[Decimal]
    mode: PricingMode = PricingMode.PER_UNIT


def _to_decimal(text: str) -> Optional[Decimal]:
    cleaned = _NUMERIC_NOISE.sub("", text)
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def parse_qty(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    number = _to_decimal(value)
    if number is None:
        return None
    return int((number + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def parse_offer_value(value: Optional[str]) -> OfferValue:
    if not value:
        return OfferValue(amount=None)

    trimmed = _WHITESPACE.sub(" ", value).strip()
    if not trimmed or trimmed == NBSP_PLACEHOLDER:
        return OfferValue(amount=None)

    lower = trimmed.lower()
    mode = PricingMode.PER_UNIT
    candidate = trimmed
    if lower.startswith("total:"):
        mode = PricingMode.TOTAL_LINE
        candidate = trimmed[len("total:"):]
    elif lower.startswith("total "):
        mode = PricingMode.TOTAL_LINE
        candidate = trimmed[len("total "):]

    return OfferValue(amount=_to_decimal(candidate), mode=mode)


__all__ = [
    "NBSP_PLACEHOLDER",
    "OfferValue",
    "PricingMode",
    "parse_offer_value",
    "parse_qty",
]
