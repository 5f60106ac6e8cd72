"""
Domain: awarded lines.

An awarded line records that one (lot, round, line item) went to one buyer at
a unit price and quantity. Rows are written by award decision logic elsewhere
and are immutable; a correction is a new row. Here they are only read.

The extended amount is stored with the row and summed as-is, never
recomputed from unit price and quantity.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID


@dataclass(frozen=True, slots=True)
class AwardedLine:
    award_id: UUID
    lot_id: UUID
    buyer_id: UUID
    line_item_id: Optional[UUID]
    round_id: Optional[UUID] = None
    offer_id: Optional[UUID] = None
    currency: Optional[str] = None
    unit_price: Optional[Decimal] = None
    qty: Optional[int] = None
    extended: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    line_ref: Optional[str] = None
    model: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AwardSummary:
    awards: Sequence[AwardedLine]

    @property
    def is_winner(self) -> bool:
        return len(self.awards) > 0

    @property
    def total(self) -> Decimal:
        return sum((award.extended or Decimal("0") for award in self.awards), Decimal("0"))
