"""
Domain: Lots.

A lot is a saleable batch of line items owned by exactly one tenant. Its
status only changes through the lifecycle rules in `domain.lot_lifecycle`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_utc_timestamp


class LotStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    OFFERS_RECEIVED = "offers_received"
    AWARDED = "awarded"
    SALE_IN_PROGRESS = "sale_in_progress"
    PROCESSING = "processing"
    ORDER_PROCESSING = "order_processing"
    SOLD = "sold"
    CLOSED = "closed"

    @staticmethod
    def parse(value: Optional[str]) -> "LotStatus":
        """
        Read a stored or requested status. Blank means draft.

        Raises ValueError for anything outside the enum.
        """

        text = (value or "").strip().lower()
        if not text:
            return LotStatus.DRAFT
        return LotStatus(text)


@dataclass(frozen=True, slots=True)
class Lot:
    lot_id: UUID
    tenant_id: UUID
    status: LotStatus
    title: Optional[str] = None
    currency: Optional[str] = None
    po_count: int = 0
    expected_po_count: Optional[int] = None
    last_po_at: Optional[datetime] = None
    sale_in_progress_at: Optional[datetime] = None
    processing_at: Optional[datetime] = None
    order_processing_at: Optional[datetime] = None
    sold_at: Optional[datetime] = None
    # Raw status column as read; None when the column is null.
    stored_status: Optional[str] = None

    def __post_init__(self) -> None:
        for name in (
            "last_po_at",
            "sale_in_progress_at",
            "processing_at",
            "order_processing_at",
            "sold_at",
        ):
            value = getattr(self, name)
            if value is not None:
                require_utc_timestamp(name, value)

    @property
    def label(self) -> str:
        return self.title or str(self.lot_id)
