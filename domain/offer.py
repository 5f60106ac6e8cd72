"""
Domain: offers and offer lines.

Email replies move through explicit stages:

    RawRow (offer_table) -> ParsedRow (typed cells) -> ResolvedRow (line id + notes)

Parse-quality problems are not errors. They are recorded as per-row notes and
drive the message-level classification:

- "Missing Line Ref"        the line ref cell is blank
- "Line Ref not recognised" the ref does not resolve within the lot/deal
- "Offer not parsed"        no amount could be read from the offer cell

A message is needs_review if any row carries a note or no row produced an
amount; otherwise it is parsed.

This module contains only pure domain records: no I/O, no database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from .cell_parser import OfferValue, PricingMode, parse_offer_value, parse_qty
from .line_ref import LineRefIndex, normalize_line_ref
from .offer_table import RawRow
from .time import require_utc_timestamp

NOTE_MISSING_LINE_REF = "Missing Line Ref"
NOTE_LINE_REF_NOT_RECOGNISED = "Line Ref not recognised"
NOTE_OFFER_NOT_PARSED = "Offer not parsed"


class EmailOfferStatus(str, Enum):
    PARSED = "parsed"
    NEEDS_REVIEW = "needs_review"


class OfferStatus(str, Enum):
    SUBMITTED = "submitted"


@dataclass(frozen=True, slots=True)
class ParsedRow:
    raw: RawRow
    normalized_line_ref: str
    qty: Optional[int]
    offer: OfferValue


@dataclass(frozen=True, slots=True)
class ResolvedRow:
    """A parsed row plus the line it resolved to (if any) and its notes."""

    parsed: ParsedRow
    line_id: Optional[UUID]
    notes: Tuple[str, ...] = ()

    @property
    def line_ref_raw(self) -> str:
        return self.parsed.raw.line_ref.strip()

    @property
    def qty(self) -> Optional[int]:
        return self.parsed.qty

    @property
    def amount(self) -> Optional[Decimal]:
        return self.parsed.offer.amount

    @property
    def mode(self) -> PricingMode:
        return self.parsed.offer.mode

    @property
    def parse_notes(self) -> Optional[str]:
        return "; ".join(self.notes) if self.notes else None

    @property
    def unit_price(self) -> Optional[Decimal]:
        """Per-unit price, or None when a line total cannot be split by quantity."""

        if self.amount is None:
            return None
        if self.mode is PricingMode.PER_UNIT:
            return self.amount
        if self.qty is not None and self.qty > 0:
            return self.amount / self.qty
        return None

    @property
    def extended_amount(self) -> Decimal:
        if self.amount is None:
            return Decimal("0")
        if self.mode is PricingMode.TOTAL_LINE:
            return self.amount
        return self.amount * (self.qty if self.qty is not None else 1)


def parse_row(raw: RawRow) -> ParsedRow:
    return ParsedRow(
        raw=raw,
        normalized_line_ref=normalize_line_ref(raw.line_ref),
        qty=parse_qty(raw.qty),
        offer=parse_offer_value(raw.offer),
    )


def resolve_row(parsed: ParsedRow, index: LineRefIndex) -> ResolvedRow:
    line_id = index.resolve(parsed.raw.line_ref)
    notes: List[str] = []
    if not parsed.raw.line_ref.strip():
        notes.append(NOTE_MISSING_LINE_REF)
    if line_id is None:
        notes.append(NOTE_LINE_REF_NOT_RECOGNISED)
    if parsed.offer.amount is None:
        notes.append(NOTE_OFFER_NOT_PARSED)
    return ResolvedRow(parsed=parsed, line_id=line_id, notes=tuple(notes))


def resolve_rows(raw_rows: Iterable[RawRow], index: LineRefIndex) -> List[ResolvedRow]:
    return [resolve_row(parse_row(raw), index) for raw in raw_rows]


def classify_rows(rows: Sequence[ResolvedRow]) -> EmailOfferStatus:
    if any(row.notes for row in rows):
        return EmailOfferStatus.NEEDS_REVIEW
    if not any(row.amount is not None for row in rows):
        return EmailOfferStatus.NEEDS_REVIEW
    return EmailOfferStatus.PARSED


def awardable_rows(rows: Sequence[ResolvedRow]) -> List[ResolvedRow]:
    """Rows that can feed an itemized offer: resolved line and a usable unit price."""

    return [row for row in rows if row.line_id is not None and row.unit_price is not None]


def extended_total(rows: Iterable[ResolvedRow]) -> Decimal:
    return sum((row.extended_amount for row in rows), Decimal("0"))


@dataclass(frozen=True, slots=True)
class EmailOfferDraft:
    """
    An inbound reply ready to persist. Exactly one of (lot_id, batch_id) or
    (deal_id, deal_thread_id) is set.
    """

    tenant_id: UUID
    message_id: str
    buyer_email: str
    buyer_name: Optional[str]
    received_at: datetime
    currency: str
    raw_html: str
    status: EmailOfferStatus
    lot_id: Optional[UUID] = None
    batch_id: Optional[UUID] = None
    deal_id: Optional[UUID] = None
    deal_thread_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("received_at", self.received_at)
        if (self.lot_id is None) == (self.deal_id is None):
            raise ValueError("EmailOfferDraft needs exactly one of lot_id or deal_id")


@dataclass(frozen=True, slots=True)
class OfferDraft:
    """
    A form-submitted or synthesized offer. All optional columns are listed
    here with their defaults; nothing is probed at runtime.
    """

    tenant_id: UUID
    lot_id: UUID
    buyer_id: Optional[UUID]
    currency: str
    round_id: Optional[UUID] = None
    take_all_total: Optional[Decimal] = None
    total_offer: Optional[Decimal] = None
    created_by: Optional[UUID] = None
    notes: Optional[str] = None
    status: Optional[OfferStatus] = OfferStatus.SUBMITTED

    def without_status(self) -> "OfferDraft":
        return OfferDraft(
            tenant_id=self.tenant_id,
            lot_id=self.lot_id,
            buyer_id=self.buyer_id,
            currency=self.currency,
            round_id=self.round_id,
            take_all_total=self.take_all_total,
            total_offer=self.total_offer,
            created_by=self.created_by,
            notes=self.notes,
            status=None,
        )


@dataclass(frozen=True, slots=True)
class OfferLineDraft:
    line_item_id: UUID
    unit_price: Decimal
    qty: Optional[int] = None


@dataclass(frozen=True, slots=True)
class CreatedOffer:
    offer_id: UUID
    status: Optional[OfferStatus]


__all__ = [
    "CreatedOffer",
    "EmailOfferDraft",
    "EmailOfferStatus",
    "NOTE_LINE_REF_NOT_RECOGNISED",
    "NOTE_MISSING_LINE_REF",
    "NOTE_OFFER_NOT_PARSED",
    "OfferDraft",
    "OfferLineDraft",
    "OfferStatus",
    "ParsedRow",
    "ResolvedRow",
    "awardable_rows",
    "classify_rows",
    "extended_total",
    "parse_row",
    "resolve_row",
    "resolve_rows",
]
