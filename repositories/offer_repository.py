"""
Offer repository (persistence).

Offers are written once and never mutated. Every optional column is carried
explicitly on `OfferDraft`; a status the store rejects surfaces as
`StatusConstraintError` so the caller can decide whether to retry.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence
from uuid import UUID, uuid4

from domain.offer import OfferDraft, OfferLineDraft
from repositories.client import Client
from repositories.store import execute, uuid_str

_OFFERS_TABLE: str = "offers"
_OFFER_LINES_TABLE: str = "offer_lines"


def _money(value: Any) -> Any:
    return str(value) if value is not None else None


def insert_offer(db: Client, draft: OfferDraft) -> UUID:
    """
    Insert an offer row.

    Returns:
        The new offer id

    Raises:
        StatusConstraintError: if the store rejects the status value
        StoreError: on any other store failure
    """

    offer_id = uuid4()
    payload: Dict[str, Any] = {
        "id": str(offer_id),
        "tenant_id": str(draft.tenant_id),
        "lot_id": str(draft.lot_id),
        "buyer_id": uuid_str(draft.buyer_id),
        "currency": draft.currency,
        "round_id": uuid_str(draft.round_id),
        "take_all_total": _money(draft.take_all_total),
        "total_offer": _money(draft.total_offer),
        "created_by": uuid_str(draft.created_by),
        "notes": draft.notes,
        "status": draft.status.value if draft.status is not None else None,
    }
    execute(db.table(_OFFERS_TABLE).insert(payload), "insert offer")
    return offer_id


def insert_offer_lines(db: Client, offer_id: UUID, offer: OfferDraft, lines: Sequence[OfferLineDraft]) -> int:
    """Insert the offer's priced lines; lot, buyer and currency are copied from the offer."""

    if not lines:
        return 0
    payload: List[Dict[str, Any]] = [
        {
            "offer_id": str(offer_id),
            "lot_id": str(offer.lot_id),
            "buyer_id": uuid_str(offer.buyer_id),
            "currency": offer.currency,
            "line_item_id": str(line.line_item_id),
            "unit_price": _money(line.unit_price),
            "qty": line.qty,
        }
        for line in lines
    ]
    execute(db.table(_OFFER_LINES_TABLE).insert(payload), "insert offer lines")
    return len(payload)


__all__ = ["insert_offer", "insert_offer_lines"]
