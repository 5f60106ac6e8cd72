"""
Email offer repository (persistence).

`email_offers` holds one row per ingested mailbox message (message_id is the
deduplication key); `email_offer_lines` holds every extracted table row,
including rows that failed to resolve, for audit.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence, Set
from uuid import UUID, uuid4

from domain.offer import EmailOfferDraft, ResolvedRow
from domain.time import to_iso_utc
from repositories.client import Client
from repositories.store import execute, rows, uuid_str

_EMAIL_OFFERS_TABLE: str = "email_offers"
_EMAIL_OFFER_LINES_TABLE: str = "email_offer_lines"


def find_seen_message_ids(db: Client, tenant_id: UUID, message_ids: Iterable[str]) -> Set[str]:
    """Subset of message_ids that already have an email_offers row."""

    ids = [message_id for message_id in message_ids if message_id]
    if not ids:
        return set()
    response = execute(
        db.table(_EMAIL_OFFERS_TABLE)
        .select("message_id")
        .eq("tenant_id", str(tenant_id))
        .in_("message_id", ids),
        "fetch seen message ids",
    )
    return {str(row["message_id"]) for row in rows(response) if row.get("message_id")}


def insert_email_offer(db: Client, draft: EmailOfferDraft) -> UUID:
    email_offer_id = uuid4()
    payload: Dict[str, Any] = {
        "id": str(email_offer_id),
        "tenant_id": str(draft.tenant_id),
        "message_id": draft.message_id,
        "buyer_email": draft.buyer_email,
        "buyer_name": draft.buyer_name,
        "received_at": to_iso_utc(draft.received_at, name="received_at"),
        "currency": draft.currency,
        "raw_html": draft.raw_html,
        "status": draft.status.value,
        "lot_id": uuid_str(draft.lot_id),
        "batch_id": uuid_str(draft.batch_id),
        "deal_id": uuid_str(draft.deal_id),
        "deal_thread_id": uuid_str(draft.deal_thread_id),
    }
    execute(db.table(_EMAIL_OFFERS_TABLE).insert(payload), "insert email offer")
    return email_offer_id


def _line_payload(email_offer_id: UUID, row: ResolvedRow, line_column: str) -> Dict[str, Any]:
    return {
        "email_offer_id": str(email_offer_id),
        "line_ref": row.line_ref_raw or None,
        "normalized_line_ref": row.parsed.normalized_line_ref or None,
        line_column: uuid_str(row.line_id),
        "qty": row.qty,
        "offer_amount": str(row.amount) if row.amount is not None else None,
        "offer_type": row.mode.value,
        "parse_notes": row.parse_notes,
    }


def insert_email_offer_lines(
    db: Client,
    email_offer_id: UUID,
    resolved_rows: Sequence[ResolvedRow],
    *,
    for_deal: bool = False,
) -> int:
    """
    Insert one line per extracted row.

    Lot replies reference `line_item_id`; deal replies reference `deal_line_id`.
    """

    if not resolved_rows:
        return 0
    line_column = "deal_line_id" if for_deal else "line_item_id"
    payload: List[Dict[str, Any]] = [_line_payload(email_offer_id, row, line_column) for row in resolved_rows]
    execute(db.table(_EMAIL_OFFER_LINES_TABLE).insert(payload), "insert email offer lines")
    return len(payload)


def delete_email_offer(db: Client, email_offer_id: UUID) -> None:
    execute(
        db.table(_EMAIL_OFFERS_TABLE).delete().eq("id", str(email_offer_id)),
        "delete email offer",
    )


__all__ = [
    "delete_email_offer",
    "find_seen_message_ids",
    "insert_email_offer",
    "insert_email_offer_lines",
]
