"""
Awarded line repository (read-only).

Award rows are produced by award decision logic outside this codebase. This
module only reads them, so malformed stored values are coerced (numbers to
None, ids skipped) instead of raising.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from domain.award import AwardedLine
from domain.time import parse_utc_timestamp
from repositories.client import Client
from repositories.store import execute, rows

logger = logging.getLogger(__name__)

_AWARDS_TABLE: str = "awarded_lines"
_LINE_ITEMS_TABLE: str = "line_items"


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def _to_int(value: Any) -> Optional[int]:
    amount = _to_decimal(value)
    return int(amount) if amount is not None else None


def _to_uuid(value: Any) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _row_to_award(row: Mapping[str, Any], line: Mapping[str, Any]) -> Optional[AwardedLine]:
    award_id = _to_uuid(row.get("id"))
    lot_id = _to_uuid(row.get("lot_id"))
    buyer_id = _to_uuid(row.get("buyer_id"))
    if award_id is None or lot_id is None or buyer_id is None:
        logger.warning("Skipping malformed award row", extra={"award_id": row.get("id")})
        return None

    try:
        created_at = parse_utc_timestamp(row.get("created_at"))
    except (TypeError, ValueError):
        created_at = None

    return AwardedLine(
        award_id=award_id,
        lot_id=lot_id,
        buyer_id=buyer_id,
        line_item_id=_to_uuid(row.get("line_item_id")),
        round_id=_to_uuid(row.get("round_id")),
        offer_id=_to_uuid(row.get("offer_id")),
        currency=row.get("currency"),
        unit_price=_to_decimal(row.get("unit_price")),
        qty=_to_int(row.get("qty")),
        extended=_to_decimal(row.get("extended")),
        created_at=created_at,
        line_ref=line.get("line_ref"),
        model=line.get("model"),
        description=line.get("description"),
    )


def _line_details(db: Client, line_item_ids: List[str]) -> Dict[str, Mapping[str, Any]]:
    if not line_item_ids:
        return {}
    response = execute(
        db.table(_LINE_ITEMS_TABLE).select("id,line_ref,model,description").in_("id", line_item_ids),
        "fetch awarded line items",
    )
    return {str(row["id"]): row for row in rows(response) if row.get("id")}


def list_awards(
    db: Client,
    lot_id: UUID,
    buyer_id: UUID,
    round_id: Optional[UUID] = None,
) -> List[AwardedLine]:
    """
    Awarded lines for a buyer on a lot, newest first.

    With round_id only that round's rows are returned; without it, every
    round's rows are.
    """

    query = (
        db.table(_AWARDS_TABLE)
        .select("id,lot_id,buyer_id,line_item_id,round_id,offer_id,currency,unit_price,qty,extended,created_at")
        .eq("lot_id", str(lot_id))
        .eq("buyer_id", str(buyer_id))
    )
    if round_id is not None:
        query = query.eq("round_id", str(round_id))
    award_rows = rows(execute(query.order("created_at", desc=True), "fetch awarded lines"))

    line_ids = sorted({str(row["line_item_id"]) for row in award_rows if row.get("line_item_id")})
    details = _line_details(db, line_ids)

    awards: List[AwardedLine] = []
    for row in award_rows:
        award = _row_to_award(row, details.get(str(row.get("line_item_id")), {}))
        if award is not None:
            awards.append(award)
    return awards


def has_awards(db: Client, lot_id: UUID, buyer_id: UUID) -> bool:
    """True if the buyer holds at least one awarded line on the lot, in any round."""

    response = execute(
        db.table(_AWARDS_TABLE)
        .select("id")
        .eq("lot_id", str(lot_id))
        .eq("buyer_id", str(buyer_id))
        .limit(1),
        "check awarded lines",
    )
    return bool(rows(response))


__all__ = ["has_awards", "list_awards"]
