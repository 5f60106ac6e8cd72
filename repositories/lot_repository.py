"""
Lot repository (persistence).

Reads lots and applies status/counter patches. Status patches are
compare-and-swap on the current status so two concurrent requests for the
same lot cannot both apply; lifecycle rules themselves live in
`domain.lot_lifecycle`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional
from uuid import UUID

from domain.lot import Lot, LotStatus
from domain.time import parse_utc_timestamp, to_iso_utc
from repositories.client import Client
from repositories.store import execute, first_row, rows

# Supabase table name for lots.
_LOTS_TABLE: str = "lots"


def _to_int(value: Any, default: Optional[int]) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _row_to_lot(row: Mapping[str, Any]) -> Lot:
    """Convert a Supabase row into a Lot."""

    return Lot(
        lot_id=UUID(str(row["id"])),
        tenant_id=UUID(str(row["tenant_id"])),
        status=LotStatus.parse(row.get("status")),
        title=row.get("title"),
        currency=row.get("currency"),
        po_count=_to_int(row.get("po_count"), 0) or 0,
        expected_po_count=_to_int(row.get("expected_po_count"), None),
        last_po_at=parse_utc_timestamp(row.get("last_po_at")),
        sale_in_progress_at=parse_utc_timestamp(row.get("sale_in_progress_at")),
        processing_at=parse_utc_timestamp(row.get("processing_at")),
        order_processing_at=parse_utc_timestamp(row.get("order_processing_at")),
        sold_at=parse_utc_timestamp(row.get("sold_at")),
        stored_status=row.get("status"),
    )


def get_lot(db: Client, lot_id: UUID, tenant_id: Optional[UUID] = None) -> Optional[Lot]:
    """
    Fetch a lot by id, optionally scoped to a tenant.

    Returns:
        Lot or None if not found (or owned by another tenant)
    """

    query = db.table(_LOTS_TABLE).select("*").eq("id", str(lot_id))
    if tenant_id is not None:
        query = query.eq("tenant_id", str(tenant_id))
    row = first_row(execute(query.limit(1), "fetch lot"))
    return _row_to_lot(row) if row else None


def get_lot_currencies(db: Client, lot_ids: Iterable[UUID]) -> Dict[UUID, Optional[str]]:
    ids = [str(lot_id) for lot_id in lot_ids]
    if not ids:
        return {}
    response = execute(db.table(_LOTS_TABLE).select("id,currency").in_("id", ids), "fetch lot currencies")
    return {UUID(str(row["id"])): row.get("currency") for row in rows(response)}


def update_lot_status(
    db: Client,
    lot: Lot,
    status: LotStatus,
    *,
    timestamp_field: Optional[str] = None,
    at: Optional[datetime] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> bool:
    """
    Set a lot's status if it still has the status we read.

    A lot read with a null status column is matched on null, not on the
    draft status it is read as.

    Returns:
        True if the row was updated, False if the lot changed concurrently
    """

    patch: Dict[str, Any] = {"status": status.value}
    if timestamp_field and at is not None:
        patch[timestamp_field] = to_iso_utc(at, name=timestamp_field)
    if extra:
        patch.update(extra)

    query = (
        db.table(_LOTS_TABLE)
        .update(patch)
        .eq("id", str(lot.lot_id))
        .eq("tenant_id", str(lot.tenant_id))
    )
    if lot.stored_status is None:
        query = query.is_("status", "null")
    else:
        query = query.eq("status", lot.stored_status)
    response = execute(query, "update lot status")
    return bool(rows(response))


def update_lot_counters(db: Client, lot: Lot, *, po_count: int, last_po_at: Optional[datetime] = None) -> None:
    patch: Dict[str, Any] = {"po_count": po_count}
    if last_po_at is not None:
        patch["last_po_at"] = to_iso_utc(last_po_at, name="last_po_at")

    query = (
        db.table(_LOTS_TABLE)
        .update(patch)
        .eq("id", str(lot.lot_id))
        .eq("tenant_id", str(lot.tenant_id))
    )
    execute(query, "update lot counters")


__all__ = [
    "get_lot",
    "get_lot_currencies",
    "update_lot_counters",
    "update_lot_status",
]
