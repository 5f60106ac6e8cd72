"""
Purchase order repository (persistence).

A purchase order upload writes two rows: the lot-level `purchase_orders`
record (counted for the lot's po_count) and the invite-level `po_uploads`
record (listed back to the buyer). The document itself lives in object
storage; only its metadata is stored here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID, uuid4

from domain.time import parse_utc_timestamp, to_iso_utc
from repositories.client import Client
from repositories.store import execute, rows, to_uuid, uuid_str

_PURCHASE_ORDERS_TABLE: str = "purchase_orders"
_PO_UPLOADS_TABLE: str = "po_uploads"


@dataclass(frozen=True, slots=True)
class PurchaseOrderDocument:
    """Metadata of an uploaded purchase order document."""

    file_name: str
    file_path: str
    content_type: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PurchaseOrderUpload:
    upload_id: UUID
    invite_id: UUID
    lot_id: UUID
    buyer_id: UUID
    round_id: Optional[UUID]
    file_name: str
    file_path: str
    content_type: Optional[str]
    notes: Optional[str]
    uploaded_at: Optional[datetime]


def insert_purchase_order(
    db: Client,
    *,
    tenant_id: UUID,
    invite_id: UUID,
    lot_id: UUID,
    buyer_id: UUID,
    document: PurchaseOrderDocument,
    uploaded_at: datetime,
) -> UUID:
    purchase_order_id = uuid4()
    payload: Dict[str, Any] = {
        "id": str(purchase_order_id),
        "tenant_id": str(tenant_id),
        "invite_id": str(invite_id),
        "lot_id": str(lot_id),
        "buyer_id": str(buyer_id),
        "file_name": document.file_name,
        "file_path": document.file_path,
        "content_type": document.content_type,
        "notes": document.notes,
        "uploaded_at": to_iso_utc(uploaded_at, name="uploaded_at"),
    }
    execute(db.table(_PURCHASE_ORDERS_TABLE).insert(payload), "insert purchase order")
    return purchase_order_id


def insert_po_upload(
    db: Client,
    *,
    tenant_id: UUID,
    invite_id: UUID,
    lot_id: UUID,
    buyer_id: UUID,
    round_id: Optional[UUID],
    document: PurchaseOrderDocument,
    uploaded_at: datetime,
) -> UUID:
    upload_id = uuid4()
    payload: Dict[str, Any] = {
        "id": str(upload_id),
        "tenant_id": str(tenant_id),
        "invite_id": str(invite_id),
        "lot_id": str(lot_id),
        "buyer_id": str(buyer_id),
        "round_id": uuid_str(round_id),
        "file_name": document.file_name,
        "file_path": document.file_path,
        "content_type": document.content_type,
        "notes": document.notes,
        "uploaded_at": to_iso_utc(uploaded_at, name="uploaded_at"),
    }
    execute(db.table(_PO_UPLOADS_TABLE).insert(payload), "insert PO upload")
    return upload_id


def count_purchase_orders(db: Client, tenant_id: UUID, lot_id: UUID) -> int:
    """Current number of purchase orders recorded for a lot."""

    response = execute(
        db.table(_PURCHASE_ORDERS_TABLE)
        .select("id")
        .eq("tenant_id", str(tenant_id))
        .eq("lot_id", str(lot_id)),
        "count purchase orders",
    )
    return len(rows(response))


def _row_to_upload(row: Mapping[str, Any]) -> PurchaseOrderUpload:
    return PurchaseOrderUpload(
        upload_id=UUID(str(row["id"])),
        invite_id=UUID(str(row["invite_id"])),
        lot_id=UUID(str(row["lot_id"])),
        buyer_id=UUID(str(row["buyer_id"])),
        round_id=to_uuid(row.get("round_id")),
        file_name=str(row.get("file_name") or ""),
        file_path=str(row.get("file_path") or ""),
        content_type=row.get("content_type"),
        notes=row.get("notes"),
        uploaded_at=parse_utc_timestamp(row.get("uploaded_at")),
    )


def list_uploads_for_invite(db: Client, invite_id: UUID) -> List[PurchaseOrderUpload]:
    response = execute(
        db.table(_PO_UPLOADS_TABLE)
        .select("id,invite_id,lot_id,buyer_id,round_id,file_name,file_path,content_type,notes,uploaded_at")
        .eq("invite_id", str(invite_id))
        .order("uploaded_at", desc=True),
        "fetch PO uploads",
    )
    return [_row_to_upload(row) for row in rows(response)]


__all__ = [
    "PurchaseOrderDocument",
    "PurchaseOrderUpload",
    "count_purchase_orders",
    "insert_po_upload",
    "insert_purchase_order",
    "list_uploads_for_invite",
]
