"""
Purchase order recording for winning buyers.

Only a buyer holding at least one awarded line on the lot (in any round) may
upload. Each upload records the lot-level purchase order and the invite-level
upload row, then refreshes the lot's PO counters and starts the sale phase.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from domain.lot import LotStatus
from domain.time import utc_now
from repositories.client import Client
from repositories.lot_repository import get_lot
from repositories.purchase_order_repository import (
    PurchaseOrderDocument,
    PurchaseOrderUpload,
    insert_po_upload,
    insert_purchase_order,
    list_uploads_for_invite,
)
from services.award_ledger import is_awarded_on_lot
from services.lot_status_service import LotNotFoundError, note_purchase_order
from services.round_resolver import require_invite

logger = logging.getLogger(__name__)


class PurchaseOrderNotAllowedError(PermissionError):
    pass


@dataclass(frozen=True, slots=True)
class RecordedPurchaseOrder:
    purchase_order_id: UUID
    upload_id: UUID
    po_count: int
    lot_status: LotStatus


def record_purchase_order(
    db: Client,
    token: str,
    document: PurchaseOrderDocument,
    *,
    now: Optional[datetime] = None,
) -> RecordedPurchaseOrder:
    """
    Record an uploaded purchase order against the invite's lot.

    Raises:
        InviteNotFoundError: unknown token
        LotNotFoundError: the invite's lot is gone
        PurchaseOrderNotAllowedError: the buyer has no awarded lines on the lot
        ValueError: document metadata is incomplete
    """

    if not document.file_name.strip() or not document.file_path.strip():
        raise ValueError("Missing file")

    invite = require_invite(db, token)
    if not is_awarded_on_lot(db, invite.lot_id, invite.buyer_id):
        raise PurchaseOrderNotAllowedError("PO upload is only available for winning buyers.")

    lot = get_lot(db, invite.lot_id, invite.tenant_id)
    if lot is None:
        raise LotNotFoundError("Lot not found")

    at = now or utc_now()
    purchase_order_id = insert_purchase_order(
        db,
        tenant_id=invite.tenant_id,
        invite_id=invite.invite_id,
        lot_id=invite.lot_id,
        buyer_id=invite.buyer_id,
        document=document,
        uploaded_at=at,
    )
    upload_id = insert_po_upload(
        db,
        tenant_id=invite.tenant_id,
        invite_id=invite.invite_id,
        lot_id=invite.lot_id,
        buyer_id=invite.buyer_id,
        round_id=invite.round_id,
        document=document,
        uploaded_at=at,
    )
    logger.info(
        "Purchase order recorded",
        extra={"lot_id": str(invite.lot_id), "purchase_order_id": str(purchase_order_id)},
    )

    lot = note_purchase_order(db, lot, now=at)
    return RecordedPurchaseOrder(
        purchase_order_id=purchase_order_id,
        upload_id=upload_id,
        po_count=lot.po_count,
        lot_status=lot.status,
    )


def list_purchase_orders(db: Client, token: str) -> List[PurchaseOrderUpload]:
    invite = require_invite(db, token)
    return list_uploads_for_invite(db, invite.invite_id)


__all__ = [
    "PurchaseOrderNotAllowedError",
    "RecordedPurchaseOrder",
    "list_purchase_orders",
    "record_purchase_order",
]
