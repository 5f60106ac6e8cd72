"""
Lot status service.

Applies lifecycle transitions (see `domain.lot_lifecycle`) to stored lots:
- request_status: explicit operator request (the lot status endpoint)
- note_offer_received: automatic draft/open -> offers_received on a new offer
- note_purchase_order: counter refresh and sale_in_progress on a PO upload

Every write is compare-and-swap on the status that was read, so two
concurrent requests for one lot cannot both apply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from domain.lot import Lot, LotStatus
from domain.lot_lifecycle import LotLifecycle, LotTransitionError
from domain.time import utc_now
from repositories.client import Client
from repositories.lot_repository import get_lot, update_lot_counters, update_lot_status
from repositories.notification_repository import insert_notification
from repositories.purchase_order_repository import count_purchase_orders
from repositories.store import StoreError

logger = logging.getLogger(__name__)

NOTIFICATION_KIND = "status_change"

_NOTIFICATIONS: Dict[LotStatus, tuple] = {
    LotStatus.PROCESSING: (
        "Lot moved to Processing",
        "Seller/back-office can begin fulfilment (SO, logistics, payment follow-ups).",
    ),
    LotStatus.ORDER_PROCESSING: (
        "Lot moved to Processing",
        "Order processing started. Seller/back-office can begin fulfilment.",
    ),
    LotStatus.SOLD: (
        "Lot marked as Sold",
        "Deal closed. Capture final profit and archive docs.",
    ),
}

_ENDPOINT_STATUSES = frozenset(
    {
        LotStatus.SALE_IN_PROGRESS,
        LotStatus.PROCESSING,
        LotStatus.ORDER_PROCESSING,
        LotStatus.SOLD,
        LotStatus.CLOSED,
    }
)


class LotNotFoundError(LookupError):
    pass


class InvalidLotStatusError(ValueError):
    pass


class LotStatusConflictError(RuntimeError):
    """The lot's status changed between read and write."""


@dataclass(frozen=True, slots=True)
class StatusChange:
    lot_id: UUID
    previous: LotStatus
    status: LotStatus
    changed: bool


def parse_requested_status(value: Optional[str]) -> LotStatus:
    text = (value or "").strip().lower()
    try:
        status = LotStatus(text)
    except ValueError:
        raise InvalidLotStatusError("Invalid status") from None
    if status not in _ENDPOINT_STATUSES:
        raise InvalidLotStatusError("Invalid status")
    return status


def _notify(db: Client, lot: Lot, status: LotStatus) -> None:
    message = _NOTIFICATIONS.get(status)
    if message is None:
        return
    title, body = message
    try:
        insert_notification(
            db,
            tenant_id=lot.tenant_id,
            lot_id=lot.lot_id,
            kind=NOTIFICATION_KIND,
            title=title,
            body=f"{lot.label}: {body}",
        )
    except StoreError as e:
        logger.warning(
            "Notification insert failed",
            extra={"lot_id": str(lot.lot_id), "reason": str(e)},
        )


def request_status(
    db: Client,
    tenant_id: UUID,
    lot_id: UUID,
    requested: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> StatusChange:
    """
    Move a lot to the requested status.

    Raises:
        InvalidLotStatusError: the status is unknown or cannot be requested
        LotNotFoundError: no such lot in the tenant
        LotTransitionError: the lifecycle rules reject the transition
        LotStatusConflictError: the lot changed concurrently
    """

    target = parse_requested_status(requested)
    lot = get_lot(db, lot_id, tenant_id)
    if lot is None:
        raise LotNotFoundError("Lot not found")

    extra: Dict[str, Any] = {}
    if target in (LotStatus.PROCESSING, LotStatus.ORDER_PROCESSING) and lot.status is not LotStatus.CLOSED:
        po_count = count_purchase_orders(db, tenant_id, lot_id)
        lot = replace(lot, po_count=po_count)
        extra["po_count"] = po_count

    plan = LotLifecycle.for_lot(lot).request(target)

    at = now or utc_now()
    if not update_lot_status(db, lot, target, timestamp_field=plan.timestamp_field, at=at, extra=extra):
        raise LotStatusConflictError("Lot status changed concurrently. Reload and try again.")

    logger.info(
        "Lot status updated",
        extra={"lot_id": str(lot_id), "from_status": lot.status.value, "to_status": target.value, "changed": plan.changed},
    )
    if plan.changed:
        _notify(db, lot, target)
    return StatusChange(lot_id=lot_id, previous=lot.status, status=target, changed=plan.changed)


def note_offer_received(db: Client, tenant_id: UUID, lot_id: UUID) -> bool:
    """
    Raise a draft/open lot to offers_received. Best-effort.

    Returns:
        True if the lot was moved by this call
    """

    try:
        lot = get_lot(db, lot_id, tenant_id)
        if lot is None:
            return False
        lifecycle = LotLifecycle.for_lot(lot)
        if not lifecycle.may_receive_offer():
            return False
        lifecycle.request(LotStatus.OFFERS_RECEIVED)
        return update_lot_status(db, lot, LotStatus.OFFERS_RECEIVED)
    except (StoreError, LotTransitionError) as e:
        logger.warning(
            "offers_received status update skipped",
            extra={"lot_id": str(lot_id), "reason": str(e)},
        )
        return False


def note_purchase_order(db: Client, lot: Lot, *, now: Optional[datetime] = None) -> Lot:
    """
    Refresh a lot's PO counters after an upload and start the sale phase.

    po_count is recounted from the stored purchase orders. A lot that has not
    reached the sale phase moves to sale_in_progress; later phases (and
    closed lots) only get their counters updated.

    Returns:
        The lot as it now stands
    """

    at = now or utc_now()
    po_count = count_purchase_orders(db, lot.tenant_id, lot.lot_id)
    update_lot_counters(db, lot, po_count=po_count, last_po_at=at)
    lot = replace(lot, po_count=po_count, last_po_at=at)

    lifecycle = LotLifecycle.for_lot(lot)
    if not lifecycle.may_start_sale():
        return lot

    plan = lifecycle.request(LotStatus.SALE_IN_PROGRESS)
    if not update_lot_status(db, lot, LotStatus.SALE_IN_PROGRESS, timestamp_field=plan.timestamp_field, at=at):
        logger.warning("Lot changed before sale_in_progress could be applied", extra={"lot_id": str(lot.lot_id)})
        return lot

    logger.info("Lot moved to sale_in_progress", extra={"lot_id": str(lot.lot_id), "po_count": po_count})
    return replace(
        lot,
        status=LotStatus.SALE_IN_PROGRESS,
        stored_status=LotStatus.SALE_IN_PROGRESS.value,
        sale_in_progress_at=at,
    )


__all__ = [
    "InvalidLotStatusError",
    "LotNotFoundError",
    "LotStatusConflictError",
    "StatusChange",
    "note_offer_received",
    "note_purchase_order",
    "parse_requested_status",
    "request_status",
]
