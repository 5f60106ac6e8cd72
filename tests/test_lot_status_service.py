"""
Tests for `services/lot_status_service.py`.

Covers contract rules:
- Only endpoint statuses can be requested
- po_count is recounted before processing / order_processing is checked
- Changes stamp their timestamp and notify; self-transitions do not notify
- Writes are compare-and-swap; a lost race is a conflict
- offers_received is raised best-effort on new offers
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

import pytest

import services.lot_status_service as lot_status_service
from conftest import LOT_ID, TENANT_ID, lot_row
from domain.lot import LotStatus
from domain.lot_lifecycle import LotTransitionError
from services.lot_status_service import (
    InvalidLotStatusError,
    LotNotFoundError,
    LotStatusConflictError,
    note_offer_received,
    request_status,
)

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def _seed_purchase_orders(db, count: int) -> None:
    db.seed(
        "purchase_orders",
        [{"id": str(uuid4()), "tenant_id": str(TENANT_ID), "lot_id": str(LOT_ID)} for _ in range(count)],
    )


def test_processing_with_all_pos(db) -> None:
    """The PO count is recounted, stored and satisfies the expectation."""
    lot_row(db).update({"status": "sale_in_progress", "expected_po_count": 2, "po_count": 0})
    _seed_purchase_orders(db, 2)

    change = request_status(db, TENANT_ID, LOT_ID, "processing", now=NOW)

    row = lot_row(db)
    assert change.changed is True
    assert change.previous is LotStatus.SALE_IN_PROGRESS
    assert row["status"] == "processing"
    assert row["po_count"] == 2
    assert row["processing_at"] == NOW.isoformat()

    notification = db.rows("notifications")[0]
    assert notification["title"] == "Lot moved to Processing"
    assert notification["body"].startswith("Dell R740 pallet: ")
    assert notification["kind"] == "status_change"


def test_processing_short_of_pos(db) -> None:
    """A shortfall is rejected and nothing is written."""
    lot_row(db).update({"status": "sale_in_progress", "expected_po_count": 3})
    _seed_purchase_orders(db, 1)

    with pytest.raises(LotTransitionError, match="1/3 POs received"):
        request_status(db, TENANT_ID, LOT_ID, "order_processing", now=NOW)

    assert lot_row(db)["status"] == "sale_in_progress"
    assert db.rows("notifications") == []


def test_sold_self_transition_restamps_without_notifying(db) -> None:
    """sold -> sold is accepted, re-stamps sold_at, and is silent."""
    lot_row(db).update({"status": "sold", "sold_at": "2026-01-01T00:00:00+00:00"})

    change = request_status(db, TENANT_ID, LOT_ID, "SOLD", now=NOW)

    assert change.changed is False
    assert lot_row(db)["sold_at"] == NOW.isoformat()
    assert db.rows("notifications") == []


def test_close_from_open(db) -> None:
    """Closing needs no preconditions and sends no notification."""
    change = request_status(db, TENANT_ID, LOT_ID, "closed", now=NOW)

    assert change.status is LotStatus.CLOSED
    assert lot_row(db)["status"] == "closed"
    assert db.rows("notifications") == []


def test_close_lot_without_status(db) -> None:
    """A null status matches on null when the status is written."""
    lot_row(db)["status"] = None

    change = request_status(db, TENANT_ID, LOT_ID, "closed", now=NOW)

    assert change.previous is LotStatus.DRAFT
    assert lot_row(db)["status"] == "closed"


def test_offer_received_from_null_status(db) -> None:
    """A lot with no stored status moves to offers_received like a draft."""
    lot_row(db)["status"] = None

    assert note_offer_received(db, TENANT_ID, LOT_ID) is True
    assert lot_row(db)["status"] == "offers_received"


def test_closed_lot_rejects_everything(db) -> None:
    """Closed is terminal."""
    lot_row(db)["status"] = "closed"

    with pytest.raises(LotTransitionError, match="closed"):
        request_status(db, TENANT_ID, LOT_ID, "sold", now=NOW)


def test_invalid_requested_status(db) -> None:
    """Unknown statuses and automatic-only statuses cannot be requested."""
    for value in ("bogus", "awarded", "offers_received", "", None):
        with pytest.raises(InvalidLotStatusError, match="Invalid status"):
            request_status(db, TENANT_ID, LOT_ID, value, now=NOW)


def test_lot_of_another_tenant_is_not_found(db) -> None:
    """Lots are tenant-scoped."""
    with pytest.raises(LotNotFoundError):
        request_status(db, uuid4(), LOT_ID, "closed", now=NOW)


def test_lost_race_is_conflict(db, monkeypatch) -> None:
    """If the compare-and-swap matches no row the request conflicts."""
    monkeypatch.setattr(lot_status_service, "update_lot_status", lambda *args, **kwargs: False)

    with pytest.raises(LotStatusConflictError):
        request_status(db, TENANT_ID, LOT_ID, "closed", now=NOW)


def test_notification_failure_is_swallowed(db) -> None:
    """The status change stands when the notification cannot be written."""
    lot_row(db)["status"] = "processing"
    db.fail("notifications", "insert")

    change = request_status(db, TENANT_ID, LOT_ID, "sold", now=NOW)

    assert change.changed is True
    assert lot_row(db)["status"] == "sold"


def test_offer_received_from_open(db) -> None:
    """An open lot moves to offers_received."""
    assert note_offer_received(db, TENANT_ID, LOT_ID) is True
    assert lot_row(db)["status"] == "offers_received"


def test_offer_received_ignored_later(db) -> None:
    """Lots past draft/open are left alone."""
    lot_row(db)["status"] = "sale_in_progress"

    assert note_offer_received(db, TENANT_ID, LOT_ID) is False
    assert lot_row(db)["status"] == "sale_in_progress"


def test_offer_received_store_failure_is_not_raised(db) -> None:
    """Best-effort: store failures return False."""
    db.fail("lots", "update")

    assert note_offer_received(db, TENANT_ID, LOT_ID) is False
    assert lot_row(db)["status"] == "open"
