"""
Tests for the HTTP layer in `api/`.

Covers contract rules:
- Service errors map to 400 / 403 / 404 status codes with a detail message
- Invite results return the effective round and the buyer's awards in it
- Mailbox polls report per-outcome counts
- Authenticated endpoints reject requests without a bearer token
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from api.dependencies import (
    RequestContext,
    get_db,
    get_ingestion_config,
    get_mailbox,
    get_request_context,
)
from api.main import app
from conftest import BATCH_KEY, BUYER_ID, INVITE_TOKEN, LINE_1, LOT_ID, ROUND_2, TENANT_ID, USER_ID, lot_row, seed_rounds
from domain.message import InboundMessage
from services.ingestion_config import IngestionConfig


class StubMailbox:
    def __init__(self, messages):
        self.messages = messages

    def get_access_token(self, user_id):
        return "access-token"

    def fetch_messages(self, access_token, subject_filter):
        return list(self.messages)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_request_context] = lambda: RequestContext(user_id=USER_ID, tenant_id=TENANT_ID)
    app.dependency_overrides[get_ingestion_config] = lambda: IngestionConfig()
    app.dependency_overrides[get_mailbox] = lambda: StubMailbox([])
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client) -> None:
    """Health endpoint reports the service."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["service"] == "offer-ingestion-api"


def test_submit_take_all_offer(client, db) -> None:
    """A valid take-all offer returns its id and stored status."""
    response = client.post(f"/api/v1/invites/{INVITE_TOKEN}/offers", json={"mode": "take_all", "total": "500"})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["status"] == "submitted"
    assert body["offer_id"] == db.rows("offers")[0]["id"]


def test_take_all_total_alias(client, db) -> None:
    """take_all_total is accepted in place of total."""
    response = client.post(
        f"/api/v1/invites/{INVITE_TOKEN}/offers", json={"mode": "take_all", "take_all_total": 250}
    )

    assert response.status_code == 200
    assert Decimal(db.rows("offers")[0]["take_all_total"]) == Decimal("250")


def test_submit_line_offer_validation_error(client) -> None:
    """No usable lines is a 400."""
    response = client.post(
        f"/api/v1/invites/{INVITE_TOKEN}/offers",
        json={"mode": "lines", "lines": [{"line_ref": "LN-999", "unit_price": "10"}]},
    )

    assert response.status_code == 400
    assert "No usable line offers" in response.json()["detail"]


def test_submit_offer_unknown_invite(client) -> None:
    """Unknown tokens are 404."""
    response = client.post("/api/v1/invites/nope/offers", json={"mode": "take_all", "total": "1"})

    assert response.status_code == 404


def test_invite_results(client, db) -> None:
    """Results are scoped to the effective round, which gets pinned."""
    seed_rounds(db)
    db.seed(
        "awarded_lines",
        [
            {
                "id": str(uuid4()),
                "lot_id": str(LOT_ID),
                "buyer_id": str(BUYER_ID),
                "line_item_id": str(LINE_1),
                "round_id": str(ROUND_2),
                "currency": "EUR",
                "unit_price": "150",
                "qty": 2,
                "extended": "300",
                "created_at": "2026-10-01T10:00:00Z",
            }
        ],
    )

    response = client.get(f"/api/v1/invites/{INVITE_TOKEN}/results")

    assert response.status_code == 200
    body = response.json()
    assert body["invite"]["round_id"] == str(ROUND_2)
    assert body["effective_round"] == {"id": str(ROUND_2), "round_number": 2}
    assert body["is_winner"] is True
    assert Decimal(str(body["awards_total"])) == Decimal("300")
    assert body["awards"][0]["line_ref"] == "LN-001"


def test_purchase_order_requires_award(client) -> None:
    """Non-winners get 403."""
    response = client.post(
        f"/api/v1/invites/{INVITE_TOKEN}/purchase-orders",
        json={"file_name": "po.pdf", "file_path": "pos/po.pdf"},
    )

    assert response.status_code == 403


def test_purchase_order_round_trip(client, db) -> None:
    """A winner's PO is recorded and listed back."""
    db.seed(
        "awarded_lines",
        [{"id": str(uuid4()), "lot_id": str(LOT_ID), "buyer_id": str(BUYER_ID), "line_item_id": str(LINE_1)}],
    )

    created = client.post(
        f"/api/v1/invites/{INVITE_TOKEN}/purchase-orders",
        json={"file_name": "po.pdf", "file_path": "pos/po.pdf"},
    )
    listed = client.get(f"/api/v1/invites/{INVITE_TOKEN}/purchase-orders")

    assert created.status_code == 200
    assert created.json()["po_count"] == 1
    assert created.json()["lot_status"] == "sale_in_progress"
    assert [item["file_name"] for item in listed.json()["purchase_orders"]] == ["po.pdf"]


def test_lot_status_rejected_transition(client, db) -> None:
    """Lifecycle violations are 400 with the rule's message."""
    lot_row(db).update({"status": "sale_in_progress", "expected_po_count": 3})

    response = client.post(f"/api/v1/lots/{LOT_ID}/status", json={"status": "processing"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot start order processing: 0/3 POs received."


def test_lot_status_invalid_and_missing(client) -> None:
    """Unknown status is 400; unknown lot is 404."""
    assert client.post(f"/api/v1/lots/{LOT_ID}/status", json={"status": "archived"}).status_code == 400
    assert client.post(f"/api/v1/lots/{uuid4()}/status", json={"status": "closed"}).status_code == 404


def test_lot_status_close(client, db) -> None:
    """A successful change reports both statuses."""
    response = client.post(f"/api/v1/lots/{LOT_ID}/status", json={"status": "closed"})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "status": "closed", "previous_status": "open", "changed": True}


def test_email_poll(client, db) -> None:
    """The poll endpoint returns outcome counts."""
    html = (
        "<table><tr><td>Line Ref</td><td>Qty</td><td>Offer</td></tr>"
        "<tr><td>LN-001</td><td>1</td><td>99</td></tr></table>"
    )
    message = InboundMessage(
        message_id="m1",
        subject=f"RE: {BATCH_KEY}",
        sender_address="buyer@example.com",
        html_body=html,
    )
    app.dependency_overrides[get_mailbox] = lambda: StubMailbox([message])

    response = client.post("/api/v1/email/poll")

    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 1
    assert body["outcomes"]["ingested"] == 1
    assert body["outcomes"]["failed"] == 0


def test_email_poll_requires_auth(db) -> None:
    """Without a bearer token the caller is rejected."""
    app.dependency_overrides[get_db] = lambda: db
    try:
        response = TestClient(app).post("/api/v1/email/poll")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401
