"""
Pytest configuration.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides an in-memory store seeded with
one lot, its line items and a buyer invite.
"""

import sys
from pathlib import Path
from uuid import UUID

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from fake_supabase import FakeSupabase  # noqa: E402

TENANT_ID = UUID("00000000-0000-0000-0000-00000000aaaa")
USER_ID = UUID("00000000-0000-0000-0000-00000000bbbb")
LOT_ID = UUID("00000000-0000-0000-0000-000000000001")
BUYER_ID = UUID("00000000-0000-0000-0000-00000000cccc")
BATCH_ID = UUID("00000000-0000-0000-0000-00000000dddd")
INVITE_ID = UUID("00000000-0000-0000-0000-00000000eeee")
LINE_1 = UUID("00000000-0000-0000-0000-000000000101")
LINE_2 = UUID("00000000-0000-0000-0000-000000000102")
ROUND_1 = UUID("00000000-0000-0000-0000-000000000201")
ROUND_2 = UUID("00000000-0000-0000-0000-000000000202")

INVITE_TOKEN = "tok-123"
BATCH_KEY = "LOT-7Q2X"
BUYER_EMAIL = "buyer@example.com"


@pytest.fixture
def db() -> FakeSupabase:
    store = FakeSupabase()
    store.seed(
        "lots",
        [
            {
                "id": str(LOT_ID),
                "tenant_id": str(TENANT_ID),
                "status": "open",
                "title": "Dell R740 pallet",
                "currency": "EUR",
                "po_count": 0,
                "expected_po_count": None,
            }
        ],
    )
    store.seed(
        "line_items",
        [
            {
                "id": str(LINE_1),
                "tenant_id": str(TENANT_ID),
                "lot_id": str(LOT_ID),
                "line_ref": "LN-001",
                "model": "R740",
                "description": "Dell PowerEdge R740",
                "cpu": "Xeon 6130",
                "cpu_qty": 2,
                "memory_part_numbers": None,
                "memory_qty": None,
                "gpu": None,
                "specs": {},
            },
            {
                "id": str(LINE_2),
                "tenant_id": str(TENANT_ID),
                "lot_id": str(LOT_ID),
                "line_ref": "LN-002",
                "model": "R640",
                "description": "Dell PowerEdge R640",
                "cpu": None,
                "cpu_qty": None,
                "memory_part_numbers": "M393A4K40CB2",
                "memory_qty": 8,
                "gpu": None,
                "specs": {"drives": "ST4000NM", "drives_qty": 4},
            },
        ],
    )
    store.seed("buyers", [{"id": str(BUYER_ID), "tenant_id": str(TENANT_ID), "email": "Buyer@Example.com"}])
    store.seed(
        "lot_invites",
        [
            {
                "id": str(INVITE_ID),
                "token": INVITE_TOKEN,
                "status": "active",
                "tenant_id": str(TENANT_ID),
                "lot_id": str(LOT_ID),
                "buyer_id": str(BUYER_ID),
                "round_id": None,
            }
        ],
    )
    store.seed(
        "lot_email_batches",
        [
            {
                "id": str(BATCH_ID),
                "tenant_id": str(TENANT_ID),
                "created_by": str(USER_ID),
                "lot_id": str(LOT_ID),
                "batch_key": BATCH_KEY,
                "currency": None,
                "status": "sent",
            }
        ],
    )
    store.unique("email_offers", "message_id")
    return store


def seed_rounds(db: FakeSupabase) -> None:
    """Round 1 closed, round 2 live."""
    db.seed(
        "lot_rounds",
        [
            {"id": str(ROUND_1), "lot_id": str(LOT_ID), "round_number": 1, "status": "closed"},
            {"id": str(ROUND_2), "lot_id": str(LOT_ID), "round_number": 2, "status": "live"},
        ],
    )


def lot_row(db: FakeSupabase) -> dict:
    return next(row for row in db.rows("lots") if row["id"] == str(LOT_ID))
