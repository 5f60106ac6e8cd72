"""
Tests for `services/offer_service.py`.

Covers contract rules:
- Take-all offers need a positive total
- Line offers keep lines with unit_price > 0 and a known line ref
- Validation happens before any write
- Offers are tied to the invite's effective round
- A rejected status is retried once as null
- The lot moves to offers_received; part observations are best-effort
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import INVITE_TOKEN, LINE_1, LINE_2, LOT_ID, ROUND_2, lot_row, seed_rounds
from domain.line_ref import LineRefIndex
from domain.offer import OfferStatus
from services.offer_service import (
    LineOfferInput,
    OfferSubmission,
    OfferValidationError,
    build_line_offers,
    submit_offer,
)
from services.round_resolver import InviteNotFoundError


def test_take_all_offer(db) -> None:
    """A take-all total is stored against the live round."""
    seed_rounds(db)

    created = submit_offer(db, INVITE_TOKEN, OfferSubmission(mode="take_all", total="12,500.00"))

    offer = db.rows("offers")[0]
    assert created.status is OfferStatus.SUBMITTED
    assert offer["id"] == str(created.offer_id)
    assert offer["take_all_total"] == "12500.00"
    assert offer["round_id"] == str(ROUND_2)
    assert offer["currency"] == "EUR"
    assert offer["status"] == "submitted"
    assert db.rows("offer_lines") == []
    assert lot_row(db)["status"] == "offers_received"


def test_take_all_needs_positive_total(db) -> None:
    """Zero, negative and missing totals are rejected with no rows written."""
    for total in ("0", "-5", None, "abc"):
        with pytest.raises(OfferValidationError, match="Invalid take-all total"):
            submit_offer(db, INVITE_TOKEN, OfferSubmission(mode="take_all", total=total))

    assert db.rows("offers") == []
    assert lot_row(db)["status"] == "open"


def test_unknown_mode(db) -> None:
    """Only take_all and lines are accepted."""
    with pytest.raises(OfferValidationError, match="mode must be"):
        submit_offer(db, INVITE_TOKEN, OfferSubmission(mode="bundle"))


def test_line_offer(db) -> None:
    """Usable lines are stored; unknown refs and non-positive prices are dropped."""
    submission = OfferSubmission(
        mode="lines",
        lines=[
            LineOfferInput(line_ref="ln-001", unit_price="150", qty="2"),
            LineOfferInput(line_ref="LN-999", unit_price="10"),
            LineOfferInput(line_ref="LN-002", unit_price="0"),
        ],
    )

    created = submit_offer(db, INVITE_TOKEN, submission)

    lines = db.rows("offer_lines")
    assert len(lines) == 1
    assert lines[0]["offer_id"] == str(created.offer_id)
    assert lines[0]["line_item_id"] == str(LINE_1)
    assert lines[0]["unit_price"] == "150"
    assert lines[0]["qty"] == 2
    assert lines[0]["lot_id"] == str(LOT_ID)
    assert db.rows("offers")[0]["take_all_total"] is None


def test_line_offer_logs_part_observations(db) -> None:
    """CPU qty per line times offered qty is logged as sold."""
    submission = OfferSubmission(mode="lines", lines=[LineOfferInput(line_ref="LN-001", unit_price="150", qty=2)])

    created = submit_offer(db, INVITE_TOKEN, submission)

    assert db.rpc_calls == [
        (
            "log_part_observation",
            {
                "p_part_number": "Xeon 6130",
                "p_category": "cpu",
                "p_qty": 4,
                "p_qty_type": "sold",
                "p_lot": str(LOT_ID),
                "p_line": str(LINE_1),
                "p_offer": str(created.offer_id),
                "p_source": "offer_lines",
            },
        )
    ]


def test_part_observation_failure_does_not_fail_offer(db) -> None:
    """The offer stands even if observation logging fails."""
    db.fail_rpc("log_part_observation")
    submission = OfferSubmission(mode="lines", lines=[LineOfferInput(line_ref="LN-002", unit_price="75.50")])

    created = submit_offer(db, INVITE_TOKEN, submission)

    assert created.offer_id is not None
    assert len(db.rows("offer_lines")) == 1


def test_no_usable_lines(db) -> None:
    """If nothing survives filtering the submission is rejected before writing."""
    submission = OfferSubmission(mode="lines", lines=[LineOfferInput(line_ref="LN-999", unit_price="10")])

    with pytest.raises(OfferValidationError, match="No usable line offers"):
        submit_offer(db, INVITE_TOKEN, submission)
    assert db.rows("offers") == []


def test_status_rejected_retries_with_null(db) -> None:
    """A store that rejects 'submitted' gets one retry without a status."""
    db.allow_only("offers", "status", set())

    created = submit_offer(db, INVITE_TOKEN, OfferSubmission(mode="take_all", total="100"))

    assert created.status is None
    assert len(db.rows("offers")) == 1
    assert db.rows("offers")[0]["status"] is None


def test_lot_past_offers_phase_keeps_status(db) -> None:
    """Offers on a lot in the sale phase do not move it back."""
    lot_row(db)["status"] = "sale_in_progress"

    submit_offer(db, INVITE_TOKEN, OfferSubmission(mode="take_all", total="100"))

    assert lot_row(db)["status"] == "sale_in_progress"


def test_unknown_invite(db) -> None:
    """Unknown tokens are lookup errors."""
    with pytest.raises(InviteNotFoundError):
        submit_offer(db, "nope", OfferSubmission(mode="take_all", total="100"))


def test_build_line_offers_parses_values() -> None:
    """Prices drop thousands separators and quantities round half up."""
    index = LineRefIndex.build([(LINE_2, "LN-002")])

    drafts = build_line_offers([LineOfferInput(line_ref="LN-002", unit_price="1,250.50", qty="2.5")], index)

    assert drafts[0].unit_price == Decimal("1250.50")
    assert drafts[0].qty == 3


def test_build_line_offers_requires_lines() -> None:
    """An empty list is its own error."""
    with pytest.raises(OfferValidationError, match="No line offers provided"):
        build_line_offers([], LineRefIndex.empty())
