"""
Tests for `services/award_ledger.py`.

Covers contract rules:
- Awards are scoped to the effective round when it has one, lot-wide otherwise
- The total sums stored extended amounts as-is
- Any award on the lot, in any round, makes the buyer a winner for POs
- Malformed stored rows are skipped, not raised
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from conftest import BUYER_ID, LINE_1, LINE_2, LOT_ID, ROUND_1, ROUND_2
from domain.round import EffectiveRound
from services.award_ledger import awards_for, is_awarded_on_lot, summarize


def _award(round_id, line_id, extended, created_at, **overrides) -> dict:
    row = {
        "id": str(uuid4()),
        "lot_id": str(LOT_ID),
        "buyer_id": str(BUYER_ID),
        "line_item_id": str(line_id),
        "round_id": str(round_id),
        "offer_id": None,
        "currency": "EUR",
        "unit_price": "10",
        "qty": 2,
        "extended": extended,
        "created_at": created_at,
    }
    row.update(overrides)
    return row


def _seed_awards(db) -> None:
    db.seed(
        "awarded_lines",
        [
            _award(ROUND_1, LINE_1, "20", "2026-09-01T10:00:00Z"),
            _award(ROUND_2, LINE_1, "25", "2026-10-01T10:00:00Z"),
            _award(ROUND_2, LINE_2, "100.50", "2026-10-02T10:00:00Z"),
        ],
    )


def test_round_scoped_summary(db) -> None:
    """Only the effective round's awards count."""
    _seed_awards(db)

    summary = summarize(db, LOT_ID, BUYER_ID, EffectiveRound(round_id=ROUND_2, round_number=2))

    assert summary.is_winner is True
    assert len(summary.awards) == 2
    assert summary.total == Decimal("125.50")


def test_extended_not_recomputed(db) -> None:
    """unit_price * qty = 20, but the stored 25 is what is summed."""
    _seed_awards(db)

    awards = awards_for(db, LOT_ID, BUYER_ID, EffectiveRound(round_id=ROUND_2))
    line_1 = next(award for award in awards if award.line_item_id == LINE_1)

    assert line_1.extended == Decimal("25")


def test_lot_wide_without_round(db) -> None:
    """No effective round means every round, newest first, with line details."""
    _seed_awards(db)

    awards = awards_for(db, LOT_ID, BUYER_ID, EffectiveRound.none())

    assert [award.extended for award in awards] == [Decimal("100.50"), Decimal("25"), Decimal("20")]
    assert awards[0].line_ref == "LN-002"
    assert awards[0].model == "R640"


def test_not_a_winner_in_other_round(db) -> None:
    """A buyer with awards only in round 1 sees none in round 2."""
    db.seed("awarded_lines", [_award(ROUND_1, LINE_1, "20", "2026-09-01T10:00:00Z")])

    summary = summarize(db, LOT_ID, BUYER_ID, EffectiveRound(round_id=ROUND_2))

    assert summary.is_winner is False
    assert summary.total == Decimal("0")
    assert is_awarded_on_lot(db, LOT_ID, BUYER_ID) is True


def test_no_awards_at_all(db) -> None:
    """No rows, no PO access."""
    assert is_awarded_on_lot(db, LOT_ID, BUYER_ID) is False


def test_malformed_rows_are_coerced_or_skipped(db) -> None:
    """Bad numbers become None; rows with unusable ids are dropped."""
    db.seed(
        "awarded_lines",
        [
            _award(ROUND_2, LINE_1, "n/a", "garbage", qty="lots"),
            _award(ROUND_2, LINE_2, "10", "2026-10-01T10:00:00Z", id="not-a-uuid"),
        ],
    )

    awards = awards_for(db, LOT_ID, BUYER_ID, EffectiveRound(round_id=ROUND_2))

    assert len(awards) == 1
    assert awards[0].extended is None
    assert awards[0].qty is None
    assert awards[0].created_at is None
