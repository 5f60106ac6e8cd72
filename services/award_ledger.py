"""
Award ledger read surface.

Winner determination and award totals for a buyer on a lot, optionally
scoped to one round.
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from domain.award import AwardedLine, AwardSummary
from domain.round import EffectiveRound
from repositories.award_repository import has_awards, list_awards
from repositories.client import Client


def awards_for(
    db: Client,
    lot_id: UUID,
    buyer_id: UUID,
    effective_round: Optional[EffectiveRound] = None,
) -> List[AwardedLine]:
    """Awarded lines for (lot, buyer), restricted to the effective round when it has one."""

    round_id = effective_round.round_id if effective_round is not None else None
    return list_awards(db, lot_id, buyer_id, round_id)


def summarize(
    db: Client,
    lot_id: UUID,
    buyer_id: UUID,
    effective_round: Optional[EffectiveRound] = None,
) -> AwardSummary:
    return AwardSummary(awards=awards_for(db, lot_id, buyer_id, effective_round))


def is_awarded_on_lot(db: Client, lot_id: UUID, buyer_id: UUID) -> bool:
    """True if the buyer won any line of the lot, in any round."""

    return has_awards(db, lot_id, buyer_id)


__all__ = ["awards_for", "is_awarded_on_lot", "summarize"]
