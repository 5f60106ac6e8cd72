"""
Domain: negotiation rounds and buyer invites.

A round is a numbered negotiation window on a lot. At most one round per lot
is expected to be live at a time; that is maintained outside this codebase.

An invite gives one buyer access to one lot and may be pinned to a round. A
null round means "follow the live round until first resolved"; once resolved
the round id is written back and treated as authoritative from then on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

ROUND_STATUS_LIVE = "live"


@dataclass(frozen=True, slots=True)
class Round:
    round_id: UUID
    lot_id: UUID
    round_number: Optional[int]
    status: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Invite:
    invite_id: UUID
    token: str
    tenant_id: UUID
    lot_id: UUID
    buyer_id: UUID
    round_id: Optional[UUID] = None
    status: Optional[str] = None

    @property
    def is_pinned(self) -> bool:
        return self.round_id is not None


@dataclass(frozen=True, slots=True)
class EffectiveRound:
    """
    The round an invite or message is deemed to belong to.

    round_id is None when the lot has no rounds at all; round-scoped queries
    then fall back to lot-wide lookups.
    """

    round_id: Optional[UUID]
    round_number: Optional[int] = None
    backfilled: bool = False

    @staticmethod
    def none() -> "EffectiveRound":
        return EffectiveRound(round_id=None)

    @staticmethod
    def of(round_: Round, *, backfilled: bool = False) -> "EffectiveRound":
        return EffectiveRound(round_id=round_.round_id, round_number=round_.round_number, backfilled=backfilled)
