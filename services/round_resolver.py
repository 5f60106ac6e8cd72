"""
Round resolution for invites and inbound offers.

Resolution order for an invite:
1. The invite's own round_id (authoritative once set).
2. The lot's live round with the highest round number.
3. The lot's highest-numbered round of any status.
4. None: the lot has no rounds; round-scoped reads fall back to lot-wide.

A round found in step 2 or 3 is written back onto the invite so later
requests stop at step 1. The write-back is best-effort: a failure is
logged and the resolved round is still used for the current request.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from domain.round import EffectiveRound, Invite, Round
from repositories.client import Client
from repositories.round_repository import (
    find_latest_round,
    find_live_round,
    get_invite_by_token,
    get_round,
    pin_invite_round,
)
from repositories.store import StoreError

logger = logging.getLogger(__name__)


class InviteNotFoundError(LookupError):
    pass


def require_invite(db: Client, token: str) -> Invite:
    invite = get_invite_by_token(db, token)
    if invite is None:
        raise InviteNotFoundError("Invite not found")
    return invite


def _live_or_latest(db: Client, lot_id: UUID) -> Optional[Round]:
    return find_live_round(db, lot_id) or find_latest_round(db, lot_id)


def resolve_lot_round(db: Client, lot_id: UUID) -> EffectiveRound:
    """Effective round for a lot with no invite context (live, else latest)."""

    round_ = _live_or_latest(db, lot_id)
    return EffectiveRound.of(round_) if round_ else EffectiveRound.none()


def resolve_effective_round(db: Client, invite: Invite) -> EffectiveRound:
    """
    Effective round for an invite, pinning it on first resolution.

    Args:
        db: Store client
        invite: Invite as read from the store

    Returns:
        EffectiveRound (round_id None when the lot has no rounds)
    """

    if invite.is_pinned:
        pinned = get_round(db, invite.round_id)
        return EffectiveRound(
            round_id=invite.round_id,
            round_number=pinned.round_number if pinned else None,
        )

    round_ = _live_or_latest(db, invite.lot_id)
    if round_ is None:
        return EffectiveRound.none()

    backfilled = False
    try:
        backfilled = pin_invite_round(db, invite.invite_id, round_.round_id)
    except StoreError as e:
        logger.warning(
            "Invite round backfill failed",
            extra={"invite_id": str(invite.invite_id), "round_id": str(round_.round_id), "reason": str(e)},
        )
    return EffectiveRound.of(round_, backfilled=backfilled)


__all__ = ["InviteNotFoundError", "require_invite", "resolve_effective_round", "resolve_lot_round"]
