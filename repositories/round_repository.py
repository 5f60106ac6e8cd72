"""
Round and invite repository (persistence).

Provides lookups for lot rounds and buyer invites, plus the one write this
codebase makes to an invite: pinning a previously unpinned invite to a round.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from domain.round import ROUND_STATUS_LIVE, Invite, Round
from repositories.client import Client
from repositories.store import execute, first_row, rows, to_uuid

_ROUNDS_TABLE: str = "lot_rounds"
_INVITES_TABLE: str = "lot_invites"


def _row_to_round(row: Mapping[str, Any]) -> Round:
    number = row.get("round_number")
    return Round(
        round_id=UUID(str(row["id"])),
        lot_id=UUID(str(row["lot_id"])),
        round_number=int(number) if number is not None else None,
        status=row.get("status"),
    )


def _row_to_invite(row: Mapping[str, Any]) -> Invite:
    return Invite(
        invite_id=UUID(str(row["id"])),
        token=str(row["token"]),
        tenant_id=UUID(str(row["tenant_id"])),
        lot_id=UUID(str(row["lot_id"])),
        buyer_id=UUID(str(row["buyer_id"])),
        round_id=to_uuid(row.get("round_id")),
        status=row.get("status"),
    )


def get_round(db: Client, round_id: UUID) -> Optional[Round]:
    response = execute(
        db.table(_ROUNDS_TABLE).select("id,lot_id,round_number,status").eq("id", str(round_id)).limit(1),
        "fetch round",
    )
    row = first_row(response)
    return _row_to_round(row) if row else None


def find_live_round(db: Client, lot_id: UUID) -> Optional[Round]:
    """Highest-numbered live round of a lot, if any."""

    response = execute(
        db.table(_ROUNDS_TABLE)
        .select("id,lot_id,round_number,status")
        .eq("lot_id", str(lot_id))
        .eq("status", ROUND_STATUS_LIVE)
        .order("round_number", desc=True)
        .limit(1),
        "fetch live round",
    )
    row = first_row(response)
    return _row_to_round(row) if row else None


def find_latest_round(db: Client, lot_id: UUID) -> Optional[Round]:
    """Highest-numbered round of a lot regardless of status."""

    response = execute(
        db.table(_ROUNDS_TABLE)
        .select("id,lot_id,round_number,status")
        .eq("lot_id", str(lot_id))
        .order("round_number", desc=True)
        .limit(1),
        "fetch latest round",
    )
    row = first_row(response)
    return _row_to_round(row) if row else None


def get_invite_by_token(db: Client, token: str) -> Optional[Invite]:
    response = execute(
        db.table(_INVITES_TABLE)
        .select("id,token,status,tenant_id,lot_id,buyer_id,round_id")
        .eq("token", token)
        .limit(1),
        "fetch invite",
    )
    row = first_row(response)
    return _row_to_invite(row) if row else None


def find_invite_for_buyer(db: Client, tenant_id: UUID, lot_id: UUID, buyer_id: UUID) -> Optional[Invite]:
    response = execute(
        db.table(_INVITES_TABLE)
        .select("id,token,status,tenant_id,lot_id,buyer_id,round_id")
        .eq("tenant_id", str(tenant_id))
        .eq("lot_id", str(lot_id))
        .eq("buyer_id", str(buyer_id))
        .limit(1),
        "fetch buyer invite",
    )
    row = first_row(response)
    return _row_to_invite(row) if row else None


def pin_invite_round(db: Client, invite_id: UUID, round_id: UUID) -> bool:
    """
    Write round_id onto an invite that has none yet.

    Returns:
        True if the invite was pinned by this call, False if it already had a round
    """

    query = (
        db.table(_INVITES_TABLE)
        .update({"round_id": str(round_id)})
        .eq("id", str(invite_id))
        .is_("round_id", "null")
    )
    return bool(rows(execute(query, "backfill invite round")))


__all__ = [
    "find_invite_for_buyer",
    "find_latest_round",
    "find_live_round",
    "get_invite_by_token",
    "get_round",
    "pin_invite_round",
]
