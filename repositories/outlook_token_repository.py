"""
Outlook OAuth token storage (one row per user).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from domain.time import parse_utc_timestamp, to_iso_utc, utc_now
from repositories.client import Client
from repositories.store import execute, first_row

_TOKENS_TABLE: str = "outlook_tokens"


@dataclass(frozen=True, slots=True)
class OutlookToken:
    user_id: UUID
    access_token: Optional[str]
    refresh_token: Optional[str]
    expires_at: Optional[datetime]
    scope: Optional[str] = None
    token_type: Optional[str] = None


def get_token(db: Client, user_id: UUID) -> Optional[OutlookToken]:
    response = execute(
        db.table(_TOKENS_TABLE)
        .select("user_id,access_token,refresh_token,expires_at,scope,token_type")
        .eq("user_id", str(user_id))
        .limit(1),
        "fetch outlook token",
    )
    row = first_row(response)
    if not row:
        return None
    return OutlookToken(
        user_id=user_id,
        access_token=row.get("access_token"),
        refresh_token=row.get("refresh_token"),
        expires_at=parse_utc_timestamp(row.get("expires_at")),
        scope=row.get("scope"),
        token_type=row.get("token_type"),
    )


def update_token(db: Client, token: OutlookToken) -> None:
    patch = {
        "access_token": token.access_token,
        "refresh_token": token.refresh_token,
        "expires_at": to_iso_utc(token.expires_at, name="expires_at") if token.expires_at else None,
        "scope": token.scope,
        "token_type": token.token_type,
        "updated_at": to_iso_utc(utc_now(), name="updated_at"),
    }
    execute(
        db.table(_TOKENS_TABLE).update(patch).eq("user_id", str(token.user_id)),
        "update outlook token",
    )


__all__ = ["OutlookToken", "get_token", "update_token"]
