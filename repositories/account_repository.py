"""
Account lookups: platform users and buyers.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from repositories.client import Client
from repositories.store import execute, first_row, to_uuid

_USERS_TABLE: str = "users"
_BUYERS_TABLE: str = "buyers"


def get_user_tenant_id(db: Client, user_id: UUID) -> Optional[UUID]:
    response = execute(
        db.table(_USERS_TABLE).select("tenant_id").eq("id", str(user_id)).limit(1),
        "fetch user tenant",
    )
    row = first_row(response)
    return to_uuid(row.get("tenant_id")) if row else None


def find_buyer_id_by_email(db: Client, tenant_id: UUID, email: str) -> Optional[UUID]:
    """Buyer in the tenant whose email matches (case-insensitive), if any."""

    email = (email or "").strip()
    if not email:
        return None
    response = execute(
        db.table(_BUYERS_TABLE)
        .select("id")
        .eq("tenant_id", str(tenant_id))
        .ilike("email", email)
        .limit(1),
        "fetch buyer by email",
    )
    row = first_row(response)
    return to_uuid(row.get("id")) if row else None


__all__ = ["find_buyer_id_by_email", "get_user_tenant_id"]
