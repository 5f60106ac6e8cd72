"""
In-app notification sink.
"""

from __future__ import annotations

from uuid import UUID

from repositories.client import Client
from repositories.store import execute

_NOTIFICATIONS_TABLE: str = "notifications"


def insert_notification(db: Client, *, tenant_id: UUID, lot_id: UUID, kind: str, title: str, body: str) -> None:
    execute(
        db.table(_NOTIFICATIONS_TABLE).insert(
            {
                "tenant_id": str(tenant_id),
                "lot_id": str(lot_id),
                "kind": kind,
                "title": title,
                "body": body,
            }
        ),
        "insert notification",
    )


__all__ = ["insert_notification"]
