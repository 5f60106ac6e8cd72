"""
Outreach repository (persistence).

Loads the contexts an inbound reply can be matched against: the polling
user's sent lot email batches and the tenant's deal threads.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional
from uuid import UUID

from domain.outreach import BATCH_STATUS_SENT, DealThread, LotEmailBatch
from repositories.client import Client
from repositories.store import execute, rows

_BATCHES_TABLE: str = "lot_email_batches"
_THREADS_TABLE: str = "deal_threads"
_DEALS_TABLE: str = "deals"


def list_sent_batches(db: Client, tenant_id: UUID, user_id: UUID) -> List[LotEmailBatch]:
    """Sent batches created by the user, in the order the store returns them."""

    response = execute(
        db.table(_BATCHES_TABLE)
        .select("id,lot_id,batch_key,currency,status")
        .eq("tenant_id", str(tenant_id))
        .eq("created_by", str(user_id))
        .eq("status", BATCH_STATUS_SENT),
        "fetch lot email batches",
    )
    return [
        LotEmailBatch(
            batch_id=UUID(str(row["id"])),
            lot_id=UUID(str(row["lot_id"])),
            batch_key=str(row.get("batch_key") or ""),
            currency=row.get("currency"),
            status=row.get("status"),
        )
        for row in rows(response)
        if row.get("batch_key") and row.get("lot_id")
    ]


def list_deal_threads(db: Client, tenant_id: UUID) -> Dict[str, DealThread]:
    """Deal threads keyed by upper-cased subject key."""

    response = execute(
        db.table(_THREADS_TABLE)
        .select("id,deal_id,buyer_email,subject_key,status")
        .eq("tenant_id", str(tenant_id)),
        "fetch deal threads",
    )

    threads: Dict[str, DealThread] = {}
    for row in rows(response):
        key = str(row.get("subject_key") or "").strip().upper()
        if not key or not row.get("deal_id"):
            continue
        threads[key] = DealThread(
            thread_id=UUID(str(row["id"])),
            deal_id=UUID(str(row["deal_id"])),
            subject_key=key,
            buyer_email=row.get("buyer_email"),
            status=row.get("status"),
        )
    return threads


def get_deal_currencies(db: Client, tenant_id: UUID, deal_ids: Iterable[UUID]) -> Dict[UUID, Optional[str]]:
    ids = [str(deal_id) for deal_id in deal_ids]
    if not ids:
        return {}
    response = execute(
        db.table(_DEALS_TABLE).select("id,currency").in_("id", ids).eq("tenant_id", str(tenant_id)),
        "fetch deal currencies",
    )
    return {UUID(str(row["id"])): row.get("currency") for row in rows(response)}


__all__ = ["get_deal_currencies", "list_deal_threads", "list_sent_batches"]
