"""
Domain: outreach contexts a reply can belong to.

- Lot email batch: one outbound mail-out of a lot's line table. Its batch key
  appears in the subject of every reply.
- Deal thread: a per-buyer negotiation thread on a deal, keyed by a
  "[DL-XXXXXX]" subject tag.

Messages that match neither are not ingested (and not marked seen), so they
are re-evaluated on the next poll.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence
from uuid import UUID

from .line_ref import normalize_deal_subject_key

BATCH_STATUS_SENT = "sent"


@dataclass(frozen=True, slots=True)
class LotEmailBatch:
    batch_id: UUID
    lot_id: UUID
    batch_key: str
    currency: Optional[str] = None
    status: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DealThread:
    thread_id: UUID
    deal_id: UUID
    subject_key: str
    buyer_email: Optional[str] = None
    status: Optional[str] = None


def match_batch(subject: Optional[str], batches: Sequence[LotEmailBatch]) -> Optional[LotEmailBatch]:
    """First batch whose key occurs in the subject (case-insensitive)."""

    if not subject:
        return None
    upper = subject.upper()
    for batch in batches:
        if batch.batch_key and batch.batch_key.upper() in upper:
            return batch
    return None


def match_deal_thread(subject: Optional[str], threads: Mapping[str, DealThread]) -> Optional[DealThread]:
    """Thread registered under the subject's [DL-XXXXXX] key, if any."""

    key = normalize_deal_subject_key(subject)
    if key is None:
        return None
    return threads.get(key)
