"""
Domain: inbound mailbox messages.

Read-only view of a message fetched from the buyer-facing mailbox. The id is
unique per mailbox and is the deduplication key for ingestion.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class InboundMessage:
    message_id: str
    subject: Optional[str] = None
    received_at: Optional[datetime] = None
    sender_address: Optional[str] = None
    sender_name: Optional[str] = None
    html_body: Optional[str] = None
    text_preview: Optional[str] = None

    def __post_init__(self) -> None:
        if self.received_at is not None:
            require_utc_timestamp("received_at", self.received_at)

    @property
    def body(self) -> str:
        """HTML body, else the plaintext preview, else empty."""

        if self.html_body is not None:
            return self.html_body
        return self.text_preview or ""

    @property
    def buyer_email(self) -> str:
        return (self.sender_address or "").strip().lower()
