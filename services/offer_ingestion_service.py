"""
Offer ingestion from the buyer-facing mailbox.

One poll, for one (tenant, user):
1. Load the contexts replies can belong to (sent lot batches, or deal threads)
   and the line refs of every lot/deal involved.
2. Fetch one page of messages from the mailbox.
3. For each message, in fetch order:
   - skip if its id already has an email_offers row (re-polls are no-ops)
   - skip if the subject matches no batch/thread (not recorded, so it is
     re-evaluated on the next poll)
   - skip if the body has no offer table
   - otherwise store the email offer and one line per extracted row
4. For lot replies with at least one awardable row and a positive extended
   total, also store an aggregate offer with per-line prices.

Messages are independent: a failure on one is logged and recorded in its
outcome, and the loop continues. The seen-check is check-then-insert, so a
tenant's polls must not run concurrently with each other.

The mailbox collaborator needs two methods:
- get_access_token(user_id) -> str
- fetch_messages(access_token, subject_filter) -> List[InboundMessage]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Set
from uuid import UUID

from domain.line_ref import LineRefIndex
from domain.message import InboundMessage
from domain.offer import (
    EmailOfferDraft,
    EmailOfferStatus,
    OfferDraft,
    OfferLineDraft,
    ResolvedRow,
    awardable_rows,
    classify_rows,
    extended_total,
    resolve_rows,
)
from domain.offer_table import extract_offer_rows
from domain.outreach import DealThread, LotEmailBatch, match_batch, match_deal_thread
from domain.time import utc_now
from repositories.account_repository import find_buyer_id_by_email
from repositories.client import Client
from repositories.email_offer_repository import (
    delete_email_offer,
    find_seen_message_ids,
    insert_email_offer,
    insert_email_offer_lines,
)
from repositories.line_item_repository import line_ref_indexes_for_deals, line_ref_indexes_for_lots
from repositories.lot_repository import get_lot_currencies
from repositories.offer_repository import insert_offer_lines
from repositories.outreach_repository import get_deal_currencies, list_deal_threads, list_sent_batches
from repositories.round_repository import find_invite_for_buyer
from repositories.store import DuplicateRowError, StoreError
from services.ingestion_config import IngestionConfig
from services.lot_status_service import note_offer_received
from services.offer_service import insert_offer_with_status_fallback
from services.round_resolver import resolve_effective_round, resolve_lot_round

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    INGESTED = "ingested"
    ALREADY_SEEN = "already_seen"
    UNMATCHED = "unmatched"
    NO_OFFER_TABLE = "no_offer_table"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class MessageOutcome:
    """What happened to one fetched message."""

    message_id: str
    kind: OutcomeKind
    email_offer_id: Optional[UUID] = None
    status: Optional[EmailOfferStatus] = None
    offer_id: Optional[UUID] = None
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PollResult:
    outcomes: List[MessageOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        """Messages that produced a stored email offer."""

        return sum(1 for outcome in self.outcomes if outcome.kind is OutcomeKind.INGESTED)

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind is kind)

    def counts(self) -> Dict[str, int]:
        return {kind.value: self.count(kind) for kind in OutcomeKind}


@dataclass(frozen=True, slots=True)
class _ReplyTarget:
    """The lot batch or deal thread a message was matched to."""

    index: LineRefIndex
    currency: str
    batch: Optional[LotEmailBatch] = None
    thread: Optional[DealThread] = None


def _unique(values: Sequence[UUID]) -> List[UUID]:
    return list(dict.fromkeys(values))


class OfferIngestor:
    """Polls the mailbox and turns buyer replies into email offers."""

    def __init__(self, db: Client, mailbox: Any, config: Optional[IngestionConfig] = None):
        self.db = db
        self.mailbox = mailbox
        self.config = config or IngestionConfig()

    # ------------------------------------------------------------------
    # Poll entry points
    # ------------------------------------------------------------------

    def poll_lot_batches(self, tenant_id: UUID, user_id: UUID) -> PollResult:
        """
        Ingest replies to the user's sent lot email batches.

        Raises:
            MailCredentialError / MailFetchError: the mailbox could not be read
            StoreError: the contexts could not be loaded
        """

        batches = list_sent_batches(self.db, tenant_id, user_id)
        if not batches:
            logger.info("No sent batches to match replies against", extra={"tenant_id": str(tenant_id)})
            return PollResult()

        lot_ids = _unique([batch.lot_id for batch in batches])
        lot_currencies = get_lot_currencies(self.db, lot_ids)
        indexes = line_ref_indexes_for_lots(self.db, tenant_id, lot_ids)

        def target_for(message: InboundMessage) -> Optional[_ReplyTarget]:
            batch = match_batch(message.subject, batches)
            if batch is None:
                return None
            currency = batch.currency or lot_currencies.get(batch.lot_id) or self.config.default_currency
            return _ReplyTarget(
                index=indexes.get(batch.lot_id, LineRefIndex.empty()),
                currency=currency,
                batch=batch,
            )

        return self._poll(tenant_id, user_id, self.config.lot_subject_filter, target_for)

    def poll_deal_threads(self, tenant_id: UUID, user_id: UUID) -> PollResult:
        """Ingest replies on the tenant's deal threads ("[DL-XXXXXX]" subjects)."""

        threads = list_deal_threads(self.db, tenant_id)
        if not threads:
            logger.info("No deal threads to match replies against", extra={"tenant_id": str(tenant_id)})
            return PollResult()

        deal_ids = _unique([thread.deal_id for thread in threads.values()])
        deal_currencies = get_deal_currencies(self.db, tenant_id, deal_ids)
        indexes = line_ref_indexes_for_deals(self.db, tenant_id, deal_ids)

        def target_for(message: InboundMessage) -> Optional[_ReplyTarget]:
            thread = match_deal_thread(message.subject, threads)
            if thread is None:
                return None
            return _ReplyTarget(
                index=indexes.get(thread.deal_id, LineRefIndex.empty()),
                currency=deal_currencies.get(thread.deal_id) or self.config.default_currency,
                thread=thread,
            )

        return self._poll(tenant_id, user_id, self.config.deal_subject_filter, target_for)

    # ------------------------------------------------------------------
    # Per-message processing
    # ------------------------------------------------------------------

    def _poll(
        self,
        tenant_id: UUID,
        user_id: UUID,
        subject_filter: str,
        target_for: Callable[[InboundMessage], Optional[_ReplyTarget]],
    ) -> PollResult:
        access_token = self.mailbox.get_access_token(user_id)
        messages = self.mailbox.fetch_messages(access_token, subject_filter)
        logger.info(
            "Mailbox poll started",
            extra={"tenant_id": str(tenant_id), "user_id": str(user_id), "fetched": len(messages)},
        )
        if not messages:
            return PollResult()

        seen: Set[str] = find_seen_message_ids(self.db, tenant_id, [m.message_id for m in messages])
        outcomes: List[MessageOutcome] = []
        for message in messages:
            outcome = self._process(tenant_id, user_id, message, seen, target_for)
            if outcome.kind is OutcomeKind.INGESTED:
                seen.add(message.message_id)
            outcomes.append(outcome)

        result = PollResult(outcomes=outcomes)
        logger.info(
            "Mailbox poll finished",
            extra={
                "tenant_id": str(tenant_id),
                "processed": result.processed,
                "failed": result.count(OutcomeKind.FAILED),
            },
        )
        return result

    def _process(
        self,
        tenant_id: UUID,
        user_id: UUID,
        message: InboundMessage,
        seen: Set[str],
        target_for: Callable[[InboundMessage], Optional[_ReplyTarget]],
    ) -> MessageOutcome:
        message_id = message.message_id
        if not message_id or message_id in seen:
            logger.debug("Skipping already ingested message", extra={"message_id": message_id})
            return MessageOutcome(message_id=message_id, kind=OutcomeKind.ALREADY_SEEN)

        target = target_for(message)
        if target is None:
            logger.debug("Skipping message with no matching context", extra={"message_id": message_id})
            return MessageOutcome(message_id=message_id, kind=OutcomeKind.UNMATCHED)

        raw_rows = extract_offer_rows(message.body)
        if not raw_rows:
            logger.debug("Skipping message with no offer table", extra={"message_id": message_id})
            return MessageOutcome(message_id=message_id, kind=OutcomeKind.NO_OFFER_TABLE)

        try:
            return self._ingest(tenant_id, user_id, message, target, resolve_rows(raw_rows, target.index))
        except DuplicateRowError:
            logger.debug("Message ingested concurrently", extra={"message_id": message_id})
            return MessageOutcome(message_id=message_id, kind=OutcomeKind.DUPLICATE)
        except Exception as e:
            logger.warning(
                "Message skipped after write failure",
                extra={"message_id": message_id, "tenant_id": str(tenant_id), "reason": str(e)},
                exc_info=True,
            )
            return MessageOutcome(message_id=message_id, kind=OutcomeKind.FAILED, reason=str(e))

    def _ingest(
        self,
        tenant_id: UUID,
        user_id: UUID,
        message: InboundMessage,
        target: _ReplyTarget,
        resolved: List[ResolvedRow],
    ) -> MessageOutcome:
        status = classify_rows(resolved)
        batch, thread = target.batch, target.thread
        draft = EmailOfferDraft(
            tenant_id=tenant_id,
            message_id=message.message_id,
            buyer_email=message.buyer_email,
            buyer_name=message.sender_name,
            received_at=message.received_at or utc_now(),
            currency=target.currency,
            raw_html=message.body,
            status=status,
            lot_id=batch.lot_id if batch else None,
            batch_id=batch.batch_id if batch else None,
            deal_id=thread.deal_id if thread else None,
            deal_thread_id=thread.thread_id if thread else None,
        )
        email_offer_id = self._store_email_offer(draft, resolved, for_deal=thread is not None)

        offer_id: Optional[UUID] = None
        if batch is not None:
            note_offer_received(self.db, tenant_id, batch.lot_id)
            offer_id = self._synthesize_offer(tenant_id, user_id, message, batch, target.currency, resolved)

        logger.info(
            "Email offer ingested",
            extra={"message_id": message.message_id, "email_offer_id": str(email_offer_id), "status": status.value},
        )
        return MessageOutcome(
            message_id=message.message_id,
            kind=OutcomeKind.INGESTED,
            email_offer_id=email_offer_id,
            status=status,
            offer_id=offer_id,
        )

    def _store_email_offer(self, draft: EmailOfferDraft, resolved: Sequence[ResolvedRow], *, for_deal: bool) -> UUID:
        """Insert the email offer and its lines; remove the offer again if the lines fail."""

        email_offer_id = insert_email_offer(self.db, draft)
        try:
            insert_email_offer_lines(self.db, email_offer_id, resolved, for_deal=for_deal)
        except StoreError:
            try:
                delete_email_offer(self.db, email_offer_id)
            except StoreError as cleanup_error:
                logger.warning(
                    "Could not remove email offer after line insert failure",
                    extra={"email_offer_id": str(email_offer_id), "reason": str(cleanup_error)},
                )
            raise
        return email_offer_id

    # ------------------------------------------------------------------
    # Aggregate offer
    # ------------------------------------------------------------------

    def _round_for(self, tenant_id: UUID, lot_id: UUID, buyer_id: Optional[UUID]) -> Optional[UUID]:
        if buyer_id is not None:
            invite = find_invite_for_buyer(self.db, tenant_id, lot_id, buyer_id)
            if invite is not None:
                return resolve_effective_round(self.db, invite).round_id
        return resolve_lot_round(self.db, lot_id).round_id

    def _synthesize_offer(
        self,
        tenant_id: UUID,
        user_id: UUID,
        message: InboundMessage,
        batch: LotEmailBatch,
        currency: str,
        resolved: Sequence[ResolvedRow],
    ) -> Optional[UUID]:
        """
        Store an aggregate offer with per-line unit prices. Best-effort.

        Returns:
            The offer id, or None when there is nothing to price or the write failed
        """

        rows = awardable_rows(resolved)
        # The total covers every row with an amount, itemized or not.
        total: Decimal = extended_total(resolved)
        if not rows or total <= 0:
            return None

        try:
            buyer_id = find_buyer_id_by_email(self.db, tenant_id, message.buyer_email)
            draft = OfferDraft(
                tenant_id=tenant_id,
                lot_id=batch.lot_id,
                buyer_id=buyer_id,
                currency=currency,
                round_id=self._round_for(tenant_id, batch.lot_id, buyer_id),
                take_all_total=total,
                total_offer=total,
                created_by=user_id,
                notes=f"Email offer ({message.buyer_email}) message_id={message.message_id} batch={batch.batch_key}",
            )
            created = insert_offer_with_status_fallback(self.db, draft)
            lines = [
                OfferLineDraft(
                    line_item_id=row.line_id,
                    unit_price=row.unit_price,
                    qty=row.qty if row.qty is not None else 1,
                )
                for row in rows
                if row.line_id is not None and row.unit_price is not None
            ]
            insert_offer_lines(self.db, created.offer_id, draft, lines)
        except StoreError as e:
            logger.warning(
                "Aggregate offer not stored",
                extra={"message_id": message.message_id, "lot_id": str(batch.lot_id), "reason": str(e)},
            )
            return None
        return created.offer_id


__all__ = [
    "MessageOutcome",
    "OfferIngestor",
    "OutcomeKind",
    "PollResult",
]
