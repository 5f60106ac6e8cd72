"""
Offer submission service (invite form path).

A buyer holding an invite token submits either a take-all total for the
whole lot or per-line unit prices keyed by line ref. Everything is
validated before the first write, so a rejected submission leaves no rows.

Side effects after the offer is stored are best-effort:
- the lot moves to offers_received while it is still draft/open
- component part observations are logged for each offered line
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from domain.line_ref import LineRefIndex
from domain.offer import CreatedOffer, OfferDraft, OfferLineDraft
from repositories.client import Client
from repositories.line_item_repository import (
    get_line_item_components,
    line_ref_indexes_for_lots,
    log_part_observation,
)
from repositories.lot_repository import get_lot
from repositories.offer_repository import insert_offer, insert_offer_lines
from repositories.store import StatusConstraintError, StoreError
from services.lot_status_service import LotNotFoundError, note_offer_received
from services.round_resolver import require_invite, resolve_effective_round

logger = logging.getLogger(__name__)

MODE_TAKE_ALL = "take_all"
MODE_LINES = "lines"


class OfferValidationError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class LineOfferInput:
    line_ref: Optional[str]
    unit_price: Any
    qty: Any = None


@dataclass(frozen=True, slots=True)
class OfferSubmission:
    mode: str
    total: Any = None
    lines: Sequence[LineOfferInput] = ()


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip().replace(",", ""))
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def _to_qty(value: Any) -> Optional[int]:
    amount = _to_decimal(value)
    if amount is None:
        return None
    return int((amount + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def build_line_offers(lines: Sequence[LineOfferInput], index: LineRefIndex) -> List[OfferLineDraft]:
    """
    Keep lines with a positive unit price and a line ref known to the lot.

    Raises:
        OfferValidationError: if no line survives
    """

    if not lines:
        raise OfferValidationError("No line offers provided")

    usable: List[OfferLineDraft] = []
    for line in lines:
        unit_price = _to_decimal(line.unit_price)
        if unit_price is None or unit_price <= 0:
            continue
        line_item_id = index.resolve(line.line_ref)
        if line_item_id is None:
            continue
        usable.append(OfferLineDraft(line_item_id=line_item_id, unit_price=unit_price, qty=_to_qty(line.qty)))

    if not usable:
        raise OfferValidationError("No usable line offers (need unit_price > 0 and a known line_ref)")
    return usable


def insert_offer_with_status_fallback(db: Client, draft: OfferDraft) -> CreatedOffer:
    """
    Insert an offer, retrying once without a status if the store rejects it.

    Raises:
        StoreError: if the retry fails too, or on any other store failure
    """

    try:
        return CreatedOffer(offer_id=insert_offer(db, draft), status=draft.status)
    except StatusConstraintError:
        logger.warning(
            "Offer status rejected by store, retrying with null status",
            extra={"lot_id": str(draft.lot_id)},
        )
    fallback = draft.without_status()
    return CreatedOffer(offer_id=insert_offer(db, fallback), status=None)


_COMPONENTS = (
    ("cpu", "cpu", "cpu_qty"),
    ("memory", "memory_part_numbers", "memory_qty"),
    ("gpu", "gpu", "gpu_qty"),
    ("drive", "drives", "drives_qty"),
)


def log_offer_part_observations(db: Client, offer_id: UUID, lines: Sequence[OfferLineDraft]) -> int:
    """
    Log sold-quantity observations for the components of each offered line.

    Best-effort: failures are logged and counted as not logged.

    Returns:
        Number of observations logged
    """

    qty_by_line: Dict[UUID, int] = {line.line_item_id: line.qty or 1 for line in lines}
    logged = 0
    try:
        items = get_line_item_components(db, qty_by_line.keys())
    except StoreError as e:
        logger.warning("Part tracking skipped", extra={"offer_id": str(offer_id), "reason": str(e)})
        return 0

    for item in items:
        line_qty = qty_by_line.get(item.line_item_id, 1)
        for category, part_field, qty_field in _COMPONENTS:
            part_number = getattr(item, part_field)
            if not part_number:
                continue
            component_qty = getattr(item, qty_field) or 1
            try:
                log_part_observation(
                    db,
                    part_number=part_number,
                    category=category,
                    qty=component_qty * line_qty,
                    lot_id=item.lot_id,
                    line_item_id=item.line_item_id,
                    offer_id=offer_id,
                )
                logged += 1
            except StoreError as e:
                logger.warning(
                    "Part observation not logged",
                    extra={"offer_id": str(offer_id), "part_number": part_number, "reason": str(e)},
                )
    return logged


def submit_offer(db: Client, token: str, submission: OfferSubmission) -> CreatedOffer:
    """
    Store a buyer's offer submitted through their invite.

    Args:
        db: Store client
        token: Invite token
        submission: take_all (total) or lines (line_ref, unit_price, qty)

    Returns:
        CreatedOffer with the new offer id and the status actually stored

    Raises:
        InviteNotFoundError: unknown token
        LotNotFoundError: the invite's lot is gone
        OfferValidationError: bad mode, non-positive total, or no usable lines
    """

    invite = require_invite(db, token)
    lot = get_lot(db, invite.lot_id)
    if lot is None:
        raise LotNotFoundError("Lot not found")

    take_all_total: Optional[Decimal] = None
    lines: List[OfferLineDraft] = []
    if submission.mode == MODE_TAKE_ALL:
        take_all_total = _to_decimal(submission.total)
        if take_all_total is None or take_all_total <= 0:
            raise OfferValidationError("Invalid take-all total")
    elif submission.mode == MODE_LINES:
        index = line_ref_indexes_for_lots(db, invite.tenant_id, [invite.lot_id]).get(
            invite.lot_id, LineRefIndex.empty()
        )
        lines = build_line_offers(submission.lines, index)
    else:
        raise OfferValidationError("mode must be 'take_all' or 'lines'")

    effective_round = resolve_effective_round(db, invite)
    draft = OfferDraft(
        tenant_id=invite.tenant_id,
        lot_id=invite.lot_id,
        buyer_id=invite.buyer_id,
        currency=lot.currency or "USD",
        round_id=effective_round.round_id,
        take_all_total=take_all_total,
    )
    created = insert_offer_with_status_fallback(db, draft)
    logger.info(
        "Offer created",
        extra={"offer_id": str(created.offer_id), "lot_id": str(invite.lot_id), "mode": submission.mode},
    )

    if lines:
        insert_offer_lines(db, created.offer_id, draft, lines)

    note_offer_received(db, invite.tenant_id, invite.lot_id)

    if lines:
        log_offer_part_observations(db, created.offer_id, lines)

    return created


__all__ = [
    "LineOfferInput",
    "MODE_LINES",
    "MODE_TAKE_ALL",
    "OfferSubmission",
    "OfferValidationError",
    "build_line_offers",
    "insert_offer_with_status_fallback",
    "log_offer_part_observations",
    "submit_offer",
]
