"""
Domain: lot lifecycle rules.

    draft/open -> offers_received -> sale_in_progress -> processing | order_processing -> sold
    any (except closed) -> closed

Rules:
- offers_received: only from draft or open (raised automatically on a new offer).
- sale_in_progress: raised by the first purchase order on a lot that has not
  reached the sale phase yet.
- processing / order_processing: only from sale_in_progress, and only when the
  lot expects a positive number of POs and has received at least that many.
- sold: only from processing or order_processing.
- closed is terminal: nothing leaves it.
- Requesting the current status is accepted as a no-op (except on closed).

The rules are expressed as a `transitions` state machine over a lightweight
model. Persisting the result is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from transitions import Machine, MachineError

from .lot import Lot, LotStatus

_PRE_SALE = [LotStatus.DRAFT, LotStatus.OPEN, LotStatus.OFFERS_RECEIVED, LotStatus.AWARDED]

_TRIGGER_FOR: Dict[LotStatus, str] = {
    LotStatus.OFFERS_RECEIVED: "receive_offer",
    LotStatus.SALE_IN_PROGRESS: "start_sale",
    LotStatus.PROCESSING: "start_processing",
    LotStatus.ORDER_PROCESSING: "start_order_processing",
    LotStatus.SOLD: "mark_sold",
    LotStatus.CLOSED: "close",
}

TIMESTAMP_FIELDS: Dict[LotStatus, str] = {
    LotStatus.SALE_IN_PROGRESS: "sale_in_progress_at",
    LotStatus.PROCESSING: "processing_at",
    LotStatus.ORDER_PROCESSING: "order_processing_at",
    LotStatus.SOLD: "sold_at",
}


class LotTransitionError(ValueError):
    """Raised when a requested lot status change breaks the lifecycle rules."""

    def __init__(self, current: LotStatus, requested: LotStatus, reason: str):
        self.current = current
        self.requested = requested
        self.reason = reason
        super().__init__(reason)


@dataclass(frozen=True, slots=True)
class TransitionPlan:
    """Outcome of an accepted request. changed is False for a self-transition."""

    current: LotStatus
    target: LotStatus
    changed: bool

    @property
    def timestamp_field(self) -> Optional[str]:
        return TIMESTAMP_FIELDS.get(self.target)


def _values(statuses) -> list:
    return [status.value for status in statuses]


class LotLifecycle:
    """State machine model for one lot snapshot."""

    def __init__(self, status: LotStatus, *, po_count: int = 0, expected_po_count: Optional[int] = None):
        self.po_count = po_count
        self.expected_po_count = expected_po_count
        self.machine = Machine(
            model=self,
            states=_values(LotStatus),
            initial=status.value,
            auto_transitions=False,
        )
        self.machine.add_transition(
            "receive_offer", _values([LotStatus.DRAFT, LotStatus.OPEN]), LotStatus.OFFERS_RECEIVED.value
        )
        self.machine.add_transition("start_sale", _values(_PRE_SALE), LotStatus.SALE_IN_PROGRESS.value)
        self.machine.add_transition(
            "start_processing",
            LotStatus.SALE_IN_PROGRESS.value,
            LotStatus.PROCESSING.value,
            conditions="has_all_purchase_orders",
        )
        self.machine.add_transition(
            "start_order_processing",
            LotStatus.SALE_IN_PROGRESS.value,
            LotStatus.ORDER_PROCESSING.value,
            conditions="has_all_purchase_orders",
        )
        self.machine.add_transition(
            "mark_sold",
            _values([LotStatus.PROCESSING, LotStatus.ORDER_PROCESSING]),
            LotStatus.SOLD.value,
        )
        self.machine.add_transition(
            "close",
            _values(s for s in LotStatus if s is not LotStatus.CLOSED),
            LotStatus.CLOSED.value,
        )

    @classmethod
    def for_lot(cls, lot: Lot) -> "LotLifecycle":
        return cls(lot.status, po_count=lot.po_count, expected_po_count=lot.expected_po_count)

    @property
    def status(self) -> LotStatus:
        return LotStatus(self.state)

    def purchase_order_shortfall(self) -> Optional[str]:
        expected = self.expected_po_count
        if not expected or expected <= 0:
            return "Cannot start order processing: no expected POs for this lot."
        if self.po_count < expected:
            return f"Cannot start order processing: {self.po_count}/{expected} POs received."
        return None

    def has_all_purchase_orders(self) -> bool:
        return self.purchase_order_shortfall() is None

    def request(self, target: LotStatus) -> TransitionPlan:
        """
        Apply a requested status to this model.

        Raises LotTransitionError when the request is not allowed.
        """

        current = self.status
        if current is LotStatus.CLOSED:
            raise LotTransitionError(current, target, "Lot is closed and cannot be updated.")
        if target is current:
            return TransitionPlan(current=current, target=target, changed=False)

        trigger = _TRIGGER_FOR.get(target)
        if trigger is None:
            raise LotTransitionError(current, target, f"Status '{target.value}' cannot be requested.")

        try:
            moved = self.trigger(trigger)
        except MachineError:
            if target is LotStatus.SOLD:
                reason = "A lot can only be marked as Sold from Processing or Order Processing."
            else:
                reason = f"Invalid transition: {current.value} -> {target.value}"
            raise LotTransitionError(current, target, reason) from None

        if not moved:
            reason = self.purchase_order_shortfall() or f"Invalid transition: {current.value} -> {target.value}"
            raise LotTransitionError(current, target, reason)

        return TransitionPlan(current=current, target=target, changed=True)


__all__ = [
    "LotLifecycle",
    "LotTransitionError",
    "TIMESTAMP_FIELDS",
    "TransitionPlan",
]
