"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


# ============================================================================
# Mailbox Poll Models
# ============================================================================

class PollResponse(BaseModel):
    """Result of one mailbox poll."""
    ok: bool = True
    processed: int  # Messages that produced a stored email offer
    outcomes: Dict[str, int] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "ok": True,
                "processed": 2,
                "outcomes": {
                    "ingested": 2,
                    "already_seen": 5,
                    "unmatched": 1,
                    "no_offer_table": 0,
                    "duplicate": 0,
                    "failed": 0
                }
            }
        }


# ============================================================================
# Offer Models
# ============================================================================

class LineOfferRequest(BaseModel):
    """One priced line of a line-by-line offer."""
    line_ref: Optional[str] = None
    unit_price: Optional[Decimal] = None
    qty: Optional[Decimal] = None


class OfferRequest(BaseModel):
    """Offer submitted through an invite: take-all total or per-line prices."""
    mode: str = Field(..., description="'take_all' or 'lines'")
    total: Optional[Decimal] = Field(
        None,
        validation_alias=AliasChoices("total", "take_all_total"),
        description="Take-all total (mode=take_all)"
    )
    lines: List[LineOfferRequest] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "mode": "lines",
                "lines": [
                    {"line_ref": "LN-001", "unit_price": "150.00", "qty": 2},
                    {"line_ref": "LN-002", "unit_price": "75.50"}
                ]
            }
        }


class OfferResponse(BaseModel):
    ok: bool = True
    offer_id: UUID
    status: Optional[str] = None


# ============================================================================
# Invite Results Models
# ============================================================================

class InviteSummary(BaseModel):
    id: UUID
    token: str
    lot_id: UUID
    buyer_id: UUID
    round_id: Optional[UUID] = None
    status: Optional[str] = None


class EffectiveRoundResponse(BaseModel):
    id: Optional[UUID] = None
    round_number: Optional[int] = None


class AwardResponse(BaseModel):
    """A line awarded to the buyer."""
    id: UUID
    line_item_id: Optional[UUID] = None
    round_id: Optional[UUID] = None
    currency: Optional[str] = None
    unit_price: Optional[Decimal] = None
    qty: Optional[int] = None
    extended: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    line_ref: Optional[str] = None
    model: Optional[str] = None
    description: Optional[str] = None


class InviteResultsResponse(BaseModel):
    invite: InviteSummary
    effective_round: EffectiveRoundResponse
    is_winner: bool
    awards: List[AwardResponse]
    awards_total: Decimal

    class Config:
        json_schema_extra = {
            "example": {
                "invite": {
                    "id": "123e4567-e89b-12d3-a456-426614174000",
                    "token": "inv_3f9c",
                    "lot_id": "123e4567-e89b-12d3-a456-426614174001",
                    "buyer_id": "123e4567-e89b-12d3-a456-426614174002",
                    "round_id": "123e4567-e89b-12d3-a456-426614174003",
                    "status": "active"
                },
                "effective_round": {
                    "id": "123e4567-e89b-12d3-a456-426614174003",
                    "round_number": 2
                },
                "is_winner": True,
                "awards": [],
                "awards_total": "300.00"
            }
        }


# ============================================================================
# Purchase Order Models
# ============================================================================

class PurchaseOrderRequest(BaseModel):
    """Metadata of a PO document already stored in object storage."""
    file_name: str = Field(..., min_length=1)
    file_path: str = Field(..., min_length=1)
    content_type: Optional[str] = None
    notes: Optional[str] = None


class PurchaseOrderResponse(BaseModel):
    ok: bool = True
    purchase_order_id: UUID
    upload_id: UUID
    po_count: int
    lot_status: str


class PurchaseOrderItem(BaseModel):
    id: UUID
    file_name: str
    file_path: str
    content_type: Optional[str] = None
    notes: Optional[str] = None
    round_id: Optional[UUID] = None
    uploaded_at: Optional[datetime] = None


class PurchaseOrderListResponse(BaseModel):
    purchase_orders: List[PurchaseOrderItem]


# ============================================================================
# Lot Status Models
# ============================================================================

class LotStatusRequest(BaseModel):
    status: str = Field(..., description="sale_in_progress, processing, order_processing, sold or closed")

    class Config:
        json_schema_extra = {
            "example": {"status": "processing"}
        }


class LotStatusResponse(BaseModel):
    ok: bool = True
    status: str
    previous_status: str
    changed: bool
