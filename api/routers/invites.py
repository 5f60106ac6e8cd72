"""
Invite API Endpoints.

Buyer-facing endpoints addressed by invite token: submitting offers, viewing
round results and uploading purchase orders.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_db
from api.models import (
    AwardResponse,
    EffectiveRoundResponse,
    InviteResultsResponse,
    InviteSummary,
    OfferRequest,
    OfferResponse,
    PurchaseOrderItem,
    PurchaseOrderListResponse,
    PurchaseOrderRequest,
    PurchaseOrderResponse,
)
from repositories.client import Client
from repositories.purchase_order_repository import PurchaseOrderDocument
from services.award_ledger import summarize
from services.lot_status_service import LotNotFoundError
from services.offer_service import LineOfferInput, OfferSubmission, OfferValidationError, submit_offer
from services.purchase_order_service import (
    PurchaseOrderNotAllowedError,
    list_purchase_orders,
    record_purchase_order,
)
from services.round_resolver import InviteNotFoundError, require_invite, resolve_effective_round

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/invites/{token}/offers",
    response_model=OfferResponse,
    summary="Submit Offer",
    description="Submit a take-all or line-by-line offer through an invite."
)
def create_offer(token: str, request: OfferRequest, db: Client = Depends(get_db)):
    """
    Submit a buyer offer for the invite's lot.

    **Modes:**
    - `take_all`: one `total` (or `take_all_total`) for the whole lot, must be > 0
    - `lines`: `lines` of `{line_ref, unit_price, qty?}`; lines with
      `unit_price <= 0` or a line ref unknown to the lot are dropped, and the
      request is rejected if none remain

    The offer is tied to the invite's effective round. The lot moves to
    `offers_received` while it is still draft/open.

    **Example request:**
    ```json
    {"mode": "take_all", "total": "12500.00"}
    ```

    **Success response:**
    ```json
    {"ok": true, "offer_id": "uuid", "status": "submitted"}
    ```
    """
    submission = OfferSubmission(
        mode=request.mode,
        total=request.total,
        lines=[
            LineOfferInput(line_ref=line.line_ref, unit_price=line.unit_price, qty=line.qty)
            for line in request.lines
        ],
    )
    try:
        created = submit_offer(db, token, submission)
    except OfferValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (InviteNotFoundError, LotNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Offer submission failed")
        raise HTTPException(status_code=500, detail=f"Failed to create offer: {str(e)}")

    return OfferResponse(
        offer_id=created.offer_id,
        status=created.status.value if created.status is not None else None,
    )


@router.get(
    "/invites/{token}/results",
    response_model=InviteResultsResponse,
    summary="Invite Results",
    description="Awards for the invite's buyer in the invite's effective round."
)
def get_invite_results(token: str, db: Client = Depends(get_db)):
    """
    Resolve the invite's effective round and return the buyer's awards in it.

    The effective round is the invite's own round, else the lot's live round,
    else its latest round. An unpinned invite is pinned to the resolved round.
    When the lot has no rounds, awards from every round are returned.
    """
    try:
        invite = require_invite(db, token)
        effective_round = resolve_effective_round(db, invite)
        summary = summarize(db, invite.lot_id, invite.buyer_id, effective_round)
    except InviteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Invite results failed")
        raise HTTPException(status_code=500, detail=f"Failed to load results: {str(e)}")

    return InviteResultsResponse(
        invite=InviteSummary(
            id=invite.invite_id,
            token=invite.token,
            lot_id=invite.lot_id,
            buyer_id=invite.buyer_id,
            round_id=effective_round.round_id if effective_round.backfilled else invite.round_id,
            status=invite.status,
        ),
        effective_round=EffectiveRoundResponse(
            id=effective_round.round_id,
            round_number=effective_round.round_number,
        ),
        is_winner=summary.is_winner,
        awards=[
            AwardResponse(
                id=award.award_id,
                line_item_id=award.line_item_id,
                round_id=award.round_id,
                currency=award.currency,
                unit_price=award.unit_price,
                qty=award.qty,
                extended=award.extended,
                created_at=award.created_at,
                line_ref=award.line_ref,
                model=award.model,
                description=award.description,
            )
            for award in summary.awards
        ],
        awards_total=summary.total,
    )


@router.get(
    "/invites/{token}/purchase-orders",
    response_model=PurchaseOrderListResponse,
    summary="List Purchase Orders",
)
def get_purchase_orders(token: str, db: Client = Depends(get_db)):
    """List PO uploads made through this invite, newest first."""
    try:
        uploads = list_purchase_orders(db, token)
    except InviteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("PO listing failed")
        raise HTTPException(status_code=500, detail=f"Failed to list purchase orders: {str(e)}")

    return PurchaseOrderListResponse(
        purchase_orders=[
            PurchaseOrderItem(
                id=upload.upload_id,
                file_name=upload.file_name,
                file_path=upload.file_path,
                content_type=upload.content_type,
                notes=upload.notes,
                round_id=upload.round_id,
                uploaded_at=upload.uploaded_at,
            )
            for upload in uploads
        ]
    )


@router.post(
    "/invites/{token}/purchase-orders",
    response_model=PurchaseOrderResponse,
    summary="Record Purchase Order",
    description="Record a PO document uploaded by a winning buyer."
)
def create_purchase_order(token: str, request: PurchaseOrderRequest, db: Client = Depends(get_db)):
    """
    Record a purchase order for the invite's lot.

    Only buyers holding at least one awarded line on the lot (any round) may
    upload. The lot's `po_count` is recounted from its purchase orders and a
    lot that has not reached the sale phase moves to `sale_in_progress`.
    """
    document = PurchaseOrderDocument(
        file_name=request.file_name,
        file_path=request.file_path,
        content_type=request.content_type,
        notes=request.notes,
    )
    try:
        recorded = record_purchase_order(db, token, document)
    except PurchaseOrderNotAllowedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except (InviteNotFoundError, LotNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("PO recording failed")
        raise HTTPException(status_code=500, detail=f"Failed to record purchase order: {str(e)}")

    return PurchaseOrderResponse(
        purchase_order_id=recorded.purchase_order_id,
        upload_id=recorded.upload_id,
        po_count=recorded.po_count,
        lot_status=recorded.lot_status.value,
    )
