"""
Lot API Endpoints.

Operator endpoints for moving a lot through its fulfilment lifecycle.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import RequestContext, get_db, get_request_context
from api.models import LotStatusRequest, LotStatusResponse
from domain.lot_lifecycle import LotTransitionError
from repositories.client import Client
from services.lot_status_service import (
    InvalidLotStatusError,
    LotNotFoundError,
    LotStatusConflictError,
    request_status,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/lots/{lot_id}/status",
    response_model=LotStatusResponse,
    summary="Update Lot Status",
    description="Request a lifecycle transition for a lot."
)
def update_lot_status(
    lot_id: UUID,
    request: LotStatusRequest,
    context: RequestContext = Depends(get_request_context),
    db: Client = Depends(get_db),
):
    """
    Move a lot to `sale_in_progress`, `processing`, `order_processing`,
    `sold` or `closed`.

    **Rules:**
    - `processing` / `order_processing` only from `sale_in_progress`, and only
      once the lot has received at least its expected number of POs
    - `sold` only from `processing` / `order_processing`
    - `closed` lots cannot be changed
    - requesting the current status is accepted and re-stamps its timestamp

    **Error response (rejected transition):**
    ```json
    {"detail": "Cannot start order processing: 1/3 POs received."}
    ```
    """
    try:
        change = request_status(db, context.tenant_id, lot_id, request.status)
    except (InvalidLotStatusError, LotTransitionError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LotNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LotStatusConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.exception("Lot status update failed")
        raise HTTPException(status_code=500, detail=f"Failed to update lot status: {str(e)}")

    return LotStatusResponse(
        status=change.status.value,
        previous_status=change.previous.value,
        changed=change.changed,
    )
