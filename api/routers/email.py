"""
Mailbox Poll API Endpoints.

Endpoints that trigger one ingestion pass over the caller's Outlook mailbox.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import RequestContext, get_db, get_ingestion_config, get_mailbox, get_request_context
from api.models import PollResponse
from repositories.client import Client
from services.ingestion_config import IngestionConfig
from services.offer_ingestion_service import OfferIngestor, PollResult
from services.outlook_mail import MailCredentialError, MailFetchError

logger = logging.getLogger(__name__)

router = APIRouter()


def _run_poll(poll) -> PollResult:
    try:
        return poll()
    except MailCredentialError as e:
        raise HTTPException(status_code=409, detail=f"No usable Outlook connection: {str(e)}")
    except MailFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception("Mailbox poll failed")
        raise HTTPException(status_code=500, detail=f"Failed to poll email: {str(e)}")


@router.post(
    "/email/poll",
    response_model=PollResponse,
    summary="Poll Lot Replies",
    description="Ingest buyer replies to the caller's sent lot email batches."
)
def poll_lot_replies(
    context: RequestContext = Depends(get_request_context),
    db: Client = Depends(get_db),
    mailbox=Depends(get_mailbox),
    config: IngestionConfig = Depends(get_ingestion_config),
):
    """
    Poll the caller's mailbox for replies to lot email batches.

    **Process:**
    1. Loads the caller's sent batches and the line refs of their lots
    2. Fetches the newest messages whose subject contains "LOT-"
    3. Skips messages already ingested, or whose subject matches no batch key
    4. Extracts the offer table (Line Ref / Qty / Offer) from each reply
    5. Stores one email offer per message, `parsed` or `needs_review`
    6. Stores an aggregate offer with per-line prices when lines resolve

    Messages are processed independently; one failing message does not stop
    the rest.

    **Example response:**
    ```json
    {
      "ok": true,
      "processed": 2,
      "outcomes": {"ingested": 2, "already_seen": 5, "unmatched": 1,
                   "no_offer_table": 0, "duplicate": 0, "failed": 0}
    }
    ```
    """
    ingestor = OfferIngestor(db, mailbox, config)
    result = _run_poll(lambda: ingestor.poll_lot_batches(context.tenant_id, context.user_id))
    return PollResponse(processed=result.processed, outcomes=result.counts())


@router.post(
    "/email/poll-deals",
    response_model=PollResponse,
    summary="Poll Deal Replies",
    description="Ingest buyer replies on the tenant's deal threads ([DL-XXXXXX] subjects)."
)
def poll_deal_replies(
    context: RequestContext = Depends(get_request_context),
    db: Client = Depends(get_db),
    mailbox=Depends(get_mailbox),
    config: IngestionConfig = Depends(get_ingestion_config),
):
    """
    Poll the caller's mailbox for replies on deal threads.

    Subjects are matched by their `[DL-XXXXXX]` key; line refs resolve
    against the deal's lines. No aggregate offer is created for deals.
    """
    ingestor = OfferIngestor(db, mailbox, config)
    result = _run_poll(lambda: ingestor.poll_deal_threads(context.tenant_id, context.user_id))
    return PollResponse(processed=result.processed, outcomes=result.counts())
