"""
FastAPI dependency providers.

Routers receive the store client, the caller's tenant context and the
mailbox through these, so tests can swap them with
`app.dependency_overrides`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException

from repositories.account_repository import get_user_tenant_id
from repositories.client import Client, get_supabase
from services.ingestion_config import IngestionConfig, MailCredentials
from services.outlook_mail import OutlookMailbox

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Authenticated platform user and their tenant."""
    user_id: UUID
    tenant_id: UUID


def get_db() -> Client:
    return get_supabase()


def get_ingestion_config() -> IngestionConfig:
    return IngestionConfig.from_env()


def get_request_context(
    authorization: Optional[str] = Header(None),
    db: Client = Depends(get_db),
) -> RequestContext:
    """
    Resolve the caller from a Supabase access token ("Authorization: Bearer ...").

    Raises 401 without a valid token and 403 when the user has no tenant.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    jwt = authorization.split(" ", 1)[1].strip()

    try:
        response = db.auth.get_user(jwt)
    except Exception as e:
        logger.info("Rejected access token", extra={"reason": str(e)})
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = getattr(response, "user", None)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user_id = UUID(str(user.id))
    tenant_id = get_user_tenant_id(db, user_id)
    if tenant_id is None:
        raise HTTPException(status_code=403, detail="Missing tenant on user")
    return RequestContext(user_id=user_id, tenant_id=tenant_id)


def get_mailbox(
    db: Client = Depends(get_db),
    config: IngestionConfig = Depends(get_ingestion_config),
) -> OutlookMailbox:
    return OutlookMailbox(db, config, MailCredentials.from_env())
