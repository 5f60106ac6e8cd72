"""
Outlook (Microsoft Graph) mailbox access.

Two operations are exposed to the ingestor:
- get_access_token(user_id): the user's stored access token, refreshed first
  when it is within a minute of expiry.
- fetch_messages(access_token, subject_filter): one page of messages matching
  a subject predicate, newest first.

Both raise on failure; a poll cannot continue without them.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, List, Mapping, Optional
from uuid import UUID

import requests

from domain.message import InboundMessage
from domain.time import parse_utc_timestamp, utc_now
from repositories.client import Client
from repositories.outlook_token_repository import OutlookToken, get_token, update_token
from services.ingestion_config import IngestionConfig, MailCredentials

logger = logging.getLogger(__name__)

REFRESH_MARGIN = timedelta(seconds=60)


class MailCredentialError(RuntimeError):
    """No usable mailbox credential for the user."""


class MailFetchError(RuntimeError):
    """The mail provider did not return messages."""


def _message_from_graph(item: Mapping[str, Any]) -> InboundMessage:
    sender = (item.get("from") or {}).get("emailAddress") or {}
    body = item.get("body") or {}
    try:
        received_at = parse_utc_timestamp(item.get("receivedDateTime"))
    except (TypeError, ValueError):
        received_at = None
    return InboundMessage(
        message_id=str(item.get("id") or ""),
        subject=item.get("subject"),
        received_at=received_at,
        sender_address=sender.get("address"),
        sender_name=sender.get("name"),
        html_body=body.get("content"),
        text_preview=item.get("bodyPreview"),
    )


class OutlookMailbox:
    """Mailbox collaborator backed by Microsoft Graph and the outlook_tokens table."""

    def __init__(
        self,
        db: Client,
        config: IngestionConfig,
        credentials: MailCredentials,
        session: Optional[requests.Session] = None,
    ):
        self.db = db
        self.config = config
        self.credentials = credentials
        self.session = session or requests.Session()

    def _refresh(self, token: OutlookToken) -> OutlookToken:
        if not self.credentials.client_id or not self.credentials.client_secret:
            raise MailCredentialError("Outlook client not configured")

        data = {
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "grant_type": "refresh_token",
            "refresh_token": token.refresh_token,
        }
        try:
            resp = self.session.post(self.credentials.token_url, data=data, timeout=self.config.timeout_seconds)
        except requests.RequestException as e:
            raise MailCredentialError(f"Token refresh failed: {e}") from e
        if resp.status_code != 200:
            raise MailCredentialError(f"Token refresh failed: {resp.status_code} {resp.text[:200]}")

        payload = resp.json()
        if not payload.get("access_token"):
            raise MailCredentialError("Token refresh returned no access_token")

        refreshed = OutlookToken(
            user_id=token.user_id,
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or token.refresh_token,
            expires_at=utc_now() + timedelta(seconds=int(payload.get("expires_in") or 3600)),
            scope=payload.get("scope") or token.scope,
            token_type=payload.get("token_type") or token.token_type,
        )
        update_token(self.db, refreshed)
        logger.info("Refreshed Outlook token", extra={"user_id": str(token.user_id)})
        return refreshed

    def get_access_token(self, user_id: UUID) -> str:
        token = get_token(self.db, user_id)
        if token is None:
            raise MailCredentialError("No Outlook token found")

        still_valid = token.expires_at is not None and utc_now() < token.expires_at - REFRESH_MARGIN
        if still_valid and token.access_token:
            return token.access_token

        if not token.refresh_token:
            raise MailCredentialError("Token expired and no refresh_token")
        return str(self._refresh(token).access_token)

    def fetch_messages(self, access_token: str, subject_filter: str) -> List[InboundMessage]:
        params = {
            "$select": self.config.select_fields,
            "$filter": subject_filter,
            "$orderby": self.config.order_by,
            "$top": self.config.page_size,
        }
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Prefer": self.config.prefer_header,
        }
        try:
            resp = self.session.get(
                self.config.messages_url,
                params=params,
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise MailFetchError(f"Graph messages request failed: {e}") from e
        if resp.status_code >= 400:
            raise MailFetchError(f"Graph messages request failed: {resp.status_code} {resp.text[:200]}")

        items = resp.json().get("value", [])
        return [_message_from_graph(item) for item in items if item.get("id")]


__all__ = ["MailCredentialError", "MailFetchError", "OutlookMailbox", "REFRESH_MARGIN"]
