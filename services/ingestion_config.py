"""
Mailbox ingestion configuration.

Everything the ingestor needs to talk to the mail provider is collected in
one frozen record passed in at construction, so tests can supply their own.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

GRAPH_MESSAGES_URL = "https://graph.microsoft.com/v1.0/me/messages"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"


@dataclass(frozen=True, slots=True)
class IngestionConfig:
    messages_url: str = GRAPH_MESSAGES_URL
    select_fields: str = "id,subject,receivedDateTime,from,body,bodyPreview"
    lot_subject_filter: str = "contains(subject,'LOT-')"
    deal_subject_filter: str = "contains(subject,'DL-')"
    order_by: str = "receivedDateTime desc"
    page_size: int = 200
    default_currency: str = "USD"
    timeout_seconds: float = 30.0
    prefer_header: str = 'outlook.body-content-type="html"'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "IngestionConfig":
        """
        Defaults, with page size and timeout overridable through
        MAIL_PAGE_SIZE and MAIL_TIMEOUT_SECONDS.
        """

        env = os.environ if environ is None else environ
        config = cls()
        page_size = env.get("MAIL_PAGE_SIZE")
        if page_size:
            config = replace(config, page_size=int(page_size))
        timeout = env.get("MAIL_TIMEOUT_SECONDS")
        if timeout:
            config = replace(config, timeout_seconds=float(timeout))
        if config.page_size <= 0:
            raise ValueError("MAIL_PAGE_SIZE must be positive")
        return config


@dataclass(frozen=True, slots=True)
class MailCredentials:
    """OAuth application credentials for token refresh."""

    client_id: Optional[str]
    client_secret: Optional[str]
    tenant: str = "common"

    @property
    def token_url(self) -> str:
        return TOKEN_URL_TEMPLATE.format(tenant=self.tenant)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MailCredentials":
        env = os.environ if environ is None else environ
        return cls(
            client_id=env.get("OUTLOOK_CLIENT_ID"),
            client_secret=env.get("OUTLOOK_CLIENT_SECRET"),
            tenant=env.get("OUTLOOK_TENANT") or "common",
        )


__all__ = ["GRAPH_MESSAGES_URL", "IngestionConfig", "MailCredentials", "TOKEN_URL_TEMPLATE"]
