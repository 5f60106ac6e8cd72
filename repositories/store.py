"""
Shared helpers for executing PostgREST queries.

supabase-py raises `postgrest.exceptions.APIError` for failed requests (older
builders returned an `error` attribute instead; both are handled). Failures
are surfaced as `StoreError`, with the PostgreSQL SQLSTATE kept on `.code` so
callers can react to specific constraint violations.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from postgrest.exceptions import APIError

SQLSTATE_UNIQUE_VIOLATION = "23505"
SQLSTATE_CHECK_VIOLATION = "23514"


class StoreError(RuntimeError):
    """A store request failed."""

    def __init__(self, action: str, detail: Any, code: Optional[str] = None):
        self.action = action
        self.code = code
        super().__init__(f"Failed to {action}: {detail}")


class StatusConstraintError(StoreError):
    """The store rejected a status value (check constraint violation)."""


class DuplicateRowError(StoreError):
    """A unique constraint rejected the insert."""


def _raise_for(action: str, detail: Any, code: Optional[str]) -> None:
    code = str(code) if code is not None else None
    if code == SQLSTATE_CHECK_VIOLATION:
        raise StatusConstraintError(action, detail, code)
    if code == SQLSTATE_UNIQUE_VIOLATION:
        raise DuplicateRowError(action, detail, code)
    raise StoreError(action, detail, code)


def execute(query: Any, action: str) -> Any:
    """Run a built query, translating store failures into StoreError."""

    try:
        response = query.execute()
    except APIError as e:
        _raise_for(action, e.message or str(e), getattr(e, "code", None))

    error = getattr(response, "error", None)
    if error:
        _raise_for(action, error, getattr(error, "code", None))
    return response


def rows(response: Any) -> List[Dict[str, Any]]:
    data = getattr(response, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


def first_row(response: Any) -> Optional[Dict[str, Any]]:
    found = rows(response)
    return found[0] if found else None


def to_uuid(value: Any) -> Optional[UUID]:
    if value is None or value == "":
        return None
    return UUID(str(value))


def uuid_str(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


__all__ = [
    "DuplicateRowError",
    "StatusConstraintError",
    "StoreError",
    "execute",
    "first_row",
    "rows",
    "to_uuid",
    "uuid_str",
]
