"""
Domain: line references.

A line ref is the short human-assigned code ("LN-004") buyers type back into
reply tables. Raw refs vary by case and punctuation, so identity is only
established after normalization: upper-case, keep [A-Z0-9] only.

Deal threads carry a subject key of the form "[DL-XXXXXX]" (6-10
alphanumerics) which identifies the thread a reply belongs to.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Tuple
from uuid import UUID

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_DEAL_KEY = re.compile(r"\[DL-([A-Z0-9]{6,10})\]", re.IGNORECASE | re.ASCII)


def normalize_line_ref(value: Optional[str]) -> str:
    """normalize_line_ref(" ln-004 ") == "LN004"; normalizing twice is a no-op."""

    if not value:
        return ""
    return _NON_ALNUM.sub("", value).upper()


def normalize_deal_subject_key(subject: Optional[str]) -> Optional[str]:
    if not subject:
        return None
    match = _DEAL_KEY.search(subject)
    if match is None:
        return None
    return f"DL-{match.group(1).upper()}"


@dataclass(frozen=True, slots=True)
class LineRefIndex:
    """
    Normalized line ref -> line item (or deal line) id for one lot or deal.

    Built once per poll from every line belonging to the scope. When two raw
    refs normalize identically the later one wins, mirroring a dictionary
    built in load order.
    """

    _by_ref: Mapping[str, UUID]

    @staticmethod
    def empty() -> "LineRefIndex":
        return LineRefIndex(_by_ref={})

    @staticmethod
    def build(lines: Iterable[Tuple[UUID, Optional[str]]]) -> "LineRefIndex":
        by_ref: dict[str, UUID] = {}
        for line_id, raw_ref in lines:
            normalized = normalize_line_ref(raw_ref)
            if not normalized:
                continue
            by_ref[normalized] = line_id
        return LineRefIndex(_by_ref=by_ref)

    def resolve(self, raw_ref: Optional[str]) -> Optional[UUID]:
        normalized = normalize_line_ref(raw_ref)
        if not normalized:
            return None
        return self._by_ref.get(normalized)

    def __len__(self) -> int:
        return len(self._by_ref)


__all__ = ["LineRefIndex", "normalize_deal_subject_key", "normalize_line_ref"]
