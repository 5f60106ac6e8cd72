"""
Tests for `domain/line_ref.py`.

Covers contract rules:
- Normalization keeps ASCII letters and digits only, upper-cased, and is idempotent
- Deal subject keys are "[DL-XXXXXX]" with 6-10 alphanumerics
- LineRefIndex resolves raw refs through normalization; later duplicates win
"""

from __future__ import annotations

from uuid import uuid4

from domain.line_ref import LineRefIndex, normalize_deal_subject_key, normalize_line_ref


def test_normalize_line_ref() -> None:
    """Case and punctuation do not matter."""
    assert normalize_line_ref(" ln-004 ") == "LN004"
    assert normalize_line_ref("LN_004.") == "LN004"
    assert normalize_line_ref(None) == ""


def test_normalize_drops_non_ascii_before_upper_casing() -> None:
    """Letters outside A-Z are removed, even when they upper-case to ASCII."""
    assert normalize_line_ref("stra\u00dfe-1") == "STRAE1"
    assert normalize_line_ref("\u0131d-\u0665") == "D"


def test_normalize_is_idempotent() -> None:
    """Normalizing twice changes nothing."""
    once = normalize_line_ref("a-b c/1")
    assert normalize_line_ref(once) == once


def test_deal_subject_key() -> None:
    """The bracketed key is found anywhere in the subject."""
    assert normalize_deal_subject_key("RE: pricing [dl-abc123] thanks") == "DL-ABC123"
    assert normalize_deal_subject_key("[DL-ABCDEFGHIJ]") == "DL-ABCDEFGHIJ"


def test_deal_subject_key_is_ascii_only() -> None:
    """Non-ASCII letters never count toward a key."""
    assert normalize_deal_subject_key("[DL-\u0131BCDEF]") is None


def test_deal_subject_key_length_bounds() -> None:
    """Fewer than 6 or more than 10 characters is not a key."""
    assert normalize_deal_subject_key("[DL-ABC12]") is None
    assert normalize_deal_subject_key("[DL-ABCDEFGHIJK]") is None
    assert normalize_deal_subject_key("DL-ABC123") is None
    assert normalize_deal_subject_key(None) is None


def test_index_resolves_through_normalization() -> None:
    """A raw ref typed differently still resolves."""
    line_id = uuid4()
    index = LineRefIndex.build([(line_id, "LN-001")])

    assert index.resolve("ln 001") == line_id
    assert index.resolve("LN-002") is None
    assert index.resolve("  ") is None


def test_index_later_duplicate_wins() -> None:
    """Two refs normalizing identically keep the later line."""
    first, second = uuid4(), uuid4()
    index = LineRefIndex.build([(first, "LN-1"), (second, "ln1"), (uuid4(), None)])

    assert index.resolve("LN1") == second
    assert len(index) == 1


def test_empty_index() -> None:
    """The empty index resolves nothing."""
    assert LineRefIndex.empty().resolve("LN-001") is None
