from __future__ import annotations

from core.recipients import normalize_recipient, parse_recipients, to_entity


def test_parse_recipients_normalizes_and_dedupes() -> None:
    raw = " @Alice, +62 812-3456-7890 ,@alice,,123456789 "
    assert parse_recipients(raw) == ["@alice", "+6281234567890", "123456789"]


def test_parse_recipients_empty() -> None:
    assert parse_recipients("") == []


def test_normalize_recipient_keeps_me() -> None:
    assert normalize_recipient(" me ") == "me"


def test_to_entity_converts_numeric_ids() -> None:
    assert to_entity("123456789") == 123456789
    assert to_entity("-1001234567890") == -1001234567890
    assert to_entity("@alice") == "@alice"
    assert to_entity("+6281234567890") == "+6281234567890"
