"""Helpers for working with recipient identifiers."""

from __future__ import annotations

from typing import List, Union


def normalize_recipient(raw: str) -> str:
    """Return the canonical form of a recipient identifier.

    Usernames are case-insensitive in Telegram, so ``@Name`` and ``@name``
    collapse to one recipient. Phone numbers and numeric ids keep their digits.
    """

    value = raw.strip()
    if value.startswith("@"):
        return value.lower()
    if value.startswith("+"):
        return "+" + "".join(ch for ch in value[1:] if ch.isdigit())
    return value


def parse_recipients(raw: str) -> List[str]:
    """Split a comma-separated recipient list, dropping blanks and duplicates."""

    recipients: List[str] = []
    for part in (raw or "").split(","):
        if not part.strip():
            continue
        recipient = normalize_recipient(part)
        if recipient not in recipients:
            recipients.append(recipient)
    return recipients


def to_entity(recipient: str) -> Union[int, str]:
    """Map a recipient to what the Telegram client accepts as an entity."""

    body = recipient[1:] if recipient.startswith("-") else recipient
    if body.isdigit():
        # Numeric chat/user ids must be passed as int, not as a string.
        return int(recipient)
    return recipient
