"""Canonical identifier for a two-party conversation.

Format: ``"<lower>_<higher>"`` where the two participant ids are compared
as strings, so ``derive(a, b) == derive(b, a)``.
"""
from __future__ import annotations

from uuid import UUID

SEPARATOR = "_"


class MalformedIdentifierError(ValueError):
    """Raised when a conversation id does not split into two participants."""


def derive(user_a: UUID | str, user_b: UUID | str) -> str:
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}{SEPARATOR}{second}"


def parse(conversation_id: str) -> tuple[str, str]:
    parts = conversation_id.split(SEPARATOR)
    if len(parts) != 2 or not all(parts):
        raise MalformedIdentifierError(f"Invalid conversation id: {conversation_id!r}")
    return parts[0], parts[1]


def counterpart_of(conversation_id: str, user_id: UUID | str) -> str:
    """Return the other participant (the user itself for a self-conversation)."""
    first, second = parse(conversation_id)
    return second if first == str(user_id) else first
