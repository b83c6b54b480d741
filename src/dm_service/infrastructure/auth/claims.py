from __future__ import annotations

from typing import Any
from uuid import UUID

from dm_service.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from decoded JWT claims (``sub`` or legacy ``userId``)."""
    subject = payload.get("sub") or payload.get("userId")
    if not subject:
        raise ValueError("Token has no subject")
    return Principal(
        user_id=UUID(str(subject)),
        username=payload.get("username", ""),
    )
