from __future__ import annotations

import logging

from dm_service.application.dto.principal import Principal
from dm_service.application.exceptions import AuthenticationError
from dm_service.application.ports.auth import TokenVerifier
from dm_service.application.uow import UnitOfWork

logger = logging.getLogger(__name__)


async def authenticate(
    token: str | None,
    verifier: TokenVerifier,
    uow: UnitOfWork,
) -> Principal:
    """Resolve a handshake token to a known user and its display name."""
    if not token:
        raise AuthenticationError("Authentication token is required")

    try:
        claims = await verifier.verify(token)
    except Exception as exc:
        logger.debug("Token verification failed", exc_info=True)
        raise AuthenticationError("Invalid token") from exc

    user = await uow.users.get_by_id(claims.user_id)
    if user is None:
        raise AuthenticationError("User not found")

    return Principal(user_id=user.id, username=user.username)
