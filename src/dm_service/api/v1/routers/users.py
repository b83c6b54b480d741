from __future__ import annotations

from fastapi import APIRouter

from dm_service.api.deps import CurrentPrincipal, UoWDep
from dm_service.api.v1.schemas.user import ContactResponse, LastMessageResponse
from dm_service.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=list[ContactResponse])
async def list_users(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ContactResponse]:
    contacts = await user_service.list_contacts(principal, uow)
    return [
        ContactResponse(
            id=c.user.id,
            username=c.user.username,
            email=c.user.email,
            is_online=c.user.is_online,
            last_seen=c.user.last_seen,
            last_message=(
                LastMessageResponse.model_validate(c.last_message)
                if c.last_message else None
            ),
        )
        for c in contacts
    ]
