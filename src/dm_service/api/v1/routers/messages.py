from __future__ import annotations

from fastapi import APIRouter, Query

from dm_service.api.deps import CurrentPrincipal, UoWDep
from dm_service.api.v1.schemas.common import PaginatedResponse
from dm_service.api.v1.schemas.message import MessageResponse
from dm_service.config import settings
from dm_service.infrastructure.db.repositories._cursor import encode_cursor
from dm_service.services import message_service

router = APIRouter(prefix="/api/v1/conversations", tags=["messages"])


@router.get(
    "/{conversation_id}/messages",
    response_model=PaginatedResponse[MessageResponse],
)
async def list_messages(
    conversation_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int | None = Query(None, ge=1, le=500),
) -> PaginatedResponse[MessageResponse]:
    page_size = limit or settings.HISTORY_PAGE_LIMIT
    messages = await message_service.list_history(
        conversation_id, principal, cursor, page_size, uow,
    )
    next_cursor = None
    if len(messages) == page_size:
        last = messages[-1]
        next_cursor = encode_cursor(last.created_at, last.id)
    return PaginatedResponse[MessageResponse](
        items=[MessageResponse.model_validate(m) for m in messages],
        next_cursor=next_cursor,
    )
