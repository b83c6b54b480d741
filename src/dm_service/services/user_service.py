from __future__ import annotations

from dm_service.application.dto.contact import ContactDTO
from dm_service.application.dto.principal import Principal
from dm_service.application.uow import UnitOfWork
from dm_service.domain.value_objects import conversation_id as cid


async def list_contacts(principal: Principal, uow: UnitOfWork) -> list[ContactDTO]:
    """Every other user with presence and the latest message exchanged with the caller."""
    users = await uow.users.list_except(principal.user_id)
    contacts: list[ContactDTO] = []
    for user in users:
        last = await uow.messages.get_last(cid.derive(principal.user_id, user.id))
        contacts.append(ContactDTO(user=user, last_message=last))
    return contacts
