"""
Ownership checks for bot and pack mutations.

``can_edit`` admits any listed owner; ``can_transfer_or_delete`` admits only
the main owner. The ``require_*`` helpers report a missing entity as NotFound
before ownership is considered.
"""

from __future__ import annotations

from services.errors import CheckBotCode, CheckBotError, EditForbidden, GenericCode, GenericError
from services.models import Bot


def _same_id(user_id: str, caller_id: int | str) -> bool:
    return bool(user_id) and user_id == str(caller_id)


def can_edit(entity: Bot, caller_id: int | str) -> bool:
    """True iff the caller appears anywhere in the owner list."""
    return any(_same_id(owner.user.id, caller_id) for owner in entity.owners)


def can_transfer_or_delete(entity: Bot, caller_id: int | str) -> bool:
    """True iff the caller is the single owner flagged as main."""
    main = entity.main_owner()
    return main is not None and _same_id(main.user.id, caller_id)


def require_editor(entity: Bot | None, caller_id: int | str) -> Bot:
    if entity is None:
        raise GenericError(GenericCode.NOT_FOUND)
    if not can_edit(entity, caller_id):
        raise EditForbidden(EditForbidden.message)
    return entity


def require_owner(entity: Bot | None, caller_id: int | str) -> Bot:
    """Any-owner gate for reads such as bot settings."""
    if entity is None:
        raise GenericError(GenericCode.NOT_FOUND)
    if not can_edit(entity, caller_id):
        raise GenericError(GenericCode.NOT_OWNER)
    return entity


def require_main_owner(entity: Bot | None, caller_id: int | str) -> Bot:
    if entity is None:
        raise GenericError(GenericCode.NOT_FOUND)
    if not can_transfer_or_delete(entity, caller_id):
        raise CheckBotError(CheckBotCode.NOT_MAIN_OWNER)
    return entity


def require_pack_owner(owner_id: int | None, caller_id: int | str) -> None:
    if owner_id is None:
        raise GenericError(GenericCode.NOT_FOUND)
    if str(owner_id) != str(caller_id):
        raise GenericError(GenericCode.FORBIDDEN)
