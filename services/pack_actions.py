"""Bot pack mutations, owner-gated."""

from __future__ import annotations

from typing import TYPE_CHECKING

from services.acl import require_pack_owner
from services.errors import PackCheckError
from services.models import BotPack
from utils.log_context import get_context_extra
from utils.logging import get_logger

if TYPE_CHECKING:
    from services.listing_store import ListingStore
    from services.submission_validator import SubmissionValidator

logger = get_logger(__name__)


class PackActions:
    def __init__(self, store: ListingStore, validator: SubmissionValidator) -> None:
        self.store = store
        self.validator = validator

    async def _check(self, pack: BotPack, context: str) -> BotPack:
        try:
            return await self.validator.check_pack(pack)
        except PackCheckError as e:
            raise PackCheckError(e.code, context) from e

    async def add_pack(self, user_id: int, pack: BotPack) -> str:
        """Create a pack owned by the caller and return its id."""
        pack = pack.model_copy(update={"owner": await self.store.get_user_or_placeholder(user_id)})
        checked = await self._check(pack, "Add pack error")
        pack_id = await self.store.add_pack(checked)
        logger.info(
            "Pack added",
            extra=get_context_extra(
                user_id=user_id, target_id=pack_id, target_type="pack", action="add_pack"
            ),
        )
        return pack_id

    async def edit_pack(self, user_id: int, pack: BotPack) -> None:
        require_pack_owner(await self.store.get_pack_owner(pack.id), user_id)
        checked = await self._check(pack, "Edit pack error")
        await self.store.edit_pack(checked)
        logger.info(
            "Pack edited",
            extra=get_context_extra(
                user_id=user_id, target_id=pack.id, target_type="pack", action="edit_pack"
            ),
        )

    async def delete_pack(self, user_id: int, pack_id: str) -> None:
        require_pack_owner(await self.store.get_pack_owner(pack_id), user_id)
        await self.store.delete_pack(pack_id)
        logger.info(
            "Pack deleted",
            extra=get_context_extra(
                user_id=user_id, target_id=pack_id, target_type="pack", action="delete_pack"
            ),
        )
