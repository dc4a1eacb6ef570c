"""
Bot mutations: add, edit, transfer, delete and import.

Every operation follows the same path: ownership gate, (import adapter),
validator, store write, staff log. The staff log is best-effort; a failed
post is reported in ``ActionResult.context`` and the write stands.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from services.acl import require_editor, require_main_owner, require_owner
from services.db.repository import parse_snowflake
from services.errors import GenericCode, GenericError
from services.models import Bot, BotOwner, Feature, ImportSource, Tag
from services.notification_service import (
    StaffMessage,
    delete_bot_message,
    edit_bot_message,
    new_bot_message,
    transfer_message,
)
from services.submission_validator import Mode
from utils.errors import NotificationError
from utils.log_context import get_context_extra
from utils.logging import get_logger

if TYPE_CHECKING:
    from services.import_adapter import ImportAdapter
    from services.listing_store import ListingStore
    from services.notification_service import Notifier
    from services.submission_validator import SubmissionValidator, ValidationOutcome

logger = get_logger(__name__)

STAFF_LOG_FAILED = "Staff log message could not be posted"


@dataclass
class ActionResult:
    """Outcome of a successful mutation."""

    context: str | None = None
    outcome: ValidationOutcome | None = None


@dataclass
class BotSettings:
    bot: Bot
    tags: list[Tag]
    features: list[Feature]


class BotActions:
    def __init__(
        self,
        store: ListingStore,
        validator: SubmissionValidator,
        notifier: Notifier,
        importer: ImportAdapter,
    ) -> None:
        self.store = store
        self.validator = validator
        self.notifier = notifier
        self.importer = importer

    async def _staff_log(self, message: StaffMessage, **log_extra: Any) -> str | None:
        try:
            await self.notifier.send(message)
        except NotificationError as e:
            logger.warning(
                "Staff log failed", extra=get_context_extra(error=str(e), **log_extra)
            )
            return STAFF_LOG_FAILED
        return None

    async def _admit(
        self,
        user_id: int,
        candidate: Bot,
        source: ImportSource | None = None,
        custom_source: str | None = None,
    ) -> ActionResult:
        outcome = await self.validator.check_bot(candidate, Mode.ADD)
        bot = outcome.candidate

        main = await self.store.get_user_or_placeholder(user_id)
        bot.owners = [BotOwner(user=main, main=True)] + [
            owner for owner in bot.owners if owner.user.id != str(user_id)
        ]
        await self.store.add_bot(bot)
        logger.info(
            "Bot added to queue",
            extra=get_context_extra(
                user_id=user_id,
                target_id=bot.user.id,
                target_type="bot",
                action="import_bot" if source else "add_bot",
            ),
        )

        context = await self._staff_log(
            new_bot_message(bot, user_id, source, custom_source),
            user_id=user_id,
            target_id=bot.user.id,
            action="add_bot",
        )
        return ActionResult(context=context, outcome=outcome)

    async def add_bot(self, user_id: int, candidate: Bot) -> ActionResult:
        """New bots always start Pending with the caller as main owner."""
        return await self._admit(user_id, candidate)

    async def edit_bot(self, user_id: int, candidate: Bot) -> ActionResult:
        bot_id = parse_snowflake(candidate.user.id)
        if bot_id is None:
            raise GenericError(GenericCode.NOT_FOUND)
        require_editor(await self.store.get_bot(bot_id), user_id)

        outcome = await self.validator.check_bot(candidate, Mode.EDIT)
        await self.store.edit_bot(outcome.candidate)
        logger.info(
            "Bot edited",
            extra=get_context_extra(
                user_id=user_id, target_id=bot_id, target_type="bot", action="edit_bot"
            ),
        )

        context = await self._staff_log(
            edit_bot_message(outcome.candidate, user_id),
            user_id=user_id,
            target_id=bot_id,
            action="edit_bot",
        )
        return ActionResult(context=context, outcome=outcome)

    async def transfer_ownership(
        self, user_id: int, bot_id: int, new_owner: BotOwner
    ) -> ActionResult:
        """
        Hand main ownership to another user.

        The old main owner stays on as a regular owner.
        """
        require_main_owner(await self.store.get_bot(bot_id), user_id)

        if not new_owner.main:
            raise GenericError(GenericCode.INVALID_FIELDS)
        new_owner_id = parse_snowflake(new_owner.user.id)
        if new_owner_id is None or new_owner_id == user_id:
            raise GenericError(GenericCode.INVALID_FIELDS)
        if await self.store.get_user(new_owner_id) is None:
            raise GenericError(GenericCode.NOT_FOUND)

        await self.store.transfer_ownership(bot_id, new_owner_id)
        logger.info(
            "Bot ownership transferred",
            extra=get_context_extra(
                user_id=user_id,
                target_id=bot_id,
                target_type="bot",
                action="transfer",
                new_owner=str(new_owner_id),
            ),
        )

        context = await self._staff_log(
            transfer_message(bot_id, user_id, new_owner_id),
            user_id=user_id,
            target_id=bot_id,
            action="transfer",
        )
        return ActionResult(context=context)

    async def delete_bot(self, user_id: int, bot_id: int) -> ActionResult:
        bot = require_main_owner(await self.store.get_bot(bot_id), user_id)

        await self.store.delete_bot(bot_id)
        logger.info(
            "Bot deleted",
            extra=get_context_extra(
                user_id=user_id, target_id=bot_id, target_type="bot", action="delete_bot"
            ),
        )

        context = await self._staff_log(
            delete_bot_message(bot, user_id),
            user_id=user_id,
            target_id=bot_id,
            action="delete_bot",
        )
        return ActionResult(context=context)

    async def import_bot(
        self,
        user_id: int,
        bot_id: int,
        source: ImportSource,
        custom_source: str | None = None,
        ext_data: dict[str, Any] | None = None,
    ) -> ActionResult:
        """Adapt an export from another list and admit it like a normal submission."""
        candidate = await self.importer.adapt(source, bot_id, user_id, ext_data)
        return await self._admit(user_id, candidate, source, custom_source)

    async def get_settings(self, user_id: int, bot_id: int) -> BotSettings:
        bot = require_owner(await self.store.get_bot(bot_id), user_id)
        return BotSettings(
            bot=bot,
            tags=await self.store.bot_list_tags(),
            features=await self.store.bot_features(),
        )
