"""
Appeal, certification and report requests for bots and servers.

Requests are never stored; a request that passes every gate is relayed to the
staff appeals channel. The gates run in this order: cooldown (fast reject),
target lookup, experiment, body length, certification requirements. The
cooldown is only consumed right before the relay, with ``try_acquire``, so
rejected requests leave it untouched and two concurrent requests cannot both
be relayed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from helpers.constants import APPEAL_MAX_LENGTH, APPEAL_MIN_LENGTH, CERTIFICATION_MIN_GUILDS
from helpers.rate_limiter import get_duration
from services.errors import (
    AppealRejected,
    CertificationCode,
    CertificationError,
    ExperimentNotEnabled,
    GenericCode,
    GenericError,
    RateLimited,
)
from services.models import Appeal, AppealType, Bot, RateLimitAction, Server, State, UserExperiment
from services.notification_service import appeal_message
from utils.errors import NotificationError
from utils.log_context import get_context_extra
from utils.logging import get_logger

if TYPE_CHECKING:
    from helpers.rate_limiter import RateLimiter
    from services.listing_store import ListingStore
    from services.notification_service import Notifier

logger = get_logger(__name__)

RELAY_FAILED = "Failed to send appeal message. Please try again."
RELAY_OK = "Successfully posted appeal request :)"


@dataclass
class AppealResult:
    done: bool
    reason: str


def _check_length(appeal: Appeal) -> None:
    if not APPEAL_MIN_LENGTH <= len(appeal.appeal) <= APPEAL_MAX_LENGTH:
        raise AppealRejected(
            f"Appeal length must be between {APPEAL_MIN_LENGTH} and {APPEAL_MAX_LENGTH} characters"
        )


def check_certification(target: Bot | Server) -> None:
    """
    Requirements a listing must meet before certification can be requested.

    Raises:
        CertificationError: The first requirement not met.
    """
    kind = "bot" if isinstance(target, Bot) else "server"
    if target.state != State.APPROVED:
        raise CertificationError(CertificationCode.BOT_NOT_APPROVED, kind)
    if not (target.banner_card or "").startswith("https://"):
        raise CertificationError(CertificationCode.NO_BANNER_CARD, kind)
    if not (target.banner_page or "").startswith("https://"):
        raise CertificationError(CertificationCode.NO_BANNER_PAGE, kind)
    if target.guild_count < CERTIFICATION_MIN_GUILDS:
        code = CertificationCode.TOO_FEW_GUILDS if kind == "bot" else CertificationCode.TOO_FEW_MEMBERS
        raise CertificationError(code, kind)


class AppealService:
    def __init__(self, store: ListingStore, rate_limiter: RateLimiter, notifier: Notifier) -> None:
        self.store = store
        self.rate_limiter = rate_limiter
        self.notifier = notifier

    async def _check_cooldown(self, user_id: int) -> None:
        remaining = await self.rate_limiter.get_ratelimit(RateLimitAction.APPEAL, user_id)
        if remaining:
            raise RateLimited(RateLimitAction.APPEAL.value, remaining)

    async def _require_experiment(self, user_id: int, experiment: UserExperiment) -> None:
        if experiment not in await self.store.get_user_experiments(user_id):
            raise ExperimentNotEnabled(experiment.display_name)

    async def _relay(self, user_id: int, appeal: Appeal, target: Bot | Server) -> AppealResult:
        if not await self.rate_limiter.try_acquire(RateLimitAction.APPEAL, user_id):
            # Lost the race to a concurrent request from the same user
            remaining = await self.rate_limiter.get_ratelimit(RateLimitAction.APPEAL, user_id)
            raise RateLimited(
                RateLimitAction.APPEAL.value, remaining or get_duration(RateLimitAction.APPEAL)
            )

        message = appeal_message(appeal.request_type, appeal.appeal, user_id, target)
        try:
            await self.notifier.send(message)
        except NotificationError:
            logger.warning(
                "Appeal relay failed",
                extra=get_context_extra(user_id=user_id, target_id=target.user.id, action="appeal"),
            )
            return AppealResult(done=False, reason=RELAY_FAILED)

        logger.info(
            "Appeal relayed",
            extra=get_context_extra(user_id=user_id, target_id=target.user.id, action="appeal"),
        )
        return AppealResult(done=True, reason=RELAY_OK)

    async def appeal_bot(self, user_id: int, bot_id: int, appeal: Appeal) -> AppealResult:
        await self._check_cooldown(user_id)

        bot = await self.store.get_bot(bot_id)
        if bot is None:
            raise GenericError(GenericCode.NOT_FOUND)

        if appeal.request_type is AppealType.REPORT:
            await self._require_experiment(user_id, UserExperiment.BOT_REPORT)

        _check_length(appeal)
        if appeal.request_type is AppealType.CERTIFICATION:
            check_certification(bot)

        return await self._relay(user_id, appeal, bot)

    async def appeal_server(self, user_id: int, server_id: int, appeal: Appeal) -> AppealResult:
        await self._check_cooldown(user_id)

        server = await self.store.get_server(server_id)
        if server is None:
            raise GenericError(GenericCode.NOT_FOUND)

        if appeal.request_type is AppealType.REPORT:
            await self._require_experiment(user_id, UserExperiment.BOT_REPORT)
        else:
            await self._require_experiment(user_id, UserExperiment.SERVER_APPEAL_CERTIFICATION)

        _check_length(appeal)
        if appeal.request_type is AppealType.CERTIFICATION:
            check_certification(server)

        return await self._relay(user_id, appeal, server)
