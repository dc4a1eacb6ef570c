"""
Admission rules for bot and pack submissions.

``SubmissionValidator.check_bot`` runs a fixed chain of checks against a
candidate and either raises the first failure as a tagged error or returns a
``ValidationOutcome`` holding a normalized copy of the candidate. The input is
never modified; everything the chain rewrote is listed in ``Normalization``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from helpers.constants import (
    LONG_DESCRIPTION_MIN,
    MAX_FEATURES,
    MAX_OWNERS,
    MAX_TAGS,
    PACK_DESCRIPTION_MIN,
    PACK_MAX_BOTS,
    PACK_MIN_BOTS,
    PREFIX_MAX,
    SHORT_DESCRIPTION_MAX,
    SHORT_DESCRIPTION_MIN,
    VANITY_MIN,
)
from services.db.repository import parse_snowflake
from services.errors import (
    BannerCheckError,
    CheckBotCode,
    CheckBotError,
    PackCheckCode,
    PackCheckError,
)
from services.external_verifier import corroborate_application
from services.models import LOCK_FLAGS, Bot, BotOwner, BotPack, State, TargetType

if TYPE_CHECKING:
    from services.external_verifier import ApplicationLookup, ImageProbe
    from services.listing_store import ListingStore


class Mode(str, Enum):
    ADD = "add"
    EDIT = "edit"


@dataclass
class Normalization:
    """What the validator changed on its way through the candidate."""

    guild_count: int | None = None
    long_description_rewritten: bool = False
    github_rewritten: bool = False
    user_replaced: bool = False
    dropped_tags: list[str] = field(default_factory=list)
    dropped_features: list[str] = field(default_factory=list)
    collapsed_owners: list[str] = field(default_factory=list)
    client_id_kept: bool = False


@dataclass
class ValidationOutcome:
    candidate: Bot
    normalization: Normalization
    existing: Bot | None = None


def _strip_quotes(value: str | None) -> str:
    return (value or "").replace('"', "").strip()


def check_invite(invite: str | None) -> None:
    """Validate an invite: empty, ``P:<permissions>`` or an https URL."""
    if not invite:
        return
    if invite.startswith("P:"):
        perm = invite.split(":", 1)[1]
        # unsigned 64-bit permission integer
        if not (perm.isascii() and perm.isdigit()) or int(perm) >= 2**64:
            raise CheckBotError(CheckBotCode.INVALID_INVITE_PERM_NUM)
        return
    if not _strip_quotes(invite).startswith("https://"):
        raise CheckBotError(CheckBotCode.INVALID_INVITE)


def normalize_long_description(text: str) -> str:
    return text.replace("\\n", "\n").replace("\\r", "")


def _check_url(value: str | None, code: CheckBotCode) -> str | None:
    if value is None:
        return None
    cleaned = _strip_quotes(value)
    if cleaned and not cleaned.startswith("https://"):
        raise CheckBotError(code)
    return cleaned


def _check_github(value: str | None) -> tuple[str | None, bool]:
    if value is None:
        return None, False
    cleaned = _strip_quotes(value)
    if cleaned.startswith("github.com"):
        return "https://" + cleaned, True
    if cleaned and not cleaned.startswith("https://"):
        raise CheckBotError(CheckBotCode.INVALID_GITHUB)
    return cleaned, False


class SubmissionValidator:
    def __init__(
        self,
        store: ListingStore,
        image_probe: ImageProbe,
        app_lookup: ApplicationLookup,
    ) -> None:
        self.store = store
        self.image_probe = image_probe
        self.app_lookup = app_lookup

    async def check_bot(self, candidate: Bot, mode: Mode) -> ValidationOutcome:
        """
        Run the admission chain for ``candidate``.

        Checks run in a fixed order and the first failure is raised. Only
        ``candidate.user.id`` is trusted from the caller's user record.

        Raises:
            CheckBotError: The first rule the candidate broke.
        """
        bot = candidate.model_copy(deep=True)
        report = Normalization()

        bot_id = parse_snowflake(bot.user.id)
        if bot_id is None:
            raise CheckBotError(CheckBotCode.BOT_NOT_FOUND)

        # 1. Existing record
        existing = await self.store.get_bot(bot_id)
        if mode is Mode.ADD:
            if existing is not None:
                if existing.state in (State.DENIED, State.BANNED):
                    raise CheckBotError(
                        CheckBotCode.BOT_BANNED_OR_DENIED, str(int(existing.state))
                    )
                raise CheckBotError(CheckBotCode.ALREADY_EXISTS)
        else:
            if existing is None:
                raise CheckBotError(CheckBotCode.BOT_NOT_FOUND)
            if not bot.client_id:
                bot.client_id = existing.client_id
                report.client_id_kept = True
            elif existing.client_id and existing.client_id != bot.client_id:
                raise CheckBotError(CheckBotCode.CLIENT_ID_IMMUTABLE)
            if any(flag in LOCK_FLAGS for flag in existing.flags):
                raise CheckBotError(CheckBotCode.EDIT_LOCKED)

        # 2. External corroboration
        if mode is Mode.ADD:
            bot.guild_count = await corroborate_application(
                self.app_lookup, bot_id, bot.client_id
            )
            report.guild_count = bot.guild_count

        # 3. Prefix and vanity
        if len(bot.prefix or "") > PREFIX_MAX:
            raise CheckBotError(CheckBotCode.PREFIX_TOO_LONG)
        if len(bot.vanity) < VANITY_MIN:
            raise CheckBotError(CheckBotCode.NO_VANITY)
        resolved = await self.store.resolve_vanity(bot.vanity)
        if resolved is not None:
            if mode is Mode.ADD:
                raise CheckBotError(CheckBotCode.VANITY_TAKEN)
            if resolved.target_type is not TargetType.BOT or resolved.target_id != str(bot_id):
                raise CheckBotError(CheckBotCode.VANITY_TAKEN)

        # 4. Invite
        check_invite(bot.invite)

        # 5. Descriptions
        if not SHORT_DESCRIPTION_MIN <= len(bot.description) <= SHORT_DESCRIPTION_MAX:
            raise CheckBotError(CheckBotCode.SHORT_DESC_LENGTH_ERR)
        if len(bot.long_description) < LONG_DESCRIPTION_MIN:
            raise CheckBotError(CheckBotCode.LONG_DESC_LENGTH_ERR)
        rewritten = normalize_long_description(bot.long_description)
        report.long_description_rewritten = rewritten != bot.long_description
        bot.long_description = rewritten

        # 6. Optional links
        bot.github, report.github_rewritten = _check_github(bot.github)
        bot.privacy_policy = _check_url(bot.privacy_policy, CheckBotCode.INVALID_PRIVACY_POLICY)
        bot.donate = _check_url(bot.donate, CheckBotCode.INVALID_DONATE)
        bot.website = _check_url(bot.website, CheckBotCode.INVALID_WEBSITE)

        # 7. Canonical user record
        user = await self.store.get_user(bot_id)
        if user is None:
            raise CheckBotError(CheckBotCode.BOT_NOT_FOUND)
        report.user_replaced = user != bot.user
        bot.user = user

        # 8. Tags
        if len(bot.tags) > MAX_TAGS:
            raise CheckBotError(CheckBotCode.TOO_MANY_TAGS)
        known_tags = {tag.id: tag for tag in await self.store.bot_list_tags()}
        tags, seen = [], set()
        for tag in bot.tags:
            if tag.id in known_tags and tag.id not in seen:
                tags.append(known_tags[tag.id])
                seen.add(tag.id)
            elif tag.id not in known_tags:
                report.dropped_tags.append(tag.id)
        bot.tags = tags
        if not bot.tags:
            raise CheckBotError(CheckBotCode.NO_TAGS)

        # 9. Features
        if len(bot.features) > MAX_FEATURES:
            raise CheckBotError(CheckBotCode.TOO_MANY_FEATURES)
        if bot.features:
            known_features = {feature.id: feature for feature in await self.store.bot_features()}
            features, seen = [], set()
            for feature in bot.features:
                if feature.id in known_features and feature.id not in seen:
                    features.append(known_features[feature.id])
                    seen.add(feature.id)
                elif feature.id not in known_features:
                    report.dropped_features.append(feature.id)
            bot.features = features

        # 10. Banners
        try:
            await self.image_probe.check_banner(bot.banner_card or "")
        except BannerCheckError as e:
            raise CheckBotError(CheckBotCode.BANNER_CARD_ERROR, str(e)) from e
        try:
            await self.image_probe.check_banner(bot.banner_page or "")
        except BannerCheckError as e:
            raise CheckBotError(CheckBotCode.BANNER_PAGE_ERROR, str(e)) from e

        # 11. Extra owners
        if len(bot.owners) > MAX_OWNERS:
            raise CheckBotError(CheckBotCode.OWNER_LIST_TOO_LONG)
        owners: list[BotOwner] = []
        seen_owners: set[int] = set()
        for owner in bot.owners:
            if owner.main:
                raise CheckBotError(CheckBotCode.MAIN_OWNER_ADD_ATTEMPT)
            owner_id = parse_snowflake(owner.user.id)
            if owner_id is None:
                raise CheckBotError(CheckBotCode.OWNER_ID_PARSE_ERROR)
            if owner_id in seen_owners:
                report.collapsed_owners.append(str(owner_id))
                continue
            owner_user = await self.store.get_user(owner_id)
            if owner_user is None:
                raise CheckBotError(CheckBotCode.OWNER_NOT_FOUND)
            owners.append(BotOwner(user=owner_user, main=False))
            seen_owners.add(owner_id)
        bot.owners = owners

        return ValidationOutcome(candidate=bot, normalization=report, existing=existing)

    async def check_pack(self, pack: BotPack) -> BotPack:
        """
        Validate a pack and return a copy with its bot references resolved.

        Ids are de-duplicated and unknown bots dropped before the size limits
        are applied.
        """
        checked = pack.model_copy(deep=True)

        ids: list[int] = []
        for bot in checked.resolved_bots:
            bot_id = parse_snowflake(bot.user.id)
            if bot_id is None:
                raise PackCheckError(PackCheckCode.INVALID_BOT_ID)
            if bot_id not in ids:
                ids.append(bot_id)

        if len(ids) > PACK_MAX_BOTS:
            raise PackCheckError(PackCheckCode.TOO_MANY_BOTS)

        checked.resolved_bots = await self.store.resolve_pack_bots(ids)
        if len(checked.resolved_bots) > PACK_MAX_BOTS:
            raise PackCheckError(PackCheckCode.TOO_MANY_BOTS)
        if len(checked.resolved_bots) < PACK_MIN_BOTS:
            raise PackCheckError(PackCheckCode.TOO_FEW_BOTS)

        if checked.icon and not checked.icon.startswith("https://"):
            raise PackCheckError(PackCheckCode.INVALID_ICON)
        if checked.banner and not checked.banner.startswith("https://"):
            raise PackCheckError(PackCheckCode.INVALID_BANNER)
        if len(checked.description) < PACK_DESCRIPTION_MIN:
            raise PackCheckError(PackCheckCode.DESCRIPTION_TOO_SHORT)

        return checked
