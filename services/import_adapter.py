"""
Adapters from third-party bot list exports to the internal ``Bot`` shape.

Rdl and Ibl are fetched server-side; Custom takes the payload the caller
sends. Every adapter requires the importing user to be listed as an owner,
synthesizes a throwaway vanity and sets the fallback tag. The result is
validated exactly like a normal submission.
"""

from __future__ import annotations

import os
import secrets
import string
from typing import Any

from config.config_loader import ConfigLoader
from helpers.http_helper import (
    DEFAULT_RETRY_POLICY,
    BadStatusError,
    HTTPClient,
    NotFoundError,
    RequestFailedError,
)
from services.errors import ImportSourceCode, ImportSourceError
from services.models import Bot, BotOwner, Flags, ImportSource, Tag, User
from utils.logging import get_logger

logger = get_logger(__name__)

_TOKEN_ALPHABET = string.ascii_letters + string.digits

# Extra request headers every upstream list expects from us
_LIST_HEADERS = {"Lightleap-Dest": "Fates List", "Lightleap-Site": "https://fateslist.xyz"}


def create_token(length: int) -> str:
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))


def placeholder_vanity(name: str) -> str:
    return f"_{name}-{create_token(32)}"


def import_sources() -> list[dict[str, str]]:
    return [
        {"id": ImportSource.RDL.value, "name": ImportSource.RDL.source_name},
        {"id": ImportSource.IBL.value, "name": ImportSource.IBL.source_name},
        {"id": ImportSource.CUSTOM.value, "name": "Custom Source (top.gg etc.)"},
    ]


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None or value == "null":
        return ""
    return str(value)


def _optional(data: dict[str, Any], key: str) -> str | None:
    return _text(data, key) or None


def _split_owners(owner_ids: list[Any], user_id: int) -> tuple[bool, list[BotOwner]]:
    """Return (caller_listed, other_owners)."""
    got_owner = False
    extra: list[BotOwner] = []
    for owner in owner_ids:
        owner_id = str(owner)
        if owner_id == str(user_id):
            got_owner = True
        else:
            extra.append(BotOwner(user=User(id=owner_id), main=False))
    return got_owner, extra


class ImportAdapter:
    def __init__(self, http: HTTPClient) -> None:
        self._http = http
        self._fallback_tag = ConfigLoader.get_nested("imports.fallback_tag", "utility")
        self._rdl_api = ConfigLoader.get_nested(
            "imports.rdl_api", "https://discord.rovelstars.com/api/bots/{id}"
        )
        self._ibl_api = ConfigLoader.get_nested(
            "imports.ibl_api", "https://api.infinitybotlist.com/fates/bots/{id}"
        )
        self._ibl_key = os.getenv("IBL_API_KEY", "")
        self._timeout = float(ConfigLoader.get_nested("imports.timeout_seconds", 10))

    async def adapt(
        self,
        source: ImportSource,
        bot_id: int,
        user_id: int,
        ext_data: dict[str, Any] | None = None,
    ) -> Bot:
        """
        Build a candidate bot from ``source``.

        Raises:
            ImportSourceError: NotFound, NotOwner, InvalidBotData or UpstreamError.
        """
        if source is ImportSource.RDL:
            data = await self._fetch(self._rdl_api.format(id=bot_id), dict(_LIST_HEADERS), "err")
            return self._from_rdl(data, bot_id, user_id)
        if source is ImportSource.IBL:
            headers = {**_LIST_HEADERS, "Authorization": self._ibl_key}
            data = await self._fetch(self._ibl_api.format(id=bot_id), headers, "message")
            return self._from_ibl(data, bot_id, user_id)
        if not isinstance(ext_data, dict):
            raise ImportSourceError(ImportSourceCode.INVALID_BOT_DATA)
        return self._from_custom(ext_data, bot_id, user_id)

    async def _fetch(self, url: str, headers: dict[str, str], missing_key: str) -> dict[str, Any]:
        try:
            data = await self._http.get_json(
                url, headers=headers, timeout=self._timeout, retry_policy=DEFAULT_RETRY_POLICY
            )
        except NotFoundError as e:
            raise ImportSourceError(ImportSourceCode.NOT_FOUND) from e
        except (BadStatusError, RequestFailedError, ValueError) as e:
            logger.warning("Import upstream failed", extra={"endpoint": url, "error": str(e)})
            raise ImportSourceError(ImportSourceCode.UPSTREAM_ERROR, str(e)) from e

        if not isinstance(data, dict):
            raise ImportSourceError(ImportSourceCode.UPSTREAM_ERROR, "Unexpected response shape")
        # Both lists answer 200 with an error key for unknown bots
        if missing_key in data:
            raise ImportSourceError(ImportSourceCode.NOT_FOUND)
        return data

    def _base(self, bot_id: int, name: str, owners: list[BotOwner]) -> Bot:
        return Bot(
            user=User(id=str(bot_id)),
            vanity=placeholder_vanity(name),
            owners=owners,
            tags=[Tag(id=self._fallback_tag)],
        )

    def _from_rdl(self, data: dict[str, Any], bot_id: int, user_id: int) -> Bot:
        owners = data.get("owners")
        if not isinstance(owners, list):
            raise ImportSourceError(ImportSourceCode.INVALID_BOT_DATA)
        got_owner, extra = _split_owners(owners, user_id)
        if not got_owner:
            raise ImportSourceError(ImportSourceCode.NOT_OWNER)

        bot = self._base(bot_id, _text(data, "username"), extra)
        bot.description = _text(data, "short")
        bot.long_description = _text(data, "desc")
        bot.prefix = _text(data, "prefix")
        bot.library = _text(data, "lib")
        bot.invite = _text(data, "invite")
        bot.website = _optional(data, "website")
        bot.github = _optional(data, "github")
        return bot

    def _from_ibl(self, data: dict[str, Any], bot_id: int, user_id: int) -> Bot:
        additional = data.get("additional_owners") or []
        if not isinstance(additional, list):
            raise ImportSourceError(ImportSourceCode.INVALID_BOT_DATA)
        got_owner = _text(data, "owner") == str(user_id)
        got_additional, extra = _split_owners(additional, user_id)
        if not (got_owner or got_additional):
            raise ImportSourceError(ImportSourceCode.NOT_OWNER)

        bot = self._base(bot_id, _text(data, "name"), extra)
        bot.description = _text(data, "short")
        bot.long_description = _text(data, "long")
        bot.prefix = _text(data, "prefix")
        bot.library = _text(data, "library")
        bot.invite = _text(data, "invite")
        bot.website = _optional(data, "website")
        bot.github = _optional(data, "github")
        if data.get("nsfw") is True:
            bot.flags = [int(Flags.NSFW)]
        return bot

    def _from_custom(self, data: dict[str, Any], bot_id: int, user_id: int) -> Bot:
        owners = data.get("owners") or []
        if not isinstance(owners, list):
            raise ImportSourceError(ImportSourceCode.INVALID_BOT_DATA)
        if owners:
            got_owner, extra = _split_owners(owners, user_id)
        else:
            # An unowned export is taken as the caller's
            got_owner, extra = True, []
        if not got_owner:
            raise ImportSourceError(ImportSourceCode.NOT_OWNER)

        bot = self._base(bot_id, _text(data, "username"), extra)
        bot.description = _text(data, "description")
        bot.long_description = _text(data, "long_description")
        bot.prefix = _text(data, "prefix")
        bot.invite = _text(data, "invite")
        bot.website = _optional(data, "website")
        bot.github = _optional(data, "github")
        return bot
