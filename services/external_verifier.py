"""
Synchronous checks against third-party services used while validating a bot.

Two capabilities are injected into the validator:

* ``ImageProbe`` - fetches a banner URL and insists on an ``image/*`` body.
* ``ApplicationLookup`` - reads application metadata for a client id.

The HTTP implementations here are the production ones; tests substitute
fakes that satisfy the same protocols.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel, ValidationError

from helpers.http_helper import NO_RETRY_POLICY, HTTPClient, RequestFailedError
from services.errors import BannerCheckCode, BannerCheckError, CheckBotCode, CheckBotError
from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ApplicationInfo:
    """What the application-metadata service reports about a client id."""

    application_id: str
    bot_id: str
    bot_public: bool
    guild_count: int


class ImageProbe(Protocol):
    async def check_banner(self, url: str) -> None:
        """Return normally when ``url`` is empty or serves an image; raise BannerCheckError otherwise."""


class ApplicationLookup(Protocol):
    async def lookup(self, application_id: int) -> ApplicationInfo:
        """Return metadata or raise CheckBotError (JAPIError, ClientIDNeeded, JAPIDeserError)."""


class HTTPImageProbe:
    def __init__(self, http: HTTPClient, timeout: float = 10) -> None:
        self._http = http
        self._timeout = timeout

    async def check_banner(self, url: str) -> None:
        if not url:
            return
        try:
            response = await self._http.request(
                url, timeout=self._timeout, retry_policy=NO_RETRY_POLICY, read_body=False
            )
        except RequestFailedError as e:
            raise BannerCheckError(BannerCheckCode.BAD_URL, str(e)) from e

        if not response.ok:
            raise BannerCheckError(BannerCheckCode.STATUS_ERROR, str(response.status))

        content_type = response.content_type
        if content_type.split("/", 1)[0].strip().lower() != "image":
            raise BannerCheckError(BannerCheckCode.BAD_CONTENT_TYPE, content_type)


class _JAPIApplication(BaseModel):
    id: str
    bot_public: bool


class _JAPIBot(BaseModel):
    id: str
    approximate_guild_count: int = 0


class _JAPIData(BaseModel):
    application: _JAPIApplication
    bot: _JAPIBot


class _JAPIResponse(BaseModel):
    data: _JAPIData


class JAPIApplicationLookup:
    """Looks applications up on japi.rest."""

    def __init__(
        self,
        http: HTTPClient,
        api_url: str,
        api_key: str = "",
        timeout: float = 10,
    ) -> None:
        self._http = http
        self._api_url = api_url
        self._api_key = api_key
        self._timeout = timeout

    async def lookup(self, application_id: int) -> ApplicationInfo:
        url = self._api_url.format(id=application_id)
        headers = {"Authorization": self._api_key} if self._api_key else {}
        try:
            response = await self._http.request(
                url, headers=headers, timeout=self._timeout, retry_policy=NO_RETRY_POLICY
            )
        except RequestFailedError as e:
            raise CheckBotError(CheckBotCode.JAPI_ERROR, str(e)) from e

        if not response.ok:
            logger.info(
                "Application lookup failed",
                extra={"target_id": str(application_id), "status_code": response.status},
            )
            raise CheckBotError(CheckBotCode.CLIENT_ID_NEEDED)

        try:
            parsed = _JAPIResponse.model_validate_json(response.body)
        except ValidationError as e:
            raise CheckBotError(CheckBotCode.JAPI_DESER_ERROR, str(e)) from e

        return ApplicationInfo(
            application_id=parsed.data.application.id,
            bot_id=parsed.data.bot.id,
            bot_public=parsed.data.application.bot_public,
            guild_count=parsed.data.bot.approximate_guild_count,
        )


async def corroborate_application(
    lookup: ApplicationLookup, bot_id: int, client_id: str
) -> int:
    """
    Cross-check a new bot against the application service.

    Uses ``client_id`` when given, otherwise the bot id. Returns the reported
    guild count on success.
    """
    application_id = bot_id
    if client_id:
        try:
            application_id = int(client_id)
        except ValueError as e:
            raise CheckBotError(CheckBotCode.BOT_NOT_FOUND) from e

    info = await lookup.lookup(application_id)

    if info.bot_id != str(bot_id) and str(bot_id) != client_id:
        raise CheckBotError(CheckBotCode.INVALID_CLIENT_ID)
    if not info.bot_public:
        raise CheckBotError(CheckBotCode.PRIVATE_BOT)
    return info.guild_count
