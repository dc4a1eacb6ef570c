"""
Tagged domain errors for the listing API.

Each error carries a ``code`` (an Enum member naming the rule that failed) and
an optional free-form ``detail``. The web layer renders them into the
``{done, reason, context}`` envelope: ``reason`` is ``"<Family>.<Code>"`` and
``context`` carries the detail, if any.
"""

from __future__ import annotations

from enum import Enum

from utils.errors import ListingError


class CheckBotCode(str, Enum):
    ALREADY_EXISTS = "AlreadyExists"
    BOT_BANNED_OR_DENIED = "BotBannedOrDenied"
    CLIENT_ID_IMMUTABLE = "ClientIDImmutable"
    PREFIX_TOO_LONG = "PrefixTooLong"
    NO_VANITY = "NoVanity"
    VANITY_TAKEN = "VanityTaken"
    INVALID_INVITE_PERM_NUM = "InvalidInvitePermNum"
    INVALID_INVITE = "InvalidInvite"
    SHORT_DESC_LENGTH_ERR = "ShortDescLengthErr"
    LONG_DESC_LENGTH_ERR = "LongDescLengthErr"
    INVALID_GITHUB = "InvalidGithub"
    INVALID_PRIVACY_POLICY = "InvalidPrivacyPolicy"
    INVALID_DONATE = "InvalidDonate"
    INVALID_WEBSITE = "InvalidWebsite"
    BOT_NOT_FOUND = "BotNotFound"
    NO_TAGS = "NoTags"
    TOO_MANY_TAGS = "TooManyTags"
    TOO_MANY_FEATURES = "TooManyFeatures"
    BANNER_CARD_ERROR = "BannerCardError"
    BANNER_PAGE_ERROR = "BannerPageError"
    JAPI_ERROR = "JAPIError"
    JAPI_DESER_ERROR = "JAPIDeserError"
    CLIENT_ID_NEEDED = "ClientIDNeeded"
    INVALID_CLIENT_ID = "InvalidClientID"
    PRIVATE_BOT = "PrivateBot"
    EDIT_LOCKED = "EditLocked"
    OWNER_LIST_TOO_LONG = "OwnerListTooLong"
    OWNER_ID_PARSE_ERROR = "OwnerIDParseError"
    OWNER_NOT_FOUND = "OwnerNotFound"
    MAIN_OWNER_ADD_ATTEMPT = "MainOwnerAddAttempt"
    NOT_MAIN_OWNER = "NotMainOwner"


class BannerCheckCode(str, Enum):
    BAD_URL = "BadURL"
    STATUS_ERROR = "StatusError"
    BAD_CONTENT_TYPE = "BadContentType"


class PackCheckCode(str, Enum):
    TOO_MANY_BOTS = "TooManyBots"
    TOO_FEW_BOTS = "TooFewBots"
    INVALID_BOT_ID = "InvalidBotId"
    INVALID_ICON = "InvalidIcon"
    INVALID_BANNER = "InvalidBanner"
    DESCRIPTION_TOO_SHORT = "DescriptionTooShort"
    INVALID_PACK_ID = "InvalidPackId"


class CertificationCode(str, Enum):
    BOT_NOT_APPROVED = "BotNotApproved"
    NO_BANNER_CARD = "NoBannerCard"
    NO_BANNER_PAGE = "NoBannerPage"
    TOO_FEW_GUILDS = "TooFewGuilds"
    TOO_FEW_MEMBERS = "TooFewMembers"


class GenericCode(str, Enum):
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    INVALID_FIELDS = "InvalidFields"
    NOT_OWNER = "NotOwner"
    SQL_ERROR = "SQLError"


class ImportSourceCode(str, Enum):
    NOT_OWNER = "NotOwner"
    NOT_FOUND = "NotFound"
    INVALID_BOT_DATA = "InvalidBotData"
    UPSTREAM_ERROR = "UpstreamError"


class APIError(ListingError):
    """Base for errors that render into the API envelope."""

    family: str = "APIError"

    def __init__(self, code: Enum, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        super().__init__(self.reason if detail is None else f"{self.reason}: {detail}")

    @property
    def reason(self) -> str:
        return f"{self.family}.{self.code.value}"

    @property
    def context(self) -> str | None:
        return self.detail


class CheckBotError(APIError):
    family = "CheckBotError"


class BannerCheckError(APIError):
    """Failure of a single banner probe; always wrapped in a CheckBotError."""

    family = "BannerCheckError"

    def __str__(self) -> str:
        if self.code is BannerCheckCode.BAD_URL:
            return f"Bad banner url: {self.detail}"
        if self.code is BannerCheckCode.STATUS_ERROR:
            return f"Got status code: {self.detail} when requesting this banner"
        return f"Got invalid content type: {self.detail} when requesting this banner"


_PACK_MESSAGES = {
    PackCheckCode.TOO_MANY_BOTS: "You cannot have more than 7 bots in a pack",
    PackCheckCode.INVALID_BOT_ID: "One of your bot IDs is invalid",
    PackCheckCode.TOO_FEW_BOTS: "You must have at least 2 bots in a pack. Recheck the Bot IDs?",
    PackCheckCode.INVALID_ICON: "Your icon must start with https://",
    PackCheckCode.INVALID_BANNER: "Your banner must start with https://",
    PackCheckCode.DESCRIPTION_TOO_SHORT: "Your description must be at least 10 characters long",
    PackCheckCode.INVALID_PACK_ID: "Your pack ID is invalid",
}


class PackCheckError(APIError):
    """Pack rule failure; the reason is a human sentence rather than a tag."""

    family = "PackCheckError"

    def __init__(self, code: PackCheckCode, context: str | None = None) -> None:
        super().__init__(code, context)

    @property
    def reason(self) -> str:
        return _PACK_MESSAGES[self.code]


_CERTIFICATION_MESSAGES = {
    CertificationCode.BOT_NOT_APPROVED: "You cannot appeal a {kind} that is not approved",
    CertificationCode.NO_BANNER_CARD: "You cannot certify a {kind} that has no banner card",
    CertificationCode.NO_BANNER_PAGE: "You cannot certify a {kind} that has no banner page",
    CertificationCode.TOO_FEW_GUILDS: (
        "You cannot certify a bot that has fewer than 100 guilds (verified using japi.rest)"
    ),
    CertificationCode.TOO_FEW_MEMBERS: "You cannot certify a server that has fewer than 100 members",
}


class CertificationError(APIError):
    """Certification gate failure; the context explains it in plain words."""

    family = "CertificationError"

    def __init__(self, code: CertificationCode, kind: str = "bot") -> None:
        super().__init__(code, _CERTIFICATION_MESSAGES[code].format(kind=kind))


class GenericError(APIError):
    family = "GenericError"


_IMPORT_MESSAGES = {
    ImportSourceCode.NOT_OWNER: "You are not allowed to import bots you are not owner of!",
    ImportSourceCode.INVALID_BOT_DATA: "Invalid bot data",
}


class ImportSourceError(APIError):
    family = "ImportSourceError"

    @property
    def reason(self) -> str:
        if self.code is ImportSourceCode.NOT_FOUND:
            return f"{GenericError.family}.{GenericCode.NOT_FOUND.value}"
        return _IMPORT_MESSAGES.get(self.code, super().reason)

    @property
    def context(self) -> str | None:
        return self.detail if self.code is ImportSourceCode.UPSTREAM_ERROR else None


class ExperimentNotEnabled(ListingError):
    """Raised when a caller lacks the experiment gating a feature."""

    def __init__(self, experiment: str) -> None:
        super().__init__(f"Experiment {experiment} is not enabled")
        self.experiment = experiment


class RateLimited(ListingError):
    """Raised when a per-user cooldown is still running."""

    def __init__(self, action: str, seconds_remaining: int) -> None:
        super().__init__(f"{action} rate limited for {seconds_remaining} seconds")
        self.action = action
        self.seconds_remaining = seconds_remaining


class EditForbidden(ListingError):
    """Caller is not an owner of the bot they tried to edit."""

    message = "You are not allowed to edit this bot!"


class AppealRejected(ListingError):
    """An appeal failed a plain rule; the message is shown to the user as is."""
