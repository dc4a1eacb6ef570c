"""
Domain models shared by the services and the web layer.

IDs are Discord snowflakes and travel as strings on the wire; the store keeps
them as integers.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum, IntEnum

from pydantic import BaseModel, Field


class State(IntEnum):
    """Moderation state of a bot or server."""

    APPROVED = 0
    PENDING = 1
    DENIED = 2
    HIDDEN = 3
    BANNED = 4
    UNDER_REVIEW = 5
    CERTIFIED = 6
    ARCHIVED = 7
    PRIVATE_VIEWABLE = 8
    PRIVATE_STAFF_ONLY = 9


class Flags(IntEnum):
    UNLOCKED = 0
    EDIT_LOCKED = 1
    STAFF_LOCKED = 2
    STATS_LOCKED = 3
    VOTE_LOCKED = 4
    SYSTEM = 5
    WHITELIST_ONLY = 6
    KEEP_BANNER_DECOR = 7
    NSFW = 8


# Flags that block owner edits
LOCK_FLAGS = frozenset({Flags.EDIT_LOCKED, Flags.STAFF_LOCKED})


class Status(IntEnum):
    UNKNOWN = 0
    ONLINE = 1
    OFFLINE = 2
    IDLE = 3
    DO_NOT_DISTURB = 4


class TargetType(str, Enum):
    BOT = "bot"
    SERVER = "server"


class AppealType(IntEnum):
    APPEAL = 0
    CERTIFICATION = 1
    REPORT = 2


class UserExperiment(IntEnum):
    UNKNOWN = 0
    GET_ROLE_SELECTOR = 1
    LYNX_EXPERIMENT_ROLLOUT_VIEW = 2
    BOT_REPORT = 3
    SERVER_APPEAL_CERTIFICATION = 4
    USER_VOTE_PRIVACY = 5
    DEV_PORTAL = 6

    @property
    def display_name(self) -> str:
        return "".join(part.title() for part in self.name.split("_"))


class RateLimitAction(str, Enum):
    """Actions guarded by a per-user cooldown."""

    APPEAL = "appeal"
    ROLE_UPDATE = "role_update"


class ImportSource(str, Enum):
    RDL = "Rdl"
    IBL = "Ibl"
    CUSTOM = "Custom"

    @property
    def source_name(self) -> str:
        return {
            ImportSource.RDL: "Rovel Discord List",
            ImportSource.IBL: "Infinity Bot List",
            ImportSource.CUSTOM: "Custom Source",
        }[self]


def _epoch() -> datetime:
    return datetime.fromtimestamp(0, tz=UTC)


class User(BaseModel):
    id: str = ""
    username: str = ""
    avatar: str = ""
    disc: str = "0000"
    bot: bool = False
    status: Status = Status.UNKNOWN


class Tag(BaseModel):
    id: str
    name: str = ""
    iconify_data: str = ""
    owner_guild: str | None = None


class Feature(BaseModel):
    id: str
    name: str = ""
    viewed_as: str = ""
    description: str = ""


class BotOwner(BaseModel):
    user: User
    main: bool = False


class Bot(BaseModel):
    """A bot listing; doubles as the add/edit candidate payload."""

    user: User
    client_id: str = ""
    description: str = ""
    long_description: str = ""
    prefix: str | None = None
    library: str = ""
    invite: str | None = None
    vanity: str = ""
    tags: list[Tag] = Field(default_factory=list)
    features: list[Feature] = Field(default_factory=list)
    owners: list[BotOwner] = Field(default_factory=list)
    website: str | None = None
    donate: str | None = None
    github: str | None = None
    privacy_policy: str | None = None
    banner_card: str | None = None
    banner_page: str | None = None
    state: State = State.PENDING
    flags: list[int] = Field(default_factory=list)
    guild_count: int = 0
    votes: int = 0
    created_at: datetime = Field(default_factory=_epoch)

    def has_flag(self, flag: Flags) -> bool:
        return int(flag) in self.flags

    def main_owner(self) -> BotOwner | None:
        return next((owner for owner in self.owners if owner.main), None)


class Server(BaseModel):
    user: User
    description: str = ""
    long_description: str = ""
    vanity: str | None = None
    tags: list[Tag] = Field(default_factory=list)
    owner: User | None = None
    banner_card: str | None = None
    banner_page: str | None = None
    state: State = State.PENDING
    flags: list[int] = Field(default_factory=list)
    guild_count: int = 0
    votes: int = 0
    created_at: datetime = Field(default_factory=_epoch)


class ResolvedPackBot(BaseModel):
    user: User
    description: str = ""


class BotPack(BaseModel):
    id: str = ""
    name: str = ""
    description: str = ""
    icon: str = ""
    banner: str = ""
    resolved_bots: list[ResolvedPackBot] = Field(default_factory=list)
    owner: User = Field(default_factory=User)
    created_at: datetime = Field(default_factory=_epoch)


class Appeal(BaseModel):
    request_type: AppealType = AppealType.APPEAL
    appeal: str


class Vanity(BaseModel):
    target_type: TargetType
    target_id: str


class IndexBot(BaseModel):
    """A bot or server as shown on index and search pages."""

    guild_count: int = 0
    description: str = ""
    banner: str = ""
    votes: int = 0
    state: State = State.APPROVED
    user: User
    flags: list[int] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_epoch)


class Index(BaseModel):
    new: list[IndexBot] = Field(default_factory=list)
    top_voted: list[IndexBot] = Field(default_factory=list)
    certified: list[IndexBot] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    features: list[Feature] = Field(default_factory=list)


class MiniIndex(BaseModel):
    tags: list[Tag] = Field(default_factory=list)
    features: list[Feature] = Field(default_factory=list)


class SearchProfile(BaseModel):
    banner: str = ""
    description: str = ""
    user: User


class SearchTags(BaseModel):
    bots: list[Tag] = Field(default_factory=list)
    servers: list[Tag] = Field(default_factory=list)


class Search(BaseModel):
    bots: list[IndexBot] = Field(default_factory=list)
    servers: list[IndexBot] = Field(default_factory=list)
    profiles: list[SearchProfile] = Field(default_factory=list)
    packs: list[BotPack] = Field(default_factory=list)
    tags: SearchTags = Field(default_factory=SearchTags)


class SearchQuery(BaseModel):
    q: str = ""
    gc_from: int = 0
    gc_to: int = -1
