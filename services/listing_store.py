"""
Persistence for bots, servers, packs, users and the global vocabularies.

All reads return domain models; all writes run in a single transaction and
surface driver failures as ``StoreError`` so the web layer can render them.
"""

from __future__ import annotations

import secrets
import sqlite3
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from helpers.constants import (
    DEFAULT_BANNER,
    INDEX_LIMIT,
    OWNER_EDITABLE_FLAGS,
    SEARCH_BOTS_LIMIT,
    SEARCH_PROFILES_LIMIT,
    SEARCH_SERVERS_LIMIT,
)
from services.db.repository import BaseRepository, encode_json, parse_json_list
from services.errors import PackCheckCode, PackCheckError
from services.models import (
    Bot,
    BotOwner,
    BotPack,
    Feature,
    IndexBot,
    ResolvedPackBot,
    Search,
    SearchProfile,
    SearchQuery,
    SearchTags,
    Server,
    State,
    Status,
    Tag,
    TargetType,
    User,
    UserExperiment,
    Vanity,
)
from utils.errors import StoreError
from utils.log_context import get_context_extra
from utils.logging import get_logger

if TYPE_CHECKING:
    from aiosqlite import Row

logger = get_logger(__name__)

# vanity.type column values
VANITY_TYPES = {TargetType.SERVER: 0, TargetType.BOT: 1}
_VANITY_TARGETS = {value: key for key, value in VANITY_TYPES.items()}


def _timestamp(value: int | None) -> datetime:
    return datetime.fromtimestamp(value or 0, tz=UTC)


def _state(value: int | None, default: State = State.APPROVED) -> State:
    try:
        return State(value)
    except ValueError:
        return default


def _status(value: int | None) -> Status:
    try:
        return Status(value)
    except ValueError:
        return Status.UNKNOWN


def _tag_name(tag_id: str) -> str:
    return tag_id.replace("_", " ").replace("-", " ").title()


class ListingStore(BaseRepository):
    # ------------------------------------------------------------------
    # Users and auth
    # ------------------------------------------------------------------

    @staticmethod
    def _user_from_row(row: Row) -> User:
        return User(
            id=str(row["user_id"]),
            username=row["username"],
            avatar=row["avatar"],
            disc=row["disc"],
            bot=bool(row["is_bot"]),
            status=_status(row["status"]),
        )

    async def get_user(self, user_id: int) -> User | None:
        row = await self.fetch_one(
            "SELECT user_id, username, avatar, disc, is_bot, status FROM users WHERE user_id = ?",
            (user_id,),
        )
        return self._user_from_row(row) if row else None

    async def get_user_or_placeholder(self, user_id: int) -> User:
        """Return the user, or an 'Unknown User' placeholder for dangling ids."""
        user = await self.get_user(user_id)
        if user is None:
            return User(id=str(user_id), username="Unknown User")
        return user

    async def authorize_user(self, user_id: int, token: str) -> bool:
        """Check an ``Authorization`` header value against the user's API token."""
        if not token:
            return False
        token = token.removeprefix("User ").strip()
        stored = await self.fetch_value(
            "SELECT api_token FROM users WHERE user_id = ?", (user_id,)
        )
        if not stored:
            return False
        return secrets.compare_digest(str(stored), token)

    async def get_user_experiments(self, user_id: int) -> list[UserExperiment]:
        raw = await self.fetch_value(
            "SELECT experiments FROM users WHERE user_id = ?", (user_id,)
        )
        experiments = []
        for value in parse_json_list(raw):
            try:
                experiments.append(UserExperiment(value))
            except ValueError:
                experiments.append(UserExperiment.UNKNOWN)
        return experiments

    # ------------------------------------------------------------------
    # Vocabularies and vanity
    # ------------------------------------------------------------------

    async def bot_list_tags(self) -> list[Tag]:
        rows = await self.fetch_all("SELECT id, icon FROM bot_list_tags ORDER BY id")
        return [
            Tag(id=row["id"], name=_tag_name(row["id"]), iconify_data=row["icon"])
            for row in rows
        ]

    async def server_list_tags(self) -> list[Tag]:
        rows = await self.fetch_all(
            "SELECT id, name, iconify_data, owner_guild FROM server_tags ORDER BY id"
        )
        return [
            Tag(
                id=row["id"],
                name=row["name"],
                iconify_data=row["iconify_data"],
                owner_guild=str(row["owner_guild"]) if row["owner_guild"] is not None else None,
            )
            for row in rows
        ]

    async def bot_features(self) -> list[Feature]:
        rows = await self.fetch_all(
            "SELECT id, name, viewed_as, description FROM features ORDER BY id"
        )
        return [
            Feature(
                id=row["id"],
                name=row["name"],
                viewed_as=row["viewed_as"],
                description=row["description"],
            )
            for row in rows
        ]

    async def resolve_vanity(self, code: str) -> Vanity | None:
        row = await self.fetch_one(
            "SELECT type, redirect FROM vanity WHERE lower(vanity_url) = ?",
            (code.lower(),),
        )
        if row is None:
            return None
        return Vanity(
            target_type=_VANITY_TARGETS.get(row["type"], TargetType.BOT),
            target_id=str(row["redirect"]),
        )

    async def get_vanity_for(self, target_type: TargetType, target_id: int) -> str | None:
        return await self.fetch_value(
            "SELECT vanity_url FROM vanity WHERE type = ? AND redirect = ?",
            (VANITY_TYPES[target_type], target_id),
        )

    # ------------------------------------------------------------------
    # Bots
    # ------------------------------------------------------------------

    async def get_bot_tags(self, bot_id: int) -> list[Tag]:
        rows = await self.fetch_all(
            """
            SELECT bot_tags.tag AS id, COALESCE(bot_list_tags.icon, '') AS icon
            FROM bot_tags LEFT JOIN bot_list_tags ON bot_list_tags.id = bot_tags.tag
            WHERE bot_tags.bot_id = ? ORDER BY bot_tags.rowid
            """,
            (bot_id,),
        )
        return [
            Tag(id=row["id"], name=_tag_name(row["id"]), iconify_data=row["icon"])
            for row in rows
        ]

    async def get_bot_features(self, bot_id: int) -> list[Feature]:
        rows = await self.fetch_all(
            """
            SELECT features.id, features.name, features.viewed_as, features.description
            FROM bot_features INNER JOIN features ON features.id = bot_features.feature
            WHERE bot_features.bot_id = ? ORDER BY bot_features.rowid
            """,
            (bot_id,),
        )
        return [
            Feature(
                id=row["id"],
                name=row["name"],
                viewed_as=row["viewed_as"],
                description=row["description"],
            )
            for row in rows
        ]

    async def get_bot_owners(self, bot_id: int) -> list[BotOwner]:
        rows = await self.fetch_all(
            "SELECT owner, main FROM bot_owner WHERE bot_id = ? ORDER BY main DESC, rowid",
            (bot_id,),
        )
        owners = []
        for row in rows:
            user = await self.get_user_or_placeholder(row["owner"])
            owners.append(BotOwner(user=user, main=bool(row["main"])))
        return owners

    async def get_bot(self, bot_id: int) -> Bot | None:
        row = await self.fetch_one("SELECT * FROM bots WHERE bot_id = ?", (bot_id,))
        if row is None:
            return None
        return Bot(
            user=await self.get_user_or_placeholder(bot_id),
            client_id=str(row["client_id"]),
            description=row["description"],
            long_description=row["long_description"],
            prefix=row["prefix"],
            library=row["library"],
            invite=row["invite"],
            vanity=await self.get_vanity_for(TargetType.BOT, bot_id) or "",
            tags=await self.get_bot_tags(bot_id),
            features=await self.get_bot_features(bot_id),
            owners=await self.get_bot_owners(bot_id),
            website=row["website"],
            donate=row["donate"],
            github=row["github"],
            privacy_policy=row["privacy_policy"],
            banner_card=row["banner_card"],
            banner_page=row["banner_page"],
            state=_state(row["state"]),
            flags=parse_json_list(row["flags"]),
            guild_count=row["guild_count"],
            votes=row["votes"],
            created_at=_timestamp(row["created_at"]),
        )

    async def _write_bot_children(self, db, bot_id: int, bot: Bot) -> None:
        await db.execute("DELETE FROM bot_tags WHERE bot_id = ?", (bot_id,))
        await db.executemany(
            "INSERT OR IGNORE INTO bot_tags (bot_id, tag) VALUES (?, ?)",
            [(bot_id, tag.id) for tag in bot.tags],
        )
        await db.execute("DELETE FROM bot_features WHERE bot_id = ?", (bot_id,))
        await db.executemany(
            "INSERT OR IGNORE INTO bot_features (bot_id, feature) VALUES (?, ?)",
            [(bot_id, feature.id) for feature in bot.features],
        )

    async def add_bot(self, bot: Bot) -> None:
        """
        Insert a validated bot, replacing any stale rows for the same id.

        ``bot.owners`` must already contain exactly one main owner.
        """
        bot_id = int(bot.user.id)
        client_id = int(bot.client_id) if bot.client_id else bot_id
        flags = [flag for flag in bot.flags if flag in OWNER_EDITABLE_FLAGS]
        try:
            async with self.transaction() as db:
                for table in ("bots", "bot_owner", "bot_tags", "bot_features"):
                    await db.execute(f"DELETE FROM {table} WHERE bot_id = ?", (bot_id,))
                await db.execute(
                    "DELETE FROM vanity WHERE type = ? AND redirect = ?",
                    (VANITY_TYPES[TargetType.BOT], bot_id),
                )
                await db.execute(
                    """
                    INSERT INTO bots (
                        bot_id, client_id, description, long_description, prefix, library,
                        invite, website, donate, github, privacy_policy, banner_card,
                        banner_page, state, flags, guild_count, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, strftime('%s','now'))
                    """,
                    (
                        bot_id, client_id, bot.description, bot.long_description, bot.prefix,
                        bot.library, bot.invite or "P:0", bot.website, bot.donate, bot.github,
                        bot.privacy_policy, bot.banner_card, bot.banner_page,
                        int(State.PENDING), encode_json(flags), bot.guild_count,
                    ),
                )
                await db.execute(
                    "INSERT INTO vanity (type, vanity_url, redirect) VALUES (?, ?, ?)",
                    (VANITY_TYPES[TargetType.BOT], bot.vanity, bot_id),
                )
                await db.executemany(
                    "INSERT OR IGNORE INTO bot_owner (bot_id, owner, main) VALUES (?, ?, ?)",
                    [(bot_id, int(owner.user.id), int(owner.main)) for owner in bot.owners],
                )
                await self._write_bot_children(db, bot_id, bot)
        except sqlite3.Error as e:
            logger.exception(
                "Failed to add bot",
                extra=get_context_extra(target_id=bot_id, target_type="bot", action="add_bot"),
            )
            raise StoreError(str(e)) from e

    async def edit_bot(self, bot: Bot) -> None:
        """
        Update a validated bot in place.

        Only owner-editable flags are taken from ``bot``; staff flags are kept
        from the stored row. The main owner row is never touched here.
        """
        bot_id = int(bot.user.id)
        client_id = int(bot.client_id) if bot.client_id else bot_id
        try:
            async with self.transaction() as db:
                cursor = await db.execute("SELECT flags FROM bots WHERE bot_id = ?", (bot_id,))
                row = await cursor.fetchone()
                stored_flags = parse_json_list(row["flags"] if row else None)
                flags = [flag for flag in stored_flags if flag not in OWNER_EDITABLE_FLAGS]
                flags.extend(flag for flag in OWNER_EDITABLE_FLAGS if flag in bot.flags)

                await db.execute(
                    """
                    UPDATE bots SET client_id = ?, description = ?, long_description = ?,
                        prefix = ?, library = ?, invite = ?, website = ?, donate = ?,
                        github = ?, privacy_policy = ?, banner_card = ?, banner_page = ?,
                        flags = ?
                    WHERE bot_id = ?
                    """,
                    (
                        client_id, bot.description, bot.long_description, bot.prefix,
                        bot.library, bot.invite or "P:0", bot.website, bot.donate,
                        bot.github, bot.privacy_policy, bot.banner_card, bot.banner_page,
                        encode_json(sorted(flags)), bot_id,
                    ),
                )
                await db.execute(
                    "DELETE FROM vanity WHERE type = ? AND redirect = ?",
                    (VANITY_TYPES[TargetType.BOT], bot_id),
                )
                await db.execute(
                    "INSERT INTO vanity (type, vanity_url, redirect) VALUES (?, ?, ?)",
                    (VANITY_TYPES[TargetType.BOT], bot.vanity, bot_id),
                )
                main_owner = await (
                    await db.execute(
                        "SELECT owner FROM bot_owner WHERE bot_id = ? AND main = 1", (bot_id,)
                    )
                ).fetchone()
                await db.execute("DELETE FROM bot_owner WHERE bot_id = ? AND main = 0", (bot_id,))
                await db.executemany(
                    "INSERT OR IGNORE INTO bot_owner (bot_id, owner, main) VALUES (?, ?, 0)",
                    [
                        (bot_id, int(owner.user.id))
                        for owner in bot.owners
                        if not owner.main and (main_owner is None or int(owner.user.id) != main_owner["owner"])
                    ],
                )
                await self._write_bot_children(db, bot_id, bot)
        except sqlite3.Error as e:
            logger.exception(
                "Failed to edit bot",
                extra=get_context_extra(target_id=bot_id, target_type="bot", action="edit_bot"),
            )
            raise StoreError(str(e)) from e

    async def transfer_ownership(self, bot_id: int, new_owner_id: int) -> None:
        """Demote the current main owner to a regular owner and promote ``new_owner_id``."""
        try:
            async with self.transaction() as db:
                await db.execute(
                    "UPDATE bot_owner SET main = 0 WHERE bot_id = ? AND main = 1", (bot_id,)
                )
                await db.execute(
                    "DELETE FROM bot_owner WHERE bot_id = ? AND owner = ?", (bot_id, new_owner_id)
                )
                await db.execute(
                    "INSERT INTO bot_owner (bot_id, owner, main) VALUES (?, ?, 1)",
                    (bot_id, new_owner_id),
                )
        except sqlite3.Error as e:
            logger.exception(
                "Failed to transfer bot ownership",
                extra=get_context_extra(target_id=bot_id, target_type="bot", action="transfer"),
            )
            raise StoreError(str(e)) from e

    async def delete_bot(self, bot_id: int) -> None:
        try:
            async with self.transaction() as db:
                await db.execute("DELETE FROM bots WHERE bot_id = ?", (bot_id,))
                await db.execute(
                    "DELETE FROM vanity WHERE type = ? AND redirect = ?",
                    (VANITY_TYPES[TargetType.BOT], bot_id),
                )
        except sqlite3.Error as e:
            logger.exception(
                "Failed to delete bot",
                extra=get_context_extra(target_id=bot_id, target_type="bot", action="delete_bot"),
            )
            raise StoreError(str(e)) from e

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    async def get_server_user(self, guild_id: int) -> User:
        row = await self.fetch_one(
            "SELECT guild_id, name_cached, avatar_cached FROM servers WHERE guild_id = ?",
            (guild_id,),
        )
        if row is None:
            return User(id="", username="Unknown Server")
        return User(
            id=str(row["guild_id"]),
            username=row["name_cached"],
            avatar=row["avatar_cached"],
            bot=False,
        )

    async def get_server(self, server_id: int) -> Server | None:
        row = await self.fetch_one("SELECT * FROM servers WHERE guild_id = ?", (server_id,))
        if row is None:
            return None

        vocabulary = {tag.id: tag for tag in await self.server_list_tags()}
        tags = []
        for tag_id in parse_json_list(row["tags"]):
            tag = vocabulary.get(tag_id)
            if tag is None:
                logger.warning(
                    "Server references unknown tag",
                    extra=get_context_extra(target_id=server_id, target_type="server", tag=tag_id),
                )
                continue
            tags.append(tag)

        return Server(
            user=await self.get_server_user(server_id),
            description=row["description"],
            long_description=row["long_description"],
            vanity=await self.get_vanity_for(TargetType.SERVER, server_id),
            tags=tags,
            owner=await self.get_user(row["owner_id"]) if row["owner_id"] is not None else None,
            banner_card=row["banner_card"],
            banner_page=row["banner_page"],
            state=_state(row["state"]),
            flags=parse_json_list(row["flags"]),
            guild_count=row["guild_count"],
            votes=row["votes"],
            created_at=_timestamp(row["created_at"]),
        )

    # ------------------------------------------------------------------
    # Packs
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_pack_id(pack_id: str) -> str:
        try:
            return str(uuid.UUID(str(pack_id)))
        except ValueError as e:
            raise PackCheckError(PackCheckCode.INVALID_PACK_ID) from e

    async def resolve_pack_bots(self, bot_ids: list[int]) -> list[ResolvedPackBot]:
        """Resolve ids to bots, silently skipping ids with no bot row."""
        resolved = []
        for bot_id in bot_ids:
            description = await self.fetch_value(
                "SELECT description FROM bots WHERE bot_id = ?", (bot_id,)
            )
            if description is None:
                continue
            resolved.append(
                ResolvedPackBot(
                    user=await self.get_user_or_placeholder(bot_id), description=description
                )
            )
        return resolved

    async def _pack_from_row(self, row: Row) -> BotPack:
        return BotPack(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            icon=row["icon"],
            banner=row["banner"] or DEFAULT_BANNER,
            owner=await self.get_user_or_placeholder(row["owner"]),
            created_at=_timestamp(row["created_at"]),
            resolved_bots=await self.resolve_pack_bots(parse_json_list(row["bots"])),
        )

    async def get_pack(self, pack_id: str) -> BotPack | None:
        row = await self.fetch_one(
            "SELECT * FROM bot_packs WHERE id = ?", (self._parse_pack_id(pack_id),)
        )
        return await self._pack_from_row(row) if row else None

    async def get_pack_owner(self, pack_id: str) -> int | None:
        return await self.fetch_value(
            "SELECT owner FROM bot_packs WHERE id = ?", (self._parse_pack_id(pack_id),)
        )

    @staticmethod
    def _pack_bot_ids(pack: BotPack) -> list[int]:
        ids = []
        for bot in pack.resolved_bots:
            try:
                ids.append(int(bot.user.id))
            except ValueError as e:
                raise PackCheckError(PackCheckCode.INVALID_BOT_ID) from e
        return ids

    async def add_pack(self, pack: BotPack) -> str:
        """Insert a pack and return its new id."""
        pack_id = str(uuid.uuid4())
        bots = self._pack_bot_ids(pack)
        try:
            async with self.transaction() as db:
                await db.execute(
                    """
                    INSERT INTO bot_packs (id, name, description, icon, banner, owner, bots, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, strftime('%s','now'))
                    """,
                    (
                        pack_id, pack.name, pack.description, pack.icon, pack.banner,
                        int(pack.owner.id), encode_json(bots),
                    ),
                )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return pack_id

    async def edit_pack(self, pack: BotPack) -> None:
        pack_id = self._parse_pack_id(pack.id)
        bots = self._pack_bot_ids(pack)
        try:
            async with self.transaction() as db:
                await db.execute(
                    """
                    UPDATE bot_packs SET name = ?, description = ?, icon = ?, banner = ?, bots = ?
                    WHERE id = ?
                    """,
                    (pack.name, pack.description, pack.icon, pack.banner, encode_json(bots), pack_id),
                )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    async def delete_pack(self, pack_id: str) -> None:
        try:
            await self.execute(
                "DELETE FROM bot_packs WHERE id = ?", (self._parse_pack_id(pack_id),)
            )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    # ------------------------------------------------------------------
    # Index and search
    # ------------------------------------------------------------------

    async def _index_bot_rows(self, rows: list[Row], default_state: State) -> list[IndexBot]:
        return [
            IndexBot(
                guild_count=row["guild_count"],
                description=row["description"],
                banner=row["banner_card"] or DEFAULT_BANNER,
                votes=row["votes"],
                state=_state(row["state"], default_state),
                flags=parse_json_list(row["flags"]),
                created_at=_timestamp(row["created_at"]),
                user=await self.get_user_or_placeholder(row["bot_id"]),
            )
            for row in rows
        ]

    async def _index_server_rows(self, rows: list[Row], default_state: State) -> list[IndexBot]:
        return [
            IndexBot(
                guild_count=row["guild_count"],
                description=row["description"],
                banner=row["banner_card"] or DEFAULT_BANNER,
                votes=row["votes"],
                state=_state(row["state"], default_state),
                flags=parse_json_list(row["flags"]),
                created_at=_timestamp(row["created_at"]),
                user=await self.get_server_user(row["guild_id"]),
            )
            for row in rows
        ]

    async def index_bots(self, state: State) -> list[IndexBot]:
        rows = await self.fetch_all(
            "SELECT * FROM bots WHERE state = ? ORDER BY votes DESC LIMIT ?",
            (int(state), INDEX_LIMIT),
        )
        return await self._index_bot_rows(rows, state)

    async def index_new_bots(self) -> list[IndexBot]:
        rows = await self.fetch_all(
            "SELECT * FROM bots WHERE state = ? ORDER BY created_at DESC LIMIT ?",
            (int(State.APPROVED), INDEX_LIMIT),
        )
        return await self._index_bot_rows(rows, State.APPROVED)

    async def index_servers(self, state: State) -> list[IndexBot]:
        rows = await self.fetch_all(
            "SELECT * FROM servers WHERE state = ? ORDER BY votes DESC LIMIT ?",
            (int(state), INDEX_LIMIT),
        )
        return await self._index_server_rows(rows, state)

    async def index_new_servers(self) -> list[IndexBot]:
        rows = await self.fetch_all(
            "SELECT * FROM servers WHERE state = ? ORDER BY created_at DESC LIMIT ?",
            (int(State.APPROVED), INDEX_LIMIT),
        )
        return await self._index_server_rows(rows, State.APPROVED)

    async def search(self, query: SearchQuery) -> Search:
        pattern = f"%{query.q}%"

        bot_rows = await self.fetch_all(
            """
            SELECT DISTINCT bots.* FROM bots
            LEFT JOIN bot_owner ON bot_owner.bot_id = bots.bot_id
            LEFT JOIN users ON users.user_id = bots.bot_id
            WHERE (bots.description LIKE :q OR bots.long_description LIKE :q
                   OR users.username LIKE :q OR CAST(bot_owner.owner AS TEXT) LIKE :q)
              AND bots.state IN (:approved, :certified)
              AND bots.guild_count >= :gc_from
              AND (:gc_to = -1 OR bots.guild_count <= :gc_to)
            ORDER BY bots.votes DESC, bots.guild_count DESC
            LIMIT :limit
            """,
            {
                "q": pattern,
                "approved": int(State.APPROVED),
                "certified": int(State.CERTIFIED),
                "gc_from": query.gc_from,
                "gc_to": query.gc_to,
                "limit": SEARCH_BOTS_LIMIT,
            },
        )

        server_rows = await self.fetch_all(
            """
            SELECT * FROM servers
            WHERE (description LIKE :q OR long_description LIKE :q OR name_cached LIKE :q)
              AND state = :approved
            ORDER BY votes DESC, guild_count DESC
            LIMIT :limit
            """,
            {"q": pattern, "approved": int(State.APPROVED), "limit": SEARCH_SERVERS_LIMIT},
        )

        profile_rows = await self.fetch_all(
            """
            SELECT DISTINCT users.user_id, users.description FROM users
            LEFT JOIN bot_owner ON bot_owner.owner = users.user_id
            LEFT JOIN bots ON bots.bot_id = bot_owner.bot_id
            LEFT JOIN users AS bot_users ON bot_users.user_id = bots.bot_id
            WHERE users.is_bot = 0 AND (
                users.username LIKE :q
                OR (bots.state IN (:approved, :certified)
                    AND (bot_users.username LIKE :q OR bots.description LIKE :q
                         OR CAST(bots.bot_id AS TEXT) LIKE :q))
            )
            LIMIT :limit
            """,
            {
                "q": pattern,
                "approved": int(State.APPROVED),
                "certified": int(State.CERTIFIED),
                "limit": SEARCH_PROFILES_LIMIT,
            },
        )

        pack_rows = await self.fetch_all(
            """
            SELECT bot_packs.* FROM bot_packs
            LEFT JOIN users AS owners ON owners.user_id = bot_packs.owner
            WHERE bot_packs.name LIKE :q
               OR CAST(bot_packs.owner AS TEXT) LIKE :q
               OR owners.username LIKE :q
               OR EXISTS (
                    SELECT 1 FROM json_each(bot_packs.bots) AS pack_bot
                    LEFT JOIN users AS bot_users ON bot_users.user_id = pack_bot.value
                    WHERE CAST(pack_bot.value AS TEXT) LIKE :q OR bot_users.username LIKE :q
               )
            ORDER BY bot_packs.created_at DESC
            """,
            {"q": pattern},
        )

        return Search(
            bots=await self._index_bot_rows(bot_rows, State.APPROVED),
            servers=await self._index_server_rows(server_rows, State.APPROVED),
            profiles=[
                SearchProfile(
                    banner=DEFAULT_BANNER,
                    description=row["description"],
                    user=await self.get_user_or_placeholder(row["user_id"]),
                )
                for row in profile_rows
            ],
            packs=[await self._pack_from_row(row) for row in pack_rows],
            tags=SearchTags(bots=await self.bot_list_tags(), servers=await self.server_list_tags()),
        )
