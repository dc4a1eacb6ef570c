"""
Cached read paths: index, search, mini-index and detail pages.

Every read goes through a ``TTLCache``; a miss loads from the store and
inserts the result. Writes elsewhere never touch these caches, so a read may
be stale until its entry expires.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from helpers.constants import INVITE_URL_TEMPLATE
from services.cache_service import search_cache_key
from services.models import Bot, Index, MiniIndex, Search, SearchQuery, Server, State, TargetType, Vanity

if TYPE_CHECKING:
    from services.cache_service import CacheService
    from services.listing_store import ListingStore


def invite_link(client_id: str, invite: str | None) -> str:
    """Render the invite a visitor is sent to."""
    if not invite:
        return INVITE_URL_TEMPLATE.format(client_id=client_id, permissions=0)
    if invite.startswith("P:"):
        return INVITE_URL_TEMPLATE.format(client_id=client_id, permissions=invite[2:])
    return invite


class ListingService:
    def __init__(self, store: ListingStore, caches: CacheService) -> None:
        self.store = store
        self.caches = caches

    async def index(self, target_type: TargetType) -> Index:
        async def load() -> Index:
            if target_type is TargetType.SERVER:
                return Index(
                    new=await self.store.index_new_servers(),
                    top_voted=await self.store.index_servers(State.APPROVED),
                    certified=await self.store.index_servers(State.CERTIFIED),
                    tags=await self.store.server_list_tags(),
                )
            return Index(
                new=await self.store.index_new_bots(),
                top_voted=await self.store.index_bots(State.APPROVED),
                certified=await self.store.index_bots(State.CERTIFIED),
                tags=await self.store.bot_list_tags(),
                features=await self.store.bot_features(),
            )

        return await self.caches.index.get_or_load(("index", target_type.value), load)

    async def mini_index(self) -> MiniIndex:
        async def load() -> MiniIndex:
            return MiniIndex(
                tags=await self.store.bot_list_tags(),
                features=await self.store.bot_features(),
            )

        return await self.caches.index.get_or_load(("mini_index",), load)

    async def search(self, query: SearchQuery) -> Search:
        key = search_cache_key(query)
        normalized = SearchQuery(q=key[0], gc_from=query.gc_from, gc_to=query.gc_to)

        async def load() -> Search:
            return await self.store.search(normalized)

        return await self.caches.search.get_or_load(key, load)

    async def get_bot(self, bot_id: int) -> Bot | None:
        """Public bot page; the invite is rendered into a usable link."""
        key = ("bot", bot_id)
        cached = self.caches.detail.get(key)
        if cached is not None:
            return cached

        bot = await self.store.get_bot(bot_id)
        if bot is None:
            return None
        bot.invite = invite_link(bot.client_id or bot.user.id, bot.invite)
        self.caches.detail.set(key, bot)
        return bot

    async def get_server(self, server_id: int) -> Server | None:
        key = ("server", server_id)
        cached = self.caches.detail.get(key)
        if cached is not None:
            return cached

        server = await self.store.get_server(server_id)
        if server is not None:
            self.caches.detail.set(key, server)
        return server

    async def resolve_code(self, code: str) -> Vanity | None:
        return await self.store.resolve_vanity(code)
