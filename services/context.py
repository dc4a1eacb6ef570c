"""
Application context

Owns every long-lived object the API needs: the database handle, the store,
the caches, the outbound HTTP clients and the services built on them. One
context is created at startup and handed to request handlers; nothing here
is module-level state.
"""

from __future__ import annotations

import os
from typing import Any

from config.config_loader import ConfigLoader
from helpers.http_helper import HTTPClient
from helpers.rate_limiter import RateLimiter
from services.appeal_service import AppealService
from services.bot_actions import BotActions
from services.cache_service import CacheService
from services.db.database import Database
from services.external_verifier import (
    ApplicationLookup,
    HTTPImageProbe,
    ImageProbe,
    JAPIApplicationLookup,
)
from services.import_adapter import ImportAdapter
from services.listing_service import ListingService
from services.listing_store import ListingStore
from services.notification_service import DiscordNotifier, Notifier
from services.pack_actions import PackActions
from services.submission_validator import SubmissionValidator
from utils.logging import get_logger

logger = get_logger(__name__)


class AppContext:
    """
    Wiring for the listing API.

    Capabilities that reach other services (image probe, application lookup,
    notifier) can be passed in; tests use this to substitute fakes.
    """

    def __init__(
        self,
        database: Database,
        http: HTTPClient | None = None,
        image_probe: ImageProbe | None = None,
        app_lookup: ApplicationLookup | None = None,
        notifier: Notifier | None = None,
        caches: CacheService | None = None,
    ) -> None:
        timeout = int(ConfigLoader.get_nested("verification.timeout_seconds", 10))

        self.database = database
        self.http = http or HTTPClient(timeout=timeout)
        self.store = ListingStore(database)
        self.rate_limiter = RateLimiter(database)
        self.caches = caches or CacheService()

        self.image_probe = image_probe or HTTPImageProbe(self.http, timeout=timeout)
        self.app_lookup = app_lookup or JAPIApplicationLookup(
            self.http,
            api_url=ConfigLoader.get_nested(
                "verification.application_api",
                "https://japi.rest/discord/v1/application/{id}",
            ),
            api_key=os.getenv("JAPI_KEY", ""),
            timeout=timeout,
        )
        self.notifier = notifier or DiscordNotifier()

        self.validator = SubmissionValidator(self.store, self.image_probe, self.app_lookup)
        self.importer = ImportAdapter(self.http)
        self.listings = ListingService(self.store, self.caches)
        self.bots = BotActions(self.store, self.validator, self.notifier, self.importer)
        self.packs = PackActions(self.store, self.validator)
        self.appeals = AppealService(self.store, self.rate_limiter, self.notifier)

    @classmethod
    def create(cls, db_path: str | None = None, **overrides: Any) -> AppContext:
        """Build a context from config; ``DATABASE_PATH`` wins over ``database.path``."""
        path = (
            db_path
            or os.getenv("DATABASE_PATH")
            or ConfigLoader.get_nested("database.path", "listing.db")
        )
        return cls(Database(path), **overrides)

    async def startup(self) -> None:
        await self.database.initialize()
        removed = await self.rate_limiter.cleanup_expired()
        logger.info(
            "Application context started",
            extra={"db_path": self.database.db_path, "expired_rate_limits": removed},
        )

    async def shutdown(self) -> None:
        await self.http.close()
        close = getattr(self.notifier, "close", None)
        if close is not None:
            await close()
        logger.info("Application context stopped")

    async def health(self) -> dict[str, Any]:
        return {
            "database": await self.database.health_check(),
            "http": self.http.get_health_status(),
            "caches": self.caches.stats(),
            "config": ConfigLoader.get_config_status(),
        }
