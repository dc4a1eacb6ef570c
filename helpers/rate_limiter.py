"""
Per-action, per-user cooldowns backed by the listing store.

A cooldown row holds the absolute expiry time for ``(action, user_id)``.
``get_ratelimit``/``set_ratelimit`` are the plain check and stamp pair;
``try_acquire`` folds both into a single conditional upsert so that at most
one caller per window can win.
"""

import math
import time

from config.config_loader import ConfigLoader
from services.db.repository import BaseRepository
from services.models import RateLimitAction
from utils.logging import get_logger

logger = get_logger(__name__)

# Cooldown length in seconds when config does not override it
DEFAULT_RATE_LIMITS = {
    RateLimitAction.APPEAL: 30,
    RateLimitAction.ROLE_UPDATE: 15,
}


def get_duration(action: RateLimitAction) -> int:
    """Return the configured cooldown for an action."""
    default = DEFAULT_RATE_LIMITS[action]
    value = ConfigLoader.get_nested(f"rate_limits.{action.value}_seconds", default)
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid rate limit config, using default",
            extra={"action": action.value},
        )
        return default


class RateLimiter(BaseRepository):
    async def get_ratelimit(self, action: RateLimitAction, user_id: int) -> int | None:
        """
        Return the seconds left on the cooldown, or None when the user is free.
        """
        now = time.time()
        expires_at = await self.fetch_value(
            "SELECT expires_at FROM rate_limits WHERE action = ? AND user_id = ?",
            (action.value, user_id),
        )
        if expires_at is None or expires_at <= now:
            return None
        return max(1, math.ceil(expires_at - now))

    async def set_ratelimit(self, action: RateLimitAction, user_id: int) -> None:
        """Start (or restart) the cooldown for this user and action."""
        expires_at = time.time() + get_duration(action)
        await self.execute(
            """
            INSERT INTO rate_limits (action, user_id, expires_at) VALUES (?, ?, ?)
            ON CONFLICT(action, user_id) DO UPDATE SET expires_at = excluded.expires_at
            """,
            (action.value, user_id, expires_at),
        )
        logger.debug(
            "Rate limit stamped", extra={"user_id": user_id, "action": action.value}
        )

    async def try_acquire(self, action: RateLimitAction, user_id: int) -> bool:
        """
        Stamp the cooldown only if none is live. Returns True when stamped.

        The check and the stamp happen in one statement, so two concurrent
        callers for the same key cannot both succeed.
        """
        now = time.time()
        changed = await self.execute(
            """
            INSERT INTO rate_limits (action, user_id, expires_at) VALUES (?, ?, ?)
            ON CONFLICT(action, user_id) DO UPDATE SET expires_at = excluded.expires_at
            WHERE rate_limits.expires_at <= ?
            """,
            (action.value, user_id, now + get_duration(action), now),
        )
        if changed == 0:
            logger.info(
                "Rate limit hit.", extra={"user_id": user_id, "action": action.value}
            )
            return False
        return True

    async def reset(self, action: RateLimitAction | None = None, user_id: int | None = None) -> None:
        if action is None and user_id is None:
            await self.execute("DELETE FROM rate_limits")
        elif user_id is None:
            await self.execute("DELETE FROM rate_limits WHERE action = ?", (action.value,))
        elif action is None:
            await self.execute("DELETE FROM rate_limits WHERE user_id = ?", (user_id,))
        else:
            await self.execute(
                "DELETE FROM rate_limits WHERE action = ? AND user_id = ?",
                (action.value, user_id),
            )

    async def cleanup_expired(self) -> int:
        """Drop cooldown rows that have already elapsed."""
        removed = await self.execute(
            "DELETE FROM rate_limits WHERE expires_at <= ?", (time.time(),)
        )
        logger.debug("Cleaned up expired rate-limiting data.", extra={"removed": removed})
        return removed
