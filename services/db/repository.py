"""
Shared query helpers for the listing store and the rate limiter.

Every repository is bound to one ``Database`` and opens a short-lived
connection per call; multi-statement writes go through ``transaction()``.
Stored lists (tags, owners, experiments) are JSON text columns, decoded with
the helpers at the bottom of this module.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from aiosqlite import Row

    from .database import Database

T = TypeVar("T")

# Positional (tuple) or named (dict) query parameters
Params = tuple[Any, ...] | dict[str, Any]


class BaseRepository:
    """
    Query helpers bound to one listing database.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    @asynccontextmanager
    async def transaction(self):
        """
        Context manager for explicit transaction control.

        Usage:
            async with self.transaction() as db:
                await db.execute("INSERT ...", params)
                await db.execute("UPDATE ...", params)
                # Auto-commits on success, rolls back on exception
        """
        async with self.database.get_connection() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def fetch_one(
        self,
        query: str,
        params: Params = (),
    ) -> Row | None:
        """Execute a query and return a single row."""
        async with self.database.get_connection() as db:
            cursor = await db.execute(query, params)
            return await cursor.fetchone()

    async def fetch_all(
        self,
        query: str,
        params: Params = (),
    ) -> list[Row]:
        """Execute a query and return all rows (empty list if none found)."""
        async with self.database.get_connection() as db:
            cursor = await db.execute(query, params)
            return list(await cursor.fetchall())

    async def fetch_value(
        self,
        query: str,
        params: Params = (),
        default: T = None,
    ) -> T | Any:
        """Execute a query and return a single value from the first column."""
        row = await self.fetch_one(query, params)
        return row[0] if row else default

    async def execute(
        self,
        query: str,
        params: Params = (),
    ) -> int:
        """
        Execute a single write query (INSERT, UPDATE, DELETE) and commit.

        Returns:
            Number of rows affected
        """
        async with self.database.get_connection() as db:
            cursor = await db.execute(query, params)
            await db.commit()
            return cursor.rowcount


# -----------------------------------------------------------------------------
# JSON Parsing Utilities
# -----------------------------------------------------------------------------


def parse_json_list(value: str | None, default: list | None = None) -> list:
    """
    Safely parse a JSON string into a list.

    Args:
        value: JSON string or None
        default: Default value if parsing fails (default: empty list)

    Returns:
        Parsed list or default
    """
    if default is None:
        default = []
    if not value:
        return default
    try:
        result = json.loads(value)
        return result if isinstance(result, list) else default
    except (json.JSONDecodeError, TypeError):
        return default


def encode_json(value: Any) -> str:
    return json.dumps(value)


# -----------------------------------------------------------------------------
# Snowflake ID Utilities
# -----------------------------------------------------------------------------


def parse_snowflake(value: Any) -> int | None:
    """
    Parse a Discord snowflake ID from various input types.

    Handles strings, ints, and None gracefully. Negative values are rejected.

    Args:
        value: Raw ID value (str, int, or None)

    Returns:
        Integer ID or None if invalid
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        result = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return result if result >= 0 else None


__all__ = [
    "BaseRepository",
    "encode_json",
    "parse_json_list",
    "parse_snowflake",
]
