"""
Database Helper Module

Provides the connection factory for the listing store using aiosqlite.
Handles per-connection pragmas and schema initialization.
"""

import asyncio
import sqlite3
from contextlib import asynccontextmanager

import aiosqlite

from utils.logging import get_logger

from .schema import init_schema

logger = get_logger(__name__)


class Database:
    """
    Connection factory bound to one SQLite file.

    One instance is created at startup and owned by the application
    context; every repository receives it explicitly.
    """

    def __init__(self, db_path: str = "listing.db") -> None:
        self.db_path = db_path
        self._lock = asyncio.Lock()  # Ensures that only one initialization happens
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        async with self._lock:
            if self._initialized:
                return
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("PRAGMA foreign_keys=ON")
                await init_schema(db)
            self._initialized = True
            logger.info("Database initialized.", extra={"db_path": self.db_path})

    @asynccontextmanager
    async def get_connection(self):
        """
        Get a connection to the database with optimized settings.

        Usage:
            async with database.get_connection() as db:
                await db.execute("SELECT * FROM bots")
        """
        if not self._initialized:
            await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("PRAGMA busy_timeout=5000")
            await db.execute("PRAGMA foreign_keys=ON")
            try:
                await db.execute("PRAGMA journal_mode=WAL")
            except sqlite3.OperationalError as exc:
                # WAL transition can fail briefly if another writer holds a lock; retry once
                if "database is locked" in str(exc).lower():
                    await asyncio.sleep(0.05)
                    await db.execute("PRAGMA journal_mode=WAL")
                else:
                    raise
            await db.execute("PRAGMA synchronous=NORMAL")
            db.row_factory = aiosqlite.Row
            yield db

    async def health_check(self) -> dict:
        """Return a small status dict for the health endpoint."""
        try:
            async with self.get_connection() as db:
                cursor = await db.execute("SELECT MAX(version) FROM schema_migrations")
                row = await cursor.fetchone()
        except (sqlite3.Error, OSError) as exc:
            logger.warning("Database health check failed", extra={"error": str(exc)})
            return {"status": "error", "error": str(exc)}
        return {"status": "ok", "schema_version": row[0] if row else None}
