"""
Canonical schema definition (version=1).

Schema definitions for the listing database. This module centralizes
all table creation logic to ensure consistency and avoid duplication.
"""

import aiosqlite

from utils.logging import get_logger

logger = get_logger(__name__)


async def init_schema(db: aiosqlite.Connection) -> None:
    """
    Initialize the database schema with all required tables.

    Args:
        db: An open database connection
    """
    await db.execute("PRAGMA foreign_keys=ON")

    # Schema migrations tracking (single canonical version)
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_at INTEGER DEFAULT (strftime('%s','now'))
        )
        """
    )

    # Canonical user records (humans and bot accounts alike)
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            user_id INTEGER PRIMARY KEY,
            username TEXT NOT NULL DEFAULT '',
            avatar TEXT NOT NULL DEFAULT '',
            disc TEXT NOT NULL DEFAULT '0000',
            is_bot INTEGER NOT NULL DEFAULT 0,
            status INTEGER NOT NULL DEFAULT 0,
            api_token TEXT,
            description TEXT NOT NULL DEFAULT '',
            experiments TEXT NOT NULL DEFAULT '[]'
        )
        """
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_users_username ON users(username)"
    )

    # Global vocabularies
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS bot_list_tags (
            id TEXT PRIMARY KEY,
            icon TEXT NOT NULL DEFAULT ''
        )
        """
    )
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS server_tags (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL DEFAULT '',
            iconify_data TEXT NOT NULL DEFAULT '',
            owner_guild INTEGER
        )
        """
    )
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS features (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL DEFAULT '',
            viewed_as TEXT NOT NULL DEFAULT '',
            description TEXT NOT NULL DEFAULT ''
        )
        """
    )

    # Bots
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS bots (
            bot_id INTEGER PRIMARY KEY,
            client_id INTEGER NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            long_description TEXT NOT NULL DEFAULT '',
            prefix TEXT,
            library TEXT NOT NULL DEFAULT '',
            invite TEXT,
            website TEXT,
            donate TEXT,
            github TEXT,
            privacy_policy TEXT,
            banner_card TEXT,
            banner_page TEXT,
            state INTEGER NOT NULL DEFAULT 1,
            flags TEXT NOT NULL DEFAULT '[]',
            guild_count INTEGER NOT NULL DEFAULT 0,
            votes INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER DEFAULT (strftime('%s','now'))
        )
        """
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_bots_state_votes ON bots(state, votes)"
    )

    # Owner list; at most one main owner per bot
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS bot_owner (
            bot_id INTEGER NOT NULL REFERENCES bots(bot_id) ON DELETE CASCADE,
            owner INTEGER NOT NULL,
            main INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (bot_id, owner)
        )
        """
    )
    await db.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_bot_owner_main ON bot_owner(bot_id) WHERE main = 1"
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_bot_owner_owner ON bot_owner(owner)"
    )

    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS bot_tags (
            bot_id INTEGER NOT NULL REFERENCES bots(bot_id) ON DELETE CASCADE,
            tag TEXT NOT NULL,
            PRIMARY KEY (bot_id, tag)
        )
        """
    )
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS bot_features (
            bot_id INTEGER NOT NULL REFERENCES bots(bot_id) ON DELETE CASCADE,
            feature TEXT NOT NULL,
            PRIMARY KEY (bot_id, feature)
        )
        """
    )

    # Servers
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS servers (
            guild_id INTEGER PRIMARY KEY,
            name_cached TEXT NOT NULL DEFAULT '',
            avatar_cached TEXT NOT NULL DEFAULT '',
            description TEXT NOT NULL DEFAULT '',
            long_description TEXT NOT NULL DEFAULT '',
            owner_id INTEGER,
            banner_card TEXT,
            banner_page TEXT,
            state INTEGER NOT NULL DEFAULT 0,
            flags TEXT NOT NULL DEFAULT '[]',
            tags TEXT NOT NULL DEFAULT '[]',
            guild_count INTEGER NOT NULL DEFAULT 0,
            votes INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER DEFAULT (strftime('%s','now'))
        )
        """
    )

    # Vanity slugs, globally unique
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS vanity (
            vanity_url TEXT PRIMARY KEY,
            type INTEGER NOT NULL,
            redirect INTEGER NOT NULL
        )
        """
    )
    await db.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_vanity_redirect ON vanity(type, redirect)"
    )

    # Bot packs
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS bot_packs (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            icon TEXT NOT NULL DEFAULT '',
            banner TEXT NOT NULL DEFAULT '',
            owner INTEGER NOT NULL,
            bots TEXT NOT NULL DEFAULT '[]',
            created_at INTEGER DEFAULT (strftime('%s','now'))
        )
        """
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_bot_packs_owner ON bot_packs(owner)"
    )

    # Per-action cooldowns
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS rate_limits (
            action TEXT NOT NULL,
            user_id INTEGER NOT NULL,
            expires_at REAL NOT NULL,
            PRIMARY KEY (action, user_id)
        )
        """
    )

    # Record that the canonical schema has been applied
    await db.execute(
        "INSERT OR IGNORE INTO schema_migrations (version, applied_at) VALUES (1, strftime('%s','now'))"
    )

    await db.commit()

    logger.info("Schema initialization complete")
