"""
Database schema initialization.

Handles creation of tables, indexes, and schema version tracking.
"""

import sqlite3

import aiosqlite
from honeypot.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 3


class SchemaManager:
    """Creates and migrates the honeypot tables."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create or update all database tables and indexes.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._migrate_columns(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS honeypot_config (
                guild_id INTEGER PRIMARY KEY,
                honeypot_channel_id INTEGER,
                honeypot_msg_id INTEGER,
                log_channel_id INTEGER,
                action TEXT NOT NULL DEFAULT 'softban',
                experiments TEXT NOT NULL DEFAULT '',
                custom_warning_text TEXT,
                custom_dm_text TEXT,
                custom_log_text TEXT
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS honeypot_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (guild_id) REFERENCES honeypot_config(guild_id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _migrate_columns(db: aiosqlite.Connection) -> None:
        """Add columns introduced after the first release to older databases."""
        for column in ("experiments TEXT NOT NULL DEFAULT ''", "custom_warning_text TEXT",
                       "custom_dm_text TEXT", "custom_log_text TEXT"):
            try:
                await db.execute(f"ALTER TABLE honeypot_config ADD COLUMN {column}")
                logger.info("[SCHEMA] Added column %s to honeypot_config", column.split()[0])
            except sqlite3.OperationalError:
                pass  # Column already exists

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_honeypot_events_guild ON honeypot_events(guild_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_honeypot_events_user ON honeypot_events(user_id)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
