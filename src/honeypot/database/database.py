"""
Database lifecycle coordination.

Opens the shared connection, creates the schema and closes everything down
on shutdown. Query code lives in the repositories; this module only owns the
lifecycle.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from honeypot.configuration.app_configuration import app_config
from honeypot.database.db_connection import db_connection
from honeypot.database.db_schema import SchemaManager
from honeypot.util.logger import get_logger

logger = get_logger("database")


class Database:
    """
    Central database coordinator.

    Lifecycle:
        1. Call initialize() at program startup
        2. Repositories use ``db_connection`` for reads and transactions
        3. Call shutdown() at program end
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path
        self._initialized = False

    async def initialize(self, db_path: Optional[Path] = None) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        path = db_path or self.db_path or app_config.database_path
        try:
            await db_connection.open(path)
            async with db_connection.transaction() as conn:
                await SchemaManager.initialize_schema(conn)
        except Exception as e:
            logger.error("[DATABASE] Database initialization failed: %s", e)
            await db_connection.close()
            return False

        self.db_path = path
        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", path)
        return True

    async def shutdown(self) -> None:
        """Close the shared connection."""
        if not self._initialized:
            return

        await db_connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")


# Global Database instance
database = Database()
