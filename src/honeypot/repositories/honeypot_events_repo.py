"""Repository for the append-only honeypot_events table."""

from __future__ import annotations

import aiosqlite

from honeypot.datatypes.honeypot_config import GuildID, UserID


class HoneypotEventsRepository:
    """Insert and aggregate moderation events. Rows are never updated."""

    async def insert(self, conn: aiosqlite.Connection, guild_id: GuildID, user_id: UserID) -> None:
        await conn.execute(
            "INSERT INTO honeypot_events (guild_id, user_id) VALUES (?, ?)",
            (int(guild_id), int(user_id)),
        )

    async def count_for_guild(self, conn: aiosqlite.Connection, guild_id: GuildID) -> int:
        async with conn.execute(
            "SELECT COUNT(*) FROM honeypot_events WHERE guild_id = ?", (int(guild_id),)
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def count_for_user(self, conn: aiosqlite.Connection, user_id: UserID) -> int:
        async with conn.execute(
            "SELECT COUNT(*) FROM honeypot_events WHERE user_id = ?", (int(user_id),)
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def approximate_total(self, conn: aiosqlite.Connection) -> int:
        """Highest surviving event id, an approximation of the all-time total."""
        async with conn.execute("SELECT MAX(id) FROM honeypot_events") as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row and row[0] is not None else 0
