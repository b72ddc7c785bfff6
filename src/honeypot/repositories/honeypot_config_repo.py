"""
Repository for the honeypot_config table.

Handles only the honeypot_config table; no joins, no event rows.
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from honeypot.datatypes.honeypot_config import (
    ChannelID,
    Experiment,
    GuildConfig,
    GuildID,
    HoneypotAction,
    MessageID,
    parse_experiments,
    serialize_experiments,
)
from honeypot.util.logger import get_logger

logger = get_logger("honeypot_config_repo")

_COLUMNS = """
    guild_id, honeypot_channel_id, honeypot_msg_id, log_channel_id, action,
    experiments, custom_warning_text, custom_dm_text, custom_log_text
"""


def _optional_int(value) -> Optional[int]:
    return int(value) if value is not None and value != "" else None


def _row_to_config(row) -> GuildConfig:
    return GuildConfig(
        guild_id=int(row[0]),
        honeypot_channel_id=_optional_int(row[1]),
        honeypot_message_id=_optional_int(row[2]),
        log_channel_id=_optional_int(row[3]),
        action=HoneypotAction.parse(row[4]),
        experiments=parse_experiments(row[5]),
        custom_warning_text=row[6] or None,
        custom_dm_text=row[7] or None,
        custom_log_text=row[8] or None,
    )


class HoneypotConfigRepository:
    """CRUD plus conditional clears for the honeypot_config table."""

    async def get(self, conn: aiosqlite.Connection, guild_id: GuildID) -> GuildConfig | None:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM honeypot_config WHERE guild_id = ?",
            (int(guild_id),),
        ) as cursor:
            row = await cursor.fetchone()

        return _row_to_config(row) if row is not None else None

    async def get_with_experiment(self, conn: aiosqlite.Connection, experiment: Experiment) -> List[GuildConfig]:
        """Fetch every config whose experiments column contains the flag."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM honeypot_config WHERE ',' || experiments || ',' LIKE ?",
            (f"%,{experiment.value},%",),
        ) as cursor:
            rows = await cursor.fetchall()

        return [_row_to_config(row) for row in rows]

    async def upsert(self, conn: aiosqlite.Connection, config: GuildConfig) -> None:
        """Insert or fully replace a guild's row."""
        await conn.execute(
            f"""
            INSERT INTO honeypot_config ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                honeypot_channel_id = excluded.honeypot_channel_id,
                honeypot_msg_id     = excluded.honeypot_msg_id,
                log_channel_id      = excluded.log_channel_id,
                action              = excluded.action,
                experiments         = excluded.experiments,
                custom_warning_text = excluded.custom_warning_text,
                custom_dm_text      = excluded.custom_dm_text,
                custom_log_text     = excluded.custom_log_text
            """,
            (
                int(config.guild_id),
                config.honeypot_channel_id,
                config.honeypot_message_id,
                config.log_channel_id,
                config.action.value,
                serialize_experiments(config.experiments),
                config.custom_warning_text,
                config.custom_dm_text,
                config.custom_log_text,
            ),
        )

    async def delete(self, conn: aiosqlite.Connection, guild_id: GuildID) -> None:
        """Delete a guild row (CASCADE removes its events)."""
        await conn.execute("DELETE FROM honeypot_config WHERE guild_id = ?", (int(guild_id),))

    async def clear_honeypot_channel(self, conn: aiosqlite.Connection, guild_id: GuildID, channel_id: ChannelID) -> bool:
        cursor = await conn.execute(
            """
            UPDATE honeypot_config SET honeypot_channel_id = NULL, honeypot_msg_id = NULL
            WHERE guild_id = ? AND honeypot_channel_id = ?
            """,
            (int(guild_id), int(channel_id)),
        )
        return cursor.rowcount > 0

    async def clear_log_channel(self, conn: aiosqlite.Connection, guild_id: GuildID, channel_id: ChannelID) -> bool:
        cursor = await conn.execute(
            "UPDATE honeypot_config SET log_channel_id = NULL WHERE guild_id = ? AND log_channel_id = ?",
            (int(guild_id), int(channel_id)),
        )
        return cursor.rowcount > 0

    async def clear_message(self, conn: aiosqlite.Connection, guild_id: GuildID, message_id: MessageID) -> bool:
        cursor = await conn.execute(
            "UPDATE honeypot_config SET honeypot_msg_id = NULL WHERE guild_id = ? AND honeypot_msg_id = ?",
            (int(guild_id), int(message_id)),
        )
        return cursor.rowcount > 0

    async def count_guilds(self, conn: aiosqlite.Connection) -> int:
        async with conn.execute("SELECT COUNT(*) FROM honeypot_config") as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0
