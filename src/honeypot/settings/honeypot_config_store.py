"""
HoneypotConfigStore: the single owner of honeypot persistence.

Responsibilities:
- Read and fully replace a guild's configuration row
- Compare-and-clear updates used by the lifecycle reconciler, so a deleted
  channel or message never clobbers a concurrent reconfiguration
- Append moderation events and aggregate them into counters
- Per-guild async locks so two guilds can persist concurrently

All raw SQL is delegated to the repositories.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List

from honeypot.database.db_connection import db_connection
from honeypot.datatypes.honeypot_config import (
    ChannelID,
    Experiment,
    GuildConfig,
    GuildID,
    MessageID,
    UserID,
)
from honeypot.repositories import HoneypotConfigRepository, HoneypotEventsRepository
from honeypot.util.logger import get_logger

logger = get_logger("honeypot_config_store")


@dataclass(slots=True, frozen=True)
class ChannelClearResult:
    """Which stored references a channel deletion removed."""

    honeypot_cleared: bool = False
    log_cleared: bool = False

    @property
    def any(self) -> bool:
        return self.honeypot_cleared or self.log_cleared


class HoneypotConfigStore:
    """
    Persistence API for guild configuration and moderation events.

    - No SQL here, only repository calls, transactions and locks.
    - ``set`` is a total, idempotent full-row replace. Partial updates go
      through the ``clear_*_if_matches`` operations instead.
    """

    def __init__(self) -> None:
        self._config_repo = HoneypotConfigRepository()
        self._events_repo = HoneypotEventsRepository()
        self._per_guild_locks: Dict[int, asyncio.Lock] = {}

    def mutation_lock(self, guild_id: GuildID) -> asyncio.Lock:
        """Lock serialising writers (and configuration submissions) for one guild."""
        gid = int(guild_id)
        if gid not in self._per_guild_locks:
            self._per_guild_locks[gid] = asyncio.Lock()
        return self._per_guild_locks[gid]

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def get(self, guild_id: GuildID) -> GuildConfig | None:
        """Return the guild's configuration, or None if it has never been stored."""
        async with db_connection.read() as conn:
            return await self._config_repo.get(conn, guild_id)

    async def set(self, config: GuildConfig) -> None:
        """Persist every column of ``config`` in one atomic upsert."""
        async with db_connection.transaction() as conn:
            await self._config_repo.upsert(conn, config)
        logger.debug(
            "[CONFIG STORE] Persisted guild %s (channel=%s, message=%s, log=%s, action=%s)",
            config.guild_id,
            config.honeypot_channel_id,
            config.honeypot_message_id,
            config.log_channel_id,
            config.action,
        )

    async def delete(self, guild_id: GuildID) -> None:
        """Delete the guild's configuration and, by cascade, its events."""
        async with db_connection.transaction() as conn:
            await self._config_repo.delete(conn, guild_id)
        self._per_guild_locks.pop(int(guild_id), None)
        logger.debug("[CONFIG STORE] Deleted guild %s", guild_id)

    async def clear_channel_if_matches(self, guild_id: GuildID, channel_id: ChannelID) -> ChannelClearResult:
        """
        Null the honeypot channel and message if the stored channel is ``channel_id``,
        and independently null the log channel if it is ``channel_id``.
        """
        async with db_connection.transaction() as conn:
            honeypot_cleared = await self._config_repo.clear_honeypot_channel(conn, guild_id, channel_id)
            log_cleared = await self._config_repo.clear_log_channel(conn, guild_id, channel_id)
        return ChannelClearResult(honeypot_cleared=honeypot_cleared, log_cleared=log_cleared)

    async def clear_message_if_matches(self, guild_id: GuildID, message_id: MessageID) -> bool:
        """Null the tracked warning message if it is ``message_id``."""
        async with db_connection.transaction() as conn:
            return await self._config_repo.clear_message(conn, guild_id, message_id)

    async def guilds_with_experiment(self, experiment: Experiment) -> List[GuildConfig]:
        async with db_connection.read() as conn:
            return await self._config_repo.get_with_experiment(conn, experiment)

    async def guild_count(self) -> int:
        async with db_connection.read() as conn:
            return await self._config_repo.count_guilds(conn)

    # ------------------------------------------------------------------
    # Moderation events
    # ------------------------------------------------------------------

    async def record_event(self, guild_id: GuildID, user_id: UserID) -> int:
        """Append a moderation event and return the guild's new count."""
        async with db_connection.transaction() as conn:
            await self._events_repo.insert(conn, guild_id, user_id)
            return await self._events_repo.count_for_guild(conn, guild_id)

    async def count(self, guild_id: GuildID) -> int:
        async with db_connection.read() as conn:
            return await self._events_repo.count_for_guild(conn, guild_id)

    async def total_count(self) -> int:
        async with db_connection.read() as conn:
            return await self._events_repo.approximate_total(conn)

    async def count_for_user(self, user_id: UserID) -> int:
        async with db_connection.read() as conn:
            return await self._events_repo.count_for_user(conn, user_id)


# Singleton
honeypot_config_store = HoneypotConfigStore()
