"""Recent message ids per (guild, user), kept for bulk cleanup after a softban.

A softban relies on the platform purging the user's recent history before
the unban lands. Messages the purge misses can still be removed from here.
Entries expire after the retention window and each user keeps a bounded
number of messages.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Deque, Dict, List, Optional

from honeypot.configuration.app_configuration import app_config
from honeypot.datatypes.honeypot_config import ChannelID, GuildID, MessageID, UserID
from honeypot.util.logger import get_logger

logger = get_logger("message_cache")


@dataclass(slots=True, frozen=True)
class CachedMessage:
    guild_id: GuildID
    channel_id: ChannelID
    message_id: MessageID
    user_id: UserID
    created_at: datetime


class RecentMessageCache:
    """In-memory cache with TTL, keyed by guild, then author."""

    def __init__(self, retention_seconds: float = 3600, max_per_user: int = 50):
        self.retention_seconds = retention_seconds
        self.max_per_user = max_per_user
        self._guilds: Dict[int, Dict[int, Deque[CachedMessage]]] = {}

    def add(
        self,
        guild_id: GuildID,
        channel_id: ChannelID,
        message_id: MessageID,
        user_id: UserID,
        created_at: Optional[datetime] = None,
    ) -> None:
        users = self._guilds.setdefault(int(guild_id), {})
        bucket = users.setdefault(int(user_id), deque(maxlen=self.max_per_user))
        if any(entry.message_id == message_id for entry in bucket):
            return
        bucket.append(CachedMessage(
            guild_id=int(guild_id),
            channel_id=int(channel_id),
            message_id=int(message_id),
            user_id=int(user_id),
            created_at=created_at or datetime.now(timezone.utc),
        ))

    def recent_for_user(self, guild_id: GuildID, user_id: UserID, since: Optional[datetime] = None) -> List[CachedMessage]:
        """Messages by ``user_id`` in ``guild_id`` newer than ``since`` (default: the retention window)."""
        cutoff = since or datetime.now(timezone.utc) - timedelta(seconds=self.retention_seconds)
        bucket = self._guilds.get(int(guild_id), {}).get(int(user_id))
        if not bucket:
            return []
        return [entry for entry in bucket if entry.created_at >= cutoff]

    def remove_message(self, guild_id: GuildID, message_id: MessageID) -> None:
        users = self._guilds.get(int(guild_id))
        if not users:
            return
        for user_id, bucket in list(users.items()):
            kept = [entry for entry in bucket if entry.message_id != int(message_id)]
            if len(kept) != len(bucket):
                self._replace(int(guild_id), user_id, kept)
                return

    def remove_user(self, guild_id: GuildID, user_id: UserID) -> None:
        self._replace(int(guild_id), int(user_id), [])

    def remove_guild(self, guild_id: GuildID) -> None:
        self._guilds.pop(int(guild_id), None)

    def prune(self, now: Optional[datetime] = None) -> int:
        """Drop expired entries and empty buckets; return how many messages were dropped."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=self.retention_seconds)
        dropped = 0
        for guild_id, users in list(self._guilds.items()):
            for user_id, bucket in list(users.items()):
                kept = [entry for entry in bucket if entry.created_at >= cutoff]
                dropped += len(bucket) - len(kept)
                self._replace(guild_id, user_id, kept)
        if dropped:
            logger.debug("[MESSAGE CACHE] Pruned %d expired messages", dropped)
        return dropped

    def _replace(self, guild_id: int, user_id: int, entries: List[CachedMessage]) -> None:
        users = self._guilds.get(guild_id)
        if users is None:
            return
        if entries:
            users[user_id] = deque(entries, maxlen=self.max_per_user)
            return
        users.pop(user_id, None)
        if not users:
            del self._guilds[guild_id]

    def __len__(self) -> int:
        return sum(len(bucket) for users in self._guilds.values() for bucket in users.values())


# Module-level singleton
recent_message_cache = RecentMessageCache(
    retention_seconds=app_config.message_cache_retention,
    max_per_user=app_config.message_cache_max_per_user,
)
