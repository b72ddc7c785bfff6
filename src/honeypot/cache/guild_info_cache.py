"""Process-local cache of the guild metadata needed on every honeypot trigger.

Each trigger needs the guild owner (owners cannot be moderated) and the guild
name / vanity invite for the DM. Entries are written from guild create and
update events and removed when the bot leaves the guild. A miss falls back to
a live fetch bounded by a short timeout.

The cache sits behind get/set/invalidate so it can be replaced by a shared
cache if the bot is ever sharded across processes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import discord

from honeypot.configuration.app_configuration import app_config
from honeypot.datatypes.honeypot_config import GuildID, UserID
from honeypot.util.logger import get_logger

logger = get_logger("guild_info_cache")


@dataclass(slots=True, frozen=True)
class GuildInfo:
    name: str
    owner_id: Optional[UserID]
    vanity_code: Optional[str] = None
    locale: Optional[str] = None

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildInfo":
        locale = getattr(guild, "preferred_locale", None)
        return cls(
            name=guild.name,
            owner_id=guild.owner_id,
            vanity_code=getattr(guild, "vanity_url_code", None),
            locale=str(locale) if locale else None,
        )

    @property
    def display_name(self) -> str:
        """Guild name, linked to its vanity invite when it has one."""
        if self.vanity_code:
            return f"[{self.name}](https://discord.gg/{self.vanity_code})"
        return self.name


GuildInfoFetcher = Callable[[GuildID], Awaitable[Optional[GuildInfo]]]


class GuildInfoCache:
    """Mapping of guild id to :class:`GuildInfo` with a live-fetch fallback."""

    def __init__(self, fetch_timeout: float = 1.5) -> None:
        self._entries: Dict[int, GuildInfo] = {}
        self._fetcher: Optional[GuildInfoFetcher] = None
        self.fetch_timeout = fetch_timeout

    def set_fetcher(self, fetcher: Optional[GuildInfoFetcher]) -> None:
        """Wire the coroutine used to fetch guild info on a cache miss."""
        self._fetcher = fetcher

    def get(self, guild_id: GuildID) -> Optional[GuildInfo]:
        return self._entries.get(int(guild_id))

    def set(self, guild_id: GuildID, info: GuildInfo) -> None:
        self._entries[int(guild_id)] = info

    def update_from_guild(self, guild: discord.Guild) -> GuildInfo:
        info = GuildInfo.from_guild(guild)
        self.set(guild.id, info)
        return info

    def invalidate(self, guild_id: GuildID) -> None:
        self._entries.pop(int(guild_id), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def resolve(self, guild_id: GuildID) -> Optional[GuildInfo]:
        """Return cached info, fetching (with a timeout) and caching it on a miss."""
        cached = self.get(guild_id)
        if cached is not None:
            return cached

        if self._fetcher is None:
            logger.warning("[GUILD INFO CACHE] Miss for guild %s and no fetcher configured", guild_id)
            return None

        try:
            info = await asyncio.wait_for(self._fetcher(guild_id), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            logger.warning("[GUILD INFO CACHE] Fetching guild %s timed out after %.1fs", guild_id, self.fetch_timeout)
            return None
        except discord.HTTPException as exc:
            logger.warning("[GUILD INFO CACHE] Fetching guild %s failed: %s", guild_id, exc)
            return None

        if info is not None:
            self.set(guild_id, info)
        return info


# Module-level singleton
guild_info_cache = GuildInfoCache(fetch_timeout=app_config.guild_info_timeout)
