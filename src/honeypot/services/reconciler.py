"""
Lifecycle reconciler.

Keeps stored honeypot configuration pointing only at live Discord objects:

- guild create: first-contact setup (find or create the channel, post the
  warning message, persist a row even when setup only partly worked)
- guild update: refresh cached guild info
- guild remove: drop the row and every per-guild cache entry
- channel / message delete: compare-and-clear the stored references
"""

from __future__ import annotations

from typing import Iterable, Optional

import discord

from honeypot.cache.guild_info_cache import GuildInfoCache, guild_info_cache
from honeypot.cache.message_cache import RecentMessageCache, recent_message_cache
from honeypot.configuration.app_configuration import app_config
from honeypot.datatypes.honeypot_config import (
    ChannelID,
    GuildConfig,
    GuildID,
    HoneypotAction,
    MessageID,
)
from honeypot.services.discord_api import DiscordAPI
from honeypot.settings.honeypot_config_store import HoneypotConfigStore, honeypot_config_store
from honeypot.ui import messages
from honeypot.util.logger import get_logger

logger = get_logger("reconciler")

SETUP_REASON = "Honeypot setup"


class LifecycleReconciler:
    def __init__(
        self,
        api: DiscordAPI,
        store: HoneypotConfigStore = honeypot_config_store,
        guild_cache: GuildInfoCache = guild_info_cache,
        message_cache: RecentMessageCache = recent_message_cache,
    ) -> None:
        self.api = api
        self.store = store
        self.guild_cache = guild_cache
        self.message_cache = message_cache

    # ------------------------------------------------------------------
    # Guild lifecycle
    # ------------------------------------------------------------------

    async def on_guild_create(self, guild: discord.Guild) -> GuildConfig:
        """Cache guild info and run first-contact setup for unknown guilds.

        A guild that already has a stored configuration is left untouched.
        """
        info = self.guild_cache.update_from_guild(guild)

        existing = await self.store.get(guild.id)
        if existing is not None:
            return existing

        async with self.store.mutation_lock(guild.id):
            existing = await self.store.get(guild.id)
            if existing is not None:
                return existing
            config = await self._initial_setup(guild.id, info.locale)
            await self.store.set(config)

        logger.info(
            "[RECONCILER] Set up guild '%s' (%s): channel=%s message=%s",
            guild.name, guild.id, config.honeypot_channel_id, config.honeypot_message_id,
        )

        if config.honeypot_message_id is None:
            await self._post_setup_instructions(guild.id, info.locale)
        return config

    async def _initial_setup(self, guild_id: GuildID, locale: Optional[str]) -> GuildConfig:
        action = HoneypotAction.parse(app_config.default_action)
        config = GuildConfig(guild_id=guild_id, action=action)

        name = app_config.setup_channel_name
        try:
            channel_id = await self.api.find_text_channel(guild_id, name)
            if channel_id is None:
                channel_id = await self.api.create_text_channel(guild_id, name, reason=SETUP_REASON)
        except discord.HTTPException as exc:
            logger.warning("[RECONCILER] Could not find or create #%s in guild %s: %s", name, guild_id, exc)
            return config

        config = config.with_changes(honeypot_channel_id=channel_id)
        body = messages.render_warning_message(0, action, locale, channel_id=channel_id)
        try:
            message_id = await self.api.post_deduplicated(channel_id, body)
        except discord.HTTPException as exc:
            logger.warning("[RECONCILER] Could not post warning message in guild %s: %s", guild_id, exc)
            return config

        return config.with_changes(honeypot_message_id=message_id)

    async def _post_setup_instructions(self, guild_id: GuildID, locale: Optional[str]) -> None:
        try:
            channel_id = await self.api.system_channel_id(guild_id)
            if channel_id is None:
                return
            await self.api.send_message(channel_id, messages.render_setup_instructions(locale))
        except discord.HTTPException as exc:
            logger.debug("[RECONCILER] Could not post setup instructions in guild %s: %s", guild_id, exc)

    async def on_guild_update(self, guild: discord.Guild) -> None:
        self.guild_cache.update_from_guild(guild)

    async def on_guild_remove(self, guild_id: GuildID) -> None:
        """True departure only; an outage must never reach this."""
        await self.store.delete(guild_id)
        self.guild_cache.invalidate(guild_id)
        self.message_cache.remove_guild(guild_id)
        logger.info("[RECONCILER] Removed configuration for guild %s", guild_id)

    # ------------------------------------------------------------------
    # Channel and message deletion
    # ------------------------------------------------------------------

    async def on_channel_delete(self, guild_id: GuildID, channel_id: ChannelID) -> None:
        result = await self.store.clear_channel_if_matches(guild_id, channel_id)
        if result.honeypot_cleared:
            logger.info("[RECONCILER] Honeypot channel %s deleted in guild %s", channel_id, guild_id)
        if result.log_cleared:
            logger.info("[RECONCILER] Log channel %s deleted in guild %s", channel_id, guild_id)

    async def on_message_delete(self, guild_id: GuildID, message_id: MessageID) -> None:
        self.message_cache.remove_message(guild_id, message_id)
        if await self.store.clear_message_if_matches(guild_id, message_id):
            logger.info("[RECONCILER] Warning message %s deleted in guild %s", message_id, guild_id)

    async def on_bulk_message_delete(self, guild_id: GuildID, message_ids: Iterable[MessageID]) -> None:
        for message_id in message_ids:
            await self.on_message_delete(guild_id, message_id)
