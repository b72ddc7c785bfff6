"""
discord_api.py
==============

Thin adapter over the py-cord client. Every outbound REST call the honeypot
services make goes through here, addressed by plain integer ids, so the
services can be exercised against a mocked adapter.

Methods raise ``discord.HTTPException`` (or a subclass) on failure; callers
decide what is ignorable.
"""

from __future__ import annotations

from typing import List, Optional

import discord

from honeypot.cache.guild_info_cache import GuildInfo
from honeypot.datatypes.honeypot_config import ChannelID, GuildID, MessageID, UserID
from honeypot.ui.messages import MessageBody
from honeypot.util.logger import get_logger

logger = get_logger("discord_api")

DEDUPE_HISTORY_LIMIT = 50


def message_link(guild_id: GuildID, channel_id: ChannelID, message_id: MessageID) -> str:
    return f"https://discord.com/channels/{guild_id}/{channel_id}/{message_id}"


class DiscordAPI:
    """Id-addressed facade over a ``discord.Bot``."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    @property
    def bot_user_id(self) -> Optional[UserID]:
        user = self.bot.user
        return user.id if user else None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _guild(self, guild_id: GuildID) -> discord.Guild:
        guild = self.bot.get_guild(int(guild_id))
        if guild is None:
            guild = await self.bot.fetch_guild(int(guild_id))
        return guild

    async def _channel(self, channel_id: ChannelID) -> discord.abc.Messageable:
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            channel = await self.bot.fetch_channel(int(channel_id))
        return channel

    async def fetch_guild_info(self, guild_id: GuildID) -> Optional[GuildInfo]:
        """Live guild lookup used on a guild-info cache miss."""
        guild = await self.bot.fetch_guild(int(guild_id))
        return GuildInfo.from_guild(guild) if guild else None

    async def find_text_channel(self, guild_id: GuildID, name: str) -> Optional[ChannelID]:
        guild = await self._guild(guild_id)
        channels = guild.text_channels or [
            channel for channel in await guild.fetch_channels() if isinstance(channel, discord.TextChannel)
        ]
        for channel in channels:
            if channel.name == name:
                return channel.id
        return None

    async def system_channel_id(self, guild_id: GuildID) -> Optional[ChannelID]:
        guild = await self._guild(guild_id)
        channel = guild.system_channel
        return channel.id if channel else None

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    async def create_text_channel(self, guild_id: GuildID, name: str, reason: Optional[str] = None) -> ChannelID:
        guild = await self._guild(guild_id)
        channel = await guild.create_text_channel(name, reason=reason)
        logger.debug("[DISCORD API] Created channel #%s (%s) in guild %s", name, channel.id, guild_id)
        return channel.id

    async def rename_channel(self, channel_id: ChannelID, name: str, reason: Optional[str] = None) -> None:
        channel = await self._channel(channel_id)
        await channel.edit(name=name, reason=reason)

    async def bot_channel_permissions(self, channel_id: ChannelID) -> Optional[discord.Permissions]:
        """The bot's effective permissions in a guild channel, or None if unavailable."""
        try:
            channel = await self._channel(channel_id)
        except discord.HTTPException:
            return None
        guild = getattr(channel, "guild", None)
        if guild is None or guild.me is None:
            return None
        return channel.permissions_for(guild.me)

    async def bot_guild_permissions(self, guild_id: GuildID) -> Optional[discord.Permissions]:
        guild = await self._guild(guild_id)
        return guild.me.guild_permissions if guild.me else None

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(self, channel_id: ChannelID, body: MessageBody) -> MessageID:
        channel = await self._channel(channel_id)
        message = await channel.send(**body.as_kwargs())
        return message.id

    async def edit_message(self, channel_id: ChannelID, message_id: MessageID, body: MessageBody) -> None:
        channel = await self._channel(channel_id)
        await channel.get_partial_message(int(message_id)).edit(**body.as_kwargs())

    async def delete_message(self, channel_id: ChannelID, message_id: MessageID) -> None:
        channel = await self._channel(channel_id)
        await channel.get_partial_message(int(message_id)).delete()

    async def add_reaction(self, channel_id: ChannelID, message_id: MessageID, emoji: str) -> None:
        channel = await self._channel(channel_id)
        await channel.get_partial_message(int(message_id)).add_reaction(emoji)

    async def recent_message_ids_by(
        self,
        channel_id: ChannelID,
        author_id: UserID,
        limit: int = DEDUPE_HISTORY_LIMIT,
    ) -> List[MessageID]:
        """Ids of ``author_id``'s messages among the channel's last ``limit``, newest first."""
        channel = await self._channel(channel_id)
        return [
            message.id
            async for message in channel.history(limit=limit)
            if message.author.id == author_id
        ]

    async def post_deduplicated(self, channel_id: ChannelID, body: MessageBody) -> MessageID:
        """Post ``body`` in a channel, reusing the bot's own recent message if there is one.

        The newest bot message among the last few is edited in place and any
        other bot messages found there are deleted. When there is nothing to
        reuse, or the edit fails, a fresh message is sent.
        """
        bot_id = self.bot_user_id
        existing: List[MessageID] = []
        if bot_id is not None:
            try:
                existing = await self.recent_message_ids_by(channel_id, bot_id)
            except discord.HTTPException as exc:
                logger.debug("[DISCORD API] Could not read history of channel %s: %s", channel_id, exc)

        if existing:
            keep, *duplicates = existing
            try:
                await self.edit_message(channel_id, keep, body)
            except discord.HTTPException as exc:
                logger.debug("[DISCORD API] Reusing message %s failed: %s", keep, exc)
            else:
                for duplicate in duplicates:
                    try:
                        await self.delete_message(channel_id, duplicate)
                    except discord.HTTPException:
                        pass
                return keep

        return await self.send_message(channel_id, body)

    # ------------------------------------------------------------------
    # Users and moderation
    # ------------------------------------------------------------------

    async def send_dm(self, user_id: UserID, body: MessageBody) -> None:
        user = self.bot.get_user(int(user_id)) or await self.bot.fetch_user(int(user_id))
        await user.send(**body.as_kwargs())

    async def ban(self, guild_id: GuildID, user_id: UserID, delete_message_seconds: int, reason: Optional[str] = None) -> None:
        guild = await self._guild(guild_id)
        await guild.ban(
            discord.Object(id=int(user_id)),
            delete_message_seconds=delete_message_seconds,
            reason=reason,
        )

    async def unban(self, guild_id: GuildID, user_id: UserID, reason: Optional[str] = None) -> None:
        guild = await self._guild(guild_id)
        await guild.unban(discord.Object(id=int(user_id)), reason=reason)
