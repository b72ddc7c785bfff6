"""Event listener Cog for the honeypot bot.

Forwards guild, channel and message lifecycle events to the
LifecycleReconciler. Every handler is isolated: an exception is logged and
never reaches the gateway loop.

``on_guild_unavailable`` is deliberately not handled; an outage is not a
departure and must never delete configuration.
"""

import discord
from discord.ext import commands

from honeypot.services.reconciler import LifecycleReconciler
from honeypot.util.guards import isolated
from honeypot.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Handles Discord lifecycle events."""

    def __init__(self, bot: discord.Bot, reconciler: LifecycleReconciler) -> None:
        self.bot = bot
        self.reconciler = reconciler
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    @isolated("EVENTS LISTENER")
    async def on_ready(self) -> None:
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected, user info not yet available.")
            return

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(type=discord.ActivityType.watching, name="the honeypot 🍯"),
        )
        logger.info(
            "[EVENTS LISTENER] Connected as %s (ID: %s) in %d guilds",
            self.bot.user, self.bot.user.id, len(self.bot.guilds),
        )

    # ------------------------------------------------------------------
    # Guilds
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_guild_join")
    @isolated("EVENTS LISTENER")
    async def on_guild_join(self, guild: discord.Guild) -> None:
        logger.debug("[EVENTS LISTENER] Joined guild: %s (ID: %s)", guild.name, guild.id)
        await self.reconciler.on_guild_create(guild)

    @commands.Cog.listener(name="on_guild_available")
    @isolated("EVENTS LISTENER")
    async def on_guild_available(self, guild: discord.Guild) -> None:
        await self.reconciler.on_guild_create(guild)

    @commands.Cog.listener(name="on_guild_update")
    @isolated("EVENTS LISTENER")
    async def on_guild_update(self, before: discord.Guild, after: discord.Guild) -> None:
        await self.reconciler.on_guild_update(after)

    @commands.Cog.listener(name="on_guild_remove")
    @isolated("EVENTS LISTENER")
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        logger.debug("[EVENTS LISTENER] Removed from guild: %s (ID: %s)", guild.name, guild.id)
        await self.reconciler.on_guild_remove(guild.id)

    # ------------------------------------------------------------------
    # Channels and messages
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_guild_channel_delete")
    @isolated("EVENTS LISTENER")
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        await self.reconciler.on_channel_delete(channel.guild.id, channel.id)

    @commands.Cog.listener(name="on_raw_message_delete")
    @isolated("EVENTS LISTENER")
    async def on_raw_message_delete(self, payload: discord.RawMessageDeleteEvent) -> None:
        if payload.guild_id is None:
            return
        await self.reconciler.on_message_delete(payload.guild_id, payload.message_id)

    @commands.Cog.listener(name="on_raw_bulk_message_delete")
    @isolated("EVENTS LISTENER")
    async def on_raw_bulk_message_delete(self, payload: discord.RawBulkMessageDeleteEvent) -> None:
        if payload.guild_id is None:
            return
        await self.reconciler.on_bulk_message_delete(payload.guild_id, payload.message_ids)


def setup(bot: discord.Bot, reconciler: LifecycleReconciler) -> None:
    """Register the EventsListenerCog with the bot."""
    bot.add_cog(EventsListenerCog(bot, reconciler))
