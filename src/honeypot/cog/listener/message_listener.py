"""Message listener Cog for the honeypot bot.

Remembers every guild message in the recent-message cache and hands the
message to the TriggerPipeline, which decides whether it sprang the trap.
"""

import discord
from discord.ext import commands

from honeypot.cache.message_cache import RecentMessageCache, recent_message_cache
from honeypot.services.trigger_pipeline import TriggerEvent, TriggerPipeline, resolve_trigger_author
from honeypot.util.guards import isolated
from honeypot.util.logger import get_logger

logger = get_logger("message_listener")


class MessageListenerCog(commands.Cog):
    def __init__(
        self,
        bot: discord.Bot,
        pipeline: TriggerPipeline,
        message_cache: RecentMessageCache = recent_message_cache,
    ) -> None:
        self.bot = bot
        self.pipeline = pipeline
        self.message_cache = message_cache
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    @isolated("MESSAGE LISTENER")
    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None:
            return

        user_id = resolve_trigger_author(message)
        if user_id is None:
            return

        self.message_cache.add(message.guild.id, message.channel.id, message.id, user_id, message.created_at)

        await self.pipeline.handle(TriggerEvent(
            guild_id=message.guild.id,
            channel_id=message.channel.id,
            message_id=message.id,
            user_id=user_id,
        ))


def setup(bot: discord.Bot, pipeline: TriggerPipeline) -> None:
    """Register the MessageListenerCog with the bot."""
    bot.add_cog(MessageListenerCog(bot, pipeline))
