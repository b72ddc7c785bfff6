"""Background scheduler cogs for the honeypot bot.

- ExperimentSchedulerCog – daily run of periodic experiments across guilds
- MessageCachePruneCog   – drops expired entries from the recent-message cache
"""

from __future__ import annotations

import asyncio
import datetime

import discord
from discord.ext import commands, tasks

from honeypot.cache.message_cache import recent_message_cache
from honeypot.configuration.app_configuration import app_config
from honeypot.services.experiments import ExperimentRunner
from honeypot.util.logger import get_logger

logger = get_logger("scheduler_cog")

_DAILY_RUN_TIME = datetime.time(hour=app_config.experiments_run_hour, tzinfo=datetime.timezone.utc)
_PRUNE_INTERVAL_MINUTES = 10


class ExperimentSchedulerCog(commands.Cog):
    """Fires once a day at the configured UTC hour."""

    def __init__(self, bot: discord.Bot, runner: ExperimentRunner) -> None:
        self.bot = bot
        self.runner = runner

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if not self._daily_task.is_running():
            self._daily_task.start()
            logger.info("[EXPERIMENT SCHEDULER] Started (daily at %s)", _DAILY_RUN_TIME.isoformat())

    def cog_unload(self) -> None:
        self._daily_task.cancel()
        logger.info("[EXPERIMENT SCHEDULER] Stopped")

    @tasks.loop(time=_DAILY_RUN_TIME)
    async def _daily_task(self) -> None:
        try:
            await self.runner.run_daily()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[EXPERIMENT SCHEDULER] Daily run failed")

    @_daily_task.before_loop
    async def _before_daily(self) -> None:
        await self.bot.wait_until_ready()


class MessageCachePruneCog(commands.Cog):
    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if not self._prune_task.is_running():
            self._prune_task.start()

    def cog_unload(self) -> None:
        self._prune_task.cancel()

    @tasks.loop(minutes=_PRUNE_INTERVAL_MINUTES)
    async def _prune_task(self) -> None:
        recent_message_cache.prune()


def setup(bot: discord.Bot, runner: ExperimentRunner) -> None:
    bot.add_cog(ExperimentSchedulerCog(bot, runner))
    bot.add_cog(MessageCachePruneCog(bot))
