"""Effects of the periodic experiments and the daily sweep over all guilds."""

from __future__ import annotations

import asyncio
import random
import string
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence, Set

import discord

from honeypot.configuration.app_configuration import app_config
from honeypot.datatypes.honeypot_config import PERIODIC_EXPERIMENTS, Experiment, GuildConfig
from honeypot.services.discord_api import DiscordAPI
from honeypot.settings.honeypot_config_store import HoneypotConfigStore, honeypot_config_store
from honeypot.ui.messages import MessageBody
from honeypot.util.logger import get_logger

logger = get_logger("experiments")

EXPERIMENT_REASON = "Honeypot experiment"


def rotation_name(pool: Sequence[str], day: date) -> str:
    """Channel name for ``day``; walks the pool one entry per day."""
    return pool[day.toordinal() % len(pool)]


def chaos_name(rng: random.Random, min_length: int = 6, max_length: int = 14) -> str:
    return "".join(rng.choice(string.ascii_lowercase) for _ in range(rng.randint(min_length, max_length)))


class ExperimentRunner:
    def __init__(
        self,
        api: DiscordAPI,
        store: HoneypotConfigStore = honeypot_config_store,
        *,
        rng: Optional[random.Random] = None,
        inter_guild_delay: Optional[float] = None,
    ) -> None:
        self.api = api
        self.store = store
        self.rng = rng or random.Random()
        self.inter_guild_delay = (
            app_config.experiments_inter_guild_delay if inter_guild_delay is None else inter_guild_delay
        )

    async def run(self, config: GuildConfig, experiment: Experiment, today: Optional[date] = None) -> bool:
        """Apply one experiment's effect to one guild. Returns False if nothing was done.

        Raises ``discord.HTTPException`` when the platform rejects the change.
        """
        channel_id = config.honeypot_channel_id
        if channel_id is None or not experiment.is_periodic:
            return False

        if experiment is Experiment.KEEP_ALIVE:
            message_id = await self.api.send_message(channel_id, MessageBody(content=app_config.keep_alive_text))
            await self.api.delete_message(channel_id, message_id)
        elif experiment is Experiment.CHANNEL_RENAME:
            day = today or datetime.now(timezone.utc).date()
            await self.api.rename_channel(channel_id, rotation_name(app_config.rename_pool, day), EXPERIMENT_REASON)
        elif experiment is Experiment.CHAOS_RENAME:
            await self.api.rename_channel(channel_id, chaos_name(self.rng), EXPERIMENT_REASON)

        logger.debug("[EXPERIMENTS] Ran %s in guild %s", experiment, config.guild_id)
        return True

    async def run_once(self, config: GuildConfig, experiment: Experiment) -> bool:
        """Best-effort single run, used right after an experiment is enabled."""
        try:
            return await self.run(config, experiment)
        except discord.HTTPException as exc:
            logger.warning("[EXPERIMENTS] %s failed in guild %s: %s", experiment, config.guild_id, exc)
            return False

    async def run_daily(self) -> int:
        """Run every enabled periodic experiment, one guild at a time.

        Returns the number of guilds visited.
        """
        by_guild: Dict[int, GuildConfig] = {}
        enabled: Dict[int, Set[Experiment]] = {}
        for experiment in sorted(PERIODIC_EXPERIMENTS, key=lambda e: e.value):
            for config in await self.store.guilds_with_experiment(experiment):
                by_guild[config.guild_id] = config
                enabled.setdefault(config.guild_id, set()).add(experiment)

        guild_ids: List[int] = sorted(by_guild)
        logger.info("[EXPERIMENTS] Daily run over %d guilds", len(guild_ids))

        for index, guild_id in enumerate(guild_ids):
            if index:
                await asyncio.sleep(self.inter_guild_delay)
            config = by_guild[guild_id]
            for experiment in sorted(enabled[guild_id], key=lambda e: e.value):
                await self.run_once(config, experiment)

        return len(guild_ids)
