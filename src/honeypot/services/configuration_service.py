"""
ConfigurationService: applies a ``/honeypot`` settings submission.

A submission either applies completely or not at all:

1. reject when no honeypot channel is selected
2. permission preflight (nothing has been touched yet)
3. establish the warning message (edit in place, else create)
4. confirm a newly selected log channel, rolling back a freshly created
   warning message on failure
5. persist the merged configuration

Submissions for one guild are serialised on the store's per-guild lock.
Cleanup of the previous warning message and the immediate run of newly
enabled experiments happen in :meth:`after_reply`, once the admin has their
answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

import discord

from honeypot.cache.guild_info_cache import GuildInfoCache, guild_info_cache
from honeypot.configuration.app_configuration import app_config
from honeypot.datatypes.honeypot_config import (
    PERIODIC_EXPERIMENTS,
    ChannelID,
    Experiment,
    GuildConfig,
    GuildID,
    HoneypotAction,
    MessageID,
)
from honeypot.services.discord_api import DiscordAPI, message_link
from honeypot.services.experiments import ExperimentRunner
from honeypot.settings.honeypot_config_store import HoneypotConfigStore, honeypot_config_store
from honeypot.ui import messages
from honeypot.util.logger import get_logger

logger = get_logger("configuration_service")

HONEYPOT_CHANNEL_PERMISSIONS = ("send_messages", "view_channel", "manage_messages", "manage_channels")
LOG_CHANNEL_PERMISSIONS = ("send_messages", "view_channel")


class ConfigurationError(Exception):
    """A submission was rejected; the message is shown to the admin."""


@dataclass(slots=True, frozen=True)
class ConfigurationRequest:
    guild_id: GuildID
    honeypot_channel_id: Optional[ChannelID]
    log_channel_id: Optional[ChannelID]
    action: HoneypotAction
    experiments: FrozenSet[Experiment]
    invoker_can_ban: bool


@dataclass(slots=True, frozen=True)
class ConfigurationResult:
    previous: GuildConfig
    config: GuildConfig
    message_created: bool

    @property
    def newly_enabled(self) -> FrozenSet[Experiment]:
        return self.config.experiments - self.previous.experiments


def default_config(guild_id: GuildID) -> GuildConfig:
    return GuildConfig(guild_id=guild_id, action=HoneypotAction.parse(app_config.default_action))


def _missing(permissions, required) -> list[str]:
    if permissions is None:
        return list(required)
    return [name for name in required if not getattr(permissions, name, False)]


def _format_permissions(names) -> str:
    return ", ".join(f"**{name.replace('_', ' ').title()}**" for name in names)


class ConfigurationService:
    def __init__(
        self,
        api: DiscordAPI,
        experiments: ExperimentRunner,
        store: HoneypotConfigStore = honeypot_config_store,
        guild_cache: GuildInfoCache = guild_info_cache,
    ) -> None:
        self.api = api
        self.experiments = experiments
        self.store = store
        self.guild_cache = guild_cache

    async def load(self, guild_id: GuildID) -> GuildConfig:
        """Stored configuration, or the defaults for a guild without one."""
        return await self.store.get(guild_id) or default_config(guild_id)

    async def submit(self, request: ConfigurationRequest) -> ConfigurationResult:
        if request.honeypot_channel_id is None:
            raise ConfigurationError("Please select a honeypot channel.")

        async with self.store.mutation_lock(request.guild_id):
            previous = await self.load(request.guild_id)
            candidate = previous.with_changes(
                honeypot_channel_id=request.honeypot_channel_id,
                honeypot_message_id=None,
                log_channel_id=request.log_channel_id,
                action=request.action,
                experiments=frozenset(request.experiments),
            )

            await self._preflight(request, previous, candidate)
            message_id, created = await self._establish_warning(previous, candidate)

            try:
                await self._confirm_log_channel(previous, candidate)
            except ConfigurationError:
                if created and message_id is not None:
                    await self._delete_quietly(candidate.honeypot_channel_id, message_id)
                raise

            config = candidate.with_changes(honeypot_message_id=message_id)
            await self.store.set(config)

        logger.info(
            "[CONFIGURATION] Guild %s configured: channel=%s log=%s action=%s experiments=%s",
            config.guild_id,
            config.honeypot_channel_id,
            config.log_channel_id,
            config.action,
            sorted(experiment.value for experiment in config.experiments),
        )
        return ConfigurationResult(previous=previous, config=config, message_created=created)

    async def after_reply(self, result: ConfigurationResult) -> None:
        """Best-effort cleanup and immediate experiment runs after a successful submission."""
        previous, config = result.previous, result.config
        if (
            previous.honeypot_channel_id is not None
            and previous.honeypot_message_id is not None
            and previous.honeypot_message_id != config.honeypot_message_id
        ):
            await self._delete_quietly(previous.honeypot_channel_id, previous.honeypot_message_id)

        for experiment in sorted(result.newly_enabled & PERIODIC_EXPERIMENTS, key=lambda e: e.value):
            await self.experiments.run_once(config, experiment)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _preflight(self, request: ConfigurationRequest, previous: GuildConfig, candidate: GuildConfig) -> None:
        if candidate.action.moderates and not request.invoker_can_ban:
            raise ConfigurationError("You need the **Ban Members** permission to use the ban or softban action.")

        if candidate.honeypot_channel_id != previous.honeypot_channel_id:
            permissions = await self.api.bot_channel_permissions(candidate.honeypot_channel_id)
            missing = _missing(permissions, HONEYPOT_CHANNEL_PERMISSIONS)
            if missing:
                raise ConfigurationError(
                    f"I need {_format_permissions(missing)} in <#{candidate.honeypot_channel_id}>."
                )

        if candidate.log_channel_id is not None and candidate.log_channel_id != previous.log_channel_id:
            permissions = await self.api.bot_channel_permissions(candidate.log_channel_id)
            missing = _missing(permissions, LOG_CHANNEL_PERMISSIONS)
            if missing:
                raise ConfigurationError(
                    f"I need {_format_permissions(missing)} in <#{candidate.log_channel_id}>."
                )

        enabling = candidate.experiments - previous.experiments
        if any(experiment.renames_channel for experiment in enabling):
            permissions = await self.api.bot_guild_permissions(candidate.guild_id)
            if _missing(permissions, ("manage_channels",)):
                raise ConfigurationError("Channel rename experiments need the **Manage Channels** permission.")

    async def _establish_warning(
        self, previous: GuildConfig, candidate: GuildConfig
    ) -> tuple[Optional[MessageID], bool]:
        """Return the id of the current warning message and whether it was freshly created."""
        if candidate.has(Experiment.NO_WARNING_MESSAGE):
            return None, False

        channel_id = candidate.honeypot_channel_id
        info = self.guild_cache.get(candidate.guild_id)
        count = await self.store.count(candidate.guild_id)
        body = messages.render_warning_message(
            count,
            candidate.action,
            info.locale if info else None,
            custom_text=candidate.custom_warning_text,
            channel_id=channel_id,
        )

        must_create = (
            channel_id != previous.honeypot_channel_id
            or previous.honeypot_message_id is None
            or previous.has(Experiment.NO_WARNING_MESSAGE)
        )
        if not must_create:
            try:
                await self.api.edit_message(channel_id, previous.honeypot_message_id, body)
                return previous.honeypot_message_id, False
            except discord.HTTPException as exc:
                logger.debug(
                    "[CONFIGURATION] Editing warning message %s failed, creating a new one: %s",
                    previous.honeypot_message_id, exc,
                )

        try:
            return await self.api.send_message(channel_id, body), True
        except discord.HTTPException as exc:
            logger.warning("[CONFIGURATION] Could not send warning message in channel %s: %s", channel_id, exc)
            raise ConfigurationError(f"I couldn't send the warning message in <#{channel_id}>.") from exc

    async def _confirm_log_channel(self, previous: GuildConfig, candidate: GuildConfig) -> None:
        log_channel_id = candidate.log_channel_id
        if log_channel_id is None or log_channel_id == previous.log_channel_id:
            return
        body = messages.render_log_channel_confirmation(candidate.honeypot_channel_id)
        try:
            await self.api.send_message(log_channel_id, body)
        except discord.HTTPException as exc:
            logger.warning("[CONFIGURATION] Could not post in log channel %s: %s", log_channel_id, exc)
            raise ConfigurationError(f"I couldn't send messages in <#{log_channel_id}>.") from exc

    async def _delete_quietly(self, channel_id: ChannelID, message_id: MessageID) -> None:
        try:
            await self.api.delete_message(channel_id, message_id)
        except discord.HTTPException as exc:
            logger.debug("[CONFIGURATION] Cleanup of message %s failed: %s", message_id, exc)

    # ------------------------------------------------------------------
    # Custom texts
    # ------------------------------------------------------------------

    async def update_texts(
        self,
        guild_id: GuildID,
        *,
        warning: Optional[str],
        dm: Optional[str],
        log: Optional[str],
    ) -> GuildConfig:
        """Store custom templates (blank resets to the default) and re-render the warning message."""
        async with self.store.mutation_lock(guild_id):
            config = (await self.load(guild_id)).with_changes(
                custom_warning_text=(warning or "").strip() or None,
                custom_dm_text=(dm or "").strip() or None,
                custom_log_text=(log or "").strip() or None,
            )
            await self.store.set(config)

        if (
            config.honeypot_channel_id is not None
            and config.honeypot_message_id is not None
            and not config.has(Experiment.NO_WARNING_MESSAGE)
        ):
            info = self.guild_cache.get(guild_id)
            body = messages.render_warning_message(
                await self.store.count(guild_id),
                config.action,
                info.locale if info else None,
                custom_text=config.custom_warning_text,
                channel_id=config.honeypot_channel_id,
            )
            try:
                await self.api.edit_message(config.honeypot_channel_id, config.honeypot_message_id, body)
            except discord.HTTPException as exc:
                logger.debug("[CONFIGURATION] Refreshing warning message after text update failed: %s", exc)
        return config

    def preview_dm(self, config: GuildConfig) -> messages.MessageBody:
        """The DM a moderated user would receive, rendered as an admin preview."""
        info = self.guild_cache.get(config.guild_id)
        return messages.render_user_dm(
            config.action,
            info.display_name if info else str(config.guild_id),
            message_link(config.guild_id, config.honeypot_channel_id or 0, 0),
            False,
            info.locale if info else None,
            custom_text=config.custom_dm_text,
            is_preview=True,
        )
