"""
Honeypot trigger pipeline.

Runs once for every qualifying message posted in a guild. The steps are
strictly ordered and each one records a :class:`StepResult`; a failing step
never prevents the later steps from running unless the order below says so.

    config -> react -> (disabled: stop) -> guild context -> DM -> moderate
           -> record -> refresh warning -> report

The DM is sent before the moderation action because a banned user can no
longer receive messages from the bot through the guild.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import aiosqlite
import discord

from honeypot.cache.guild_info_cache import GuildInfo, GuildInfoCache, guild_info_cache
from honeypot.cache.message_cache import RecentMessageCache, recent_message_cache
from honeypot.configuration.app_configuration import app_config
from honeypot.datatypes.honeypot_config import (
    ChannelID,
    Experiment,
    GuildConfig,
    GuildID,
    HoneypotAction,
    MessageID,
    UserID,
)
from honeypot.services.discord_api import DiscordAPI, message_link
from honeypot.settings.honeypot_config_store import HoneypotConfigStore, honeypot_config_store
from honeypot.ui import messages
from honeypot.util.logger import get_logger

logger = get_logger("trigger_pipeline")

MODERATION_REASON = "Posted in the honeypot channel"


class StepStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class StepResult:
    status: StepStatus
    reason: Optional[str] = None

    @classmethod
    def ok(cls, reason: Optional[str] = None) -> "StepResult":
        return cls(StepStatus.SUCCEEDED, reason)

    @classmethod
    def failed(cls, reason: str) -> "StepResult":
        return cls(StepStatus.FAILED, reason)

    @classmethod
    def skipped(cls, reason: str) -> "StepResult":
        return cls(StepStatus.SKIPPED, reason)

    @property
    def succeeded(self) -> bool:
        return self.status is StepStatus.SUCCEEDED


@dataclass(slots=True, frozen=True)
class TriggerEvent:
    """The message that sprang the trap, attributed to a human user."""

    guild_id: GuildID
    channel_id: ChannelID
    message_id: MessageID
    user_id: UserID

    @property
    def link(self) -> str:
        return message_link(self.guild_id, self.channel_id, self.message_id)


@dataclass(slots=True)
class TriggerOutcome:
    event: TriggerEvent
    config: Optional[GuildConfig] = None
    is_owner: bool = False
    count: Optional[int] = None
    steps: Dict[str, StepResult] = field(default_factory=dict)

    @property
    def moderated(self) -> bool:
        result = self.steps.get("moderate")
        return result is not None and result.succeeded

    @property
    def failed(self) -> bool:
        result = self.steps.get("moderate")
        return result is not None and result.status is StepStatus.FAILED


def resolve_trigger_author(message: discord.Message) -> Optional[UserID]:
    """Return the human responsible for ``message``, or None to ignore it.

    Bot and webhook messages are ignored unless they are the response to a
    slash command, in which case the member who invoked the command is the
    author.
    """
    author = message.author
    if not author.bot and message.webhook_id is None:
        return author.id

    metadata = getattr(message, "interaction_metadata", None) or getattr(message, "interaction", None)
    invoker = getattr(metadata, "user", None)
    if invoker is None or getattr(invoker, "bot", False):
        return None
    return invoker.id


class TriggerPipeline:
    """Executes the moderation pipeline for one honeypot trigger at a time."""

    def __init__(
        self,
        api: DiscordAPI,
        store: HoneypotConfigStore = honeypot_config_store,
        guild_cache: GuildInfoCache = guild_info_cache,
        message_cache: RecentMessageCache = recent_message_cache,
        *,
        emoji: Optional[str] = None,
        reaction_timeout: Optional[float] = None,
        delete_message_seconds: Optional[int] = None,
        softban_delay: Optional[float] = None,
    ) -> None:
        self.api = api
        self.store = store
        self.guild_cache = guild_cache
        self.message_cache = message_cache
        self.emoji = emoji or app_config.custom_emoji
        self.reaction_timeout = app_config.reaction_timeout if reaction_timeout is None else reaction_timeout
        self.delete_message_seconds = (
            app_config.delete_message_seconds if delete_message_seconds is None else delete_message_seconds
        )
        self.softban_delay = app_config.softban_unban_delay if softban_delay is None else softban_delay

    async def handle(self, event: TriggerEvent) -> TriggerOutcome:
        outcome = TriggerOutcome(event=event)

        config = await self.store.get(event.guild_id)
        if config is None:
            outcome.steps["config"] = StepResult.skipped("guild not configured")
            return outcome
        if config.honeypot_channel_id != event.channel_id:
            outcome.steps["config"] = StepResult.skipped("not the honeypot channel")
            return outcome
        outcome.config = config
        outcome.steps["config"] = StepResult.ok()

        logger.debug("[TRIGGER] User %s triggered the honeypot in guild %s", event.user_id, event.guild_id)

        outcome.steps["react"] = await self._react(event)

        if config.action is HoneypotAction.DISABLED:
            outcome.steps["moderate"] = StepResult.skipped("honeypot disabled")
            return outcome

        info = await self.guild_cache.resolve(event.guild_id)
        if info is None:
            outcome.steps["guild_context"] = StepResult.failed("guild info unavailable")
        else:
            outcome.is_owner = info.owner_id == event.user_id
            outcome.steps["guild_context"] = StepResult.ok()
        locale = info.locale if info else None

        outcome.steps["dm"] = await self._notify(event, config, info, outcome.is_owner, locale)
        outcome.steps["moderate"] = await self._moderate(event, config, outcome.is_owner)

        outcome.steps["record"] = await self._record(event, outcome)
        outcome.steps["refresh_warning"] = await self._refresh_warning(config, outcome, locale)
        outcome.steps["report"] = await self._report(event, config, outcome, locale)

        logger.info(
            "[TRIGGER] Guild %s user %s: %s",
            event.guild_id,
            event.user_id,
            ", ".join(f"{name}={result.status.value}" for name, result in outcome.steps.items()),
        )
        return outcome

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _react(self, event: TriggerEvent) -> StepResult:
        try:
            await asyncio.wait_for(
                self.api.add_reaction(event.channel_id, event.message_id, self.emoji),
                timeout=self.reaction_timeout,
            )
        except asyncio.TimeoutError:
            return StepResult.failed("reaction timed out")
        except discord.HTTPException as exc:
            return StepResult.failed(f"reaction failed: {exc}")
        return StepResult.ok()

    async def _notify(
        self,
        event: TriggerEvent,
        config: GuildConfig,
        info: Optional[GuildInfo],
        is_owner: bool,
        locale: Optional[str],
    ) -> StepResult:
        if config.has(Experiment.NO_DM):
            return StepResult.skipped("DMs disabled")

        body = messages.render_user_dm(
            config.action,
            info.display_name if info else str(event.guild_id),
            event.link,
            is_owner,
            locale,
            custom_text=config.custom_dm_text,
        )
        try:
            await self.api.send_dm(event.user_id, body)
        except discord.HTTPException as exc:
            # Closed DMs are routine; never surfaced.
            logger.debug("[TRIGGER] DM to %s failed: %s", event.user_id, exc)
            return StepResult.failed("DM not delivered")
        return StepResult.ok()

    async def _moderate(self, event: TriggerEvent, config: GuildConfig, is_owner: bool) -> StepResult:
        if is_owner:
            return StepResult.skipped("server owner")

        try:
            if config.action is HoneypotAction.BAN:
                await self.api.ban(event.guild_id, event.user_id, self.delete_message_seconds, MODERATION_REASON)
            elif config.action is HoneypotAction.SOFTBAN:
                await self._softban(event)
            else:
                logger.warning("[TRIGGER] Unknown action %r for guild %s", config.action, event.guild_id)
                return StepResult.skipped("unknown action")
        except discord.HTTPException as exc:
            logger.warning(
                "[TRIGGER] Failed to %s user %s in guild %s: %s",
                config.action, event.user_id, event.guild_id, exc,
            )
            return StepResult.failed(str(exc))
        return StepResult.ok()

    async def _softban(self, event: TriggerEvent) -> None:
        await self.api.ban(event.guild_id, event.user_id, self.delete_message_seconds, MODERATION_REASON)
        # Message purge after a ban is asynchronous on the platform side.
        await asyncio.sleep(self.softban_delay)
        try:
            await self.api.unban(event.guild_id, event.user_id, MODERATION_REASON)
        except discord.HTTPException as exc:
            logger.error("[TRIGGER] Softban of %s in guild %s could not be lifted: %s", event.user_id, event.guild_id, exc)
        await self._purge_cached_messages(event)

    async def _purge_cached_messages(self, event: TriggerEvent) -> None:
        leftovers = self.message_cache.recent_for_user(event.guild_id, event.user_id)
        self.message_cache.remove_user(event.guild_id, event.user_id)
        for cached in leftovers:
            try:
                await self.api.delete_message(cached.channel_id, cached.message_id)
            except discord.HTTPException:
                pass

    async def _record(self, event: TriggerEvent, outcome: TriggerOutcome) -> StepResult:
        if not outcome.moderated:
            return StepResult.skipped("nothing to record")
        try:
            outcome.count = await self.store.record_event(event.guild_id, event.user_id)
        except aiosqlite.Error as exc:
            logger.error("[TRIGGER] Recording event for guild %s failed: %s", event.guild_id, exc)
            return StepResult.failed(str(exc))
        return StepResult.ok()

    async def _refresh_warning(self, config: GuildConfig, outcome: TriggerOutcome, locale: Optional[str]) -> StepResult:
        if config.has(Experiment.NO_WARNING_MESSAGE):
            return StepResult.skipped("warning message disabled")
        if config.honeypot_channel_id is None or config.honeypot_message_id is None:
            return StepResult.skipped("no warning message tracked")

        try:
            count = outcome.count if outcome.count is not None else await self.store.count(config.guild_id)
            body = messages.render_warning_message(
                count,
                config.action,
                locale,
                custom_text=config.custom_warning_text,
                channel_id=config.honeypot_channel_id,
            )
            await self.api.edit_message(config.honeypot_channel_id, config.honeypot_message_id, body)
        except (discord.HTTPException, aiosqlite.Error) as exc:
            logger.warning(
                "[TRIGGER] Could not refresh warning message %s in guild %s: %s",
                config.honeypot_message_id, config.guild_id, exc,
            )
            return StepResult.failed(str(exc))
        return StepResult.ok()

    async def _report(
        self,
        event: TriggerEvent,
        config: GuildConfig,
        outcome: TriggerOutcome,
        locale: Optional[str],
    ) -> StepResult:
        report_channel = config.report_channel_id
        if report_channel is None:
            return StepResult.skipped("no report channel")

        quiet = config.has(Experiment.NO_WARNING_MESSAGE)
        if outcome.moderated:
            body = messages.render_log_message(
                event.user_id, event.channel_id, config.action, config.custom_log_text, locale
            )
        elif outcome.is_owner:
            if quiet:
                return StepResult.skipped("notices suppressed")
            body = messages.render_owner_exempt_notice(event.user_id, event.channel_id, config.action, locale)
        elif outcome.failed:
            if quiet:
                return StepResult.skipped("notices suppressed")
            body = messages.render_failed_notice(event.user_id, event.channel_id, config.action, locale)
        else:
            return StepResult.skipped("nothing to report")

        try:
            await self.api.send_message(report_channel, body)
        except discord.HTTPException as exc:
            logger.warning("[TRIGGER] Could not post notice in channel %s: %s", report_channel, exc)
            return StepResult.failed(str(exc))
        return StepResult.ok()
