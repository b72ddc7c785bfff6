"""
Per-guild honeypot configuration and the enums it is built from.

Database schema:
- honeypot_config table: one row per guild (channel, warning message, log channel,
  action, experiment flags, custom templates)
- honeypot_events table: append-only moderation log used for counters
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Iterable, Optional

GuildID = int
ChannelID = int
MessageID = int
UserID = int


class HoneypotAction(Enum):
    """Moderation action taken against a user who posts in the honeypot channel."""

    BAN = "ban"
    SOFTBAN = "softban"
    DISABLED = "disabled"

    def __str__(self) -> str:
        return self.value

    @property
    def moderates(self) -> bool:
        return self is not HoneypotAction.DISABLED

    @classmethod
    def parse(cls, value: object, default: "HoneypotAction | None" = None) -> "HoneypotAction":
        """Map a stored or user-supplied value onto an action.

        Older rows stored ``kick`` or ``timeout``; both are treated as softban.
        Anything unrecognised falls back to ``default`` (softban when omitted).
        """
        if isinstance(value, HoneypotAction):
            return value
        text = str(value or "").strip().lower()
        if text in LEGACY_ACTION_ALIASES:
            return LEGACY_ACTION_ALIASES[text]
        for action in cls:
            if action.value == text:
                return action
        return default or cls.SOFTBAN


LEGACY_ACTION_ALIASES = {
    "kick": HoneypotAction.SOFTBAN,
    "timeout": HoneypotAction.SOFTBAN,
}


class Experiment(Enum):
    """Opt-in per-guild toggles gating optional side effects."""

    NO_WARNING_MESSAGE = "no_warning_message"
    NO_DM = "no_dm"
    KEEP_ALIVE = "keep_alive"
    CHANNEL_RENAME = "channel_rename"
    CHAOS_RENAME = "chaos_rename"

    def __str__(self) -> str:
        return self.value

    @property
    def is_periodic(self) -> bool:
        return self in PERIODIC_EXPERIMENTS

    @property
    def renames_channel(self) -> bool:
        return self in (Experiment.CHANNEL_RENAME, Experiment.CHAOS_RENAME)


PERIODIC_EXPERIMENTS = frozenset({
    Experiment.KEEP_ALIVE,
    Experiment.CHANNEL_RENAME,
    Experiment.CHAOS_RENAME,
})

EXPERIMENT_LABELS = {
    Experiment.NO_WARNING_MESSAGE: "No warning message",
    Experiment.NO_DM: "No DM to moderated users",
    Experiment.KEEP_ALIVE: "Daily keep-alive message",
    Experiment.CHANNEL_RENAME: "Daily channel rename",
    Experiment.CHAOS_RENAME: "Daily random channel name (chaos)",
}


def parse_experiments(raw: Optional[str | Iterable[str]]) -> FrozenSet[Experiment]:
    """Decode the comma-separated experiments column, dropping unknown flags."""
    if raw is None:
        return frozenset()
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    known = {experiment.value: experiment for experiment in Experiment}
    return frozenset(known[part.strip()] for part in parts if part.strip() in known)


def serialize_experiments(experiments: Iterable[Experiment]) -> str:
    return ",".join(sorted(experiment.value for experiment in experiments))


@dataclass(slots=True, frozen=True)
class GuildConfig:
    """Persistent honeypot configuration for one guild.

    ``honeypot_message_id`` always refers to a message inside
    ``honeypot_channel_id``; it is never set without a channel.
    """

    guild_id: GuildID
    honeypot_channel_id: Optional[ChannelID] = None
    honeypot_message_id: Optional[MessageID] = None
    log_channel_id: Optional[ChannelID] = None
    action: HoneypotAction = HoneypotAction.SOFTBAN
    experiments: FrozenSet[Experiment] = field(default_factory=frozenset)
    custom_warning_text: Optional[str] = None
    custom_dm_text: Optional[str] = None
    custom_log_text: Optional[str] = None

    def __post_init__(self) -> None:
        if self.honeypot_channel_id is None and self.honeypot_message_id is not None:
            object.__setattr__(self, "honeypot_message_id", None)

    def has(self, experiment: Experiment) -> bool:
        return experiment in self.experiments

    @property
    def report_channel_id(self) -> Optional[ChannelID]:
        """Channel receiving outcome notices: the log channel, else the honeypot channel."""
        return self.log_channel_id or self.honeypot_channel_id

    def with_changes(self, **changes) -> "GuildConfig":
        return replace(self, **changes)
