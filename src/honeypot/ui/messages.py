"""Renderers for every message the bot posts.

All functions here are pure: they return a :class:`MessageBody` describing the
message. py-cord objects (embed, counter button view) are only built by
:meth:`MessageBody.as_kwargs` at send time, because a ``discord.ui.View`` needs
a running event loop.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import discord

from honeypot.datatypes.honeypot_config import (
    EXPERIMENT_LABELS,
    ChannelID,
    GuildConfig,
    HoneypotAction,
    UserID,
)
from honeypot.ui.locales import resolve_strings

HONEYPOT_THUMBNAIL_URL = (
    "https://raw.githubusercontent.com/microsoft/fluentui-emoji/refs/heads/main/"
    "assets/Honey%20pot/3D/honey_pot_3d.png"
)
COUNTER_EMOJI = "🍯"
COUNTER_CUSTOM_ID = "moderated_count_button"
DM_COLOR = 0xFFD700

ACTION_LABELS: dict[HoneypotAction, str] = {
    HoneypotAction.BAN: "Ban",
    HoneypotAction.SOFTBAN: "Softban (kick + delete recent messages)",
    HoneypotAction.DISABLED: "Disabled",
}


@dataclass(slots=True)
class MessageBody:
    """Transport-neutral description of a message.

    ``description`` goes into an embed (with the honeypot thumbnail when
    ``thumbnail`` is set); ``content`` is plain text. ``counter_label`` adds a
    disabled counter button below the message.
    """

    content: Optional[str] = None
    description: Optional[str] = None
    footer: Optional[str] = None
    counter_label: Optional[str] = None
    thumbnail: bool = False
    color: Optional[int] = None
    title: Optional[str] = None

    @property
    def text(self) -> str:
        """All visible text joined together, used for logging and tests."""
        parts = [self.title, self.content, self.description, self.footer, self.counter_label]
        return "\n".join(part for part in parts if part)

    def build_embed(self) -> Optional[discord.Embed]:
        if self.description is None and self.title is None:
            return None
        embed = discord.Embed(
            title=self.title,
            description=self.description,
            color=discord.Color(self.color) if self.color is not None else discord.Color.gold(),
        )
        if self.thumbnail:
            embed.set_thumbnail(url=HONEYPOT_THUMBNAIL_URL)
        if self.footer:
            embed.set_footer(text=self.footer)
        return embed

    def build_view(self) -> Optional[discord.ui.View]:
        if self.counter_label is None:
            return None
        return CounterView(self.counter_label)

    def as_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments accepted by ``Messageable.send`` and ``Message.edit``."""
        kwargs: Dict[str, Any] = {
            "content": self.content,
            "embed": self.build_embed(),
            "allowed_mentions": discord.AllowedMentions.none(),
        }
        view = self.build_view()
        if view is not None:
            kwargs["view"] = view
        return kwargs


class CounterView(discord.ui.View):
    """Single disabled button showing the moderation counter."""

    def __init__(self, label: str) -> None:
        super().__init__(timeout=None)
        self.add_item(discord.ui.Button(
            label=label,
            emoji=COUNTER_EMOJI,
            style=discord.ButtonStyle.secondary,
            custom_id=COUNTER_CUSTOM_ID,
            disabled=True,
        ))


# ----------------------------------------------------------------------
# Template substitution
# ----------------------------------------------------------------------

TOKEN_PATTERN = re.compile(r"\{\{([a-z:]+)\}\}")


def substitute(template: str, values: Mapping[str, Optional[str]]) -> str:
    """Replace every ``{{token}}`` in ``template`` whose value is known.

    Tokens missing from ``values`` (or mapped to ``None``) stay verbatim.
    """
    def replace(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        return match.group(0) if value is None else value

    # Single pass: substituted values are never scanned for tokens again.
    return TOKEN_PATTERN.sub(replace, template)


def user_mention(user_id: Optional[UserID]) -> Optional[str]:
    return f"<@{user_id}>" if user_id is not None else None


def channel_mention(channel_id: Optional[ChannelID]) -> Optional[str]:
    return f"<#{channel_id}>" if channel_id is not None else None


def action_full_text(action: HoneypotAction, locale: Optional[str] = None) -> str:
    """Warning-message wording, e.g. "an immediate ban"."""
    return resolve_strings(locale)[f"{action.value}_action_full"]


def action_counter_label(action: HoneypotAction, locale: Optional[str] = None) -> str:
    """Counter button label, e.g. "Bans"."""
    return resolve_strings(locale)[f"{action.value}_action_short"]


def action_past_text(action: HoneypotAction, locale: Optional[str] = None) -> str:
    """Past-tense wording used in the user DM, e.g. "banned"."""
    strings = resolve_strings(locale)
    key = {
        HoneypotAction.BAN: "banned_action_short",
        HoneypotAction.SOFTBAN: "softbanned_action_short",
        HoneypotAction.DISABLED: "disabled_action_short",
    }[action]
    return strings[key].lower()


def action_log_text(action: HoneypotAction, locale: Optional[str] = None) -> str:
    """Wording used in log notices, e.g. "banned"."""
    key = {
        HoneypotAction.BAN: "banned_log_text",
        HoneypotAction.SOFTBAN: "softbanned_log_text",
        HoneypotAction.DISABLED: "disabled_log_text",
    }[action]
    return resolve_strings(locale)[key]


# ----------------------------------------------------------------------
# Warning message, DM and log notices
# ----------------------------------------------------------------------

def render_warning_message(
    count: int,
    action: HoneypotAction,
    locale: Optional[str] = None,
    custom_text: Optional[str] = None,
    channel_id: Optional[ChannelID] = None,
) -> MessageBody:
    """Warning message posted in the honeypot channel, with a counter equal to ``count``."""
    strings = resolve_strings(locale)
    template = custom_text or strings["warning_message"]
    description = substitute(template, {
        "action:text": action_full_text(action, locale),
        "count": str(count),
        "honeypot:channel:ping": channel_mention(channel_id),
    })
    return MessageBody(
        description=description,
        counter_label=f"{action_counter_label(action, locale)}: {count}",
        thumbnail=True,
    )


def render_user_dm(
    action: HoneypotAction,
    guild_name: str,
    message_link: str,
    is_owner: bool,
    locale: Optional[str] = None,
    custom_text: Optional[str] = None,
    is_preview: bool = False,
) -> MessageBody:
    """DM sent to a moderated user, or shown to an admin as a preview."""
    strings = resolve_strings(locale)
    values = {
        "action:text": action_past_text(action, locale),
        "guild:name": guild_name,
        "message:link": message_link,
    }
    description = substitute(custom_text or strings["dm_intro"], values)
    if is_owner:
        description = f"{description}\n\n{substitute(strings['dm_owner'], values)}"

    return MessageBody(
        title="Preview" if is_preview else None,
        description=description,
        footer=strings["dm_footer"].removeprefix("-# "),
        thumbnail=True,
        color=DM_COLOR,
    )


def _log_values(user_id: Optional[UserID], channel_id: Optional[ChannelID], action: HoneypotAction, locale: Optional[str]):
    return {
        "user:ping": user_mention(user_id),
        "action:text": action_log_text(action, locale),
        "honeypot:channel:ping": channel_mention(channel_id),
    }


def render_log_message(
    user_id: UserID,
    channel_id: ChannelID,
    action: HoneypotAction,
    custom_text: Optional[str] = None,
    locale: Optional[str] = None,
) -> MessageBody:
    """Success notice for the log channel."""
    template = custom_text or resolve_strings(locale)["log_success"]
    return MessageBody(content=substitute(template, _log_values(user_id, channel_id, action, locale)))


def render_owner_exempt_notice(user_id: UserID, channel_id: ChannelID, action: HoneypotAction, locale: Optional[str] = None) -> MessageBody:
    template = resolve_strings(locale)["log_owner_exempt"]
    return MessageBody(content=substitute(template, _log_values(user_id, channel_id, action, locale)))


def render_failed_notice(user_id: UserID, channel_id: ChannelID, action: HoneypotAction, locale: Optional[str] = None) -> MessageBody:
    template = resolve_strings(locale)["log_failed"]
    return MessageBody(content=substitute(template, _log_values(user_id, channel_id, action, locale)))


def render_setup_instructions(locale: Optional[str] = None) -> MessageBody:
    return MessageBody(content=resolve_strings(locale)["setup_instructions"])


def render_log_channel_confirmation(channel_id: ChannelID, locale: Optional[str] = None) -> MessageBody:
    template = resolve_strings(locale)["log_channel_confirmation"]
    return MessageBody(content=substitute(template, {"honeypot:channel:ping": channel_mention(channel_id)}))


# ----------------------------------------------------------------------
# Command replies
# ----------------------------------------------------------------------

def render_config_summary(config: GuildConfig) -> MessageBody:
    """Confirmation reply after a successful ``/honeypot`` submission."""
    experiments = sorted(EXPERIMENT_LABELS[experiment] for experiment in config.experiments)
    lines = [
        f"**Honeypot channel:** {channel_mention(config.honeypot_channel_id) or 'not set'}",
        f"**Log channel:** {channel_mention(config.log_channel_id) or 'same as honeypot channel'}",
        f"**Action:** {ACTION_LABELS[config.action]}",
        f"**Experiments:** {', '.join(experiments) if experiments else 'none'}",
    ]
    return MessageBody(title="✅ Honeypot configured", description="\n".join(lines), color=0x57F287)


def render_stats(guild_count: int, total_moderated: int, user_moderated: int) -> MessageBody:
    """Reply to ``/honeypot-stats``."""
    lines = [
        f"**Servers protected:** {guild_count:,}",
        f"**Users moderated (all servers):** ~{total_moderated:,}",
        f"**Times you've been moderated:** {user_moderated:,}",
    ]
    return MessageBody(title=f"{COUNTER_EMOJI} Honeypot statistics", description="\n".join(lines), thumbnail=True)
