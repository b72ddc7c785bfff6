"""Ephemeral ``/honeypot`` settings form and the ``/honeypot-text`` modal."""

from __future__ import annotations

from typing import Optional

import discord

from honeypot.datatypes.honeypot_config import (
    EXPERIMENT_LABELS,
    Experiment,
    GuildConfig,
    HoneypotAction,
)
from honeypot.services.configuration_service import (
    ConfigurationError,
    ConfigurationRequest,
    ConfigurationService,
)
from honeypot.ui.messages import ACTION_LABELS, channel_mention, render_config_summary
from honeypot.util.logger import get_logger

logger = get_logger("settings_ui")

ACTION_UI_EMOJIS: dict[HoneypotAction, str] = {
    HoneypotAction.BAN: "🔨",
    HoneypotAction.SOFTBAN: "👢",
    HoneypotAction.DISABLED: "⏸️",
}

GENERIC_ERROR_MESSAGE = "A :bug: showed up while running this command."

TEMPLATE_HELP = (
    "Tokens: {{user:ping}} {{action:text}} {{honeypot:channel:ping}} {{count}} "
    "{{guild:name}} {{message:link}}"
)


def build_settings_embed(config: GuildConfig) -> discord.Embed:
    """Embed summarising the form's current selections."""
    embed = discord.Embed(
        title="Honeypot Settings",
        description=(
            "Pick the honeypot channel, an optional log channel, the action and any experiments, "
            "then press **Save**. Leaving a channel select untouched keeps the current value."
        ),
        color=discord.Color.gold(),
    )
    embed.add_field(name="Honeypot channel", value=channel_mention(config.honeypot_channel_id) or "not set", inline=True)
    embed.add_field(
        name="Log channel",
        value=channel_mention(config.log_channel_id) or "same as honeypot channel",
        inline=True,
    )
    embed.add_field(name="Action", value=ACTION_LABELS[config.action], inline=False)
    experiments = sorted(EXPERIMENT_LABELS[experiment] for experiment in config.experiments)
    embed.add_field(name="Experiments", value=", ".join(experiments) or "none", inline=False)
    embed.set_footer(text="Only members with Manage Server can change these settings.")
    return embed


class HoneypotSettingsView(discord.ui.View):
    """Form state starts from the stored config; each select overwrites one field."""

    def __init__(self, service: ConfigurationService, config: GuildConfig, *, timeout_seconds: int = 600):
        super().__init__(timeout=timeout_seconds)
        self.service = service
        self.guild_id = config.guild_id
        self.honeypot_channel_id = config.honeypot_channel_id
        self.log_channel_id = config.log_channel_id
        self.action = config.action
        self.experiments = set(config.experiments)
        self.message: Optional[discord.Message] = None
        self._build_items()

    def _build_items(self) -> None:
        self.honeypot_select = discord.ui.Select(
            select_type=discord.ComponentType.channel_select,
            channel_types=[discord.ChannelType.text],
            placeholder="Honeypot channel",
            min_values=1,
            max_values=1,
            row=0,
        )
        self.honeypot_select.callback = self._on_honeypot_channel
        self.add_item(self.honeypot_select)

        self.log_select = discord.ui.Select(
            select_type=discord.ComponentType.channel_select,
            channel_types=[discord.ChannelType.text],
            placeholder="Log channel (optional, clear to use the honeypot channel)",
            min_values=0,
            max_values=1,
            row=1,
        )
        self.log_select.callback = self._on_log_channel
        self.add_item(self.log_select)

        self.action_select = discord.ui.Select(
            placeholder="Action",
            min_values=1,
            max_values=1,
            options=[
                discord.SelectOption(
                    label=ACTION_LABELS[action],
                    value=action.value,
                    emoji=ACTION_UI_EMOJIS[action],
                    default=action is self.action,
                )
                for action in HoneypotAction
            ],
            row=2,
        )
        self.action_select.callback = self._on_action
        self.add_item(self.action_select)

        self.experiment_select = discord.ui.Select(
            placeholder="Experiments",
            min_values=0,
            max_values=len(Experiment),
            options=[
                discord.SelectOption(
                    label=EXPERIMENT_LABELS[experiment],
                    value=experiment.value,
                    default=experiment in self.experiments,
                )
                for experiment in Experiment
            ],
            row=3,
        )
        self.experiment_select.callback = self._on_experiments
        self.add_item(self.experiment_select)

        save = discord.ui.Button(label="Save", style=discord.ButtonStyle.success, emoji="💾", row=4)
        save.callback = self._on_save
        self.add_item(save)

    def snapshot(self) -> GuildConfig:
        return GuildConfig(
            guild_id=self.guild_id,
            honeypot_channel_id=self.honeypot_channel_id,
            log_channel_id=self.log_channel_id,
            action=self.action,
            experiments=frozenset(self.experiments),
        )

    async def _refresh(self, interaction: discord.Interaction) -> None:
        await interaction.response.edit_message(embed=build_settings_embed(self.snapshot()), view=self)

    async def _on_honeypot_channel(self, interaction: discord.Interaction) -> None:
        values = self.honeypot_select.values
        self.honeypot_channel_id = values[0].id if values else self.honeypot_channel_id
        await self._refresh(interaction)

    async def _on_log_channel(self, interaction: discord.Interaction) -> None:
        values = self.log_select.values
        self.log_channel_id = values[0].id if values else None
        await self._refresh(interaction)

    async def _on_action(self, interaction: discord.Interaction) -> None:
        self.action = HoneypotAction.parse(self.action_select.values[0])
        await self._refresh(interaction)

    async def _on_experiments(self, interaction: discord.Interaction) -> None:
        self.experiments = {Experiment(value) for value in self.experiment_select.values}
        await self._refresh(interaction)

    async def _on_save(self, interaction: discord.Interaction) -> None:
        permissions = getattr(interaction.user, "guild_permissions", None)
        request = ConfigurationRequest(
            guild_id=self.guild_id,
            honeypot_channel_id=self.honeypot_channel_id,
            log_channel_id=self.log_channel_id,
            action=self.action,
            experiments=frozenset(self.experiments),
            invoker_can_ban=bool(getattr(permissions, "ban_members", False)),
        )

        # Submission makes several REST calls; acknowledge before the interaction window closes.
        await interaction.response.defer()
        try:
            result = await self.service.submit(request)
        except ConfigurationError as exc:
            await interaction.followup.send(f"❌ {exc}", ephemeral=True)
            return
        except Exception as exc:
            logger.error("[SETTINGS UI] Saving settings for guild %s failed: %s", self.guild_id, exc, exc_info=exc)
            await interaction.followup.send(GENERIC_ERROR_MESSAGE, ephemeral=True)
            return

        self.stop()
        await interaction.edit_original_response(embed=render_config_summary(result.config).build_embed(), view=None)
        await self.service.after_reply(result)

    async def on_timeout(self) -> None:  # pragma: no cover - relies on Discord timers
        for child in self.children:
            child.disabled = True
        if self.message is not None:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException:
                pass


class HoneypotTextModal(discord.ui.Modal):
    """Edit the custom warning, DM and log templates. Blank fields reset to the default."""

    def __init__(self, service: ConfigurationService, config: GuildConfig) -> None:
        super().__init__(title="Honeypot custom texts")
        self.service = service
        self.guild_id = config.guild_id
        self.add_item(discord.ui.InputText(
            label="Warning message",
            placeholder=TEMPLATE_HELP[:100],
            value=config.custom_warning_text,
            style=discord.InputTextStyle.long,
            required=False,
            max_length=2000,
        ))
        self.add_item(discord.ui.InputText(
            label="DM to moderated users",
            value=config.custom_dm_text,
            style=discord.InputTextStyle.long,
            required=False,
            max_length=2000,
        ))
        self.add_item(discord.ui.InputText(
            label="Log message",
            value=config.custom_log_text,
            style=discord.InputTextStyle.long,
            required=False,
            max_length=1000,
        ))

    async def callback(self, interaction: discord.Interaction) -> None:
        warning, dm, log = (child.value for child in self.children)
        await interaction.response.defer(ephemeral=True)
        config = await self.service.update_texts(self.guild_id, warning=warning, dm=dm, log=log)
        await interaction.followup.send(
            f"✅ Custom texts saved.\n-# {TEMPLATE_HELP}",
            embed=self.service.preview_dm(config).build_embed(),
            ephemeral=True,
        )
