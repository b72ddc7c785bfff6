"""
Honeypot commands cog.

- /honeypot        – ephemeral settings form (Manage Server, guild only)
- /honeypot-text   – modal for the custom warning, DM and log templates
- /honeypot-stats  – aggregate and personal statistics, usable anywhere
"""

import discord
from discord.ext import commands

from honeypot.services.configuration_service import ConfigurationService
from honeypot.settings.honeypot_config_store import HoneypotConfigStore, honeypot_config_store
from honeypot.ui.messages import render_stats
from honeypot.ui.settings_ui import GENERIC_ERROR_MESSAGE, HoneypotSettingsView, HoneypotTextModal, build_settings_embed
from honeypot.util.logger import get_logger

logger = get_logger("honeypot_cmds")

GUILD_ONLY = {discord.InteractionContextType.guild}
ANYWHERE = {
    discord.InteractionContextType.guild,
    discord.InteractionContextType.bot_dm,
    discord.InteractionContextType.private_channel,
}


class HoneypotCommandsCog(commands.Cog):
    def __init__(
        self,
        bot: discord.Bot,
        service: ConfigurationService,
        store: HoneypotConfigStore = honeypot_config_store,
    ) -> None:
        self.bot = bot
        self.service = service
        self.store = store
        logger.info("[HONEYPOT COMMANDS] Honeypot commands cog loaded")

    async def _ensure_manager(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        permissions = getattr(ctx.user, "guild_permissions", None)
        if not getattr(permissions, "manage_guild", False):
            await ctx.respond("You need the Manage Server permission to configure the honeypot.", ephemeral=True)
            return False
        return True

    @commands.slash_command(
        name="honeypot",
        description="Configure the honeypot channel, log channel, action and experiments.",
        contexts=GUILD_ONLY,
    )
    @discord.default_permissions(manage_guild=True)
    async def honeypot(self, ctx: discord.ApplicationContext) -> None:
        if not await self._ensure_manager(ctx):
            return

        config = await self.service.load(ctx.guild_id)
        view = HoneypotSettingsView(self.service, config)
        await ctx.respond(embed=build_settings_embed(config), view=view, ephemeral=True)
        try:
            view.message = await ctx.interaction.original_response()
        except discord.NotFound:
            view.message = None

    @commands.slash_command(
        name="honeypot-text",
        description="Customise the honeypot warning, DM and log texts.",
        contexts=GUILD_ONLY,
    )
    @discord.default_permissions(manage_guild=True)
    async def honeypot_text(self, ctx: discord.ApplicationContext) -> None:
        if not await self._ensure_manager(ctx):
            return
        config = await self.service.load(ctx.guild_id)
        await ctx.send_modal(HoneypotTextModal(self.service, config))

    @commands.slash_command(
        name="honeypot-stats",
        description="Show how many spammers the honeypot has caught.",
        contexts=ANYWHERE,
    )
    async def honeypot_stats(self, ctx: discord.ApplicationContext) -> None:
        body = render_stats(
            await self.store.guild_count(),
            await self.store.total_count(),
            await self.store.count_for_user(ctx.user.id),
        )
        await ctx.respond(embed=body.build_embed(), ephemeral=True)

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, ctx: discord.ApplicationContext, error: Exception) -> None:
        command_name = getattr(ctx.command, "name", "<unknown>")
        logger.error("[HONEYPOT COMMANDS] Error in command '%s': %s", command_name, error, exc_info=error)

        try:
            await ctx.respond(GENERIC_ERROR_MESSAGE, ephemeral=True)
        except discord.InteractionResponded:
            await ctx.followup.send(GENERIC_ERROR_MESSAGE, ephemeral=True)
        except discord.HTTPException:
            pass


def setup(bot: discord.Bot, service: ConfigurationService) -> None:
    bot.add_cog(HoneypotCommandsCog(bot, service))
