"""
Honeypot Moderation Bot
=======================

A Discord bot that keeps a "honeypot" channel in every server and moderates
whoever posts in it.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. HONEYPOT_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("HONEYPOT_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from honeypot.cache.guild_info_cache import guild_info_cache
from honeypot.database.database import database
from honeypot.services.configuration_service import ConfigurationService
from honeypot.services.discord_api import DiscordAPI
from honeypot.services.experiments import ExperimentRunner
from honeypot.services.reconciler import LifecycleReconciler
from honeypot.services.trigger_pipeline import TriggerPipeline
from honeypot.util.logger import get_logger, handle_exception, handle_loop_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Guild and message events only; message content is never read."""
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    intents.dm_messages = True
    return intents


def load_cogs(bot: discord.Bot, api: DiscordAPI) -> None:
    """Build the services and register every cog with the bot."""
    from honeypot.cog.commands import honeypot_cmds
    from honeypot.cog.listener import events_listener, message_listener, scheduler_cog

    experiments = ExperimentRunner(api)
    configuration = ConfigurationService(api, experiments)

    events_listener.setup(bot, LifecycleReconciler(api))
    message_listener.setup(bot, TriggerPipeline(api))
    honeypot_cmds.setup(bot, configuration)
    scheduler_cog.setup(bot, experiments)

    logger.info("All cogs loaded successfully.")


def create_bot() -> discord.Bot:
    """Instantiate the Discord bot, its API adapter and all cogs."""
    bot = discord.Bot(intents=build_intents())
    api = DiscordAPI(bot)
    guild_info_cache.set_fetcher(api.fetch_guild_info)
    load_cogs(bot, api)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None = None) -> None:
    """Close the Discord connection and the database."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    await database.shutdown()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database and the bot, returning an exit code."""
    token = load_environment()
    asyncio.get_running_loop().set_exception_handler(handle_loop_exception)

    logger.info("Initializing database…")
    if not await database.initialize():
        logger.critical("Failed to initialize database.")
        return 1

    try:
        bot = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await database.shutdown()
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting Honeypot bot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1


if __name__ == "__main__":
    sys.exit(main())
