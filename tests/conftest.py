"""
Pytest configuration and fixtures for the honeypot bot tests.
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import discord
import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from honeypot.cache.guild_info_cache import GuildInfo, GuildInfoCache  # noqa: E402
from honeypot.cache.message_cache import RecentMessageCache  # noqa: E402
from honeypot.database.database import Database  # noqa: E402
from honeypot.services.discord_api import DiscordAPI  # noqa: E402
from honeypot.settings.honeypot_config_store import HoneypotConfigStore  # noqa: E402

BOT_ID = 999
GUILD_ID = 1
OWNER_ID = 500

ALL_PERMISSIONS = SimpleNamespace(
    send_messages=True,
    view_channel=True,
    manage_messages=True,
    manage_channels=True,
    ban_members=True,
)


def http_error(kind=discord.Forbidden, status=403, reason="Forbidden", message="Missing Permissions"):
    return kind(SimpleNamespace(status=status, reason=reason), message)


class FakeDiscordAPI:
    """In-memory stand-in for DiscordAPI, addressed by ids like the real one.

    ``fail`` holds method names that raise ``discord.Forbidden``; ``calls``
    records every outbound call in order.
    """

    post_deduplicated = DiscordAPI.post_deduplicated

    def __init__(self, bot_user_id=BOT_ID):
        self.bot_user_id = bot_user_id
        self.channels = {}
        self.system_channels = {}
        self.channel_permissions = {}
        self.guild_permissions = {}
        self.guild_infos = {}
        self.fail = set()
        self.calls = []
        self.dms = []
        self._next_id = 10_000

    # -- helpers for tests -------------------------------------------------

    def new_id(self):
        self._next_id += 1
        return self._next_id

    def add_channel(self, guild_id, name, channel_id=None):
        channel_id = channel_id or self.new_id()
        self.channels[channel_id] = {"guild": guild_id, "name": name, "messages": {}}
        return channel_id

    def add_message(self, channel_id, author_id, body=None):
        message_id = self.new_id()
        self.channels[channel_id]["messages"][message_id] = (author_id, body)
        return message_id

    def messages_in(self, channel_id):
        return self.channels[channel_id]["messages"]

    def body_of(self, channel_id, message_id):
        return self.channels[channel_id]["messages"][message_id][1]

    def called(self, name):
        return [args for call, args in self.calls if call == name]

    def _enter(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail:
            raise http_error()

    def _channel(self, channel_id):
        if channel_id not in self.channels:
            raise http_error(discord.NotFound, 404, "Not Found", "Unknown Channel")
        return self.channels[channel_id]

    # -- DiscordAPI surface -----------------------------------------------

    async def fetch_guild_info(self, guild_id):
        self._enter("fetch_guild_info", guild_id)
        return self.guild_infos.get(guild_id)

    async def find_text_channel(self, guild_id, name):
        self._enter("find_text_channel", guild_id, name)
        for channel_id, channel in self.channels.items():
            if channel["guild"] == guild_id and channel["name"] == name:
                return channel_id
        return None

    async def system_channel_id(self, guild_id):
        self._enter("system_channel_id", guild_id)
        return self.system_channels.get(guild_id)

    async def create_text_channel(self, guild_id, name, reason=None):
        self._enter("create_text_channel", guild_id, name)
        return self.add_channel(guild_id, name)

    async def rename_channel(self, channel_id, name, reason=None):
        self._enter("rename_channel", channel_id, name)
        self._channel(channel_id)["name"] = name

    async def bot_channel_permissions(self, channel_id):
        return self.channel_permissions.get(channel_id, ALL_PERMISSIONS)

    async def bot_guild_permissions(self, guild_id):
        return self.guild_permissions.get(guild_id, ALL_PERMISSIONS)

    async def send_message(self, channel_id, body):
        self._enter("send_message", channel_id, body)
        self._channel(channel_id)
        return self.add_message(channel_id, self.bot_user_id, body)

    async def edit_message(self, channel_id, message_id, body):
        self._enter("edit_message", channel_id, message_id, body)
        messages = self._channel(channel_id)["messages"]
        if message_id not in messages:
            raise http_error(discord.NotFound, 404, "Not Found", "Unknown Message")
        messages[message_id] = (messages[message_id][0], body)

    async def delete_message(self, channel_id, message_id):
        self._enter("delete_message", channel_id, message_id)
        messages = self._channel(channel_id)["messages"]
        if message_id not in messages:
            raise http_error(discord.NotFound, 404, "Not Found", "Unknown Message")
        del messages[message_id]

    async def add_reaction(self, channel_id, message_id, emoji):
        self._enter("add_reaction", channel_id, message_id, emoji)

    async def recent_message_ids_by(self, channel_id, author_id, limit=50):
        self._enter("recent_message_ids_by", channel_id, author_id)
        messages = self._channel(channel_id)["messages"]
        newest_first = sorted(messages, reverse=True)[:limit]
        return [message_id for message_id in newest_first if messages[message_id][0] == author_id]

    async def send_dm(self, user_id, body):
        self._enter("send_dm", user_id, body)
        self.dms.append((user_id, body))

    async def ban(self, guild_id, user_id, delete_message_seconds, reason=None):
        self._enter("ban", guild_id, user_id, delete_message_seconds)

    async def unban(self, guild_id, user_id, reason=None):
        self._enter("unban", guild_id, user_id)


@pytest.fixture
def api():
    return FakeDiscordAPI()


@pytest.fixture
def guild_cache():
    cache = GuildInfoCache(fetch_timeout=0.5)
    cache.set(GUILD_ID, GuildInfo(name="Test Guild", owner_id=OWNER_ID, vanity_code=None, locale="en-US"))
    return cache


@pytest.fixture
def message_cache():
    return RecentMessageCache(retention_seconds=3600, max_per_user=50)


@pytest_asyncio.fixture
async def store(tmp_path):
    """A HoneypotConfigStore backed by a fresh SQLite file."""
    db = Database()
    assert await db.initialize(tmp_path / "honeypot.db")
    yield HoneypotConfigStore()
    await db.shutdown()
