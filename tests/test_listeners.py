import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from honeypot.cog.listener import events_listener, message_listener
from honeypot.services.trigger_pipeline import TriggerEvent


def make_message(*, guild_id=1, channel_id=10, message_id=100, author_id=42, bot=False):
    return SimpleNamespace(
        guild=SimpleNamespace(id=guild_id) if guild_id else None,
        channel=SimpleNamespace(id=channel_id),
        id=message_id,
        author=SimpleNamespace(id=author_id, bot=bot),
        webhook_id=None,
        interaction_metadata=None,
        interaction=None,
        created_at=datetime.datetime.now(datetime.timezone.utc),
    )


@pytest.fixture
def fake_bot():
    return SimpleNamespace(
        user=SimpleNamespace(id=999),
        change_presence=AsyncMock(),
        guilds=[SimpleNamespace(id=1)],
    )


@pytest.fixture
def reconciler():
    return SimpleNamespace(
        on_guild_create=AsyncMock(),
        on_guild_update=AsyncMock(),
        on_guild_remove=AsyncMock(),
        on_channel_delete=AsyncMock(),
        on_message_delete=AsyncMock(),
        on_bulk_message_delete=AsyncMock(),
    )


# ---------------------------------------------------------------------------
# Message listener
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_human_message_is_cached_and_forwarded(fake_bot, message_cache):
    pipeline = SimpleNamespace(handle=AsyncMock())
    cog = message_listener.MessageListenerCog(fake_bot, pipeline, message_cache)

    await cog.on_message(make_message())

    pipeline.handle.assert_awaited_once_with(TriggerEvent(guild_id=1, channel_id=10, message_id=100, user_id=42))
    assert [entry.message_id for entry in message_cache.recent_for_user(1, 42)] == [100]


@pytest.mark.asyncio
async def test_bot_and_dm_messages_are_dropped(fake_bot, message_cache):
    pipeline = SimpleNamespace(handle=AsyncMock())
    cog = message_listener.MessageListenerCog(fake_bot, pipeline, message_cache)

    await cog.on_message(make_message(bot=True))
    await cog.on_message(make_message(guild_id=None))

    pipeline.handle.assert_not_awaited()
    assert len(message_cache) == 0


@pytest.mark.asyncio
async def test_pipeline_errors_are_isolated(fake_bot, message_cache):
    pipeline = SimpleNamespace(handle=AsyncMock(side_effect=RuntimeError("boom")))
    cog = message_listener.MessageListenerCog(fake_bot, pipeline, message_cache)

    assert await cog.on_message(make_message()) is None


# ---------------------------------------------------------------------------
# Events listener
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_guild_join_and_available_run_setup(fake_bot, reconciler):
    cog = events_listener.EventsListenerCog(fake_bot, reconciler)
    guild = SimpleNamespace(id=1, name="G")

    await cog.on_guild_join(guild)
    await cog.on_guild_available(guild)

    assert reconciler.on_guild_create.await_count == 2


@pytest.mark.asyncio
async def test_guild_remove_and_update_are_forwarded(fake_bot, reconciler):
    cog = events_listener.EventsListenerCog(fake_bot, reconciler)
    before = SimpleNamespace(id=1, name="Old")
    after = SimpleNamespace(id=1, name="New")

    await cog.on_guild_update(before, after)
    await cog.on_guild_remove(after)

    reconciler.on_guild_update.assert_awaited_once_with(after)
    reconciler.on_guild_remove.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_channel_and_message_deletes_are_forwarded(fake_bot, reconciler):
    cog = events_listener.EventsListenerCog(fake_bot, reconciler)

    await cog.on_guild_channel_delete(SimpleNamespace(id=10, guild=SimpleNamespace(id=1)))
    await cog.on_raw_message_delete(SimpleNamespace(guild_id=1, message_id=100))
    await cog.on_raw_message_delete(SimpleNamespace(guild_id=None, message_id=101))
    await cog.on_raw_bulk_message_delete(SimpleNamespace(guild_id=1, message_ids={100, 102}))

    reconciler.on_channel_delete.assert_awaited_once_with(1, 10)
    reconciler.on_message_delete.assert_awaited_once_with(1, 100)
    reconciler.on_bulk_message_delete.assert_awaited_once_with(1, {100, 102})


@pytest.mark.asyncio
async def test_reconciler_errors_do_not_escape(fake_bot, reconciler):
    reconciler.on_guild_create.side_effect = RuntimeError("db down")
    cog = events_listener.EventsListenerCog(fake_bot, reconciler)

    await cog.on_guild_join(SimpleNamespace(id=1, name="G"))
