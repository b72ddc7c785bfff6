import asyncio

import pytest

from honeypot.database.db_connection import db_connection
from honeypot.datatypes.honeypot_config import Experiment, GuildConfig, HoneypotAction


def make_config(**overrides) -> GuildConfig:
    values = dict(
        guild_id=1,
        honeypot_channel_id=10,
        honeypot_message_id=100,
        log_channel_id=20,
        action=HoneypotAction.BAN,
        experiments=frozenset({Experiment.NO_DM, Experiment.KEEP_ALIVE}),
    )
    values.update(overrides)
    return GuildConfig(**values)


@pytest.mark.asyncio
async def test_get_unknown_guild_returns_none(store):
    assert await store.get(123) is None


@pytest.mark.asyncio
async def test_set_then_get_round_trips_every_field(store):
    config = make_config(custom_warning_text="Stay out", custom_log_text="{{user:ping}} gone")
    await store.set(config)

    assert await store.get(1) == config


@pytest.mark.asyncio
async def test_set_is_idempotent(store):
    config = make_config()
    await store.set(config)
    first = await store.get(1)
    await store.set(config)

    assert await store.get(1) == first
    assert await store.guild_count() == 1


@pytest.mark.asyncio
async def test_set_replaces_all_columns(store):
    await store.set(make_config())
    await store.set(make_config(log_channel_id=None, experiments=frozenset(), action=HoneypotAction.DISABLED))

    stored = await store.get(1)
    assert stored.log_channel_id is None
    assert stored.experiments == frozenset()
    assert stored.action is HoneypotAction.DISABLED


@pytest.mark.asyncio
async def test_legacy_action_values_read_as_softban(store):
    await store.set(make_config())
    async with db_connection.transaction() as conn:
        await conn.execute("UPDATE honeypot_config SET action = 'kick' WHERE guild_id = 1")

    assert (await store.get(1)).action is HoneypotAction.SOFTBAN


@pytest.mark.asyncio
async def test_clear_channel_clears_channel_and_message(store):
    await store.set(make_config())

    result = await store.clear_channel_if_matches(1, 10)

    assert result.honeypot_cleared and not result.log_cleared
    stored = await store.get(1)
    assert stored.honeypot_channel_id is None
    assert stored.honeypot_message_id is None
    assert stored.log_channel_id == 20


@pytest.mark.asyncio
async def test_clear_channel_clears_both_when_same_channel(store):
    await store.set(make_config(log_channel_id=10))

    result = await store.clear_channel_if_matches(1, 10)

    assert result.honeypot_cleared and result.log_cleared
    stored = await store.get(1)
    assert stored.honeypot_channel_id is None and stored.log_channel_id is None


@pytest.mark.asyncio
async def test_clear_channel_ignores_other_channels(store):
    config = make_config()
    await store.set(config)

    result = await store.clear_channel_if_matches(1, 999)

    assert not result.any
    assert await store.get(1) == config


@pytest.mark.asyncio
async def test_clear_message_only_when_matching(store):
    await store.set(make_config())

    assert await store.clear_message_if_matches(1, 555) is False
    assert (await store.get(1)).honeypot_message_id == 100

    assert await store.clear_message_if_matches(1, 100) is True
    stored = await store.get(1)
    assert stored.honeypot_message_id is None
    assert stored.honeypot_channel_id == 10


@pytest.mark.asyncio
async def test_record_event_returns_new_count(store):
    await store.set(make_config())
    await store.set(make_config(guild_id=2))

    assert await store.record_event(1, 42) == 1
    assert await store.record_event(1, 43) == 2
    assert await store.record_event(2, 42) == 1

    assert await store.count(1) == 2
    assert await store.count_for_user(42) == 2
    assert await store.total_count() == 3


@pytest.mark.asyncio
async def test_delete_cascades_events(store):
    await store.set(make_config())
    await store.record_event(1, 42)

    await store.delete(1)

    assert await store.get(1) is None
    assert await store.count(1) == 0
    assert await store.count_for_user(42) == 0


@pytest.mark.asyncio
async def test_guilds_with_experiment_matches_whole_flags(store):
    await store.set(make_config(guild_id=1, experiments=frozenset({Experiment.CHANNEL_RENAME})))
    await store.set(make_config(guild_id=2, experiments=frozenset({Experiment.CHAOS_RENAME, Experiment.KEEP_ALIVE})))
    await store.set(make_config(guild_id=3, experiments=frozenset()))

    rename = await store.guilds_with_experiment(Experiment.CHANNEL_RENAME)
    keep_alive = await store.guilds_with_experiment(Experiment.KEEP_ALIVE)

    assert [config.guild_id for config in rename] == [1]
    assert [config.guild_id for config in keep_alive] == [2]


@pytest.mark.asyncio
async def test_concurrent_events_are_all_counted(store):
    await store.set(make_config())

    await asyncio.gather(*(store.record_event(1, user) for user in range(20)))

    assert await store.count(1) == 20


@pytest.mark.asyncio
async def test_mutation_lock_is_per_guild(store):
    assert store.mutation_lock(1) is store.mutation_lock(1)
    assert store.mutation_lock(1) is not store.mutation_lock(2)
