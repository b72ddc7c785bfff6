import asyncio
from types import SimpleNamespace

import pytest

from honeypot.configuration.app_configuration import app_config
from honeypot.datatypes.honeypot_config import Experiment, GuildConfig, HoneypotAction
from honeypot.services import trigger_pipeline
from honeypot.services.trigger_pipeline import (
    StepStatus,
    TriggerEvent,
    TriggerPipeline,
    resolve_trigger_author,
)

from conftest import GUILD_ID, OWNER_ID

USER_ID = 42
HONEYPOT = 10
LOG = 20


@pytest.fixture
def pipeline(api, store, guild_cache, message_cache):
    api.add_channel(GUILD_ID, "honeypot", HONEYPOT)
    api.add_channel(GUILD_ID, "mod-log", LOG)
    return TriggerPipeline(
        api,
        store,
        guild_cache,
        message_cache,
        emoji="🍯",
        reaction_timeout=0.5,
        delete_message_seconds=3600,
        softban_delay=0,
    )


async def configure(api, store, **overrides):
    message_id = api.add_message(HONEYPOT, api.bot_user_id)
    values = dict(
        guild_id=GUILD_ID,
        honeypot_channel_id=HONEYPOT,
        honeypot_message_id=message_id,
        log_channel_id=LOG,
        action=HoneypotAction.BAN,
    )
    values.update(overrides)
    config = GuildConfig(**values)
    await store.set(config)
    return config


def trigger(api, user_id=USER_ID, channel_id=HONEYPOT):
    message_id = api.add_message(channel_id, user_id)
    return TriggerEvent(guild_id=GUILD_ID, channel_id=channel_id, message_id=message_id, user_id=user_id)


@pytest.mark.asyncio
async def test_unconfigured_guild_is_a_no_op(api, pipeline):
    outcome = await pipeline.handle(trigger(api))

    assert outcome.steps["config"].status is StepStatus.SKIPPED
    assert api.calls == []


@pytest.mark.asyncio
async def test_other_channel_is_ignored(api, store, pipeline):
    await configure(api, store)

    outcome = await pipeline.handle(trigger(api, channel_id=LOG))

    assert outcome.config is None
    assert api.called("add_reaction") == []


@pytest.mark.asyncio
async def test_disabled_only_reacts(api, store, pipeline):
    await configure(api, store, action=HoneypotAction.DISABLED)

    outcome = await pipeline.handle(trigger(api))

    assert [name for name, _ in api.calls] == ["add_reaction"]
    assert await store.count(GUILD_ID) == 0
    assert outcome.steps["moderate"].status is StepStatus.SKIPPED


@pytest.mark.asyncio
async def test_ban_success_runs_every_step_in_order(api, store, pipeline):
    config = await configure(api, store)

    outcome = await pipeline.handle(trigger(api))

    assert [name for name, _ in api.calls] == ["add_reaction", "send_dm", "ban", "edit_message", "send_message"]
    assert api.called("ban") == [(GUILD_ID, USER_ID, 3600)]
    assert outcome.moderated and outcome.count == 1
    assert await store.count(GUILD_ID) == 1

    warning = api.body_of(HONEYPOT, config.honeypot_message_id)
    assert warning.counter_label == "Bans: 1"

    (channel_id, notice), = api.called("send_message")
    assert channel_id == LOG
    assert f"<@{USER_ID}>" in notice.content


@pytest.mark.asyncio
async def test_count_increases_by_exactly_one_per_trigger(api, store, pipeline):
    config = await configure(api, store)

    await pipeline.handle(trigger(api, user_id=1001))
    await pipeline.handle(trigger(api, user_id=1002))

    assert await store.count(GUILD_ID) == 2
    assert api.body_of(HONEYPOT, config.honeypot_message_id).counter_label == "Bans: 2"


@pytest.mark.asyncio
async def test_softban_bans_then_unbans_and_purges_cache(api, store, pipeline, message_cache):
    await configure(api, store, action=HoneypotAction.SOFTBAN)
    elsewhere = api.add_channel(GUILD_ID, "general")
    stray = api.add_message(elsewhere, USER_ID)
    message_cache.add(GUILD_ID, elsewhere, stray, USER_ID)

    outcome = await pipeline.handle(trigger(api))

    names = [name for name, _ in api.calls]
    assert names.index("send_dm") < names.index("ban") < names.index("unban")
    assert stray not in api.messages_in(elsewhere)
    assert message_cache.recent_for_user(GUILD_ID, USER_ID) == []
    assert outcome.moderated


@pytest.mark.asyncio
async def test_softban_waits_the_configured_delay_before_unbanning(api, store, guild_cache, message_cache, monkeypatch):
    api.add_channel(GUILD_ID, "honeypot", HONEYPOT)
    api.add_channel(GUILD_ID, "mod-log", LOG)
    await configure(api, store, action=HoneypotAction.SOFTBAN)

    async def recording_sleep(delay):
        api.calls.append(("sleep", (delay,)))

    monkeypatch.setattr(trigger_pipeline.asyncio, "sleep", recording_sleep)
    configured = TriggerPipeline(api, store, guild_cache, message_cache, reaction_timeout=0.5)

    await configured.handle(trigger(api))

    names = [name for name, _ in api.calls]
    first_ban = names.index("ban")
    assert names[first_ban:first_ban + 3] == ["ban", "sleep", "unban"]
    assert api.called("sleep") == [(app_config.softban_unban_delay,)]
    assert configured.softban_delay == app_config.softban_unban_delay


@pytest.mark.asyncio
async def test_owner_is_never_moderated(api, store, pipeline):
    await configure(api, store)

    outcome = await pipeline.handle(trigger(api, user_id=OWNER_ID))

    assert api.called("ban") == []
    assert api.called("unban") == []
    assert await store.count(GUILD_ID) == 0
    assert outcome.is_owner
    assert outcome.steps["moderate"].reason == "server owner"

    (user_id, dm), = api.dms
    assert "as the owner" in dm.description
    (channel_id, notice), = api.called("send_message")
    assert "server owner" in notice.content


@pytest.mark.asyncio
async def test_owner_notice_suppressed_without_warning_message(api, store, pipeline):
    await configure(api, store, experiments=frozenset({Experiment.NO_WARNING_MESSAGE}))

    outcome = await pipeline.handle(trigger(api, user_id=OWNER_ID))

    assert api.called("send_message") == []
    assert api.called("edit_message") == []
    assert outcome.steps["report"].status is StepStatus.SKIPPED


@pytest.mark.asyncio
async def test_failed_ban_is_reported_and_not_counted(api, store, pipeline):
    await configure(api, store)
    api.fail.add("ban")

    outcome = await pipeline.handle(trigger(api))

    assert outcome.failed
    assert await store.count(GUILD_ID) == 0
    assert outcome.steps["record"].status is StepStatus.SKIPPED
    (channel_id, notice), = api.called("send_message")
    assert "failed" in notice.content


@pytest.mark.asyncio
async def test_dm_and_reaction_failures_do_not_block(api, store, pipeline):
    await configure(api, store)
    api.fail.update({"send_dm", "add_reaction"})

    outcome = await pipeline.handle(trigger(api))

    assert outcome.steps["react"].status is StepStatus.FAILED
    assert outcome.steps["dm"].status is StepStatus.FAILED
    assert outcome.moderated
    assert await store.count(GUILD_ID) == 1


@pytest.mark.asyncio
async def test_reaction_timeout_is_bounded(api, store, pipeline):
    await configure(api, store)

    async def hang(*args):
        await asyncio.sleep(10)

    api.add_reaction = hang
    pipeline.reaction_timeout = 0.01

    outcome = await pipeline.handle(trigger(api))

    assert outcome.steps["react"].reason == "reaction timed out"
    assert outcome.moderated


@pytest.mark.asyncio
async def test_no_dm_experiment_skips_dm(api, store, pipeline):
    await configure(api, store, experiments=frozenset({Experiment.NO_DM}))

    outcome = await pipeline.handle(trigger(api))

    assert api.dms == []
    assert outcome.steps["dm"].status is StepStatus.SKIPPED
    assert outcome.moderated


@pytest.mark.asyncio
async def test_missing_warning_message_is_not_fatal(api, store, pipeline):
    config = await configure(api, store)
    del api.messages_in(HONEYPOT)[config.honeypot_message_id]

    outcome = await pipeline.handle(trigger(api))

    assert outcome.steps["refresh_warning"].status is StepStatus.FAILED
    assert outcome.steps["report"].succeeded


@pytest.mark.asyncio
async def test_report_failure_is_captured(api, store, pipeline):
    await configure(api, store, log_channel_id=404)

    outcome = await pipeline.handle(trigger(api))

    assert outcome.moderated
    assert outcome.steps["report"].status is StepStatus.FAILED


@pytest.mark.asyncio
async def test_success_notice_goes_to_honeypot_channel_without_log_channel(api, store, pipeline):
    await configure(api, store, log_channel_id=None, custom_log_text="{{user:ping}} {{action:text}}")

    await pipeline.handle(trigger(api))

    (channel_id, notice), = api.called("send_message")
    assert channel_id == HONEYPOT
    assert notice.content == f"<@{USER_ID}> banned"


# ---------------------------------------------------------------------------
# Author resolution
# ---------------------------------------------------------------------------

def make_message(author_id=7, bot=False, webhook_id=None, invoker=None):
    metadata = SimpleNamespace(user=invoker) if invoker else None
    return SimpleNamespace(
        author=SimpleNamespace(id=author_id, bot=bot),
        webhook_id=webhook_id,
        interaction_metadata=metadata,
        interaction=None,
    )


def test_human_author_is_the_trigger_author():
    assert resolve_trigger_author(make_message(author_id=7)) == 7


def test_plain_bot_and_webhook_messages_are_ignored():
    assert resolve_trigger_author(make_message(bot=True)) is None
    assert resolve_trigger_author(make_message(webhook_id=123)) is None


def test_slash_command_response_is_attributed_to_invoker():
    human = SimpleNamespace(id=55, bot=False)
    assert resolve_trigger_author(make_message(bot=True, invoker=human)) == 55


def test_bot_invoker_is_ignored():
    other_bot = SimpleNamespace(id=56, bot=True)
    assert resolve_trigger_author(make_message(bot=True, invoker=other_bot)) is None
