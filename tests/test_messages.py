import pytest

from honeypot.configuration.app_configuration import AppConfig
from honeypot.datatypes.honeypot_config import Experiment, GuildConfig, HoneypotAction
from honeypot.ui import messages
from honeypot.ui.locales import STRINGS, resolve_strings


# ---------------------------------------------------------------------------
# Locale resolution
# ---------------------------------------------------------------------------

def test_exact_locale_wins():
    assert resolve_strings("pt-BR")["ban_action_short"] == "Bane"


def test_regional_tag_falls_back_to_base_language():
    assert resolve_strings("de-AT")["ban_action_short"] == STRINGS["de"]["ban_action_short"]
    assert resolve_strings("en-GB") == resolve_strings("en")


@pytest.mark.parametrize("locale", [None, "", "xx", "zz-ZZ"])
def test_unknown_locale_falls_back_to_default(locale):
    assert resolve_strings(locale) == STRINGS["en"]


def test_partial_locale_is_merged_over_default():
    strings = resolve_strings("fr")
    assert strings["warning_message"] == STRINGS["fr"]["warning_message"]
    assert strings["log_success"] == STRINGS["en"]["log_success"]


def test_unknown_locale_uses_configured_default(monkeypatch):
    monkeypatch.setattr(AppConfig, "default_locale", property(lambda self: "de"))

    assert resolve_strings("xx-YY")["ban_action_full"] == STRINGS["de"]["ban_action_full"]
    assert resolve_strings(None)["ban_action_full"] == STRINGS["de"]["ban_action_full"]
    assert resolve_strings("fr")["ban_action_full"] == STRINGS["fr"]["ban_action_full"]


def test_configured_default_falls_back_through_its_base_language():
    assert resolve_strings("xx", fallback="de-CH")["ban_action_short"] == STRINGS["de"]["ban_action_short"]
    assert resolve_strings("xx", fallback="zz")["ban_action_short"] == STRINGS["en"]["ban_action_short"]


def test_every_locale_only_uses_known_keys():
    known = set(STRINGS["en"])
    for tag, record in STRINGS.items():
        assert set(record) <= known, tag


# ---------------------------------------------------------------------------
# Substitution
# ---------------------------------------------------------------------------

def test_substitute_replaces_every_occurrence():
    text = messages.substitute("{{count}} and {{count}}", {"count": "3"})
    assert text == "3 and 3"


def test_substitute_leaves_unknown_tokens_verbatim():
    text = messages.substitute("{{count}} {{mystery}} {{user:ping}}", {"count": "1", "user:ping": None})
    assert text == "1 {{mystery}} {{user:ping}}"


def test_substituted_values_are_not_expanded_again():
    text = messages.substitute(
        "{{guild:name}} {{message:link}}",
        {"guild:name": "Evil {{message:link}}", "message:link": "https://x/1"},
    )
    assert text == "Evil {{message:link}} https://x/1"


def test_user_dm_keeps_tokens_inside_guild_name_literal():
    body = messages.render_user_dm(HoneypotAction.BAN, "Evil {{message:link}}", "https://x/1", False, "en")
    assert "Evil {{message:link}}" in body.description


def test_log_message_custom_template():
    body = messages.render_log_message(
        42, 7, HoneypotAction.BAN,
        custom_text="Hi {{user:ping}} - {{action:text}} in {{honeypot:channel:ping}}",
    )
    assert body.content == "Hi <@42> - banned in <#7>"


def test_default_log_message_mentions_user_and_channel():
    body = messages.render_log_message(42, 7, HoneypotAction.SOFTBAN)
    assert "<@42>" in body.content
    assert "<#7>" in body.content
    assert "softbanned" in body.content


# ---------------------------------------------------------------------------
# Warning message
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "action, wording, label",
    [
        (HoneypotAction.BAN, "an immediate ban", "Bans: 5"),
        (HoneypotAction.SOFTBAN, "a softban", "Kicks: 5"),
        (HoneypotAction.DISABLED, "no action (honeypot is disabled)", "Triggers: 5"),
    ],
)
def test_warning_message_matches_action_and_count(action, wording, label):
    body = messages.render_warning_message(5, action, "en")

    assert wording in body.description
    assert body.counter_label == label
    assert body.thumbnail is True


def test_warning_message_is_localized():
    body = messages.render_warning_message(0, HoneypotAction.BAN, "de")
    assert STRINGS["de"]["ban_action_full"] in body.description
    assert body.counter_label == "Bannt: 0"


def test_warning_message_custom_text():
    body = messages.render_warning_message(
        3, HoneypotAction.BAN, custom_text="{{count}} caught in {{honeypot:channel:ping}}", channel_id=9
    )
    assert body.description == "3 caught in <#9>"
    assert body.counter_label == "Bans: 3"


# ---------------------------------------------------------------------------
# DM
# ---------------------------------------------------------------------------

def test_user_dm_contains_past_tense_link_and_disclaimer():
    body = messages.render_user_dm(
        HoneypotAction.BAN, "Test Guild", "https://discord.com/channels/1/2/3", is_owner=False
    )
    assert "**banned**" in body.description
    assert "Test Guild" in body.description
    assert "(https://discord.com/channels/1/2/3)" in body.description
    assert "Replies are not monitored" in body.footer
    assert "owner" not in body.description


def test_user_dm_for_owner_adds_exemption_note():
    body = messages.render_user_dm(HoneypotAction.SOFTBAN, "G", "link", is_owner=True)
    assert "as the owner you can't be kicked" in body.description


def test_user_dm_preview_has_title():
    assert messages.render_user_dm(HoneypotAction.BAN, "G", "link", False, is_preview=True).title == "Preview"


def test_user_dm_custom_text():
    body = messages.render_user_dm(
        HoneypotAction.BAN, "G", "L", False, custom_text="{{action:text}} from {{guild:name}} ({{message:link}})"
    )
    assert body.description == "banned from G (L)"


# ---------------------------------------------------------------------------
# Notices and summaries
# ---------------------------------------------------------------------------

def test_owner_and_failed_notices_differ():
    exempt = messages.render_owner_exempt_notice(42, 7, HoneypotAction.BAN)
    failed = messages.render_failed_notice(42, 7, HoneypotAction.BAN)

    assert "server owner" in exempt.content
    assert "Ban Members" in failed.content
    assert exempt.content != failed.content


def test_config_summary_lists_every_setting():
    config = GuildConfig(
        guild_id=1,
        honeypot_channel_id=10,
        log_channel_id=None,
        action=HoneypotAction.BAN,
        experiments=frozenset({Experiment.NO_DM}),
    )
    text = messages.render_config_summary(config).text

    assert "<#10>" in text
    assert "same as honeypot channel" in text
    assert "Ban" in text
    assert "No DM to moderated users" in text


def test_stats_render():
    text = messages.render_stats(12, 3456, 2).text
    assert "12" in text and "3,456" in text and "2" in text
