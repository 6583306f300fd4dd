"""Tests for the Discord commands, guild event wiring and process bootstrap."""

import asyncio
import json
import logging
from types import SimpleNamespace

import pytest

from timebot.bot.client import PARENT_ROLE_REQUIRED, TimeBot
from timebot.bot.commands import TimezoneCommands, has_parent_role, invalid_timezone_message
from timebot.config.settings import Settings
from timebot.errors import InvalidTimezone
from timebot.keeper.daemon import OwnLoggersFilter, check_config
from timebot.services.timezones import TZ_DATABASE_URL

from conftest import BERLIN_USER, CHILD, GUILD_ID, PARENT


def _member(*role_ids):
    return SimpleNamespace(roles=[SimpleNamespace(id=role_id) for role_id in role_ids])


def test_parent_role_gates_commands(store):
    assert has_parent_role(_member(PARENT), store)
    assert has_parent_role(_member(CHILD, PARENT), store)
    assert not has_parent_role(_member(CHILD), store)
    assert not has_parent_role(_member(), store)


def test_users_outside_guilds_are_rejected(store):
    # discord.User in DMs has no roles
    assert not has_parent_role(SimpleNamespace(id=5), store)
    assert not has_parent_role(None, store)


def test_invalid_timezone_message():
    message = invalid_timezone_message(InvalidTimezone("Not/AZone", "no such zone in the tz database"))
    assert message.startswith("Failed to parse the timezone: no such zone")
    assert TZ_DATABASE_URL in message


def test_log_filter():
    own = logging.LogRecord("timebot.reconciler", logging.INFO, __file__, 1, "tick", None, None)
    noisy = logging.LogRecord("discord.gateway", logging.INFO, __file__, 1, "heartbeat", None, None)
    loud = logging.LogRecord("discord.gateway", logging.WARNING, __file__, 1, "reconnect", None, None)
    log_filter = OwnLoggersFilter()
    assert log_filter.filter(own)
    assert not log_filter.filter(noisy)
    assert log_filter.filter(loud)


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("TIMEBOT_CONFIG_PATH", str(tmp_path / "c.json"))
    monkeypatch.setenv("TIMEBOT_TICK_INTERVAL", "15")
    monkeypatch.setenv("TIMEBOT_API_ENABLED", "no")
    monkeypatch.setenv("TIMEBOT_TOKEN", " abc \n")
    settings = Settings()
    assert settings.config_path == tmp_path / "c.json"
    assert settings.tick_interval == 15.0
    assert settings.api_enabled is False
    assert settings.load_token() == "abc"


def test_token_file(monkeypatch, tmp_path):
    monkeypatch.delenv("TIMEBOT_TOKEN", raising=False)
    monkeypatch.setenv("TIMEBOT_TOKEN_PATH", str(tmp_path / "token"))
    assert Settings().load_token() is None
    (tmp_path / "token").write_text("secret\n")
    assert Settings().load_token() == "secret"


def test_check_config(tmp_path, capsys):
    settings = Settings()
    settings.config_path = tmp_path / "conf.json"
    assert check_config(settings) == 1

    settings.config_path.write_text(json.dumps({
        "start_hour": 9, "end_hour": 17, "parent_role_id": "1", "child_role_id": "2",
        "member_timezones": {"3": "UTC"},
    }))
    assert check_config(settings) == 0
    assert "Members: 1" in capsys.readouterr().out


def test_non_positive_tick_interval_is_rejected(monkeypatch):
    monkeypatch.setenv("TIMEBOT_TICK_INTERVAL", "0")
    with pytest.raises(ValueError):
        Settings()
    monkeypatch.setenv("TIMEBOT_TICK_INTERVAL", "-5")
    with pytest.raises(ValueError):
        Settings()


class RecordingResponse:
    def __init__(self):
        self.deferred = None
        self.sent = []

    def is_done(self):
        return self.deferred is not None or bool(self.sent)

    async def defer(self, **kwargs):
        self.deferred = kwargs

    async def send_message(self, content, **kwargs):
        self.sent.append((content, kwargs))


class RecordingFollowup:
    def __init__(self):
        self.sent = []

    async def send(self, content, **kwargs):
        self.sent.append((content, kwargs))


def _interaction(user_id, *role_ids):
    user = SimpleNamespace(id=user_id, roles=[SimpleNamespace(id=role_id) for role_id in role_ids])
    return SimpleNamespace(user=user, response=RecordingResponse(), followup=RecordingFollowup())


def _set_timezone(store, interaction, tzname, persist=None):
    cog = TimezoneCommands(SimpleNamespace(store=store, persist=persist))
    asyncio.run(TimezoneCommands.set_timezone.callback(cog, interaction, tzname))


def test_set_timezone_command_replies_ephemerally(store):
    saved = []
    interaction = _interaction(7, PARENT)
    _set_timezone(store, interaction, "Asia/Tokyo", persist=saved.append)

    assert interaction.response.deferred == {"ephemeral": True, "thinking": True}
    assert interaction.followup.sent == [("Your timezone now is `Asia/Tokyo`", {"ephemeral": True})]
    assert store.snapshot().member_timezones[7] == "Asia/Tokyo"
    assert saved[-1].member_timezones[7] == "Asia/Tokyo"


def test_set_timezone_command_rejects_unknown_names(store):
    before = store.snapshot()
    interaction = _interaction(BERLIN_USER, PARENT)
    _set_timezone(store, interaction, "Not/AZone")

    [(message, kwargs)] = interaction.followup.sent
    assert message.startswith("Failed to parse the timezone:")
    assert TZ_DATABASE_URL in message
    assert kwargs == {"ephemeral": True}
    assert store.snapshot() is before


def _guild_events(store, *events):
    """Feed guild events to a fresh bot; return registry membership after each."""
    settings = Settings()
    settings.tick_interval = 3600

    async def scenario():
        bot = TimeBot(store, settings)
        guild = SimpleNamespace(id=GUILD_ID)
        seen = []
        for event in events:
            await getattr(bot, event)(guild)
            seen.append(GUILD_ID in bot.supervisor)
        await bot.supervisor.stop_all()
        return seen

    return asyncio.run(scenario())


def test_guild_available_and_unavailable_drive_the_supervisor(store):
    assert _guild_events(store, "on_guild_available", "on_guild_unavailable") == [True, False]


def test_guild_join_and_remove_drive_the_supervisor(store):
    assert _guild_events(store, "on_guild_join", "on_guild_join", "on_guild_remove") == [True, True, False]


def _check_slash_command(store, interaction):
    async def scenario():
        bot = TimeBot(store, Settings())
        return await bot.tree.interaction_check(interaction)

    return asyncio.run(scenario())


def test_slash_commands_refuse_members_without_parent_role(store):
    interaction = _interaction(7, CHILD)
    assert _check_slash_command(store, interaction) is False
    assert interaction.response.sent == [(PARENT_ROLE_REQUIRED, {"ephemeral": True})]


def test_slash_commands_allow_parent_role(store):
    interaction = _interaction(7, PARENT)
    assert _check_slash_command(store, interaction) is True
    assert interaction.response.sent == []
