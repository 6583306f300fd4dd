"""Shared fixtures: an in-memory directory and a 9-17 configuration."""

from datetime import datetime, timezone

import pytest

from timebot.config.configuration import Configuration
from timebot.errors import MemberUnresolvable, RoleMutationFailure
from timebot.services.config_store import ConfigStore

GUILD_ID = 4242
PARENT = 1
CHILD = 2
BERLIN_USER = 100

# 2024-01-15 is in CET (UTC+1)
BERLIN_10 = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
BERLIN_18 = datetime(2024, 1, 15, 17, 0, tzinfo=timezone.utc)


class FakeMember:
    def __init__(self, user_id, roles=()):
        self.user_id = user_id
        self._roles = set(roles)

    @property
    def roles(self):
        return set(self._roles)


class FakeGuild:
    def __init__(self, group_id, members=()):
        self.group_id = group_id
        self.members = {m.user_id: m for m in members}
        self.broken = set()

    async def get_member(self, user_id):
        if user_id in self.broken:
            raise MemberUnresolvable(user_id, "lookup failed")
        return self.members.get(user_id)


class FakeDirectory:
    def __init__(self):
        self.guilds = {}
        self.available = True
        self.fail_for = set()
        self.calls = []

    def add_guild(self, group_id, *members):
        guild = FakeGuild(group_id, members)
        self.guilds[group_id] = guild
        return guild

    async def get_group_snapshot(self, group_id):
        if not self.available:
            return None
        return self.guilds.get(group_id)

    async def add_role(self, member, role_id):
        self.calls.append(("add", member.user_id, role_id))
        if member.user_id in self.fail_for:
            raise RoleMutationFailure("add", member.user_id, role_id, "403 Forbidden")
        member._roles.add(role_id)

    async def remove_role(self, member, role_id):
        self.calls.append(("remove", member.user_id, role_id))
        if member.user_id in self.fail_for:
            raise RoleMutationFailure("remove", member.user_id, role_id, "403 Forbidden")
        member._roles.discard(role_id)


@pytest.fixture
def configuration():
    return Configuration(
        start_hour=9,
        end_hour=17,
        parent_role_id=PARENT,
        child_role_id=CHILD,
        member_timezones={BERLIN_USER: "Europe/Berlin"},
    )


@pytest.fixture
def store(configuration):
    return ConfigStore(configuration)


@pytest.fixture
def directory():
    return FakeDirectory()


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock(BERLIN_10)
