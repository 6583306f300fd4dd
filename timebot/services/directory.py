"""
Directory — The member and role view the reconcilers work against.

The reconciler only needs the small surface below. ``DiscordDirectory`` is
the discord.py implementation; tests use an in-memory one.
"""

import logging
from typing import Optional, Protocol, Set

import discord

from timebot.errors import MemberUnresolvable, RoleMutationFailure

logger = logging.getLogger("timebot.directory")

AUDIT_REASON = "Local time window"


class MemberView(Protocol):
    user_id: int

    @property
    def roles(self) -> Set[int]: ...


class GroupView(Protocol):
    group_id: int

    async def get_member(self, user_id: int) -> Optional[MemberView]: ...


class DirectoryClient(Protocol):
    async def get_group_snapshot(self, group_id: int) -> Optional[GroupView]: ...

    async def add_role(self, member: MemberView, role_id: int) -> None: ...

    async def remove_role(self, member: MemberView, role_id: int) -> None: ...


class DiscordMember:
    """A guild member as seen at lookup time."""

    def __init__(self, member: discord.Member):
        self.member = member
        self.user_id = member.id

    @property
    def roles(self) -> Set[int]:
        return {role.id for role in self.member.roles}


class DiscordGuild:
    """A cached guild."""

    def __init__(self, guild: discord.Guild):
        self.guild = guild
        self.group_id = guild.id

    async def get_member(self, user_id: int) -> Optional[DiscordMember]:
        """Return the member from cache, falling back to a fetch.

        Returns None when the user is not in the guild, raises
        MemberUnresolvable when the lookup itself fails.
        """
        member = self.guild.get_member(user_id)
        if member is not None:
            return DiscordMember(member)
        logger.debug("Member %s not cached in guild %s, fetching", user_id, self.group_id)
        try:
            member = await self.guild.fetch_member(user_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as e:
            raise MemberUnresolvable(user_id, str(e)) from e
        return DiscordMember(member)


class DiscordDirectory:
    """DirectoryClient backed by a connected discord.py client."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def get_group_snapshot(self, group_id: int) -> Optional[DiscordGuild]:
        guild = self.client.get_guild(group_id)
        if guild is None or guild.unavailable:
            return None
        return DiscordGuild(guild)

    async def add_role(self, member: DiscordMember, role_id: int) -> None:
        try:
            await member.member.add_roles(discord.Object(id=role_id), reason=AUDIT_REASON)
        except discord.HTTPException as e:
            raise RoleMutationFailure("add", member.user_id, role_id, str(e)) from e

    async def remove_role(self, member: DiscordMember, role_id: int) -> None:
        try:
            await member.member.remove_roles(discord.Object(id=role_id), reason=AUDIT_REASON)
        except discord.HTTPException as e:
            raise RoleMutationFailure("remove", member.user_id, role_id, str(e)) from e
