"""
Timezone commands — What members can ask the bot.

/set_timezone stores the caller's tz database name. .register (owners only)
syncs the slash commands with Discord.
"""

import asyncio
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from timebot.errors import InvalidTimezone
from timebot.services.config_store import ConfigStore, set_user_timezone
from timebot.services.timezones import TZ_DATABASE_URL

logger = logging.getLogger("timebot.commands")


def has_parent_role(member: Optional[discord.abc.User], store: ConfigStore) -> bool:
    """Commands are reserved for guild members holding the parent role."""
    roles = getattr(member, "roles", None)
    if not roles:
        return False
    parent_role_id = store.snapshot().parent_role_id
    return any(role.id == parent_role_id for role in roles)


def invalid_timezone_message(error: InvalidTimezone) -> str:
    return (
        f"Failed to parse the timezone: {error.reason}\n"
        f"Make sure you use the `TZ database name` from {TZ_DATABASE_URL}"
    )


class TimezoneCommands(commands.Cog):
    """Member-facing timezone configuration."""

    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="set_timezone", description="Set your timezone")
    @app_commands.describe(tzname="TZ database name, e.g. Europe/Berlin")
    async def set_timezone(self, interaction: discord.Interaction, tzname: str):
        await interaction.response.defer(ephemeral=True, thinking=True)

        try:
            await asyncio.to_thread(
                set_user_timezone, self.bot.store, interaction.user.id, tzname, persist=self.bot.persist
            )
        except InvalidTimezone as e:
            logger.info("%s sent an invalid timezone %r", interaction.user.id, tzname)
            await interaction.followup.send(invalid_timezone_message(e), ephemeral=True)
            return

        await interaction.followup.send(f"Your timezone now is `{tzname}`", ephemeral=True)

    @commands.command(name="register")
    @commands.is_owner()
    async def register(self, ctx: commands.Context, scope: str = "global"):
        """Sync application commands globally, or to this guild with `guild`."""
        if scope == "guild" and ctx.guild is not None:
            self.bot.tree.copy_global_to(guild=ctx.guild)
            synced = await self.bot.tree.sync(guild=ctx.guild)
        else:
            synced = await self.bot.tree.sync()
        logger.info("Registered %d application command(s) (%s)", len(synced), scope)
        await ctx.reply(f"Registered {len(synced)} application command(s) ({scope})")
