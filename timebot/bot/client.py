"""
Discord client — Wires gateway events to the supervisor.

Guild available/join starts a guild's reconciler, unavailable/remove stops
it. All components share the ConfigStore handed in at construction.
"""

import logging
from typing import Callable, Optional

import discord
from discord import app_commands
from discord.ext import commands

from timebot.bot.commands import TimezoneCommands, has_parent_role
from timebot.config.configuration import Configuration
from timebot.config.settings import Settings
from timebot.keeper.supervisor import Supervisor
from timebot.services.config_store import ConfigStore
from timebot.services.directory import DiscordDirectory

logger = logging.getLogger("timebot.bot")

PARENT_ROLE_REQUIRED = "Only members with the parent role can use this command."


class ParentRoleCommandTree(app_commands.CommandTree):
    """Slash commands only answer members holding the parent role."""

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if has_parent_role(interaction.user, self.client.store):
            return True
        if not interaction.response.is_done():
            await interaction.response.send_message(PARENT_ROLE_REQUIRED, ephemeral=True)
        return False


class TimeBot(commands.Bot):
    """Discord bot owning the supervisor and the timezone commands."""

    def __init__(
        self,
        store: ConfigStore,
        settings: Settings,
        persist: Optional[Callable[[Configuration], None]] = None,
    ):
        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = True
        super().__init__(
            command_prefix=commands.when_mentioned_or(settings.command_prefix),
            intents=intents,
            tree_cls=ParentRoleCommandTree,
        )
        self.store = store
        self.persist = persist
        self.directory = DiscordDirectory(self)
        self.supervisor = Supervisor(store, self.directory, interval=settings.tick_interval)
        self.add_check(self._parent_role_check)

    async def _parent_role_check(self, ctx: commands.Context) -> bool:
        return has_parent_role(ctx.author, self.store)

    async def setup_hook(self):
        await self.add_cog(TimezoneCommands(self))

    async def on_ready(self):
        logger.info("%s is ready", self.user.name)
        await self.change_presence(status=discord.Status.dnd, activity=discord.Game("with timezones"))

    async def on_guild_available(self, guild: discord.Guild):
        self.supervisor.on_group_available(guild.id)

    async def on_guild_join(self, guild: discord.Guild):
        self.supervisor.on_group_available(guild.id)

    async def on_guild_unavailable(self, guild: discord.Guild):
        await self.supervisor.on_group_unavailable(guild.id)

    async def on_guild_remove(self, guild: discord.Guild):
        await self.supervisor.on_group_unavailable(guild.id)

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, (commands.CheckFailure, commands.CommandNotFound)):
            return
        logger.error("Command %s failed: %s", ctx.command, error)

    async def close(self):
        await self.supervisor.stop_all()
        await super().close()
