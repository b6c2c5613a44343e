"""
quantumx.bot.cogs.lifecycle — Guild Join / Leave
=================================================

Forwards GUILD_CREATE (bot added to a server) and GUILD_DELETE (bot removed)
to the lifecycle coordinator.  Connect is handled in ``QuantumXBot.on_ready``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from quantumx.engine.stats import snapshot_from_guilds

if TYPE_CHECKING:
    from quantumx.bot.core import QuantumXBot

logger = logging.getLogger(__name__)


class Lifecycle(commands.Cog, name="Lifecycle"):
    """Keeps server configs and bot stats in step with guild membership."""

    def __init__(self, bot: QuantumXBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_guild_join(self, guild: discord.Guild) -> None:
        await self.bot.lifecycle.on_join(
            str(guild.id), guild.name, snapshot_from_guilds(self.bot.guilds),
        )

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        await self.bot.lifecycle.on_leave(
            str(guild.id), guild.name, snapshot_from_guilds(self.bot.guilds),
        )


async def setup(bot: QuantumXBot) -> None:
    await bot.add_cog(Lifecycle(bot))
