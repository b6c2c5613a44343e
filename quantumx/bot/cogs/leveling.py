"""
quantumx.bot.cogs.leveling — Message XP
========================================

Listens for on_message, filters to qualifying messages (human author, sent
in a server), and runs them through the XP award.  A level-up earns a
congratulatory reply to the message.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from quantumx.constants import level_up_message

if TYPE_CHECKING:
    from quantumx.bot.core import QuantumXBot

logger = logging.getLogger(__name__)


class Leveling(commands.Cog, name="Leveling"):
    """Awards XP for chat activity."""

    def __init__(self, bot: QuantumXBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        try:
            await self._handle_message(message)
        except Exception:
            logger.exception(
                "Error processing message %s from user %s",
                message.id,
                message.author.id,
                extra={"event_type": "message", "user_id": message.author.id,
                       "message_id": message.id},
            )

    async def _handle_message(self, message: discord.Message) -> None:
        """Inner message handler (separated for error isolation)."""
        if message.author.bot:
            return
        if message.guild is None:
            return

        result = await self.bot.lifecycle.on_message(
            str(message.author.id), str(message.guild.id), message.guild.name,
        )
        if result is None or not result.leveled_up:
            return

        logger.info(
            "%s reached level %d in %s",
            message.author.display_name, result.new_level, message.guild.name,
        )
        await message.reply(level_up_message(message.author.mention, result.new_level))


async def setup(bot: QuantumXBot) -> None:
    await bot.add_cog(Leveling(bot))
