"""
quantumx.bot.cogs.tasks — Periodic Background Tasks
====================================================

- **Stats refresh** — recomputes ``bot_stats`` every
  ``stats_refresh_minutes`` (default 60) so member-count drift between
  join/leave events is picked up.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

from quantumx.engine.stats import snapshot_from_guilds

if TYPE_CHECKING:
    from quantumx.bot.core import QuantumXBot

logger = logging.getLogger(__name__)


class PeriodicTasks(commands.Cog):
    """Cog for scheduled maintenance tasks."""

    def __init__(self, bot: QuantumXBot) -> None:
        self.bot = bot
        self.stats_loop.change_interval(minutes=bot.cfg.stats_refresh_minutes)

    async def cog_load(self) -> None:
        self.stats_loop.start()

    async def cog_unload(self) -> None:
        self.stats_loop.cancel()

    @tasks.loop(minutes=60)
    async def stats_loop(self) -> None:
        """Recompute bot-wide statistics from the live guild cache."""
        outcome = await self.bot.lifecycle.refresh_stats(snapshot_from_guilds(self.bot.guilds))
        if not outcome.stats_updated:
            logger.warning("Scheduled stats refresh failed", extra={"task": "stats"})

    @stats_loop.before_loop
    async def _wait_ready(self) -> None:
        await self.bot.wait_until_ready()


async def setup(bot: QuantumXBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
