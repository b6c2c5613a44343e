"""
quantumx.bot.commands — Command Interface, Registry & Built-ins
================================================================

A command is any object with a ``name``, a ``description`` and an async
``execute(interaction)``.  Commands are registered once at startup into a
:class:`CommandRegistry`; the dispatch pipeline only ever reads from it.

Built-in commands:
- /ping  — gateway latency
- /rank  — the invoker's XP and level in this server
- /stats — the latest bot-wide statistics
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING

import discord

from quantumx.constants import xp_for_level
from quantumx.database.engine import run_db
from quantumx.services.store import get_bot_stats, get_user_level

if TYPE_CHECKING:
    from quantumx.bot.core import QuantumXBot


class Command(ABC):
    """A slash command that can be dispatched by name."""

    name: str
    description: str

    @abstractmethod
    async def execute(self, interaction: discord.Interaction) -> None:
        """Handle one invocation.  Exceptions are handled by the dispatcher."""


class CommandRegistry:
    """Name → command mapping.  Names are case-sensitive and unique."""

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}
        self._frozen = False

    def register(self, name: str, command: Command) -> None:
        if self._frozen:
            raise RuntimeError(f"Registry is frozen; cannot register {name!r}")
        if name in self._commands:
            raise ValueError(f"Command {name!r} is already registered")
        self._commands[name] = command

    def freeze(self) -> None:
        """Disallow further registration (called once startup is done)."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)


# ---------------------------------------------------------------------------
# Built-in commands
# ---------------------------------------------------------------------------
class PingCommand(Command):
    name = "ping"
    description = "Check the bot's gateway latency."

    async def execute(self, interaction: discord.Interaction) -> None:
        latency_ms = round(interaction.client.latency * 1000)
        await interaction.response.send_message(f"\U0001f3d3 Pong! {latency_ms} ms")


class RankCommand(Command):
    name = "rank"
    description = "Show your XP and level in this server."

    async def execute(self, interaction: discord.Interaction) -> None:
        if interaction.guild_id is None:
            await interaction.response.send_message(
                "Levels are tracked per server; use this command in a server.",
                ephemeral=True,
            )
            return

        bot: QuantumXBot = interaction.client  # type: ignore[assignment]
        row = await run_db(
            get_user_level, bot.engine, str(interaction.user.id), str(interaction.guild_id)
        )
        if row is None:
            await interaction.response.send_message(
                "You haven't earned any XP here yet. Start chatting!", ephemeral=True,
            )
            return

        next_at = xp_for_level(row.level + 1)
        await interaction.response.send_message(
            f"**{interaction.user.display_name}** — Level **{row.level}**\n"
            f"XP: {row.xp} / {next_at}  ·  Messages: {row.messages_sent}"
        )


class StatsCommand(Command):
    name = "stats"
    description = "Show bot-wide statistics."

    async def execute(self, interaction: discord.Interaction) -> None:
        bot: QuantumXBot = interaction.client  # type: ignore[assignment]
        stats = await run_db(get_bot_stats, bot.engine)
        if stats is None:
            await interaction.response.send_message(
                "No statistics recorded yet.", ephemeral=True,
            )
            return

        await interaction.response.send_message(
            f"\U0001f4ca Serving **{stats.total_servers}** servers "
            f"and **{stats.total_users}** users."
        )


BUILTIN_COMMANDS: tuple[type[Command], ...] = (PingCommand, RankCommand, StatsCommand)


def default_registry() -> CommandRegistry:
    """A frozen registry holding every built-in command."""
    registry = CommandRegistry()
    for cls in BUILTIN_COMMANDS:
        cmd = cls()
        registry.register(cmd.name, cmd)
    registry.freeze()
    return registry
