"""
quantumx.bot.core — Bot Instance & Cog Loader
==============================================

Defines :class:`QuantumXBot`, a ``commands.Bot`` subclass that:

1. Carries the shared config (``bot.cfg``), DB engine (``bot.engine``),
   command dispatcher and lifecycle coordinator so every cog can reach
   them through ``self.bot``.
2. Loads every cog listed in :data:`EXTENSIONS`.
3. Publishes the registry's commands to Discord's app-command tree.  Each
   tree entry, and every name the tree does not recognise, is handed to
   :class:`~quantumx.bot.dispatch.CommandDispatcher`, so all invocations
   share one resolution, audit and error path.
4. On connect: syncs the command tree, refreshes bot stats, sets presence.
"""

from __future__ import annotations

import logging
import os

import discord
from discord import app_commands
from discord.ext import commands
from sqlalchemy import Engine

from quantumx.bot.commands import Command, CommandRegistry, default_registry
from quantumx.bot.dispatch import CommandDispatcher
from quantumx.config import QuantumXConfig
from quantumx.constants import PRESENCE_ACTIVITY_KEY
from quantumx.database.engine import run_db
from quantumx.engine.stats import snapshot_from_guilds
from quantumx.services.lifecycle_service import LifecycleCoordinator
from quantumx.services.store import get_global_config

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "quantumx.bot.cogs.lifecycle",
    "quantumx.bot.cogs.leveling",
    "quantumx.bot.cogs.tasks",
]


class DispatchTree(app_commands.CommandTree):
    """Command tree that routes unknown command names to the dispatcher."""

    async def on_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        if isinstance(error, app_commands.CommandNotFound):
            bot: QuantumXBot = self.client  # type: ignore[assignment]
            await bot.dispatcher.dispatch(error.name, interaction)
            return
        await super().on_error(interaction, error)


class QuantumXBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`QuantumXConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine` connected to the store.
    registry:
        Commands to serve; defaults to the built-ins.
    """

    def __init__(
        self,
        cfg: QuantumXConfig,
        engine: Engine,
        registry: CommandRegistry | None = None,
    ) -> None:
        # GUILDS for join/leave + member counts, GUILD_MESSAGES for XP.
        # MESSAGE_CONTENT is not needed: XP does not look at the text.
        intents = discord.Intents.default()
        intents.message_content = False
        intents.presences = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            description=cfg.bot_name,
            tree_cls=DispatchTree,
        )

        self.cfg = cfg
        self.engine = engine
        self.registry = registry or default_registry()
        self.registry.freeze()
        self.dispatcher = CommandDispatcher(self.registry, engine)
        self.lifecycle = LifecycleCoordinator(engine, leveling=cfg.leveling)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load cogs and publish commands before connecting.

        A broken cog is logged and skipped so the rest of the bot still runs.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        for command in self.registry:
            self.tree.add_command(self._as_app_command(command))
        logger.info("Registered %d slash commands", len(self.registry))

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the guild cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Bot logged in as %s (ID: %s)", self.user, self.user.id)

        await self._sync_commands()
        await self.lifecycle.on_connect(snapshot_from_guilds(self.guilds))
        await self._set_presence()

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------
    def _as_app_command(self, command: Command) -> app_commands.Command:
        """Wrap *command* in a tree entry that defers to the dispatcher."""

        async def callback(interaction: discord.Interaction) -> None:
            await self.dispatcher.dispatch(command.name, interaction)

        return app_commands.Command(
            name=command.name,
            description=command.description,
            callback=callback,
        )

    async def _sync_commands(self) -> None:
        """Guild-scoped sync when ``DEV_GUILD_ID`` is set, global otherwise."""
        try:
            dev_guild_id = os.getenv("DEV_GUILD_ID")
            if dev_guild_id:
                guild = discord.Object(id=int(dev_guild_id))
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
            else:
                synced = await self.tree.sync()
                logger.info("Synced %d commands globally", len(synced))
        except discord.HTTPException:
            logger.exception("Slash-command sync failed")

    async def _set_presence(self) -> None:
        """Show the configured activity, or the ``presence.activity`` override
        from ``global_config`` when an operator has set one.
        """
        activity_name = self.cfg.presence_activity
        try:
            activity_name = await run_db(
                get_global_config, self.engine, PRESENCE_ACTIVITY_KEY, activity_name,
            )
        except Exception:
            logger.exception("Failed to read presence activity; using config default")

        await self.change_presence(
            activity=discord.Game(name=activity_name),
            status=discord.Status(self.cfg.presence_status),
        )
