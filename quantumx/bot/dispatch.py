"""
quantumx.bot.dispatch — Command Dispatch & Audit Logging
=========================================================

Every slash-command invocation flows through :meth:`CommandDispatcher.dispatch`:

1. Resolve the name in the registry.  Unknown → ephemeral "not found"
   reply, nothing logged.
2. Run the command inside a failure boundary.
3. On failure send a generic ephemeral notice, as a follow-up if the
   command had already responded or deferred, otherwise as the reply.
4. Write exactly one ``command_usage`` row (success flag, latency since the
   interaction was created, error text on failure).

Writing the audit row is best-effort: a store failure is logged and shows
up as ``audit_logged=False`` on the result, nothing more.

States for one invocation::

    RECEIVED → NOT_FOUND (unknown name)
    RECEIVED → RESOLVED → EXECUTING → SUCCEEDED | FAILED → LOGGED
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import discord

from quantumx.constants import COMMAND_FAILED_MESSAGE, COMMAND_NOT_FOUND_MESSAGE
from quantumx.database.engine import run_db
from quantumx.engine.leveling import as_utc
from quantumx.services.store import record_command_usage

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from quantumx.bot.commands import CommandRegistry

logger = logging.getLogger(__name__)


class InvocationState(enum.StrEnum):
    RECEIVED = "received"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    LOGGED = "logged"


@dataclass
class DispatchResult:
    """Outcome of one invocation.

    ``succeeded`` is the command's own outcome (``None`` if it never ran);
    ``audit_logged`` says whether the usage row was written.  The two are
    independent.  ``transitions`` lists every state the invocation passed
    through, in order.
    """

    command_name: str
    state: InvocationState = InvocationState.RECEIVED
    transitions: list[InvocationState] = field(
        default_factory=lambda: [InvocationState.RECEIVED]
    )
    succeeded: bool | None = None
    audit_logged: bool = False
    error: str | None = None
    execution_time: int | None = None  # milliseconds

    def advance(self, state: InvocationState) -> None:
        self.state = state
        self.transitions.append(state)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CommandDispatcher:
    """Resolves, runs and audits slash commands."""

    def __init__(
        self,
        registry: CommandRegistry,
        engine: Engine,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.registry = registry
        self.engine = engine
        self.clock = clock

    async def dispatch(
        self, command_name: str, interaction: discord.Interaction
    ) -> DispatchResult:
        """Handle one invocation of *command_name*.  Never raises."""
        result = DispatchResult(command_name=command_name)

        command = self.registry.get(command_name)
        if command is None:
            result.advance(InvocationState.NOT_FOUND)
            logger.warning(
                "Unknown command %r from user %s", command_name, interaction.user.id,
            )
            await self._notify(interaction, COMMAND_NOT_FOUND_MESSAGE)
            return result

        result.advance(InvocationState.RESOLVED)
        logger.debug("Dispatching /%s for user %s", command_name, interaction.user.id)

        result.advance(InvocationState.EXECUTING)
        try:
            await command.execute(interaction)
        except Exception as exc:
            result.advance(InvocationState.FAILED)
            result.succeeded = False
            result.error = str(exc)
            logger.exception(
                "Command execution error: /%s", command_name,
                extra={"command": command_name, "user_id": interaction.user.id},
            )
        else:
            result.advance(InvocationState.SUCCEEDED)
            result.succeeded = True

        finished_at = self.clock()
        result.execution_time = max(
            0, int((finished_at - as_utc(interaction.created_at)).total_seconds() * 1000)
        )
        # Initial replies expire 3 s after the interaction was created;
        # the notice goes out before the audit write.
        if not result.succeeded:
            await self._notify(interaction, COMMAND_FAILED_MESSAGE)

        result.audit_logged = await self._log_usage(interaction, result, finished_at)
        result.advance(InvocationState.LOGGED)
        return result

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------
    async def _log_usage(
        self,
        interaction: discord.Interaction,
        result: DispatchResult,
        used_at: datetime,
    ) -> bool:
        try:
            await run_db(
                record_command_usage,
                self.engine,
                command_name=result.command_name,
                server_id=str(interaction.guild_id) if interaction.guild_id else None,
                user_id=str(interaction.user.id),
                success=bool(result.succeeded),
                execution_time=result.execution_time or 0,
                error_message=result.error,
                used_at=used_at,
            )
        except Exception:
            logger.exception(
                "Failed to log command usage for /%s", result.command_name,
                extra={"command": result.command_name},
            )
            return False
        return True

    async def _notify(self, interaction: discord.Interaction, content: str) -> None:
        """Send an ephemeral notice as reply or follow-up, whichever fits."""
        try:
            if interaction.response.is_done():
                await interaction.followup.send(content, ephemeral=True)
            else:
                await interaction.response.send_message(content, ephemeral=True)
        except discord.HTTPException:
            logger.exception("Failed to deliver notice for interaction %s", interaction.id)
