"""
quantumx.services.lifecycle_service — Connect / Join / Leave / Message
=======================================================================

Reacts to the bot's lifecycle events:

- **connect** — recompute ``bot_stats``.
- **join**    — create the server's config row if absent, then recompute
  ``bot_stats``.
- **leave**   — recompute ``bot_stats``.  The config row is kept.
- **message** — if leveling is enabled for the server, run the XP award.

Every store call is isolated: a failure is logged and reported in the
returned outcome, and the remaining steps still run.  Nothing raised by
the store ever reaches the gateway listener.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from quantumx.config import LevelingConfig
from quantumx.database.engine import run_db
from quantumx.engine.leveling import AwardResult
from quantumx.engine.stats import GuildPresence, compute_stats
from quantumx.services import store
from quantumx.services.experience_service import award_experience

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class LifecycleOutcome:
    """What each best-effort step of a lifecycle event achieved.

    ``config_created`` is ``None`` when the event has no config step,
    ``False`` when the row already existed *or* the insert failed; see
    ``errors`` to tell the two apart.
    """

    stats_updated: bool = False
    config_created: bool | None = None
    errors: list[str] | None = None

    def mark_failed(self, step: str) -> None:
        if self.errors is None:
            self.errors = []
        self.errors.append(step)


class LifecycleCoordinator:
    """Owns the lifecycle reactions for one bot process.

    Parameters
    ----------
    engine:
        SQLAlchemy engine for the store.
    leveling:
        XP range and cooldown forwarded to the award protocol.
    clock:
        Returns the current aware datetime; injectable for tests.
    started_at:
        Process start time written as ``bot_stats.last_restart``.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        leveling: LevelingConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
        started_at: datetime | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.engine = engine
        self.leveling = leveling or LevelingConfig()
        self.clock = clock
        self.started_at = started_at or clock()
        self.rng = rng

    # -----------------------------------------------------------------------
    # Best-effort steps
    # -----------------------------------------------------------------------
    async def refresh_stats(
        self, snapshot: Iterable[GuildPresence], outcome: LifecycleOutcome | None = None
    ) -> LifecycleOutcome:
        """Recompute and overwrite ``bot_stats`` from *snapshot*."""
        outcome = outcome or LifecycleOutcome()
        stats = compute_stats(snapshot)
        try:
            await run_db(
                store.replace_bot_stats,
                self.engine,
                stats,
                last_restart=self.started_at,
                recorded_at=self.clock(),
            )
        except Exception:
            logger.exception("Failed to update bot stats", extra={"step": "stats"})
            outcome.mark_failed("stats")
            return outcome

        outcome.stats_updated = True
        logger.info(
            "Bot stats updated: %d servers, %d users",
            stats.total_servers, stats.total_users,
        )
        return outcome

    async def ensure_server_config(
        self, server_id: str, server_name: str, outcome: LifecycleOutcome | None = None
    ) -> LifecycleOutcome:
        """Insert-if-absent the config row for *server_id*."""
        outcome = outcome or LifecycleOutcome()
        try:
            outcome.config_created = await run_db(
                store.create_server_config,
                self.engine,
                server_id,
                server_name,
                created_at=self.clock(),
            )
        except Exception:
            logger.exception(
                "Failed to create server config for %s", server_id,
                extra={"step": "server_config", "server_id": server_id},
            )
            outcome.config_created = False
            outcome.mark_failed("server_config")
        return outcome

    # -----------------------------------------------------------------------
    # Lifecycle events
    # -----------------------------------------------------------------------
    async def on_connect(self, snapshot: Iterable[GuildPresence]) -> LifecycleOutcome:
        return await self.refresh_stats(snapshot)

    async def on_join(
        self, server_id: str, server_name: str, snapshot: Iterable[GuildPresence]
    ) -> LifecycleOutcome:
        logger.info("Joined new server: %s (%s)", server_name, server_id)
        outcome = await self.ensure_server_config(server_id, server_name)
        return await self.refresh_stats(snapshot, outcome)

    async def on_leave(
        self, server_id: str, server_name: str, snapshot: Iterable[GuildPresence]
    ) -> LifecycleOutcome:
        logger.info("Left server: %s (%s)", server_name, server_id)
        return await self.refresh_stats(snapshot)

    async def on_message(
        self, user_id: str, server_id: str, server_name: str
    ) -> AwardResult | None:
        """Run the XP award for a qualifying message.

        Returns the award, or ``None`` when leveling is off for the server,
        the server had no config yet (it is created, but this message earns
        nothing), the cooldown is active, or the store failed.
        """
        try:
            config = await run_db(store.get_server_config, self.engine, server_id)
        except Exception:
            logger.exception(
                "Failed to get server config for %s", server_id,
                extra={"step": "server_config", "server_id": server_id},
            )
            return None

        if config is None:
            await self.ensure_server_config(server_id, server_name)
            return None
        if not config.leveling_enabled:
            return None

        try:
            return await run_db(
                award_experience,
                self.engine,
                user_id,
                server_id,
                self.clock(),
                leveling=self.leveling,
                rng=self.rng,
            )
        except Exception:
            logger.exception(
                "Failed to award XP to user %s in server %s", user_id, server_id,
                extra={"step": "award_xp", "user_id": user_id, "server_id": server_id},
            )
            return None
