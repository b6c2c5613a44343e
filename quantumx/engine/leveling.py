"""
quantumx.engine.leveling — Message XP Calculation
==================================================

Pure calculation half of the award protocol.  No Discord I/O, no DB I/O:
:mod:`quantumx.services.experience_service` reads the current row, asks
this module what should happen, and writes the answer back.

Pipeline:
  previous row → Cooldown gate → XP roll → Level derivation → AwardResult
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from quantumx.constants import XP_COOLDOWN_SECONDS, XP_MAX, XP_MIN, level_for_xp

__all__ = [
    "AwardResult",
    "LevelSnapshot",
    "as_utc",
    "compute_award",
    "is_on_cooldown",
    "roll_xp",
]


@dataclass(frozen=True, slots=True)
class LevelSnapshot:
    """The stored state of one (user, server) row before an award."""

    xp: int
    level: int
    messages_sent: int
    last_xp_gain: datetime | None


@dataclass(frozen=True, slots=True)
class AwardResult:
    """Outcome of a successful award.  A cooldown hit is ``None``, not this."""

    xp_gained: int
    total_xp: int
    old_level: int
    new_level: int
    messages_sent: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Stage 1: Cooldown gate
# ---------------------------------------------------------------------------
def is_on_cooldown(
    previous: LevelSnapshot | None,
    now: datetime,
    cooldown_seconds: int = XP_COOLDOWN_SECONDS,
) -> bool:
    """True when *previous* was awarded less than *cooldown_seconds* ago.

    A missing row, or a row that never recorded a gain, is never on cooldown.
    """
    if previous is None or previous.last_xp_gain is None:
        return False
    elapsed = as_utc(now) - as_utc(previous.last_xp_gain)
    return elapsed < timedelta(seconds=cooldown_seconds)


# ---------------------------------------------------------------------------
# Stage 2: XP roll
# ---------------------------------------------------------------------------
def roll_xp(
    rng: random.Random | None = None,
    xp_min: int = XP_MIN,
    xp_max: int = XP_MAX,
) -> int:
    """Uniform integer in ``[xp_min, xp_max]``, both ends inclusive."""
    return (rng or random).randint(xp_min, xp_max)


# ---------------------------------------------------------------------------
# Stage 3: Level derivation + level-up detection
# ---------------------------------------------------------------------------
def compute_award(previous: LevelSnapshot | None, delta: int) -> AwardResult:
    """Apply *delta* on top of *previous* (``None`` = first contribution).

    The level is re-derived from the cumulative total every time, so a row
    with a stale level is corrected on its next award.
    """
    if delta < 0:
        raise ValueError(f"XP delta must be non-negative (got {delta})")

    old_xp = previous.xp if previous else 0
    old_level = previous.level if previous else 0
    old_messages = previous.messages_sent if previous else 0

    total = old_xp + delta
    return AwardResult(
        xp_gained=delta,
        total_xp=total,
        old_level=old_level,
        new_level=level_for_xp(total),
        messages_sent=old_messages + 1,
    )
