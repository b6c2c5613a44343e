"""
quantumx.constants — Shared Constants & Helpers
================================================

Single source of truth for the leveling formula and user-facing strings.
Import from here instead of duplicating in cogs and services.
"""

from __future__ import annotations

import math

# ---------------------------------------------------------------------------
# Leveling defaults
# ---------------------------------------------------------------------------
XP_MIN = 10
XP_MAX = 25  # inclusive
XP_COOLDOWN_SECONDS = 60

# ---------------------------------------------------------------------------
# Fixed keys
# ---------------------------------------------------------------------------
MAIN_STATS_ID = "main_stats"
PRESENCE_ACTIVITY_KEY = "presence.activity"
DEFAULT_PRESENCE_ACTIVITY = "with Quantum Physics \u269b\ufe0f"  # atom symbol

# ---------------------------------------------------------------------------
# Reply strings
# ---------------------------------------------------------------------------
COMMAND_NOT_FOUND_MESSAGE = "Command not found!"
COMMAND_FAILED_MESSAGE = "There was an error executing this command!"
STATUS_TEXT = "QuantumX Bot is running! \U0001f680"  # 🚀


# ---------------------------------------------------------------------------
# Leveling formula — THE single canonical implementation
# ---------------------------------------------------------------------------
def level_for_xp(xp: int) -> int:
    """Level reached with *xp* total experience.

    ``level = floor(0.1 * sqrt(xp))``, evaluated with the integer square
    root so perfect squares never land a hair below the boundary.
    """
    if xp < 0:
        raise ValueError(f"xp must be non-negative (got {xp})")
    return math.isqrt(xp) // 10


def xp_for_level(level: int) -> int:
    """Minimum total XP at which *level* is reached (inverse of the formula)."""
    return (10 * level) ** 2


def level_up_message(mention: str, level: int) -> str:
    return f"\U0001f389 Congratulations {mention}! You've reached level **{level}**!"
