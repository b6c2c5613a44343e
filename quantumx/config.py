"""
quantumx.config — YAML Configuration Loader
============================================

**Why this file exists:**
Secrets (bot token, database URL) come from ``.env``.  Everything else the
operator may want to tune — the presence line, how often statistics are
refreshed, and the leveling knobs — lives in ``config.yaml``.

Usage::

    from quantumx.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.bot_name)          # "QuantumX"
    print(cfg.leveling.cooldown_seconds)  # 60
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from quantumx.constants import (
    DEFAULT_PRESENCE_ACTIVITY,
    XP_COOLDOWN_SECONDS,
    XP_MAX,
    XP_MIN,
)

VALID_STATUSES = ("online", "idle", "dnd", "invisible")


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LevelingConfig:
    """Tuning for the message XP engine."""

    xp_min: int = XP_MIN
    xp_max: int = XP_MAX
    cooldown_seconds: int = XP_COOLDOWN_SECONDS

    def __post_init__(self) -> None:
        if self.xp_min < 0 or self.xp_max < self.xp_min:
            raise ValueError(
                f"Invalid XP range [{self.xp_min}, {self.xp_max}]: "
                "xp_min must be >= 0 and <= xp_max."
            )
        if self.cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be >= 0.")


@dataclass(frozen=True, slots=True)
class QuantumXConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    bot_name: str

    # Presence shown after connect (overridable at runtime via global_config)
    presence_activity: str = DEFAULT_PRESENCE_ACTIVITY
    presence_status: str = "online"

    # How often the periodic task recomputes bot_stats
    stats_refresh_minutes: int = 60

    leveling: LevelingConfig = field(default_factory=LevelingConfig)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> QuantumXConfig:
    """Read *path* and return a :class:`QuantumXConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If the presence status or leveling values are out of range.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return parse_config(raw)


def parse_config(raw: dict) -> QuantumXConfig:
    """Build a :class:`QuantumXConfig` from an already-parsed mapping."""
    status = str(raw.get("presence_status", "online"))
    if status not in VALID_STATUSES:
        raise ValueError(
            f"presence_status must be one of {', '.join(VALID_STATUSES)} (got {status!r})"
        )

    lvl: dict = raw.get("leveling") or {}
    leveling = LevelingConfig(
        xp_min=int(lvl.get("xp_min", XP_MIN)),
        xp_max=int(lvl.get("xp_max", XP_MAX)),
        cooldown_seconds=int(lvl.get("cooldown_seconds", XP_COOLDOWN_SECONDS)),
    )

    return QuantumXConfig(
        bot_name=raw["bot_name"],
        presence_activity=raw.get("presence_activity") or DEFAULT_PRESENCE_ACTIVITY,
        presence_status=status,
        stats_refresh_minutes=int(raw.get("stats_refresh_minutes", 60)),
        leveling=leveling,
    )
