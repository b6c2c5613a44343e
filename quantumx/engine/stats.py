"""
quantumx.engine.stats — Bot-wide Statistics
============================================

Pure aggregation over a snapshot of the guilds the bot is connected to.
The lifecycle coordinator takes the snapshot from the live gateway cache,
calls :func:`compute_stats`, and writes the result as the single
``bot_stats`` row.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GuildPresence:
    """One connected guild as seen at snapshot time."""

    server_id: str
    member_count: int | None = None  # None until the gateway reports it


@dataclass(frozen=True, slots=True)
class BotStatsSnapshot:
    total_servers: int
    total_users: int


def snapshot_from_guilds(guilds: Iterable) -> list[GuildPresence]:
    """Build a snapshot from ``discord.Guild``-like objects."""
    return [
        GuildPresence(server_id=str(g.id), member_count=getattr(g, "member_count", None))
        for g in guilds
    ]


def compute_stats(snapshot: Iterable[GuildPresence]) -> BotStatsSnapshot:
    """Count servers and sum member counts.

    Members of several servers are counted once per server.  Unknown member
    counts contribute zero.
    """
    servers = 0
    users = 0
    for guild in snapshot:
        servers += 1
        users += guild.member_count or 0
    return BotStatsSnapshot(total_servers=servers, total_users=users)
