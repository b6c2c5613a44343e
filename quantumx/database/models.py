"""
quantumx.database.models — SQLAlchemy 2.0 Data Models
======================================================

Tables:
- server_configs  — One row per Discord server (insert-if-absent)
- user_levels     — Per (user, server) experience counters
- command_usage   — Append-only audit trail, one row per resolved command
- bot_stats       — Singleton aggregate row, fully replaced on recompute
- global_config   — Bot-wide key/value settings
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    true,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all QuantumX ORM models."""


# ---------------------------------------------------------------------------
# ServerConfig — one row per Discord server
# ---------------------------------------------------------------------------
class ServerConfig(Base):
    __tablename__ = "server_configs"

    server_id: Mapped[str] = mapped_column(String(32), primary_key=True)  # Discord snowflake
    server_name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    leveling_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    def __repr__(self) -> str:
        return (
            f"<ServerConfig id={self.server_id} name={self.server_name!r} "
            f"leveling={self.leveling_enabled}>"
        )


# ---------------------------------------------------------------------------
# UserLevel — per (user, server) experience
# ---------------------------------------------------------------------------
class UserLevel(Base):
    """Experience counters for one member of one server.

    ``level`` is always derived from ``xp`` at write time, never incremented
    on its own.  ``messages_sent`` doubles as the row version for the
    conditional update in :mod:`quantumx.services.experience_service`.
    """
    __tablename__ = "user_levels"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    server_id: Mapped[str] = mapped_column(String(32), nullable=False)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    messages_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_xp_gain: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    __table_args__ = (
        UniqueConstraint("user_id", "server_id", name="uq_user_levels_user_server"),
        Index("ix_user_levels_server_xp", "server_id", "xp"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserLevel user={self.user_id} server={self.server_id} "
            f"xp={self.xp} lvl={self.level}>"
        )


# ---------------------------------------------------------------------------
# CommandUsage — append-only audit trail
# ---------------------------------------------------------------------------
class CommandUsage(Base):
    __tablename__ = "command_usage"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    command_name: Mapped[str] = mapped_column(String(100), nullable=False)
    server_id: Mapped[str | None] = mapped_column(String(32), nullable=True)  # None for DMs
    user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    execution_time: Mapped[int] = mapped_column(Integer, nullable=False)  # milliseconds
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_command_usage_name_time", "command_name", "used_at"),
        Index("ix_command_usage_server", "server_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<CommandUsage id={self.id} cmd={self.command_name!r} "
            f"success={self.success}>"
        )


# ---------------------------------------------------------------------------
# BotStats — singleton aggregate
# ---------------------------------------------------------------------------
class BotStats(Base):
    __tablename__ = "bot_stats"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)  # always 'main_stats'
    total_servers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_restart: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<BotStats servers={self.total_servers} users={self.total_users}>"
        )


# ---------------------------------------------------------------------------
# GlobalConfig — bot-wide key/value settings
# ---------------------------------------------------------------------------
class GlobalConfig(Base):
    __tablename__ = "global_config"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<GlobalConfig key={self.key!r}>"
