"""
quantumx.services.store — Single-Row Reads & Writes
====================================================

The only module that touches the five tables.  Every function is
synchronous, opens its own session, and addresses exactly one row — call
them from async code through :func:`quantumx.database.engine.run_db`.

Rows returned to callers are detached from their session so they can be
read freely on the event loop thread.

Uniqueness (one ``server_configs`` row per server, one ``user_levels`` row
per user+server) is enforced by the table constraints; the insert helpers
turn a constraint violation into a ``False`` return instead of an error.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import Engine, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quantumx.constants import MAIN_STATS_ID
from quantumx.database.models import (
    BotStats,
    CommandUsage,
    GlobalConfig,
    ServerConfig,
    UserLevel,
)
from quantumx.engine.stats import BotStatsSnapshot

logger = logging.getLogger(__name__)


def new_row_id(prefix: str) -> str:
    """``<prefix>_<32 hex chars>`` — e.g. ``cmd_3f2a…``."""
    return f"{prefix}_{uuid.uuid4().hex}"


def _detached(session: Session, row):
    if row is not None:
        session.expunge(row)
    return row


# ---------------------------------------------------------------------------
# server_configs
# ---------------------------------------------------------------------------
def get_server_config(engine: Engine, server_id: str) -> ServerConfig | None:
    with Session(engine) as session:
        return _detached(session, session.get(ServerConfig, server_id))


def create_server_config(
    engine: Engine,
    server_id: str,
    server_name: str,
    *,
    created_at: datetime | None = None,
) -> bool:
    """Insert a config row unless one exists.  Returns True if inserted.

    An existing row is left untouched, name included.
    """
    with Session(engine) as session:
        if session.get(ServerConfig, server_id) is not None:
            return False

        session.add(ServerConfig(
            server_id=server_id,
            server_name=server_name,
            created_at=created_at or datetime.now(UTC),
            leveling_enabled=True,
        ))
        try:
            session.commit()
        except IntegrityError:
            # Lost the race to a concurrent insert; theirs wins.
            session.rollback()
            return False

        logger.info("Created server config for %s (%s)", server_name, server_id)
        return True


# ---------------------------------------------------------------------------
# command_usage
# ---------------------------------------------------------------------------
def record_command_usage(
    engine: Engine,
    *,
    command_name: str,
    server_id: str | None,
    user_id: str,
    success: bool,
    execution_time: int,
    error_message: str | None = None,
    used_at: datetime | None = None,
) -> str:
    """Append one audit row and return its id."""
    row_id = new_row_id("cmd")
    with Session(engine) as session:
        session.add(CommandUsage(
            id=row_id,
            command_name=command_name,
            server_id=server_id,
            user_id=user_id,
            success=success,
            execution_time=execution_time,
            error_message=error_message,
            used_at=used_at or datetime.now(UTC),
        ))
        session.commit()
    return row_id


# ---------------------------------------------------------------------------
# bot_stats
# ---------------------------------------------------------------------------
def replace_bot_stats(
    engine: Engine,
    stats: BotStatsSnapshot,
    *,
    last_restart: datetime,
    recorded_at: datetime,
) -> None:
    """Overwrite the singleton stats row with a fresh computation."""
    with Session(engine) as session:
        session.merge(BotStats(
            id=MAIN_STATS_ID,
            total_servers=stats.total_servers,
            total_users=stats.total_users,
            last_restart=last_restart,
            recorded_at=recorded_at,
        ))
        session.commit()


def get_bot_stats(engine: Engine) -> BotStats | None:
    with Session(engine) as session:
        return _detached(session, session.get(BotStats, MAIN_STATS_ID))


# ---------------------------------------------------------------------------
# user_levels
# ---------------------------------------------------------------------------
def get_user_level(engine: Engine, user_id: str, server_id: str) -> UserLevel | None:
    with Session(engine) as session:
        row = session.query(UserLevel).filter_by(
            user_id=user_id, server_id=server_id
        ).one_or_none()
        return _detached(session, row)


def insert_user_level(
    engine: Engine,
    *,
    user_id: str,
    server_id: str,
    xp: int,
    level: int,
    last_xp_gain: datetime,
) -> bool:
    """Insert the first row for user+server.  False if one already exists."""
    with Session(engine) as session:
        session.add(UserLevel(
            id=new_row_id("lvl"),
            user_id=user_id,
            server_id=server_id,
            xp=xp,
            level=level,
            messages_sent=1,
            last_xp_gain=last_xp_gain,
        ))
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            return False
    return True


def update_user_level(
    engine: Engine,
    *,
    row_id: str,
    expected_messages_sent: int,
    xp: int,
    level: int,
    last_xp_gain: datetime,
) -> bool:
    """Conditionally apply an award to an existing row.

    The write only lands if ``messages_sent`` still equals the value the
    caller read; otherwise another award got there first and False is
    returned.
    """
    with Session(engine) as session:
        result = session.execute(
            update(UserLevel)
            .where(
                UserLevel.id == row_id,
                UserLevel.messages_sent == expected_messages_sent,
            )
            .values(
                xp=xp,
                level=level,
                messages_sent=UserLevel.messages_sent + 1,
                last_xp_gain=last_xp_gain,
            )
        )
        session.commit()
        return result.rowcount == 1


# ---------------------------------------------------------------------------
# global_config
# ---------------------------------------------------------------------------
def get_global_config(engine: Engine, key: str, default: str | None = None) -> str | None:
    with Session(engine) as session:
        row = session.get(GlobalConfig, key)
        return row.value if row is not None else default
