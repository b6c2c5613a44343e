"""
quantumx.services.experience_service — Message XP Award Protocol
=================================================================

Read → decide → write for one qualifying message:

1. Load the (user, server) row; a missing row is the first contribution.
2. Skip if the last award is inside the cooldown window.
3. Roll the XP delta and re-derive the level from the new total.
4. Insert (first contribution) or conditionally update the row.

The write in step 4 is optimistic.  Inserts rely on the
``uq_user_levels_user_server`` constraint, updates only land if
``messages_sent`` is unchanged since step 1.  If another award slipped in
between, the whole protocol runs once more from step 1 (where the cooldown
normally turns it into a no-op).  A second conflict gives up.

Callers are responsible for the leveling-enabled gate and for replying on
level-up; this module only reports what happened.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import TYPE_CHECKING

from quantumx.config import LevelingConfig
from quantumx.engine.leveling import (
    AwardResult,
    LevelSnapshot,
    compute_award,
    is_on_cooldown,
    roll_xp,
)
from quantumx.services import store

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 2


def award_experience(
    engine: Engine,
    user_id: str,
    server_id: str,
    now: datetime,
    *,
    leveling: LevelingConfig | None = None,
    rng: random.Random | None = None,
) -> AwardResult | None:
    """Award message XP to *user_id* in *server_id* at time *now*.

    Returns the :class:`AwardResult`, or ``None`` when nothing was written
    (cooldown active, or the optimistic write lost twice).  Store errors
    propagate to the caller.
    """
    leveling = leveling or LevelingConfig()

    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        row = store.get_user_level(engine, user_id, server_id)
        previous = (
            LevelSnapshot(
                xp=row.xp,
                level=row.level,
                messages_sent=row.messages_sent,
                last_xp_gain=row.last_xp_gain,
            )
            if row is not None
            else None
        )

        if is_on_cooldown(previous, now, leveling.cooldown_seconds):
            logger.debug("XP cooldown active for user %s in server %s", user_id, server_id)
            return None

        result = compute_award(previous, roll_xp(rng, leveling.xp_min, leveling.xp_max))

        if row is None:
            written = store.insert_user_level(
                engine,
                user_id=user_id,
                server_id=server_id,
                xp=result.total_xp,
                level=result.new_level,
                last_xp_gain=now,
            )
        else:
            written = store.update_user_level(
                engine,
                row_id=row.id,
                expected_messages_sent=row.messages_sent,
                xp=result.total_xp,
                level=result.new_level,
                last_xp_gain=now,
            )

        if written:
            logger.debug(
                "Awarded %d XP to user %s in server %s (total %d, level %d)",
                result.xp_gained, user_id, server_id, result.total_xp, result.new_level,
            )
            return result

        logger.info(
            "Concurrent XP write for user %s in server %s (attempt %d/%d)",
            user_id, server_id, attempt, MAX_WRITE_ATTEMPTS,
        )

    logger.warning(
        "Giving up XP award for user %s in server %s after %d conflicting writes",
        user_id, server_id, MAX_WRITE_ATTEMPTS,
    )
    return None
