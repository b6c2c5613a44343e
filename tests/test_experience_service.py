"""
tests/test_experience_service.py — XP Award Protocol Integration Tests
=======================================================================

Runs award_experience() against an in-memory SQLite database: first
contribution, cooldown, level-up, the stored-level invariant, and the
optimistic-write retry.
"""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from quantumx.config import LevelingConfig
from quantumx.constants import level_for_xp
from quantumx.database.models import UserLevel
from quantumx.services import experience_service, store
from quantumx.services.experience_service import award_experience

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


class FixedRoll(random.Random):
    """Random whose randint always returns *value*."""

    def __init__(self, value: int) -> None:
        super().__init__(0)
        self.value = value

    def randint(self, a, b):
        assert a <= self.value <= b
        return self.value


def _seed_row(engine, *, xp: int, level: int, last_xp_gain: datetime, messages_sent: int = 3):
    with Session(engine) as session:
        session.add(UserLevel(
            id="lvl_seed",
            user_id="42",
            server_id="100",
            xp=xp,
            level=level,
            messages_sent=messages_sent,
            last_xp_gain=last_xp_gain,
        ))
        session.commit()


def _rows(engine) -> list[UserLevel]:
    with Session(engine) as session:
        return list(session.scalars(select(UserLevel)).all())


class TestFirstContribution:
    def test_inserts_row_with_one_message(self, db_engine):
        result = award_experience(db_engine, "42", "100", NOW, rng=FixedRoll(17))

        assert result is not None
        assert result.xp_gained == 17
        assert not result.leveled_up

        rows = _rows(db_engine)
        assert len(rows) == 1
        row = rows[0]
        assert (row.user_id, row.server_id) == ("42", "100")
        assert row.xp == 17
        assert row.level == 0
        assert row.messages_sent == 1
        assert row.id.startswith("lvl_")

    def test_rows_are_per_server(self, db_engine):
        award_experience(db_engine, "42", "100", NOW, rng=FixedRoll(10))
        award_experience(db_engine, "42", "200", NOW, rng=FixedRoll(10))
        assert {r.server_id for r in _rows(db_engine)} == {"100", "200"}


class TestCooldown:
    def test_within_window_is_noop(self, db_engine):
        """XP=100, level 1, last award 30 s ago: nothing changes."""
        _seed_row(db_engine, xp=100, level=1, last_xp_gain=NOW - timedelta(seconds=30))

        assert award_experience(db_engine, "42", "100", NOW, rng=FixedRoll(20)) is None

        row = _rows(db_engine)[0]
        assert row.xp == 100
        assert row.level == 1
        assert row.messages_sent == 3

    def test_sequential_awards_are_a_minute_apart(self, db_engine):
        rng = random.Random(99)
        awarded_at: list[datetime] = []
        for second in range(0, 300, 7):
            now = NOW + timedelta(seconds=second)
            if award_experience(db_engine, "42", "100", now, rng=rng) is not None:
                awarded_at.append(now)

        assert len(awarded_at) >= 4
        for earlier, later in zip(awarded_at, awarded_at[1:]):
            assert later - earlier >= timedelta(seconds=60)
        assert _rows(db_engine)[0].messages_sent == len(awarded_at)

    def test_custom_cooldown(self, db_engine):
        leveling = LevelingConfig(cooldown_seconds=5)
        award_experience(db_engine, "42", "100", NOW, leveling=leveling, rng=FixedRoll(10))
        later = NOW + timedelta(seconds=6)
        assert award_experience(
            db_engine, "42", "100", later, leveling=leveling, rng=FixedRoll(10)
        ) is not None


class TestLevelUp:
    def test_eighty_plus_twenty_reaches_level_one(self, db_engine):
        _seed_row(db_engine, xp=80, level=0, last_xp_gain=NOW - timedelta(minutes=5))

        result = award_experience(db_engine, "42", "100", NOW, rng=FixedRoll(20))

        assert result is not None
        assert result.leveled_up
        assert result.new_level == 1
        row = _rows(db_engine)[0]
        assert row.xp == 100
        assert row.level == 1
        assert row.messages_sent == 4

    def test_stored_level_always_matches_xp(self, db_engine):
        rng = random.Random(2026)
        for minute in range(40):
            award_experience(db_engine, "42", "100", NOW + timedelta(minutes=minute), rng=rng)
            row = _rows(db_engine)[0]
            assert row.level == level_for_xp(row.xp)

    def test_last_xp_gain_is_updated(self, db_engine):
        _seed_row(db_engine, xp=10, level=0, last_xp_gain=NOW - timedelta(minutes=5))
        award_experience(db_engine, "42", "100", NOW, rng=FixedRoll(10))
        stored = _rows(db_engine)[0].last_xp_gain
        assert stored.replace(tzinfo=None) == NOW.replace(tzinfo=None)


class TestOptimisticWrite:
    def test_lost_update_retries_and_hits_cooldown(self, db_engine):
        """A concurrent award lands between read and write: the retry sees it."""
        _seed_row(db_engine, xp=10, level=0, last_xp_gain=NOW - timedelta(minutes=5))
        real_update = store.update_user_level

        def racing_update(engine, **kwargs):
            # Another handler awards first, then our conditional write runs.
            real_update(
                engine,
                row_id=kwargs["row_id"],
                expected_messages_sent=kwargs["expected_messages_sent"],
                xp=999,
                level=level_for_xp(999),
                last_xp_gain=NOW,
            )
            return real_update(engine, **kwargs)

        with patch.object(experience_service.store, "update_user_level", side_effect=racing_update):
            result = award_experience(db_engine, "42", "100", NOW, rng=FixedRoll(10))

        assert result is None
        row = _rows(db_engine)[0]
        assert row.xp == 999
        assert row.messages_sent == 4  # exactly one award landed

    def test_lost_insert_retries_as_update_path(self, db_engine):
        real_insert = store.insert_user_level

        def racing_insert(engine, **kwargs):
            real_insert(engine, **{**kwargs, "xp": 12, "level": 0})
            return real_insert(engine, **kwargs)

        with patch.object(experience_service.store, "insert_user_level", side_effect=racing_insert):
            result = award_experience(db_engine, "42", "100", NOW, rng=FixedRoll(10))

        assert result is None
        rows = _rows(db_engine)
        assert len(rows) == 1
        assert rows[0].xp == 12

    def test_gives_up_after_two_conflicts(self, db_engine):
        _seed_row(db_engine, xp=10, level=0, last_xp_gain=NOW - timedelta(minutes=5))

        with patch.object(
            experience_service.store, "update_user_level", return_value=False
        ) as mock_update:
            result = award_experience(db_engine, "42", "100", NOW, rng=FixedRoll(10))

        assert result is None
        assert mock_update.call_count == experience_service.MAX_WRITE_ATTEMPTS

    def test_store_errors_propagate(self, db_engine):
        with patch.object(
            experience_service.store, "get_user_level", side_effect=RuntimeError("db down")
        ):
            with pytest.raises(RuntimeError, match="db down"):
                award_experience(db_engine, "42", "100", NOW)
