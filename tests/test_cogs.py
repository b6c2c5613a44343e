"""
tests/test_cogs.py — Gateway Listener Tests
============================================

Drives the cogs' listeners and the bot's connect hook with lightweight
message/guild doubles and a mocked or SQLite-backed lifecycle coordinator.
"""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import discord
from conftest import make_interaction, run_async
from discord import app_commands
from sqlalchemy.orm import Session

from quantumx.bot import core as core_module
from quantumx.bot.cogs.leveling import Leveling
from quantumx.bot.cogs.lifecycle import Lifecycle
from quantumx.bot.core import DispatchTree, QuantumXBot
from quantumx.config import parse_config
from quantumx.constants import PRESENCE_ACTIVITY_KEY, level_up_message
from quantumx.database.engine import init_db
from quantumx.database.models import GlobalConfig
from quantumx.engine.leveling import AwardResult
from quantumx.engine.stats import GuildPresence
from quantumx.services import lifecycle_service
from quantumx.services.lifecycle_service import LifecycleCoordinator

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


def _bot(**lifecycle_methods) -> SimpleNamespace:
    return SimpleNamespace(
        lifecycle=SimpleNamespace(**lifecycle_methods),
        guilds=[SimpleNamespace(id=100, member_count=12)],
    )


def _message(*, bot_author=False, guild=True) -> SimpleNamespace:
    return SimpleNamespace(
        id=555,
        author=SimpleNamespace(id=42, bot=bot_author, display_name="Ada", mention="<@42>"),
        guild=SimpleNamespace(id=100, name="Club") if guild else None,
        reply=AsyncMock(),
    )


class TestLevelingListener:
    def test_level_up_gets_a_reply(self):
        award = AwardResult(xp_gained=20, total_xp=100, old_level=0, new_level=1, messages_sent=6)
        bot = _bot(on_message=AsyncMock(return_value=award))
        message = _message()

        run_async(Leveling(bot).on_message(message))

        bot.lifecycle.on_message.assert_awaited_once_with("42", "100", "Club")
        message.reply.assert_awaited_once_with(level_up_message("<@42>", 1))

    def test_award_without_level_up_is_silent(self):
        award = AwardResult(xp_gained=10, total_xp=50, old_level=0, new_level=0, messages_sent=2)
        bot = _bot(on_message=AsyncMock(return_value=award))
        message = _message()

        run_async(Leveling(bot).on_message(message))
        message.reply.assert_not_awaited()

    def test_bot_authors_are_ignored(self):
        bot = _bot(on_message=AsyncMock())
        run_async(Leveling(bot).on_message(_message(bot_author=True)))
        bot.lifecycle.on_message.assert_not_awaited()

    def test_direct_messages_are_ignored(self):
        bot = _bot(on_message=AsyncMock())
        run_async(Leveling(bot).on_message(_message(guild=False)))
        bot.lifecycle.on_message.assert_not_awaited()

    def test_reply_failure_does_not_escape(self):
        award = AwardResult(xp_gained=20, total_xp=100, old_level=0, new_level=1, messages_sent=6)
        bot = _bot(on_message=AsyncMock(return_value=award))
        message = _message()
        message.reply.side_effect = RuntimeError("missing permissions")

        run_async(Leveling(bot).on_message(message))
        message.reply.assert_awaited_once()


class TestLifecycleListener:
    def test_join_forwards_guild_and_snapshot(self):
        bot = _bot(on_join=AsyncMock())
        guild = SimpleNamespace(id=100, name="Club")

        run_async(Lifecycle(bot).on_guild_join(guild))

        bot.lifecycle.on_join.assert_awaited_once_with(
            "100", "Club", [GuildPresence("100", 12)],
        )

    def test_remove_forwards_guild_and_snapshot(self):
        bot = _bot(on_leave=AsyncMock())
        bot.guilds = []
        guild = SimpleNamespace(id=100, name="Club")

        run_async(Lifecycle(bot).on_guild_remove(guild))

        bot.lifecycle.on_leave.assert_awaited_once_with("100", "Club", [])


class TestDispatchTree:
    def test_unknown_command_goes_to_dispatcher(self):
        dispatcher = SimpleNamespace(dispatch=AsyncMock())
        tree = DispatchTree.__new__(DispatchTree)
        tree.client = SimpleNamespace(dispatcher=dispatcher)
        interaction = make_interaction()

        error = app_commands.CommandNotFound("foo", [])
        run_async(tree.on_error(interaction, error))

        dispatcher.dispatch.assert_awaited_once_with("foo", interaction)


# ---------------------------------------------------------------------------
# Connect (on_ready)
# ---------------------------------------------------------------------------
def _ready_bot(engine, **config) -> SimpleNamespace:
    """A stand-in carrying just what QuantumXBot.on_ready touches."""
    bot = SimpleNamespace(
        user=SimpleNamespace(id=1),
        guilds=[SimpleNamespace(id=100, member_count=12)],
        cfg=parse_config({"bot_name": "QuantumX", **config}),
        engine=engine,
        lifecycle=LifecycleCoordinator(engine, clock=lambda: NOW, started_at=NOW),
        _sync_commands=AsyncMock(),
        change_presence=AsyncMock(),
    )
    bot._set_presence = lambda: QuantumXBot._set_presence(bot)
    return bot


def _presence(bot) -> tuple[str, discord.Status]:
    kwargs = bot.change_presence.await_args.kwargs
    return kwargs["activity"].name, kwargs["status"]


class TestConnect:
    def test_configured_activity_is_shown(self, db_engine):
        init_db(db_engine)
        bot = _ready_bot(db_engine, presence_activity="with lasers", presence_status="idle")

        run_async(QuantumXBot.on_ready(bot))

        assert _presence(bot) == ("with lasers", discord.Status.idle)

    def test_operator_override_wins(self, db_engine):
        with Session(db_engine) as session:
            session.add(GlobalConfig(key=PRESENCE_ACTIVITY_KEY, value="chess"))
            session.commit()
        bot = _ready_bot(db_engine, presence_activity="with lasers")

        run_async(QuantumXBot.on_ready(bot))

        assert _presence(bot) == ("chess", discord.Status.online)

    def test_stats_are_written_before_presence(self, db_engine):
        bot = _ready_bot(db_engine)
        stats_at_presence = []
        bot.change_presence.side_effect = lambda **kwargs: stats_at_presence.append(
            lifecycle_service.store.get_bot_stats(db_engine)
        )

        run_async(QuantumXBot.on_ready(bot))

        [stats] = stats_at_presence
        assert stats is not None
        assert (stats.total_servers, stats.total_users) == (1, 12)

    def test_presence_set_when_stats_write_fails(self, db_engine):
        bot = _ready_bot(db_engine, presence_activity="with lasers")

        with patch.object(
            lifecycle_service.store, "replace_bot_stats", side_effect=RuntimeError("db down")
        ):
            run_async(QuantumXBot.on_ready(bot))

        assert lifecycle_service.store.get_bot_stats(db_engine) is None
        assert _presence(bot) == ("with lasers", discord.Status.online)

    def test_presence_falls_back_when_override_read_fails(self, db_engine):
        bot = _ready_bot(db_engine, presence_activity="with lasers")

        with patch.object(
            core_module, "get_global_config", side_effect=RuntimeError("db down")
        ):
            run_async(QuantumXBot.on_ready(bot))

        assert _presence(bot) == ("with lasers", discord.Status.online)
