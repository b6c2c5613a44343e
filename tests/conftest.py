"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from quantumx.database.models import Base, ServerConfig


def run_async(coro):
    """Run an async coroutine in a new event loop (no pytest-asyncio)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all QuantumX tables.

    Uses StaticPool so the worker threads behind ``run_db`` share the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def add_server_config(
    engine: Engine, server_id: str = "100", *, leveling_enabled: bool = True
) -> None:
    with Session(engine) as session:
        session.add(ServerConfig(
            server_id=server_id,
            server_name="Test Server",
            leveling_enabled=leveling_enabled,
        ))
        session.commit()


class FakeResponse:
    """Stand-in for ``discord.InteractionResponse`` that tracks is_done()."""

    def __init__(self) -> None:
        self._done = False
        self.messages: list[tuple[str, bool]] = []

    def is_done(self) -> bool:
        return self._done

    async def send_message(self, content=None, *, ephemeral: bool = False, **kwargs) -> None:
        self._done = True
        self.messages.append((content, ephemeral))

    async def defer(self, **kwargs) -> None:
        self._done = True


def make_interaction(
    *,
    user_id: int = 42,
    guild_id: int | None = 100,
    created_at: datetime | None = None,
    client=None,
) -> SimpleNamespace:
    """Build a lightweight ``discord.Interaction`` double."""
    return SimpleNamespace(
        id=9001,
        user=SimpleNamespace(id=user_id, display_name="Ada", mention=f"<@{user_id}>"),
        guild_id=guild_id,
        created_at=created_at or datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC),
        response=FakeResponse(),
        followup=SimpleNamespace(send=AsyncMock()),
        client=client,
    )
