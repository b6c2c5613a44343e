"""
quantumx.api.main — HTTP Status Responder
==========================================

A small FastAPI app for uptime checks and a read-only view of the latest
bot statistics.

Run with::

    uvicorn quantumx.api.main:app --port 8000
"""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Annotated

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from sqlalchemy import Engine

from quantumx import __version__
from quantumx.constants import STATUS_TEXT
from quantumx.database.engine import create_db_engine
from quantumx.services.store import get_bot_stats

load_dotenv()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


class BotStatsOut(BaseModel):
    total_servers: int
    total_users: int
    last_restart: datetime
    recorded_at: datetime


app = FastAPI(title="QuantumX Status", version=__version__)


@app.get("/", response_class=PlainTextResponse)
def root() -> str:
    return STATUS_TEXT


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/stats", response_model=BotStatsOut)
def stats(engine: Annotated[Engine, Depends(get_engine)]):
    """Latest ``bot_stats`` row; 404 until the bot has connected once."""
    row = get_bot_stats(engine)
    if row is None:
        raise HTTPException(status_code=404, detail="No statistics recorded yet")
    return BotStatsOut(
        total_servers=row.total_servers,
        total_users=row.total_users,
        last_restart=row.last_restart,
        recorded_at=row.recorded_at,
    )
