"""Async SQLAlchemy engine and session factory (leaf module).

``build_db`` is a lifespan dependency: it creates the engine and the
session factory, attaches both to ``app.state`` and disposes the engine
on shutdown.  Per-request dependencies read from ``app.state``.

Kept outside the ``db`` package so that importing it never pulls in
the repositories (which import the core chat models).
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from playbook.configs.config import AppConfig, get_app_config
from playbook.infra.lifespan import app_state, get_app


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by every repository (no expiry on commit)."""
    return async_sessionmaker(engine, expire_on_commit=False)


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


async def build_db(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Create engine + session factory, attach to ``app.state``."""
    tp = config.third_party
    engine = create_async_engine(
        tp.postgres_uri,
        pool_pre_ping=True,
        pool_size=tp.postgres_pool_size,
        max_overflow=tp.postgres_max_overflow,
    )
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    yield
    await engine.dispose()


# ---------------------------------------------------------------------------
# Per-request dependencies, read from app.state
# ---------------------------------------------------------------------------


get_session_factory = app_state("session_factory")
"""Return the ``async_sessionmaker`` that ``build_db`` attached."""


async def get_async_session(
    factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> AsyncGenerator[AsyncSession, None]:
    """Yield one ``AsyncSession`` per request, auto-closed on exit."""
    async with factory() as session:
        yield session
