"""Per-request dependency factories for the db package.

The engine and session plumbing lives in the leaf module
``playbook.infra.db_engine``; these factories wrap the shared session
factory in the repositories the chat core consumes.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from playbook.infra.db_engine import get_session_factory

from .content import PgContentRepository
from .messages import PgMessageStore
from .sessions import PgSessionRegistry

SessionFactory = Annotated[
    async_sessionmaker[AsyncSession],
    Depends(get_session_factory),
]


def get_message_store(sf: SessionFactory) -> PgMessageStore:
    """Return the message store (history, continuity, token totals)."""
    return PgMessageStore(sf)


def get_session_registry(sf: SessionFactory) -> PgSessionRegistry:
    """Return the session registry (active session per target, rollover)."""
    return PgSessionRegistry(sf)


def get_content_source(sf: SessionFactory) -> PgContentRepository:
    """Return the workflow / mini-prompt repository."""
    return PgContentRepository(sf)
