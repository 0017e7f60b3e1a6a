"""Async SQL persistence (ORM models, repositories, dependency factories)."""

from playbook.infra.db_engine import (
    build_db,
    get_async_session,
    get_session_factory,
)

from .content import PgContentRepository
from .deps import get_content_source, get_message_store, get_session_registry
from .messages import PgMessageStore
from .models import (
    Base,
    ChatMessage,
    ChatSession,
    MiniPrompt,
    StageMiniPrompt,
    Workflow,
    WorkflowStage,
)
from .sessions import PgSessionRegistry

__all__ = [
    "Base",
    "build_db",
    "ChatMessage",
    "ChatSession",
    "get_async_session",
    "get_content_source",
    "get_message_store",
    "get_session_factory",
    "get_session_registry",
    "MiniPrompt",
    "PgContentRepository",
    "PgMessageStore",
    "PgSessionRegistry",
    "StageMiniPrompt",
    "Workflow",
    "WorkflowStage",
]
