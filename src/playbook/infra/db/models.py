"""SQLAlchemy ORM models.

All tables are managed by Alembic migrations.  The metadata naming
convention keeps constraint names deterministic so that
``alembic revision --autogenerate`` produces stable diffs.

The content tables (workflows, stages, mini-prompts) carry only the
columns the chat assistant reads; the rest of the product schema is
owned elsewhere.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    false,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# BIGINT identity on PostgreSQL, INTEGER PRIMARY KEY (rowid) on SQLite
BigIntId = BigInteger().with_variant(Integer(), "sqlite")
JSONDocument = JSON().with_variant(JSONB(), "postgresql")

ACTIVE_SESSION_CLAUSE = "archived_at IS NULL"


class Base(DeclarativeBase):
    """Shared declarative base with explicit naming convention."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def _created_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


def _updated_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


# ---------------------------------------------------------------------------
# Workflow content
# ---------------------------------------------------------------------------


class Workflow(Base):
    __tablename__ = "workflows"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    complexity: Mapped[str | None] = mapped_column(String(32), nullable=True)
    include_multi_agent_chat: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    stages: Mapped[list["WorkflowStage"]] = relationship(
        back_populates="workflow",
        order_by="WorkflowStage.order",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Workflow(id={self.id!r}, name={self.name!r})>"


class WorkflowStage(Base):
    __tablename__ = "workflow_stages"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    workflow_id: Mapped[str] = mapped_column(
        ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    with_review: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    workflow: Mapped[Workflow] = relationship(back_populates="stages")
    mini_prompt_links: Mapped[list["StageMiniPrompt"]] = relationship(
        order_by="StageMiniPrompt.order",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_workflow_stages_workflow_id_order", "workflow_id", "order"),
    )


class MiniPrompt(Base):
    __tablename__ = "mini_prompts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_system: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    def __repr__(self) -> str:
        return f"<MiniPrompt(id={self.id!r}, name={self.name!r})>"


class StageMiniPrompt(Base):
    """Ordered membership of a mini-prompt in a stage."""

    __tablename__ = "stage_mini_prompts"

    stage_id: Mapped[str] = mapped_column(
        ForeignKey("workflow_stages.id", ondelete="CASCADE"), primary_key=True
    )
    mini_prompt_id: Mapped[str] = mapped_column(
        ForeignKey("mini_prompts.id", ondelete="CASCADE"), primary_key=True
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    mini_prompt: Mapped[MiniPrompt] = relationship(lazy="joined")


# ---------------------------------------------------------------------------
# Chat sessions
# ---------------------------------------------------------------------------


class ChatSession(Base):
    """One continuous assistant conversation.

    ``target_key`` encodes the (workflow, mini-prompt) pair so that the
    partial unique index can guarantee at most one non-archived session
    per (user, mode, target).  Archived sessions are read-only and point
    at the session that replaced them through ``successor_id``.
    """

    __tablename__ = "chat_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    mode: Mapped[str] = mapped_column(String(20), nullable=False)
    workflow_id: Mapped[str | None] = mapped_column(String, nullable=True)
    mini_prompt_id: Mapped[str | None] = mapped_column(String, nullable=True)
    target_key: Mapped[str] = mapped_column(String, nullable=False)
    total_tokens: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default="0"
    )
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    archived_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    successor_id: Mapped[str | None] = mapped_column(
        ForeignKey("chat_sessions.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index(
            "uq_chat_sessions_active_target",
            "user_id",
            "mode",
            "target_key",
            unique=True,
            postgresql_where=text(ACTIVE_SESSION_CLAUSE),
            sqlite_where=text(ACTIVE_SESSION_CLAUSE),
        ),
        Index("ix_chat_sessions_user_id_last_message_at", "user_id", "last_message_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ChatSession(id={self.id!r}, user_id={self.user_id!r}, "
            f"mode={self.mode!r}, archived={self.archived_at is not None})>"
        )


class ChatMessage(Base):
    """A single turn.

    ``parts`` holds the tagged list of text / toolCall / toolResult
    parts; ``content`` is the plain text of the turn for listing and
    search.  Turns are ordered by ``created_at`` then ``id``.
    """

    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    message_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    chat_id: Mapped[str] = mapped_column(
        ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    parts: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    token_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    response_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index("ix_chat_messages_chat_id_created_at", "chat_id", "created_at", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ChatMessage(id={self.id}, chat_id={self.chat_id!r}, "
            f"role={self.role!r})>"
        )
