"""PostgreSQL-backed message store.

Turns are appended in one transaction together with the increment of
the session's ``total_tokens``.  The increment is a conditional UPDATE
on the non-archived session, which also takes the row lock that a
concurrent rollover needs, so a turn is either counted on an active
session or rejected.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from playbook.core.chat.errors import ChatSessionNotFound, SessionArchived
from playbook.core.chat.models import (
    ROLE_ASSISTANT,
    ROLE_TOOL,
    ChatTurn,
    ToolResultPart,
)
from playbook.core.chat.stores import MessageStore
from playbook.infra.telemetry import (
    ATTR_CHAT_ID,
    ATTR_HISTORY_MESSAGE_COUNT,
    SPAN_HISTORY_LOAD,
    SPAN_MESSAGES_SAVE,
    tracer,
)

from .converters import chat_message_to_turn, parts_from_json, turn_to_chat_message
from .models import ChatMessage, ChatSession

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


def _latest_first():
    return (ChatMessage.created_at.desc(), ChatMessage.id.desc())


class PgMessageStore(MessageStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_message_history(
        self, chat_id: str, limit: int | None = None
    ) -> list[ChatTurn]:
        """Load the most recent turns, oldest first."""
        with tracer.start_as_current_span(SPAN_HISTORY_LOAD) as span:
            span.set_attribute(ATTR_CHAT_ID, chat_id)
            stmt = (
                select(ChatMessage)
                .where(ChatMessage.chat_id == chat_id)
                .order_by(*_latest_first())
                .limit(DEFAULT_HISTORY_LIMIT if limit is None else limit)
            )
            async with self._session_factory() as session:
                rows = (await session.scalars(stmt)).all()
            turns = [chat_message_to_turn(row) for row in reversed(rows)]
            span.set_attribute(ATTR_HISTORY_MESSAGE_COUNT, len(turns))
        logger.debug("Loaded %d messages for %s", len(turns), chat_id)
        return turns

    async def _latest_assistant(
        self, session: AsyncSession, chat_id: str, response_id: str | None = None
    ) -> ChatMessage | None:
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat_id, ChatMessage.role == ROLE_ASSISTANT)
            .order_by(*_latest_first())
            .limit(1)
        )
        if response_id is not None:
            stmt = stmt.where(ChatMessage.response_id == response_id)
        return await session.scalar(stmt)

    async def get_last_response_id(self, chat_id: str) -> str | None:
        async with self._session_factory() as session:
            row = await self._latest_assistant(session, chat_id)
        return row.response_id if row is not None else None

    async def get_last_tool_results(
        self, chat_id: str, response_id: str | None = None
    ) -> list[ChatTurn]:
        async with self._session_factory() as session:
            row = await self._latest_assistant(session, chat_id, response_id)
        if row is None:
            return []
        return [
            ChatTurn(role=ROLE_TOOL, parts=[part], response_id=row.response_id)
            for part in parts_from_json(row.parts)
            if isinstance(part, ToolResultPart) and part.pending
        ]

    async def get_total_tokens(self, chat_id: str) -> int | None:
        async with self._session_factory() as session:
            return await session.scalar(
                select(ChatSession.total_tokens).where(ChatSession.id == chat_id)
            )

    async def save_messages(self, chat_id: str, turns: list[ChatTurn]) -> None:
        if not turns:
            return
        added = sum(turn.token_count for turn in turns)
        with tracer.start_as_current_span(SPAN_MESSAGES_SAVE) as span:
            span.set_attribute(ATTR_CHAT_ID, chat_id)
            span.set_attribute(ATTR_HISTORY_MESSAGE_COUNT, len(turns))
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    update(ChatSession)
                    .where(ChatSession.id == chat_id, ChatSession.archived_at.is_(None))
                    .values(
                        total_tokens=ChatSession.total_tokens + added,
                        last_message_at=func.now(),
                        updated_at=func.now(),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    exists = await session.scalar(
                        select(ChatSession.id).where(ChatSession.id == chat_id)
                    )
                    if exists is None:
                        raise ChatSessionNotFound(chat_id)
                    raise SessionArchived(chat_id)
                # one flush per row keeps ids in turn order
                for turn in turns:
                    session.add(turn_to_chat_message(turn, chat_id))
                    await session.flush()
        logger.debug("Saved %d messages to %s (+%d tokens)", len(turns), chat_id, added)
