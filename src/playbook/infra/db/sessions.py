"""PostgreSQL-backed session registry.

At most one non-archived session exists per (user, mode, target); the
partial unique index ``uq_chat_sessions_active_target`` enforces it.
Archiving and creating the successor always happen in one transaction,
archive first, so the index never sees two active rows.
"""

import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from playbook.core.chat.errors import ChatSessionNotFound, RolloverError
from playbook.core.chat.models import ChatSessionInfo, make_target_key
from playbook.core.chat.stores import SessionRegistry

from .converters import new_session_row, session_to_info
from .models import ChatMessage, ChatSession

logger = logging.getLogger(__name__)


def _active_for_target(user_id: str, mode: str, target_key: str):
    return select(ChatSession).where(
        ChatSession.user_id == user_id,
        ChatSession.mode == mode,
        ChatSession.target_key == target_key,
        ChatSession.archived_at.is_(None),
    )


async def _archive(session: AsyncSession, chat_id: str) -> bool:
    """Archive *chat_id* if it is still active; False when it already was not."""
    result = await session.execute(
        update(ChatSession)
        .where(ChatSession.id == chat_id, ChatSession.archived_at.is_(None))
        .values(archived_at=func.now(), updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def _link_successor(
    session: AsyncSession, chat_id: str, successor_id: str
) -> None:
    await session.execute(
        update(ChatSession)
        .where(ChatSession.id == chat_id)
        .values(successor_id=successor_id)
        .execution_options(synchronize_session=False)
    )


class PgSessionRegistry(SessionRegistry):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_session(self, chat_id: str) -> ChatSessionInfo | None:
        async with self._session_factory() as session:
            row = await session.get(ChatSession, chat_id)
            return session_to_info(row) if row is not None else None

    async def get_active_session(
        self,
        user_id: str,
        mode: str,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
    ) -> ChatSessionInfo | None:
        target_key = make_target_key(workflow_id, mini_prompt_id)
        async with self._session_factory() as session:
            row = await session.scalar(_active_for_target(user_id, mode, target_key))
            return session_to_info(row) if row is not None else None

    async def get_or_create_active_session(
        self,
        user_id: str,
        mode: str,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
    ) -> ChatSessionInfo:
        existing = await self.get_active_session(
            user_id, mode, workflow_id, mini_prompt_id
        )
        if existing is not None:
            return existing
        try:
            async with self._session_factory() as session, session.begin():
                row = new_session_row(user_id, mode, workflow_id, mini_prompt_id)
                session.add(row)
                await session.flush()
                info = session_to_info(row)
        except IntegrityError:
            # a concurrent request created it first
            existing = await self.get_active_session(
                user_id, mode, workflow_id, mini_prompt_id
            )
            if existing is None:
                raise
            return existing
        logger.info("Created chat session %s for user %s", info.id, user_id)
        return info

    async def create_session(
        self,
        user_id: str,
        mode: str,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
    ) -> ChatSessionInfo:
        target_key = make_target_key(workflow_id, mini_prompt_id)
        try:
            async with self._session_factory() as session, session.begin():
                current = await session.scalar(
                    _active_for_target(user_id, mode, target_key)
                )
                if current is not None:
                    await _archive(session, current.id)
                row = new_session_row(user_id, mode, workflow_id, mini_prompt_id)
                session.add(row)
                await session.flush()
                if current is not None:
                    await _link_successor(session, current.id, row.id)
                info = session_to_info(row)
        except IntegrityError:
            # a concurrent "new chat" for the target committed first
            winner = await self.get_active_session(
                user_id, mode, workflow_id, mini_prompt_id
            )
            if winner is None:
                raise
            logger.info(
                "Concurrent start for user %s, using session %s", user_id, winner.id
            )
            return winner
        logger.info(
            "Started chat session %s for user %s (replaces %s)",
            info.id,
            user_id,
            current.id if current is not None else None,
        )
        return info

    async def archive_and_fork(self, chat_id: str) -> ChatSessionInfo:
        try:
            async with self._session_factory() as session, session.begin():
                current = await session.get(ChatSession, chat_id)
                if current is None:
                    raise ChatSessionNotFound(chat_id)

                archived_now = await _archive(session, chat_id)
                if not archived_now:
                    successor = await session.scalar(
                        _active_for_target(
                            current.user_id, current.mode, current.target_key
                        )
                    )
                    if successor is not None:
                        logger.info(
                            "Session %s already rolled over to %s",
                            chat_id,
                            successor.id,
                        )
                        return session_to_info(successor)

                row = new_session_row(
                    current.user_id,
                    current.mode,
                    current.workflow_id,
                    current.mini_prompt_id,
                )
                session.add(row)
                await session.flush()
                await _link_successor(session, chat_id, row.id)
                info = session_to_info(row)
        except SQLAlchemyError as exc:
            logger.error("Rollover of session %s failed", chat_id, exc_info=True)
            raise RolloverError(f"Could not roll over session {chat_id}") from exc
        return info

    async def list_sessions(
        self,
        user_id: str,
        mode: str | None = None,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ChatSessionInfo]:
        message_count = func.count(ChatMessage.id)
        stmt = (
            select(ChatSession, message_count)
            .outerjoin(ChatMessage, ChatMessage.chat_id == ChatSession.id)
            .where(ChatSession.user_id == user_id)
            .group_by(ChatSession.id)
            .order_by(
                func.coalesce(
                    ChatSession.last_message_at, ChatSession.created_at
                ).desc(),
                ChatSession.id,
            )
        )
        if mode is not None:
            stmt = stmt.where(ChatSession.mode == mode)
        if workflow_id is not None:
            stmt = stmt.where(ChatSession.workflow_id == workflow_id)
        if mini_prompt_id is not None:
            stmt = stmt.where(ChatSession.mini_prompt_id == mini_prompt_id)
        if not include_archived:
            stmt = stmt.where(ChatSession.archived_at.is_(None))

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [session_to_info(row, message_count=count) for row, count in rows]

    async def delete_session(self, chat_id: str, user_id: str) -> bool:
        async with self._session_factory() as session, session.begin():
            owned = await session.scalar(
                select(ChatSession.id).where(
                    ChatSession.id == chat_id, ChatSession.user_id == user_id
                )
            )
            if owned is None:
                return False
            await session.execute(
                delete(ChatMessage).where(ChatMessage.chat_id == chat_id)
            )
            await session.execute(
                update(ChatSession)
                .where(ChatSession.successor_id == chat_id)
                .values(successor_id=None)
                .execution_options(synchronize_session=False)
            )
            await session.execute(delete(ChatSession).where(ChatSession.id == chat_id))
        logger.info("Deleted chat session %s", chat_id)
        return True
