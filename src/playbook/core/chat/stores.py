"""Storage interfaces consumed by the chat pipeline.

Implementations are injected into the pipeline and the auto-reset
manager; the PostgreSQL versions live in ``playbook.infra.db``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import ChatSessionInfo, ChatTurn


class MessageStore(ABC):
    """Ordered turns per session plus the session's cumulative token count."""

    @abstractmethod
    async def get_message_history(
        self, chat_id: str, limit: int | None = None
    ) -> list[ChatTurn]:
        """Return the most recent *limit* turns, oldest first."""

    @abstractmethod
    async def get_last_response_id(self, chat_id: str) -> str | None:
        """Provider response id of the latest assistant turn, if any."""

    @abstractmethod
    async def get_last_tool_results(
        self, chat_id: str, response_id: str | None = None
    ) -> list[ChatTurn]:
        """Tool results of the latest assistant turn not yet seen by the model.

        With *response_id*, the results are taken from the assistant turn
        that produced that response, so they always match the id the
        next call continues from.  Returned as ``tool`` turns, one per
        result, in call order.
        """

    @abstractmethod
    async def get_total_tokens(self, chat_id: str) -> int | None:
        """Cumulative token count, or ``None`` for an unknown session."""

    @abstractmethod
    async def save_messages(self, chat_id: str, turns: list[ChatTurn]) -> None:
        """Append *turns* in order and add their token counts to the session.

        Raises:
            SessionArchived: the session has been rolled over.
            ChatSessionNotFound: the session does not exist.
        """

    async def should_trigger_auto_reset(self, chat_id: str, threshold: int) -> bool:
        """True when the session's cumulative tokens are strictly above *threshold*."""
        total = await self.get_total_tokens(chat_id)
        return total is not None and total > threshold


class SessionRegistry(ABC):
    """Session lifecycle: at most one active session per (user, mode, target)."""

    @abstractmethod
    async def get_session(self, chat_id: str) -> ChatSessionInfo | None:
        """Look up a session by id (archived sessions included)."""

    @abstractmethod
    async def get_active_session(
        self,
        user_id: str,
        mode: str,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
    ) -> ChatSessionInfo | None:
        """The non-archived session for the target, if one exists."""

    @abstractmethod
    async def get_or_create_active_session(
        self,
        user_id: str,
        mode: str,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
    ) -> ChatSessionInfo:
        """Return the active session for the target, creating it if needed."""

    @abstractmethod
    async def create_session(
        self,
        user_id: str,
        mode: str,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
    ) -> ChatSessionInfo:
        """Start a new conversation for the target.

        A currently active session for the same target is archived and
        linked to the new one.
        """

    @abstractmethod
    async def archive_and_fork(self, chat_id: str) -> ChatSessionInfo:
        """Archive *chat_id* and return its active successor.

        Atomic: when the session was already archived by a concurrent
        call, the existing active successor is returned instead of a
        second one being created.

        Raises:
            ChatSessionNotFound: *chat_id* does not exist.
            RolloverError: the transaction failed; nothing was changed.
        """

    @abstractmethod
    async def list_sessions(
        self,
        user_id: str,
        mode: str | None = None,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ChatSessionInfo]:
        """Sessions owned by *user_id*, most recently active first."""

    @abstractmethod
    async def delete_session(self, chat_id: str, user_id: str) -> bool:
        """Delete a session and its messages; False if nothing matched."""
