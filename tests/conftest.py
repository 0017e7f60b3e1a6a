"""Shared fixtures: in-memory stores, content source and a scripted chat model.

The fakes implement the same ABCs as the SQL repositories, so every
pipeline step can be exercised without a database or a model provider.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest
from langchain_core.messages import AIMessage

from playbook.core.chat.errors import ChatSessionNotFound, SessionArchived
from playbook.core.chat.models import (
    ROLE_ASSISTANT,
    ROLE_TOOL,
    ChatSessionInfo,
    ChatTurn,
    make_target_key,
)
from playbook.core.chat.stores import MessageStore, SessionRegistry
from playbook.core.context.models import (
    MiniPromptSnapshot,
    MiniPromptSummary,
    StageSnapshot,
    WorkflowSnapshot,
)
from playbook.core.context.sources import ContentSource
from playbook.infra.id_utils import CHAT_PREFIX, MESSAGE_PREFIX, generate_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# In-memory persistence
# ---------------------------------------------------------------------------


class InMemoryChatDB:
    """Sessions and turns shared by the fake store and registry."""

    def __init__(self) -> None:
        self.sessions: dict[str, ChatSessionInfo] = {}
        self.turns: dict[str, list[ChatTurn]] = {}
        self.lock = asyncio.Lock()

    def add_session(
        self,
        user_id: str,
        mode: str,
        workflow_id: str | None = None,
        mini_prompt_id: str | None = None,
        total_tokens: int = 0,
    ) -> ChatSessionInfo:
        session = ChatSessionInfo(
            id=generate_id(CHAT_PREFIX),
            user_id=user_id,
            mode=mode,
            workflow_id=workflow_id,
            mini_prompt_id=mini_prompt_id,
            total_tokens=total_tokens,
            created_at=_now(),
        )
        self.sessions[session.id] = session
        self.turns[session.id] = []
        return session

    def active_for(self, user_id: str, mode: str, target_key: str):
        for session in self.sessions.values():
            if (
                session.user_id == user_id
                and session.mode == mode
                and session.target_key == target_key
                and not session.is_archived
            ):
                return session
        return None

    def update(self, chat_id: str, **changes: Any) -> ChatSessionInfo:
        session = self.sessions[chat_id].model_copy(update=changes)
        self.sessions[chat_id] = session
        return session


class InMemoryMessageStore(MessageStore):
    def __init__(self, db: InMemoryChatDB) -> None:
        self.db = db
        self.saved_batches: list[list[ChatTurn]] = []

    async def get_message_history(self, chat_id, limit=None):
        turns = self.db.turns.get(chat_id, [])
        if limit is None:
            return list(turns)
        return list(turns[-limit:]) if limit else []

    def _latest_assistant(self, chat_id, response_id=None):
        for turn in reversed(self.db.turns.get(chat_id, [])):
            if turn.role != ROLE_ASSISTANT:
                continue
            if response_id is None or turn.response_id == response_id:
                return turn
        return None

    async def get_last_response_id(self, chat_id):
        turn = self._latest_assistant(chat_id)
        return turn.response_id if turn else None

    async def get_last_tool_results(self, chat_id, response_id=None):
        turn = self._latest_assistant(chat_id, response_id)
        if turn is None:
            return []
        return [
            ChatTurn(role=ROLE_TOOL, parts=[part], response_id=turn.response_id)
            for part in turn.tool_results
            if part.pending
        ]

    async def get_total_tokens(self, chat_id):
        session = self.db.sessions.get(chat_id)
        return session.total_tokens if session else None

    async def save_messages(self, chat_id, turns):
        async with self.db.lock:
            session = self.db.sessions.get(chat_id)
            if session is None:
                raise ChatSessionNotFound(chat_id)
            if session.is_archived:
                raise SessionArchived(chat_id)
            stored = [
                t.model_copy(
                    update={
                        "message_id": t.message_id or generate_id(MESSAGE_PREFIX),
                        "created_at": _now(),
                    }
                )
                for t in turns
            ]
            self.db.turns[chat_id].extend(stored)
            self.db.update(
                chat_id,
                total_tokens=session.total_tokens + sum(t.token_count for t in turns),
                last_message_at=_now(),
            )
            self.saved_batches.append(stored)


class InMemorySessionRegistry(SessionRegistry):
    def __init__(self, db: InMemoryChatDB) -> None:
        self.db = db
        self.fork_calls = 0

    async def get_session(self, chat_id):
        return self.db.sessions.get(chat_id)

    async def get_active_session(
        self, user_id, mode, workflow_id=None, mini_prompt_id=None
    ):
        return self.db.active_for(
            user_id, mode, make_target_key(workflow_id, mini_prompt_id)
        )

    async def get_or_create_active_session(
        self, user_id, mode, workflow_id=None, mini_prompt_id=None
    ):
        async with self.db.lock:
            existing = self.db.active_for(
                user_id, mode, make_target_key(workflow_id, mini_prompt_id)
            )
            if existing is not None:
                return existing
            return self.db.add_session(user_id, mode, workflow_id, mini_prompt_id)

    async def create_session(
        self, user_id, mode, workflow_id=None, mini_prompt_id=None
    ):
        async with self.db.lock:
            current = self.db.active_for(
                user_id, mode, make_target_key(workflow_id, mini_prompt_id)
            )
            if current is not None:
                self.db.update(current.id, archived_at=_now())
            new = self.db.add_session(user_id, mode, workflow_id, mini_prompt_id)
            if current is not None:
                self.db.update(current.id, successor_id=new.id)
            return new

    async def archive_and_fork(self, chat_id):
        self.fork_calls += 1
        async with self.db.lock:
            current = self.db.sessions.get(chat_id)
            if current is None:
                raise ChatSessionNotFound(chat_id)
            # let concurrent callers pile up on the lock
            await asyncio.sleep(0)
            if current.is_archived:
                successor = self.db.active_for(
                    current.user_id, current.mode, current.target_key
                )
                if successor is not None:
                    return successor
            self.db.update(chat_id, archived_at=_now())
            new = self.db.add_session(
                current.user_id,
                current.mode,
                current.workflow_id,
                current.mini_prompt_id,
            )
            self.db.update(chat_id, successor_id=new.id)
            return new

    async def list_sessions(
        self,
        user_id,
        mode=None,
        workflow_id=None,
        mini_prompt_id=None,
        include_archived=False,
    ):
        sessions = [
            s.model_copy(update={"message_count": len(self.db.turns[s.id])})
            for s in self.db.sessions.values()
            if s.user_id == user_id
            and (mode is None or s.mode == mode)
            and (workflow_id is None or s.workflow_id == workflow_id)
            and (mini_prompt_id is None or s.mini_prompt_id == mini_prompt_id)
            and (include_archived or not s.is_archived)
        ]
        return sorted(
            sessions, key=lambda s: s.last_message_at or s.created_at, reverse=True
        )

    async def delete_session(self, chat_id, user_id):
        session = self.db.sessions.get(chat_id)
        if session is None or session.user_id != user_id:
            return False
        del self.db.sessions[chat_id]
        del self.db.turns[chat_id]
        return True


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class InMemoryContentSource(ContentSource):
    def __init__(self) -> None:
        self.workflows: dict[str, WorkflowSnapshot] = {}
        self.mini_prompts: dict[str, MiniPromptSnapshot] = {}
        self.library: dict[str, list[MiniPromptSummary]] = {}
        self.calls: list[str] = []

    async def get_workflow(self, workflow_id):
        self.calls.append(f"get_workflow:{workflow_id}")
        return self.workflows.get(workflow_id)

    async def get_mini_prompt(self, mini_prompt_id):
        self.calls.append(f"get_mini_prompt:{mini_prompt_id}")
        return self.mini_prompts.get(mini_prompt_id)

    async def list_mini_prompts(self, user_id, limit=100, search=None):
        self.calls.append(f"list_mini_prompts:{user_id}")
        items = self.library.get(user_id, [])
        if search:
            needle = search.lower()
            items = [
                mp
                for mp in items
                if needle in mp.name.lower()
                or needle in (mp.description or "").lower()
            ]
        return items[:limit]


# ---------------------------------------------------------------------------
# Chat model
# ---------------------------------------------------------------------------


class ScriptedChatModel:
    """Returns queued ``AIMessage`` replies and records every call.

    A queued exception is raised instead of returned.
    """

    def __init__(self, replies: list[Any] | None = None, delay: float = 0.0) -> None:
        self.replies = list(replies or [])
        self.delay = delay
        self.calls: list[dict[str, Any]] = []
        self.bound_tools: list[Any] = []

    def bind_tools(self, tools):
        self.bound_tools = list(tools)
        return self

    async def ainvoke(self, messages, **kwargs):
        self.calls.append({"messages": list(messages), "kwargs": dict(kwargs)})
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if self.replies else AIMessage(content="ok")
        if isinstance(reply, BaseException):
            raise reply
        return reply


def ai_reply(
    text: str = "",
    *,
    response_id: str | None = "resp_1",
    tool_calls: list[dict[str, Any]] | None = None,
    input_tokens: int = 10,
    output_tokens: int = 5,
) -> AIMessage:
    """An ``AIMessage`` shaped like a Responses API reply."""
    return AIMessage(
        content=text,
        tool_calls=tool_calls or [],
        response_metadata={"id": response_id} if response_id else {},
        usage_metadata={
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        },
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def chat_db() -> InMemoryChatDB:
    return InMemoryChatDB()


@pytest.fixture
def store(chat_db) -> InMemoryMessageStore:
    return InMemoryMessageStore(chat_db)


@pytest.fixture
def registry(chat_db) -> InMemorySessionRegistry:
    return InMemorySessionRegistry(chat_db)


@pytest.fixture
def content_source() -> InMemoryContentSource:
    source = InMemoryContentSource()
    source.workflows["wf_1"] = WorkflowSnapshot(
        id="wf_1",
        name="Feature Delivery",
        description="Ship a feature end to end",
        complexity="medium",
        include_multi_agent_chat=True,
        stages=[
            StageSnapshot(
                id="st_2",
                name="Implement",
                order=2,
                mini_prompts=[MiniPromptSummary(id="mp_2", name="Write Code")],
            ),
            StageSnapshot(
                id="st_1",
                name="Plan",
                description="Break the work down",
                order=1,
                mini_prompts=[MiniPromptSummary(id="mp_1", name="Outline")],
            ),
        ],
    )
    source.mini_prompts["mp_1"] = MiniPromptSnapshot(
        id="mp_1",
        name="Outline",
        description="Draft an outline",
        content="Write a numbered outline of the task.",
    )
    source.library["user_1"] = [
        MiniPromptSummary(id="mp_1", name="Outline", description="Draft an outline"),
        MiniPromptSummary(id="mp_2", name="Write Code"),
    ]
    return source


@pytest.fixture
def make_reply():
    return ai_reply


@pytest.fixture
def scripted_model_cls():
    return ScriptedChatModel
