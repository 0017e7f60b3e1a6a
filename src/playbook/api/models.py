"""Pydantic models for the AI-assistant API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from playbook.core.chat.models import ChatSessionInfo, ChatTurn
from playbook.core.context.models import Mode, WorkflowContext

# Upper bound for one user message; context is added server-side
CHAT_MESSAGE_MAX_LENGTH = 32_000
MAX_TIMEOUT_SECONDS = 600


class ChatRequest(BaseModel):
    """Request model for the chat endpoint.

    ``message`` and ``mode`` are validated by the pipeline, which names
    the offending field in its error.
    """

    message: str = Field(
        default="",
        description="User message",
        max_length=CHAT_MESSAGE_MAX_LENGTH,
    )
    mode: str | None = Field(default=None, description="'workflow' or 'mini-prompt'")
    chat_id: str | None = Field(
        default=None, description="Session to continue; omitted for the active one"
    )
    workflow_id: str | None = Field(default=None, description="Workflow being edited")
    mini_prompt_id: str | None = Field(
        default=None, description="Mini-prompt being edited"
    )
    workflow_context: WorkflowContext | None = Field(
        default=None, description="Client-side view of the workflow"
    )
    include_extended_context: bool = Field(
        default=False, description="Force the system-level context on this turn"
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        le=MAX_TIMEOUT_SECONDS,
        description="Upper bound for the model call",
    )


class CreateSessionRequest(BaseModel):
    mode: Mode
    workflow_id: str | None = None
    mini_prompt_id: str | None = None


class MessageView(BaseModel):
    """A stored turn as returned by the session detail endpoint."""

    message_id: str | None
    role: str
    content: str
    parts: list[dict[str, Any]] = Field(default_factory=list)
    token_count: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_turn(cls, turn: ChatTurn) -> "MessageView":
        return cls(
            message_id=turn.message_id,
            role=turn.role,
            content=turn.text,
            parts=[part.model_dump() for part in turn.parts],
            token_count=turn.token_count,
            created_at=turn.created_at,
        )


class SessionListResponse(BaseModel):
    sessions: list[ChatSessionInfo]


class SessionDetailResponse(BaseModel):
    session: ChatSessionInfo
    messages: list[MessageView]


class ErrorResponse(BaseModel):
    detail: str
    code: str
