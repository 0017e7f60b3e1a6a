"""Chat domain models shared by the pipeline, the stores and the API.

Message content is a tagged union of parts (``kind`` discriminator) so
that tool calls and tool results are never carried as free-form JSON.
"""

from datetime import datetime
from typing import Annotated, Any, Literal

from langchain_core.tools import BaseTool
from pydantic import BaseModel, ConfigDict, Field

from playbook.core.context.models import Mode, WorkflowContext

Role = Literal["user", "assistant", "system", "tool"]

ROLE_USER: Literal["user"] = "user"
ROLE_ASSISTANT: Literal["assistant"] = "assistant"
ROLE_SYSTEM: Literal["system"] = "system"
ROLE_TOOL: Literal["tool"] = "tool"

TARGET_NONE = "-"


def make_target_key(workflow_id: str | None, mini_prompt_id: str | None) -> str:
    """Key identifying the (workflow, mini-prompt) a session is about."""
    return f"{workflow_id or TARGET_NONE}/{mini_prompt_id or TARGET_NONE}"


# ---------------------------------------------------------------------------
# Message parts
# ---------------------------------------------------------------------------


class TextPart(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class ToolCallPart(BaseModel):
    kind: Literal["toolCall"] = "toolCall"
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(BaseModel):
    """Result of one tool call.

    ``pending`` marks results produced after the model's last call of a
    turn; they have not been shown to the model yet and are sent with
    the next turn.
    """

    kind: Literal["toolResult"] = "toolResult"
    tool_call_id: str
    tool_name: str
    result: Any = None
    is_error: bool = False
    pending: bool = False


MessagePart = Annotated[
    TextPart | ToolCallPart | ToolResultPart,
    Field(discriminator="kind"),
]


class ChatTurn(BaseModel):
    """One persisted (or about to be persisted) message."""

    role: Role
    parts: list[MessagePart] = Field(default_factory=list)
    token_count: int = 0
    response_id: str | None = None
    message_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_text(cls, role: Role, text: str, **kwargs: Any) -> "ChatTurn":
        return cls(role=role, parts=[TextPart(text=text)], **kwargs)

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    @property
    def tool_results(self) -> list[ToolResultPart]:
        return [p for p in self.parts if isinstance(p, ToolResultPart)]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class ChatSessionInfo(BaseModel):
    id: str
    user_id: str
    mode: Mode
    workflow_id: str | None = None
    mini_prompt_id: str | None = None
    total_tokens: int = 0
    last_message_at: datetime | None = None
    archived_at: datetime | None = None
    successor_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    message_count: int | None = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    @property
    def target_key(self) -> str:
        return make_target_key(self.workflow_id, self.mini_prompt_id)


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


class TokenUsage(BaseModel):
    input: int = 0
    output: int = 0
    total: int = 0


class ToolInvocation(BaseModel):
    """A tool call together with its result, as reported to the caller."""

    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    is_error: bool = False


class CompletionResult(BaseModel):
    text: str
    parts: list[MessagePart] = Field(default_factory=list)
    response_id: str | None = None
    usage: TokenUsage = Field(default_factory=TokenUsage)
    tool_invocations: list[ToolInvocation] = Field(default_factory=list)
    tool_rounds: int = 1


# ---------------------------------------------------------------------------
# Pipeline state
# ---------------------------------------------------------------------------


class PipelineContext(BaseModel):
    """State threaded through one pipeline run.

    Frozen: each step returns ``ctx.model_copy(update=...)`` so a step
    can only replace the fields it names.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # request inputs
    user_id: str = ""
    chat_id: str | None = None
    mode: str | None = None
    message: str = ""
    api_key: str | None = None
    include_extended_context: bool = False
    workflow_id: str | None = None
    mini_prompt_id: str | None = None
    workflow_context: WorkflowContext | None = None
    timeout: float | None = None

    # accumulated by the steps
    data_ready: bool = False
    session: ChatSessionInfo | None = None
    auto_reset_triggered: bool = False
    chain_broken: bool = False
    previous_response_id: str | None = None
    previous_tool_results: list[ChatTurn] = Field(default_factory=list)
    history: list[ChatTurn] = Field(default_factory=list)
    system_prompt: str | None = None
    user_content: str | None = None
    tools: list[BaseTool] = Field(default_factory=list)
    completion: CompletionResult | None = None


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = ROLE_ASSISTANT
    content: str
    tool_invocations: list[ToolInvocation] = Field(default_factory=list)


class PipelineResult(BaseModel):
    session_id: str
    message: AssistantMessage
    token_usage: TokenUsage
    auto_reset_triggered: bool = False
