"""ORM <-> domain converters, every row construction in one place.

- ChatSession row  -> ChatSessionInfo
- ChatTurn         -> ChatMessage row (write)
- ChatMessage row  -> ChatTurn (read)
- content rows     -> context snapshots
"""

from typing import Any

from pydantic import TypeAdapter

from playbook.core.chat.models import (
    ChatSessionInfo,
    ChatTurn,
    MessagePart,
    make_target_key,
)
from playbook.core.context.models import (
    MiniPromptSnapshot,
    MiniPromptSummary,
    StageSnapshot,
    WorkflowSnapshot,
)
from playbook.infra.id_utils import CHAT_PREFIX, MESSAGE_PREFIX, generate_id

from .models import ChatMessage, ChatSession, MiniPrompt, Workflow, WorkflowStage

_PARTS_ADAPTER: TypeAdapter[list[MessagePart]] = TypeAdapter(list[MessagePart])


# ------------------------------------------------------------------
# Sessions
# ------------------------------------------------------------------


def new_session_row(
    user_id: str,
    mode: str,
    workflow_id: str | None,
    mini_prompt_id: str | None,
) -> ChatSession:
    """Fresh active session with zero tokens."""
    return ChatSession(
        id=generate_id(CHAT_PREFIX),
        user_id=user_id,
        mode=mode,
        workflow_id=workflow_id,
        mini_prompt_id=mini_prompt_id,
        target_key=make_target_key(workflow_id, mini_prompt_id),
        total_tokens=0,
    )


def session_to_info(
    row: ChatSession, message_count: int | None = None
) -> ChatSessionInfo:
    return ChatSessionInfo(
        id=row.id,
        user_id=row.user_id,
        mode=row.mode,
        workflow_id=row.workflow_id,
        mini_prompt_id=row.mini_prompt_id,
        total_tokens=row.total_tokens or 0,
        last_message_at=row.last_message_at,
        archived_at=row.archived_at,
        successor_id=row.successor_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        message_count=message_count,
    )


# ------------------------------------------------------------------
# Messages
# ------------------------------------------------------------------


def turn_to_chat_message(turn: ChatTurn, chat_id: str) -> ChatMessage:
    """Build a ChatMessage row; a message id is minted when the turn has none."""
    return ChatMessage(
        message_id=turn.message_id or generate_id(MESSAGE_PREFIX),
        chat_id=chat_id,
        role=turn.role,
        content=turn.text or None,
        parts=_PARTS_ADAPTER.dump_python(turn.parts, mode="json"),
        token_count=turn.token_count,
        response_id=turn.response_id,
    )


def parts_from_json(raw: list[dict[str, Any]] | None) -> list[MessagePart]:
    return _PARTS_ADAPTER.validate_python(raw or [])


def chat_message_to_turn(row: ChatMessage) -> ChatTurn:
    parts = parts_from_json(row.parts)
    if not parts and row.content:
        return ChatTurn.from_text(
            row.role,  # type: ignore[arg-type]
            row.content,
            token_count=row.token_count,
            response_id=row.response_id,
            message_id=row.message_id,
            created_at=row.created_at,
        )
    return ChatTurn(
        role=row.role,  # type: ignore[arg-type]
        parts=parts,
        token_count=row.token_count,
        response_id=row.response_id,
        message_id=row.message_id,
        created_at=row.created_at,
    )


# ------------------------------------------------------------------
# Content
# ------------------------------------------------------------------


def mini_prompt_to_summary(row: MiniPrompt) -> MiniPromptSummary:
    return MiniPromptSummary(
        id=row.id,
        name=row.name,
        description=row.description,
        is_system=bool(row.is_system),
    )


def mini_prompt_to_snapshot(row: MiniPrompt) -> MiniPromptSnapshot:
    return MiniPromptSnapshot(
        id=row.id, name=row.name, description=row.description, content=row.content
    )


def stage_to_snapshot(row: WorkflowStage) -> StageSnapshot:
    return StageSnapshot(
        id=row.id,
        name=row.name,
        description=row.description,
        color=row.color,
        with_review=row.with_review,
        order=row.order,
        mini_prompts=[
            mini_prompt_to_summary(link.mini_prompt) for link in row.mini_prompt_links
        ],
    )


def workflow_to_snapshot(row: Workflow) -> WorkflowSnapshot:
    return WorkflowSnapshot(
        id=row.id,
        name=row.name,
        description=row.description,
        complexity=row.complexity,
        include_multi_agent_chat=row.include_multi_agent_chat,
        stages=[stage_to_snapshot(stage) for stage in row.stages],
    )
