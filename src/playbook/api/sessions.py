"""Chat session endpoints: list, start, read and delete."""

from fastapi import APIRouter, Query, Response, status

from playbook.core.chat.errors import ChatSessionNotFound
from playbook.core.chat.models import ChatSessionInfo
from playbook.core.chat.stores import SessionRegistry

from .deps import (
    ChatConfigDep,
    MessageStoreDep,
    SessionRegistryDep,
    UserIdDep,
)
from .models import (
    CreateSessionRequest,
    ErrorResponse,
    MessageView,
    SessionDetailResponse,
    SessionListResponse,
)

router = APIRouter(prefix="/api/v1/ai-assistant/sessions", tags=["ai-assistant"])


async def _owned_session(
    registry: SessionRegistry, session_id: str, user_id: str
) -> ChatSessionInfo:
    session = await registry.get_session(session_id)
    if session is None or session.user_id != user_id:
        raise ChatSessionNotFound(session_id)
    return session


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    user_id: UserIdDep,
    registry: SessionRegistryDep,
    mode: str | None = None,
    workflow_id: str | None = None,
    mini_prompt_id: str | None = None,
    include_archived: bool = False,
) -> SessionListResponse:
    """Sessions of the caller, most recently active first."""
    sessions = await registry.list_sessions(
        user_id,
        mode=mode,
        workflow_id=workflow_id,
        mini_prompt_id=mini_prompt_id,
        include_archived=include_archived,
    )
    return SessionListResponse(sessions=sessions)


@router.post("", response_model=ChatSessionInfo, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: CreateSessionRequest,
    user_id: UserIdDep,
    registry: SessionRegistryDep,
) -> ChatSessionInfo:
    """Start a new conversation; the previous one for the target is archived."""
    return await registry.create_session(
        user_id, body.mode, body.workflow_id, body.mini_prompt_id
    )


@router.get(
    "/{session_id}",
    response_model=SessionDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_session(
    session_id: str,
    user_id: UserIdDep,
    registry: SessionRegistryDep,
    store: MessageStoreDep,
    chat_config: ChatConfigDep,
    limit: int | None = Query(default=None, ge=1, le=500),
) -> SessionDetailResponse:
    session = await _owned_session(registry, session_id, user_id)
    turns = await store.get_message_history(
        session_id, limit=limit or chat_config.history_limit
    )
    return SessionDetailResponse(
        session=session, messages=[MessageView.from_turn(t) for t in turns]
    )


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_session(
    session_id: str,
    user_id: UserIdDep,
    registry: SessionRegistryDep,
) -> Response:
    if not await registry.delete_session(session_id, user_id):
        raise ChatSessionNotFound(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
