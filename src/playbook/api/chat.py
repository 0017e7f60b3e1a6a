"""Chat API endpoint implementation."""

from fastapi import APIRouter

from playbook.core.chat.models import PipelineContext, PipelineResult

from .deps import AgentPipelineDep, ApiKeyDep, UserIdDep
from .models import ChatRequest, ErrorResponse

router = APIRouter(prefix="/api/v1/ai-assistant", tags=["ai-assistant"])


@router.post(
    "/chat",
    response_model=PipelineResult,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def chat(
    chat_request: ChatRequest,
    user_id: UserIdDep,
    api_key: ApiKeyDep,
    pipeline: AgentPipelineDep,
) -> PipelineResult:
    """Send one message to the assistant and return its reply.

    The turn is appended to the active session for the target (or to
    ``chat_id``).  When that session is over its token budget, it is
    rolled over first and the reply carries the new ``session_id`` with
    ``auto_reset_triggered`` set.
    """
    ctx = PipelineContext(
        user_id=user_id,
        chat_id=chat_request.chat_id,
        mode=chat_request.mode,
        message=chat_request.message,
        api_key=api_key,
        include_extended_context=chat_request.include_extended_context,
        workflow_id=chat_request.workflow_id,
        mini_prompt_id=chat_request.mini_prompt_id,
        workflow_context=chat_request.workflow_context,
        timeout=chat_request.timeout_seconds,
    )
    return await pipeline.execute(ctx)
