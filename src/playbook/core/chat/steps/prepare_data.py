"""Input validation step."""

from playbook.core.chat.errors import PipelineValidationError
from playbook.core.chat.models import PipelineContext
from playbook.core.context.models import MODES

from .base import PipelineStep


class PrepareDataStep(PipelineStep):
    """Checks that user id, message, API key and mode are present.

    Sets ``data_ready``; the message itself is passed on untrimmed.
    """

    name = "prepare_data"

    async def execute(self, ctx: PipelineContext) -> PipelineContext:
        if not ctx.user_id or not ctx.user_id.strip():
            raise PipelineValidationError("User ID")
        if not ctx.message or not ctx.message.strip():
            raise PipelineValidationError("Message")
        if not ctx.api_key or not ctx.api_key.strip():
            raise PipelineValidationError("API key")
        if not ctx.mode:
            raise PipelineValidationError("Mode")
        if ctx.mode not in MODES:
            raise PipelineValidationError(
                "Mode", f"Mode must be one of: {', '.join(MODES)}"
            )
        return ctx.model_copy(update={"data_ready": True})
