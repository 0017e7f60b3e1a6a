"""Prompt assembly step."""

from playbook.configs.system import PromptConfig
from playbook.core.chat.models import PipelineContext
from playbook.core.context.builder import SECTION_SEPARATOR, ContextBuilder
from playbook.core.context.models import ContextRequest

from .base import PipelineStep

USER_CONTEXT_SEPARATOR = "\n\n---\n\n"


class BuildContextStep(PipelineStep):
    """Builds ``system_prompt`` and ``user_content``.

    Extended context is included when the caller asks for it, when the
    session has no previous response to continue from, and after a
    rollover.
    """

    name = "build_context"

    def __init__(self, builder: ContextBuilder, prompts: PromptConfig) -> None:
        self._builder = builder
        self._prompts = prompts

    async def execute(self, ctx: PipelineContext) -> PipelineContext:
        extended = (
            ctx.include_extended_context
            or ctx.auto_reset_triggered
            or ctx.previous_response_id is None
        )
        request = ContextRequest(
            user_id=ctx.user_id,
            mode=ctx.mode,
            workflow_id=ctx.workflow_id,
            mini_prompt_id=ctx.mini_prompt_id,
            workflow_context=ctx.workflow_context,
            include_extended_context=extended,
        )
        built = await self._builder.build_context(request)

        system_parts = [self._prompts.system_prompt, built.system_message or ""]
        system_prompt = SECTION_SEPARATOR.join(p for p in system_parts if p)

        user_content = ctx.message
        if built.user_content:
            user_content = f"{built.user_content}{USER_CONTEXT_SEPARATOR}{ctx.message}"

        return ctx.model_copy(
            update={"system_prompt": system_prompt, "user_content": user_content}
        )
