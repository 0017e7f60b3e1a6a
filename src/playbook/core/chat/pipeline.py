"""Agent pipeline runner.

Steps run strictly in order, each receiving the context returned by the
previous one.  The first step that raises ends the run; the error is
logged with the step name and re-raised unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from playbook.configs.system import ChatConfig, LLMConfig, PromptConfig
from playbook.core.context.builder import ContextBuilder
from playbook.infra.telemetry import (
    ATTR_AUTO_RESET_TRIGGERED,
    ATTR_CHAT_ID,
    ATTR_CHAT_MODE,
    ATTR_STEP_NAME,
    SPAN_PIPELINE_RUN,
    SPAN_PIPELINE_STEP,
    tracer,
)

from .auto_reset import AutoResetManager
from .errors import ContinuityError, PipelineError
from .llm import ChatModelFactory
from .models import AssistantMessage, PipelineContext, PipelineResult
from .steps.base import PipelineStep
from .steps.build_context import BuildContextStep
from .steps.check_auto_reset import CheckAutoResetStep
from .steps.determine_session import DetermineSessionStep
from .steps.execute_completion import ExecuteCompletionStep
from .steps.persist_messages import PersistMessagesStep
from .steps.prepare_data import PrepareDataStep
from .steps.prepare_request import PrepareRequestStep
from .stores import MessageStore, SessionRegistry
from .tools import ToolRegistry

logger = logging.getLogger(__name__)


class AgentPipeline:
    def __init__(self, steps: Iterable[PipelineStep] = ()) -> None:
        self._steps: list[PipelineStep] = list(steps)

    def add_step(self, step: PipelineStep) -> AgentPipeline:
        self._steps.append(step)
        return self

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self._steps]

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        """Run every step and return the final context."""
        with tracer.start_as_current_span(SPAN_PIPELINE_RUN) as run_span:
            run_span.set_attribute(ATTR_CHAT_MODE, ctx.mode or "")
            for step in self._steps:
                with tracer.start_as_current_span(SPAN_PIPELINE_STEP) as span:
                    span.set_attribute(ATTR_STEP_NAME, step.name)
                    try:
                        ctx = await step.execute(ctx)
                    except PipelineError as exc:
                        logger.warning(
                            "Pipeline step %s failed (%s): %s",
                            step.name,
                            exc.code,
                            exc,
                        )
                        raise
                    except Exception:
                        logger.exception("Pipeline step %s crashed", step.name)
                        raise
            run_span.set_attribute(ATTR_CHAT_ID, ctx.chat_id or "")
            run_span.set_attribute(ATTR_AUTO_RESET_TRIGGERED, ctx.auto_reset_triggered)
        return ctx

    async def execute(self, ctx: PipelineContext) -> PipelineResult:
        """Run the pipeline and shape the caller-facing result."""
        final = await self.run(ctx)
        if final.completion is None or not final.chat_id:
            raise ContinuityError("Pipeline finished without a completion")

        completion = final.completion
        return PipelineResult(
            session_id=final.chat_id,
            message=AssistantMessage(
                content=completion.text,
                tool_invocations=completion.tool_invocations,
            ),
            token_usage=completion.usage,
            auto_reset_triggered=final.auto_reset_triggered,
        )

    @classmethod
    def for_completion(
        cls,
        *,
        store: MessageStore,
        registry: SessionRegistry,
        context_builder: ContextBuilder,
        model_factory: ChatModelFactory,
        tools: ToolRegistry,
        chat_config: ChatConfig | None = None,
        llm_config: LLMConfig | None = None,
        prompts: PromptConfig | None = None,
    ) -> AgentPipeline:
        """The full chat turn: validate, resolve, reset, context, call, save."""
        chat_config = chat_config or ChatConfig()
        llm_config = llm_config or LLMConfig()
        prompts = prompts or PromptConfig()
        manager = AutoResetManager(
            store, registry, threshold=chat_config.auto_reset_token_threshold
        )
        return cls(
            [
                PrepareDataStep(),
                DetermineSessionStep(registry),
                CheckAutoResetStep(manager, store),
                BuildContextStep(context_builder, prompts),
                PrepareRequestStep(tools, store, chat_config.history_limit),
                ExecuteCompletionStep(
                    model_factory,
                    max_tool_rounds=llm_config.max_tool_rounds,
                    default_timeout=chat_config.completion_timeout.total_seconds(),
                ),
                PersistMessagesStep(store),
            ]
        )
