"""Model call step: Responses-API chaining with a bounded tool loop."""

import asyncio
import json
import logging
from typing import Any

import openai
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.tools import BaseTool

from playbook.core.chat.errors import (
    ContinuityError,
    InvalidApiKey,
    UpstreamModelError,
    UpstreamTimeout,
)
from playbook.core.chat.llm import ChatModelFactory
from playbook.core.chat.models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    CompletionResult,
    MessagePart,
    PipelineContext,
    TextPart,
    TokenUsage,
    ToolCallPart,
    ToolInvocation,
    ToolResultPart,
)
from playbook.infra.telemetry import (
    ATTR_CHAT_ID,
    ATTR_LLM_CHAINED,
    ATTR_LLM_TOOL_ROUNDS,
    SPAN_LLM_COMPLETION,
    tracer,
)
from playbook.infra.tokens import estimate_tokens

from .base import PipelineStep

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 5

FALLBACK_EMPTY = "I'm sorry, I couldn't generate a response. Please try again."
_TEXT_BLOCKS = ("text", "output_text")


def _friendly_fallback(invocations: list[ToolInvocation]) -> str:
    """Reply used when the model only called tools and wrote no text."""
    if not invocations:
        return FALLBACK_EMPTY
    names = list(dict.fromkeys(inv.tool_name for inv in invocations))
    used = ", ".join(f"`{name}`" for name in names)
    if any(inv.is_error for inv in invocations):
        return f"I tried {used}, but it did not complete successfully. Please retry."
    return (
        f"I looked this up with {used}. "
        "Ask me to summarise the results if you need more detail."
    )


def _extract_text(content: Any) -> str:
    """Plain text of a message's content (string or list of content blocks)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks = []
        for block in content:
            if isinstance(block, str):
                chunks.append(block)
            elif isinstance(block, dict) and block.get("type") in _TEXT_BLOCKS:
                chunks.append(block.get("text") or "")
        return "".join(chunks)
    return ""


def _response_id(message: AIMessage) -> str | None:
    return (message.response_metadata or {}).get("id") or None


def _tool_content(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


def _usage(message: AIMessage, sent: list[BaseMessage], reply_text: str) -> TokenUsage:
    meta = message.usage_metadata
    if meta:
        inp = meta.get("input_tokens", 0)
        out = meta.get("output_tokens", 0)
    else:
        inp = sum(estimate_tokens(_extract_text(m.content)) for m in sent)
        out = estimate_tokens(reply_text) + sum(
            estimate_tokens(json.dumps(tc.get("args", {}))) for tc in message.tool_calls
        )
    return TokenUsage(input=inp, output=out, total=inp + out)


def _add(a: TokenUsage, b: TokenUsage) -> TokenUsage:
    return TokenUsage(
        input=a.input + b.input, output=a.output + b.output, total=a.total + b.total
    )


class ExecuteCompletionStep(PipelineStep):
    """Sends the turn to the model and collects text, tool calls and usage.

    The call continues the provider-side conversation through
    ``previous_response_id`` when one is known; tool results still
    pending from that response are sent first.  Tool calls are executed
    and fed back for at most ``max_tool_rounds`` model calls; results of
    the last round are kept as pending for the next turn.  The whole
    step is bounded by the run's timeout.  Provider errors are not
    retried.
    """

    name = "execute_completion"

    def __init__(
        self,
        model_factory: ChatModelFactory,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        default_timeout: float | None = None,
    ) -> None:
        self._model_factory = model_factory
        self._max_tool_rounds = max(1, max_tool_rounds)
        self._default_timeout = default_timeout

    async def execute(self, ctx: PipelineContext) -> PipelineContext:
        if not ctx.api_key or ctx.user_content is None:
            raise ContinuityError("Context must be built before calling the model")

        timeout = ctx.timeout or self._default_timeout
        with tracer.start_as_current_span(SPAN_LLM_COMPLETION) as span:
            span.set_attribute(ATTR_CHAT_ID, ctx.chat_id or "")
            span.set_attribute(ATTR_LLM_CHAINED, ctx.previous_response_id is not None)
            try:
                completion = await asyncio.wait_for(self._complete(ctx), timeout)
            except asyncio.TimeoutError as exc:
                raise UpstreamTimeout(
                    f"Model did not respond within {timeout:g}s"
                ) from exc
            except openai.AuthenticationError as exc:
                raise InvalidApiKey(
                    "The API key was rejected by the model provider",
                    status_code=exc.status_code,
                ) from exc
            except openai.APITimeoutError as exc:
                raise UpstreamTimeout("Model provider request timed out") from exc
            except openai.APIStatusError as exc:
                raise UpstreamModelError(
                    f"Model provider error: {exc.message}",
                    status_code=exc.status_code,
                ) from exc
            except openai.APIError as exc:
                raise UpstreamModelError(f"Model provider error: {exc}") from exc
            span.set_attribute(ATTR_LLM_TOOL_ROUNDS, completion.tool_rounds)

        return ctx.model_copy(update={"completion": completion})

    def _initial_messages(self, ctx: PipelineContext) -> list[BaseMessage]:
        messages: list[BaseMessage] = []
        if ctx.system_prompt:
            messages.append(SystemMessage(content=ctx.system_prompt))
        if ctx.previous_response_id:
            for turn in ctx.previous_tool_results:
                for result in turn.tool_results:
                    messages.append(
                        ToolMessage(
                            content=_tool_content(result.result),
                            tool_call_id=result.tool_call_id,
                            name=result.tool_name,
                            status="error" if result.is_error else "success",
                        )
                    )
        else:
            for turn in ctx.history:
                text = turn.text
                if not text:
                    continue
                if turn.role == ROLE_USER:
                    messages.append(HumanMessage(content=text))
                elif turn.role == ROLE_ASSISTANT:
                    messages.append(AIMessage(content=text))
        messages.append(HumanMessage(content=ctx.user_content or ""))
        return messages

    async def _complete(self, ctx: PipelineContext) -> CompletionResult:
        model = self._model_factory(ctx.api_key or "")
        llm = model.bind_tools(ctx.tools) if ctx.tools else model
        tools_by_name = {tool.name: tool for tool in ctx.tools}

        messages = self._initial_messages(ctx)
        kwargs: dict[str, Any] = {}
        if ctx.previous_response_id:
            kwargs["previous_response_id"] = ctx.previous_response_id

        parts: list[MessagePart] = []
        invocations: list[ToolInvocation] = []
        texts: list[str] = []
        usage = TokenUsage()
        response_id: str | None = None
        rounds = 0

        while True:
            rounds += 1
            reply: AIMessage = await llm.ainvoke(messages, **kwargs)
            response_id = _response_id(reply) or response_id
            text = _extract_text(reply.content)
            usage = _add(usage, _usage(reply, messages, text))
            if text:
                texts.append(text)
                parts.append(TextPart(text=text))
            if not reply.tool_calls:
                break

            results: list[ToolResultPart] = []
            tool_messages: list[BaseMessage] = []
            for call in reply.tool_calls:
                call_id = call.get("id") or ""
                parts.append(
                    ToolCallPart(
                        tool_call_id=call_id,
                        tool_name=call["name"],
                        args=call.get("args", {}),
                    )
                )
                result = await self._run_tool(tools_by_name.get(call["name"]), call)
                results.append(result)
                invocations.append(
                    ToolInvocation(
                        tool_call_id=call_id,
                        tool_name=call["name"],
                        args=call.get("args", {}),
                        result=result.result,
                        is_error=result.is_error,
                    )
                )
                tool_messages.append(
                    ToolMessage(
                        content=_tool_content(result.result),
                        tool_call_id=call_id,
                        name=call["name"],
                        status="error" if result.is_error else "success",
                    )
                )

            if rounds >= self._max_tool_rounds:
                logger.info(
                    "Tool round limit (%d) reached for %s, %d results left pending",
                    self._max_tool_rounds,
                    ctx.chat_id,
                    len(results),
                )
                parts.extend(r.model_copy(update={"pending": True}) for r in results)
                break

            parts.extend(results)
            if response_id:
                messages = tool_messages
                kwargs = {"previous_response_id": response_id}
            else:
                messages = [*messages, reply, *tool_messages]

        final_text = "\n\n".join(texts)
        if not final_text:
            final_text = _friendly_fallback(invocations)
            parts.append(TextPart(text=final_text))

        return CompletionResult(
            text=final_text,
            parts=parts,
            response_id=response_id,
            usage=usage,
            tool_invocations=invocations,
            tool_rounds=rounds,
        )

    async def _run_tool(
        self, tool: BaseTool | None, call: dict[str, Any]
    ) -> ToolResultPart:
        """Run one tool call; failures are returned to the model as error results."""
        call_id = call.get("id") or ""
        if tool is None:
            return ToolResultPart(
                tool_call_id=call_id,
                tool_name=call["name"],
                result=f"Unknown tool: {call['name']}",
                is_error=True,
            )
        try:
            result = await tool.ainvoke(call.get("args", {}))
        except Exception as exc:
            logger.warning("Tool %s failed", call["name"], exc_info=True)
            return ToolResultPart(
                tool_call_id=call_id,
                tool_name=call["name"],
                result=str(exc),
                is_error=True,
            )
        return ToolResultPart(
            tool_call_id=call_id, tool_name=call["name"], result=result
        )
