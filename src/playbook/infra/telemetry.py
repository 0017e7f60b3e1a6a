"""OpenTelemetry tracer and span names.

Only the API package is used: spans are no-ops until the deployment
installs an SDK ``TracerProvider`` (e.g. via ``opentelemetry-instrument``).

Usage::

    from playbook.infra.telemetry import SPAN_PIPELINE_RUN, tracer

    with tracer.start_as_current_span(SPAN_PIPELINE_RUN) as span:
        ...
"""

from opentelemetry import trace
from opentelemetry.trace import format_trace_id

tracer = trace.get_tracer("playbook")

# ---------------------------------------------------------------------------
# Span names
# ---------------------------------------------------------------------------

SPAN_PIPELINE_RUN = "pipeline.run"
SPAN_PIPELINE_STEP = "pipeline.step"
SPAN_CONTEXT_BUILD = "context.build"
SPAN_AUTO_RESET = "chat.auto_reset"
SPAN_HISTORY_LOAD = "history.load"
SPAN_MESSAGES_SAVE = "history.save"
SPAN_LLM_COMPLETION = "llm.completion"

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_CHAT_ID = "chat.id"
ATTR_CHAT_MODE = "chat.mode"
ATTR_STEP_NAME = "pipeline.step_name"
ATTR_AUTO_RESET_TRIGGERED = "chat.auto_reset_triggered"
ATTR_NEW_CHAT_ID = "chat.new_id"
ATTR_CONTEXT_SYSTEM_SECTIONS = "context.system_sections"
ATTR_CONTEXT_USER_SECTIONS = "context.user_sections"
ATTR_HISTORY_MESSAGE_COUNT = "history.message_count"
ATTR_LLM_MODEL = "llm.model"
ATTR_LLM_TOOL_ROUNDS = "llm.tool_rounds"
ATTR_LLM_CHAINED = "llm.chained"


def get_current_trace_id() -> str | None:
    """Return the active trace ID as 32-char hex, or ``None`` outside a span."""
    ctx = trace.get_current_span().get_span_context()
    if ctx is None or not ctx.is_valid:
        return None
    return format_trace_id(ctx.trace_id)
