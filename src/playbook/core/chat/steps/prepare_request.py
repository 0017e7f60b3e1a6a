"""Attaches tools and, when the response chain is unavailable, history."""

from playbook.core.chat.models import PipelineContext
from playbook.core.chat.stores import MessageStore
from playbook.core.chat.tools import ToolRegistry

from .base import PipelineStep


class PrepareRequestStep(PipelineStep):
    name = "prepare_request"

    def __init__(
        self, tools: ToolRegistry, store: MessageStore, history_limit: int = 50
    ) -> None:
        self._tools = tools
        self._store = store
        self._history_limit = history_limit

    async def execute(self, ctx: PipelineContext) -> PipelineContext:
        history = []
        # A session with turns but no stored response id cannot be continued
        # server-side; resend its recent text instead.  Rolled-over sessions
        # start empty.
        chain_missing = ctx.previous_response_id is None
        if ctx.chat_id and chain_missing and not ctx.auto_reset_triggered:
            history = await self._store.get_message_history(
                ctx.chat_id, limit=self._history_limit
            )
        return ctx.model_copy(
            update={"tools": self._tools.get_tools(ctx.user_id), "history": history}
        )
