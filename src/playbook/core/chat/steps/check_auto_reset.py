"""Rollover check and continuity lookup."""

import logging

from playbook.core.chat.auto_reset import AutoResetManager
from playbook.core.chat.errors import ContinuityError
from playbook.core.chat.models import PipelineContext
from playbook.core.chat.stores import MessageStore

from .base import PipelineStep

logger = logging.getLogger(__name__)


class CheckAutoResetStep(PipelineStep):
    """Rolls the session over when it is past the token threshold.

    On rollover the new chat id is set and the continuity pointers are
    cleared.  Otherwise the previous response id is loaded and, only
    when there is one, the tool results still pending from that
    response.  No other field of the context is touched.
    """

    name = "check_auto_reset"

    def __init__(self, manager: AutoResetManager, store: MessageStore) -> None:
        self._manager = manager
        self._store = store

    async def execute(self, ctx: PipelineContext) -> PipelineContext:
        if not ctx.chat_id:
            raise ContinuityError("Chat ID is required to check auto-reset")

        if await self._manager.should_trigger_auto_reset(ctx.chat_id):
            new_chat_id = await self._manager.trigger_auto_reset(
                ctx.chat_id, ctx.user_id, ctx.api_key
            )
            return ctx.model_copy(
                update={
                    "chat_id": new_chat_id,
                    "auto_reset_triggered": True,
                    "chain_broken": True,
                    "previous_response_id": None,
                    "previous_tool_results": [],
                }
            )

        previous_response_id = await self._store.get_last_response_id(ctx.chat_id)
        previous_tool_results = []
        if previous_response_id:
            previous_tool_results = await self._store.get_last_tool_results(
                ctx.chat_id, previous_response_id
            )
            if previous_tool_results:
                logger.debug(
                    "Carrying %d pending tool results into %s",
                    len(previous_tool_results),
                    ctx.chat_id,
                )

        return ctx.model_copy(
            update={
                "previous_response_id": previous_response_id,
                "previous_tool_results": previous_tool_results,
                "auto_reset_triggered": False,
                "chain_broken": False,
            }
        )
