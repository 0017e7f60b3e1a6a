"""Persists the completed turn."""

import logging

from playbook.core.chat.errors import ContinuityError
from playbook.core.chat.models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    ChatTurn,
    PipelineContext,
)
from playbook.core.chat.stores import MessageStore

from .base import PipelineStep

logger = logging.getLogger(__name__)


class PersistMessagesStep(PipelineStep):
    """Saves the user turn and the assistant turn in one transaction.

    Input tokens are counted on the user turn and output tokens on the
    assistant turn, so the session total grows by the turn's usage.
    """

    name = "persist_messages"

    def __init__(self, store: MessageStore) -> None:
        self._store = store

    async def execute(self, ctx: PipelineContext) -> PipelineContext:
        if not ctx.chat_id:
            raise ContinuityError("Chat ID is required to persist messages")
        if ctx.completion is None:
            raise ContinuityError("No completion to persist")

        completion = ctx.completion
        turns = [
            ChatTurn.from_text(
                ROLE_USER, ctx.message, token_count=completion.usage.input
            ),
            ChatTurn(
                role=ROLE_ASSISTANT,
                parts=completion.parts,
                token_count=completion.usage.output,
                response_id=completion.response_id,
            ),
        ]
        await self._store.save_messages(ctx.chat_id, turns)
        logger.debug(
            "Saved turn to %s (%d tokens)", ctx.chat_id, completion.usage.total
        )
        return ctx
