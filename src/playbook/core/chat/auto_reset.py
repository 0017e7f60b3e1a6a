"""Token-budget rollover of chat sessions.

Once a session's cumulative token count is strictly greater than the
configured threshold, the next turn is sent to a fresh successor
session.  The successor starts cold: no previous response id, no
pending tool results and no summary of the archived conversation.  The
turn that pushed the session over the threshold is kept as is.
"""

import logging

from playbook.infra.telemetry import (
    ATTR_CHAT_ID,
    ATTR_NEW_CHAT_ID,
    SPAN_AUTO_RESET,
    tracer,
)

from .errors import ChatSessionNotFound
from .stores import MessageStore, SessionRegistry

logger = logging.getLogger(__name__)

DEFAULT_AUTO_RESET_TOKEN_THRESHOLD = 100_000


class AutoResetManager:
    def __init__(
        self,
        store: MessageStore,
        registry: SessionRegistry,
        threshold: int = DEFAULT_AUTO_RESET_TOKEN_THRESHOLD,
    ) -> None:
        self._store = store
        self._registry = registry
        self.threshold = threshold

    async def should_trigger_auto_reset(self, chat_id: str) -> bool:
        """Pure query; unknown sessions never trigger."""
        return await self._store.should_trigger_auto_reset(chat_id, self.threshold)

    async def trigger_auto_reset(
        self, chat_id: str, user_id: str, api_key: str | None = None
    ) -> str:
        """Archive *chat_id* and return the id of its active successor.

        ``api_key`` is accepted so that a summarising rollover can call
        the model with the caller's key; the cold-start rollover does not
        use it.

        Raises:
            ChatSessionNotFound: the session is missing or not owned by *user_id*.
            RolloverError: the archive + fork transaction failed.
        """
        with tracer.start_as_current_span(SPAN_AUTO_RESET) as span:
            span.set_attribute(ATTR_CHAT_ID, chat_id)
            session = await self._registry.get_session(chat_id)
            if session is None or session.user_id != user_id:
                raise ChatSessionNotFound(chat_id)

            successor = await self._registry.archive_and_fork(chat_id)
            span.set_attribute(ATTR_NEW_CHAT_ID, successor.id)

        logger.info(
            "Auto-reset: session %s (%d tokens > %d) rolled over to %s",
            chat_id,
            session.total_tokens,
            self.threshold,
            successor.id,
        )
        return successor.id
