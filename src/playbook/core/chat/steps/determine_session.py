"""Resolves the session a turn is appended to."""

import logging

from playbook.core.chat.errors import ChatSessionNotFound
from playbook.core.chat.models import PipelineContext
from playbook.core.chat.stores import SessionRegistry

from .base import PipelineStep

logger = logging.getLogger(__name__)


class DetermineSessionStep(PipelineStep):
    """Sets ``chat_id`` and ``session``.

    An explicit chat id must belong to the caller.  If it has been
    archived, the turn goes to the active session of the same target.
    Without a chat id the active session for (user, mode, target) is
    used, and created when there is none.

    The resolved session decides the turn's mode and target, so the
    context that is built always matches the session it is saved to.
    """

    name = "determine_session"

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    async def execute(self, ctx: PipelineContext) -> PipelineContext:
        if ctx.chat_id:
            session = await self._registry.get_session(ctx.chat_id)
            if session is None or session.user_id != ctx.user_id:
                raise ChatSessionNotFound(ctx.chat_id)
            if session.is_archived:
                archived_id = session.id
                session = await self._registry.get_or_create_active_session(
                    session.user_id,
                    session.mode,
                    session.workflow_id,
                    session.mini_prompt_id,
                )
                logger.info(
                    "Session %s is archived, continuing in %s", archived_id, session.id
                )
            requested = (ctx.mode, ctx.workflow_id, ctx.mini_prompt_id)
            resolved = (session.mode, session.workflow_id, session.mini_prompt_id)
            if any(r is not None and r != s for r, s in zip(requested, resolved)):
                logger.info(
                    "Request for %s does not match session %s %s, using the session",
                    requested,
                    session.id,
                    resolved,
                )
        else:
            session = await self._registry.get_or_create_active_session(
                ctx.user_id, ctx.mode or "", ctx.workflow_id, ctx.mini_prompt_id
            )

        return ctx.model_copy(
            update={
                "chat_id": session.id,
                "session": session,
                "mode": session.mode,
                "workflow_id": session.workflow_id,
                "mini_prompt_id": session.mini_prompt_id,
            }
        )
