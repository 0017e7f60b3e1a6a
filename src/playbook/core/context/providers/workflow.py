"""Workflow structure provider (user content)."""

from __future__ import annotations

import logging

from playbook.core.context.models import (
    ContextRequest,
    ContextSection,
    WorkflowSnapshot,
)
from playbook.core.context.sources import ContentSource

logger = logging.getLogger(__name__)

WORKFLOW_PRIORITY = 5


def render_workflow(workflow: WorkflowSnapshot) -> str:
    lines = ["## Current Workflow Context", f"**Name**: {workflow.name}"]
    if workflow.description:
        lines.append(f"**Description**: {workflow.description}")
    if workflow.complexity:
        lines.append(f"**Complexity**: {workflow.complexity}")
    multi_agent = "Enabled" if workflow.include_multi_agent_chat else "Disabled"
    lines.append(f"**Multi-Agent Chat**: {multi_agent}")

    if workflow.stages:
        lines.extend(["", "### Stages:"])
        for position, stage in enumerate(
            sorted(workflow.stages, key=lambda s: s.order), start=1
        ):
            lines.append(f"{position}. **{stage.name}**")
            if stage.description:
                lines.append(f"   _{stage.description}_")
            if stage.mini_prompts:
                names = ", ".join(mp.name for mp in stage.mini_prompts)
                lines.append(f"   Mini-prompts: {names}")
    return "\n".join(lines)


class WorkflowContextProvider:
    """Describes the workflow being edited: metadata and numbered stages.

    Uses the inline workflow sent by the client when present, otherwise
    loads ``request.workflow_id`` from the content source.
    """

    name = "workflow"

    def __init__(self, source: ContentSource | None = None) -> None:
        self._source = source

    def should_provide(self, request: ContextRequest) -> bool:
        if request.inline_workflow is not None:
            return True
        return self._source is not None and request.workflow_id is not None

    async def build_context(self, request: ContextRequest) -> ContextSection | None:
        workflow = request.inline_workflow
        if workflow is None and self._source is not None and request.workflow_id:
            workflow = await self._source.get_workflow(request.workflow_id)
            if workflow is None:
                logger.info("Workflow %s not found, no context", request.workflow_id)
        if workflow is None:
            return None
        return ContextSection(
            priority=WORKFLOW_PRIORITY, content=render_workflow(workflow)
        )
