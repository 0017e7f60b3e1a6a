"""Context-assembly models.

Snapshots describe the workflow content a provider may render; they are
either sent inline by the client (``WorkflowContext``) or loaded through
a ``ContentSource``.  ``ContextRequest`` and ``ContextSection`` live for
one pipeline run only.
"""

from typing import Literal

from pydantic import BaseModel, Field

Mode = Literal["workflow", "mini-prompt"]

MODE_WORKFLOW: Literal["workflow"] = "workflow"
MODE_MINI_PROMPT: Literal["mini-prompt"] = "mini-prompt"
MODES: tuple[str, ...] = (MODE_WORKFLOW, MODE_MINI_PROMPT)


# ---------------------------------------------------------------------------
# Content snapshots
# ---------------------------------------------------------------------------


class MiniPromptSummary(BaseModel):
    """A mini-prompt as it appears in listings (no body)."""

    id: str
    name: str
    description: str | None = None
    is_system: bool = False


class MiniPromptSnapshot(MiniPromptSummary):
    """A mini-prompt including its instructional text."""

    content: str = ""


class StageSnapshot(BaseModel):
    """One workflow stage with its mini-prompts in display order."""

    id: str
    name: str
    description: str | None = None
    color: str | None = None
    with_review: bool = False
    order: int = 0
    mini_prompts: list[MiniPromptSummary] = Field(default_factory=list)


class WorkflowSnapshot(BaseModel):
    """A workflow with nested stages, ordered by ``StageSnapshot.order``."""

    id: str
    name: str
    description: str | None = None
    complexity: str | None = None
    include_multi_agent_chat: bool = False
    stages: list[StageSnapshot] = Field(default_factory=list)


class WorkflowContext(BaseModel):
    """Client-side view sent along with a message."""

    workflow: WorkflowSnapshot | None = None
    available_mini_prompts: list[MiniPromptSummary] | None = None
    current_mini_prompt: MiniPromptSnapshot | None = None


# ---------------------------------------------------------------------------
# Per-run request / output
# ---------------------------------------------------------------------------


class ContextRequest(BaseModel):
    """Inputs a context provider may inspect."""

    user_id: str
    mode: Mode
    workflow_id: str | None = None
    mini_prompt_id: str | None = None
    workflow_context: WorkflowContext | None = None
    include_extended_context: bool = False

    @property
    def inline_workflow(self) -> WorkflowSnapshot | None:
        return self.workflow_context.workflow if self.workflow_context else None

    @property
    def inline_mini_prompt(self) -> MiniPromptSnapshot | None:
        if self.workflow_context is None:
            return None
        return self.workflow_context.current_mini_prompt

    @property
    def inline_mini_prompts(self) -> list[MiniPromptSummary] | None:
        if self.workflow_context is None:
            return None
        return self.workflow_context.available_mini_prompts


class ContextSection(BaseModel):
    """Markdown block contributed by one provider; higher priority first."""

    priority: int
    content: str


class BuiltContext(BaseModel):
    """Assembled context.

    ``system_message`` is ``None`` when extended context was not
    requested, and ``""`` when it was requested but nothing applied.
    """

    system_message: str | None = None
    user_content: str = ""
