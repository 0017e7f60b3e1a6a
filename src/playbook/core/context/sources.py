"""Read-only access to workflow content for context providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import MiniPromptSnapshot, MiniPromptSummary, WorkflowSnapshot


class ContentSource(ABC):
    """Workflow and mini-prompt lookups."""

    @abstractmethod
    async def get_workflow(self, workflow_id: str) -> WorkflowSnapshot | None:
        """Workflow with stages and their mini-prompts, both in order."""

    @abstractmethod
    async def get_mini_prompt(self, mini_prompt_id: str) -> MiniPromptSnapshot | None:
        """Single mini-prompt including its content."""

    @abstractmethod
    async def list_mini_prompts(
        self, user_id: str, limit: int = 100, search: str | None = None
    ) -> list[MiniPromptSummary]:
        """Mini-prompts in the user's library (own and system ones).

        *search* keeps only those whose name or description contains it,
        ignoring case.
        """
