"""Workflow / mini-prompt lookups for context providers and tools."""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from playbook.core.context.models import (
    MiniPromptSnapshot,
    MiniPromptSummary,
    WorkflowSnapshot,
)
from playbook.core.context.sources import ContentSource

from .converters import (
    mini_prompt_to_snapshot,
    mini_prompt_to_summary,
    workflow_to_snapshot,
)
from .models import MiniPrompt, StageMiniPrompt, Workflow, WorkflowStage


class PgContentRepository(ContentSource):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_workflow(self, workflow_id: str) -> WorkflowSnapshot | None:
        stmt = (
            select(Workflow)
            .where(Workflow.id == workflow_id)
            .options(
                selectinload(Workflow.stages)
                .selectinload(WorkflowStage.mini_prompt_links)
                .selectinload(StageMiniPrompt.mini_prompt)
            )
        )
        async with self._session_factory() as session:
            row = await session.scalar(stmt)
            return workflow_to_snapshot(row) if row is not None else None

    async def get_mini_prompt(self, mini_prompt_id: str) -> MiniPromptSnapshot | None:
        async with self._session_factory() as session:
            row = await session.get(MiniPrompt, mini_prompt_id)
            return mini_prompt_to_snapshot(row) if row is not None else None

    async def list_mini_prompts(
        self, user_id: str, limit: int = 100, search: str | None = None
    ) -> list[MiniPromptSummary]:
        """The user's own mini-prompts followed by system ones, by name."""
        stmt = (
            select(MiniPrompt)
            .where(or_(MiniPrompt.user_id == user_id, MiniPrompt.is_system.is_(True)))
            .order_by(MiniPrompt.is_system, MiniPrompt.name, MiniPrompt.id)
            .limit(limit)
        )
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    MiniPrompt.name.ilike(pattern),
                    MiniPrompt.description.ilike(pattern),
                )
            )
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [mini_prompt_to_summary(row) for row in rows]
