"""Providers for mini-prompts: the one being viewed, and the user's library."""

from __future__ import annotations

from playbook.core.context.models import (
    ContextRequest,
    ContextSection,
    MiniPromptSnapshot,
    MiniPromptSummary,
)
from playbook.core.context.sources import ContentSource

CURRENT_MINI_PROMPT_PRIORITY = 10
AVAILABLE_MINI_PROMPTS_PRIORITY = 20

_EDIT_HINT = (
    "_The user is currently viewing this mini-prompt. You can help them edit "
    "it by suggesting changes to the title, description, or content "
    '(miniPromptId: "{id}")._'
)


def render_current_mini_prompt(mini_prompt: MiniPromptSnapshot) -> str:
    lines = [
        "## Currently Viewing Mini-Prompt",
        f"**ID**: {mini_prompt.id}",
        f"**Name**: {mini_prompt.name}",
    ]
    if mini_prompt.description:
        lines.append(f"**Description**: {mini_prompt.description}")
    lines.extend(["", "**Content**:", "```markdown", mini_prompt.content, "```"])
    lines.extend(["", _EDIT_HINT.format(id=mini_prompt.id)])
    return "\n".join(lines)


def render_mini_prompt_library(mini_prompts: list[MiniPromptSummary]) -> str:
    lines = ["## Available Mini-Prompts"]
    for mp in mini_prompts:
        entry = f"- **{mp.name}** (`{mp.id}`)"
        if mp.description:
            entry += f": {mp.description}"
        lines.append(entry)
    return "\n".join(lines)


class CurrentMiniPromptProvider:
    """The mini-prompt currently open in the editor (user content)."""

    name = "current_mini_prompt"

    def __init__(self, source: ContentSource | None = None) -> None:
        self._source = source

    def should_provide(self, request: ContextRequest) -> bool:
        if request.inline_mini_prompt is not None:
            return True
        return self._source is not None and request.mini_prompt_id is not None

    async def build_context(self, request: ContextRequest) -> ContextSection | None:
        mini_prompt = request.inline_mini_prompt
        if mini_prompt is None and self._source is not None and request.mini_prompt_id:
            mini_prompt = await self._source.get_mini_prompt(request.mini_prompt_id)
        if mini_prompt is None:
            return None
        return ContextSection(
            priority=CURRENT_MINI_PROMPT_PRIORITY,
            content=render_current_mini_prompt(mini_prompt),
        )


class AvailableMiniPromptsProvider:
    """The user's mini-prompt library (system message, extended context only)."""

    name = "available_mini_prompts"

    def __init__(self, source: ContentSource | None = None, limit: int = 100) -> None:
        self._source = source
        self._limit = limit

    def should_provide(self, request: ContextRequest) -> bool:
        if request.inline_mini_prompts:
            return True
        return self._source is not None

    async def build_context(self, request: ContextRequest) -> ContextSection | None:
        mini_prompts = request.inline_mini_prompts
        if not mini_prompts and self._source is not None:
            mini_prompts = await self._source.list_mini_prompts(
                request.user_id, limit=self._limit
            )
        if not mini_prompts:
            return None
        return ContextSection(
            priority=AVAILABLE_MINI_PROMPTS_PRIORITY,
            content=render_mini_prompt_library(mini_prompts[: self._limit]),
        )
