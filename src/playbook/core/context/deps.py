"""FastAPI dependency factory for the context builder."""

from typing import Annotated

from fastapi import Depends

from playbook.configs.config import get_chat_config, get_prompt_config
from playbook.configs.system import ChatConfig, PromptConfig
from playbook.infra.db import get_content_source

from .builder import ContextBuilder
from .providers import (
    AvailableMiniPromptsProvider,
    CurrentMiniPromptProvider,
    ModeInstructionsProvider,
    WorkflowContextProvider,
)
from .sources import ContentSource


def build_context_builder(
    prompts: PromptConfig,
    source: ContentSource | None,
    library_limit: int = 100,
) -> ContextBuilder:
    """Default provider set, registered in a fixed order."""
    return (
        ContextBuilder()
        .register(ModeInstructionsProvider(prompts), system=True)
        .register(
            AvailableMiniPromptsProvider(source, limit=library_limit), system=True
        )
        .register(WorkflowContextProvider(source))
        .register(CurrentMiniPromptProvider(source))
    )


def get_context_builder(
    prompts: Annotated[PromptConfig, Depends(get_prompt_config)],
    chat: Annotated[ChatConfig, Depends(get_chat_config)],
    source: Annotated[ContentSource, Depends(get_content_source)],
) -> ContextBuilder:
    return build_context_builder(
        prompts, source, library_limit=chat.mini_prompt_library_limit
    )
