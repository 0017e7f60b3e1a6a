"""FastAPI dependency factories for the chat pipeline.

``get_agent_pipeline`` is a per-request factory with an explicit
``Depends`` chain: every collaborator is injected, none is imported as a
module-level singleton, so tests can override any one of them.
"""

from typing import Annotated

from fastapi import Depends

from playbook.configs.config import AppConfig, get_app_config
from playbook.core.context.builder import ContextBuilder
from playbook.core.context.deps import get_context_builder
from playbook.core.context.sources import ContentSource
from playbook.infra.db import (
    get_content_source,
    get_message_store,
    get_session_registry,
)

from .llm import ChatModelFactory, get_chat_model_factory
from .pipeline import AgentPipeline
from .stores import MessageStore, SessionRegistry
from .tools import ToolRegistry


def get_tool_registry(
    source: Annotated[ContentSource, Depends(get_content_source)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> ToolRegistry:
    return ToolRegistry(source, library_limit=config.chat.mini_prompt_library_limit)


def get_agent_pipeline(
    config: Annotated[AppConfig, Depends(get_app_config)],
    store: Annotated[MessageStore, Depends(get_message_store)],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
    context_builder: Annotated[ContextBuilder, Depends(get_context_builder)],
    model_factory: Annotated[ChatModelFactory, Depends(get_chat_model_factory)],
    tools: Annotated[ToolRegistry, Depends(get_tool_registry)],
) -> AgentPipeline:
    """Build the completion pipeline for one request."""
    return AgentPipeline.for_completion(
        store=store,
        registry=registry,
        context_builder=context_builder,
        model_factory=model_factory,
        tools=tools,
        chat_config=config.chat,
        llm_config=config.llm,
        prompts=config.prompt,
    )
