"""Chat model construction.

Every turn is sent with the caller's own API key, so models are built
per request through a ``ChatModelFactory`` rather than shared.
"""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from playbook.configs.config import get_llm_config
from playbook.configs.system import LLMConfig

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[str], BaseChatModel]


def build_chat_model(config: LLMConfig, api_key: str) -> ChatOpenAI:
    """ChatOpenAI on the Responses API with server-side response storage.

    ``store=True`` keeps each response on the provider side so the next
    turn can continue from it with ``previous_response_id``.
    """
    return ChatOpenAI(
        base_url=config.endpoint,
        api_key=api_key,
        model=config.model_name,
        temperature=config.temperature,
        timeout=config.request_timeout.total_seconds(),
        max_retries=config.max_retries,
        use_responses_api=True,
        store=True,
    )


def get_chat_model_factory(
    config: Annotated[LLMConfig, Depends(get_llm_config)],
) -> ChatModelFactory:
    """Return a factory creating a chat model bound to one API key."""

    def factory(api_key: str) -> BaseChatModel:
        return build_chat_model(config, api_key)

    return factory
