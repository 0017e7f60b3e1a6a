"""Centralized FastAPI dependency type aliases.

Route modules import these ``*Dep`` aliases instead of spelling out
``Annotated[T, Depends(get_xxx)]``.  Each alias maps to one ``get_*``
factory that tests can replace through ``app.dependency_overrides``.

Authentication is handled upstream; the gateway forwards the caller's
identity in ``X-Playbook-User``.  A user-supplied model key may be sent
in ``X-OpenAI-Key`` and otherwise falls back to the configured key.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from playbook.configs.config import get_chat_config, get_llm_config
from playbook.configs.system import ChatConfig, LLMConfig
from playbook.core.chat.deps import get_agent_pipeline
from playbook.core.chat.pipeline import AgentPipeline
from playbook.core.chat.stores import MessageStore, SessionRegistry
from playbook.infra.db import get_message_store, get_session_registry

USER_HEADER = "X-Playbook-User"
API_KEY_HEADER = "X-OpenAI-Key"


def get_user_id(
    user: Annotated[str | None, Header(alias=USER_HEADER)] = None,
) -> str:
    """Caller identity; 401 when the gateway did not supply one."""
    if not user or not user.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {USER_HEADER} header",
        )
    return user.strip()


def get_api_key(
    config: Annotated[LLMConfig, Depends(get_llm_config)],
    api_key: Annotated[str | None, Header(alias=API_KEY_HEADER)] = None,
) -> str | None:
    """The caller's model key, or the system key; ``None`` if neither is set."""
    return api_key or config.api_key


ChatConfigDep = Annotated[ChatConfig, Depends(get_chat_config)]
UserIdDep = Annotated[str, Depends(get_user_id)]
ApiKeyDep = Annotated[str | None, Depends(get_api_key)]
AgentPipelineDep = Annotated[AgentPipeline, Depends(get_agent_pipeline)]
MessageStoreDep = Annotated[MessageStore, Depends(get_message_store)]
SessionRegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
