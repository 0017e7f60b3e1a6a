"""Built-in context providers."""

from .mini_prompt import (
    AVAILABLE_MINI_PROMPTS_PRIORITY,
    CURRENT_MINI_PROMPT_PRIORITY,
    AvailableMiniPromptsProvider,
    CurrentMiniPromptProvider,
)
from .mode import MODE_INSTRUCTIONS_PRIORITY, ModeInstructionsProvider
from .workflow import WORKFLOW_PRIORITY, WorkflowContextProvider

__all__ = [
    "AVAILABLE_MINI_PROMPTS_PRIORITY",
    "AvailableMiniPromptsProvider",
    "CURRENT_MINI_PROMPT_PRIORITY",
    "CurrentMiniPromptProvider",
    "MODE_INSTRUCTIONS_PRIORITY",
    "ModeInstructionsProvider",
    "WORKFLOW_PRIORITY",
    "WorkflowContextProvider",
]
