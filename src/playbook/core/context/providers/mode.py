"""Mode-specific assistant instructions (system message)."""

from playbook.configs.system import PromptConfig
from playbook.core.context.models import MODE_WORKFLOW, ContextRequest, ContextSection

MODE_INSTRUCTIONS_PRIORITY = 100


class ModeInstructionsProvider:
    name = "mode_instructions"

    def __init__(self, prompts: PromptConfig) -> None:
        self._prompts = prompts

    def should_provide(self, request: ContextRequest) -> bool:
        return True

    async def build_context(self, request: ContextRequest) -> ContextSection | None:
        if request.mode == MODE_WORKFLOW:
            text = self._prompts.workflow_instructions
        else:
            text = self._prompts.mini_prompt_instructions
        return ContextSection(priority=MODE_INSTRUCTIONS_PRIORITY, content=text)
