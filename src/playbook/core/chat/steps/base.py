"""Pipeline step contract."""

from abc import ABC, abstractmethod

from playbook.core.chat.models import PipelineContext


class PipelineStep(ABC):
    """One named unit of the chat pipeline.

    ``execute`` returns a new context (``ctx.model_copy(update=...)``);
    raising aborts the remaining steps.
    """

    name: str = "step"

    @abstractmethod
    async def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Run the step and return the context for the next one."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name={self.name!r})>"
