"""Context provider protocol."""

from typing import Protocol

from .models import ContextRequest, ContextSection


class ContextProvider(Protocol):
    """A unit that may contribute one prioritized section to the prompt."""

    def should_provide(self, request: ContextRequest) -> bool:
        """Pure predicate: whether ``build_context`` should run for *request*."""
        ...

    async def build_context(self, request: ContextRequest) -> ContextSection | None:
        """Render the section, or ``None`` when there is nothing to add."""
        ...


def provider_name(provider: ContextProvider) -> str:
    return getattr(provider, "name", None) or type(provider).__name__
