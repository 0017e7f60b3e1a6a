"""Context builder: runs providers and joins their sections.

Two provider lists are kept in registration order.  System providers
are consulted only when extended context is requested; user providers
always.  Within a list, providers that pass ``should_provide`` are
awaited concurrently, empty sections are dropped, and the rest are
joined by descending priority (ties keep registration order).
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence

from playbook.core.chat.errors import ContextBuildError
from playbook.infra.telemetry import (
    ATTR_CONTEXT_SYSTEM_SECTIONS,
    ATTR_CONTEXT_USER_SECTIONS,
    SPAN_CONTEXT_BUILD,
    tracer,
)

from .base import ContextProvider, provider_name
from .models import BuiltContext, ContextRequest, ContextSection

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n"


class ContextBuilder:
    def __init__(
        self,
        system_providers: Iterable[ContextProvider] = (),
        user_providers: Iterable[ContextProvider] = (),
    ) -> None:
        self._system_providers: list[ContextProvider] = list(system_providers)
        self._user_providers: list[ContextProvider] = list(user_providers)

    def register(
        self, provider: ContextProvider, *, system: bool = False
    ) -> "ContextBuilder":
        """Append *provider* to the system or user list."""
        target = self._system_providers if system else self._user_providers
        target.append(provider)
        return self

    @property
    def system_providers(self) -> list[ContextProvider]:
        return self._system_providers[:]

    @property
    def user_providers(self) -> list[ContextProvider]:
        return self._user_providers[:]

    async def build_context(self, request: ContextRequest) -> BuiltContext:
        """Assemble the system message (extended context only) and user content.

        Raises:
            ContextBuildError: a provider raised; no partial output is returned.
        """
        with tracer.start_as_current_span(SPAN_CONTEXT_BUILD) as span:
            system_message: str | None = None
            if request.include_extended_context:
                system_sections = await self._build_sections(
                    self._system_providers, request
                )
                span.set_attribute(ATTR_CONTEXT_SYSTEM_SECTIONS, len(system_sections))
                system_message = format_sections(system_sections)

            user_sections = await self._build_sections(self._user_providers, request)
            span.set_attribute(ATTR_CONTEXT_USER_SECTIONS, len(user_sections))

        return BuiltContext(
            system_message=system_message,
            user_content=format_sections(user_sections),
        )

    async def _build_sections(
        self, providers: Sequence[ContextProvider], request: ContextRequest
    ) -> list[ContextSection]:
        active = [p for p in providers if p.should_provide(request)]
        if not active:
            return []

        tasks = [asyncio.ensure_future(_run_provider(p, request)) for p in active]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        sections = [s for s in results if s is not None and s.content.strip()]
        # sorted() is stable, so equal priorities keep registration order
        return sorted(sections, key=lambda s: s.priority, reverse=True)


async def _run_provider(
    provider: ContextProvider, request: ContextRequest
) -> ContextSection | None:
    name = provider_name(provider)
    try:
        return await provider.build_context(request)
    except ContextBuildError:
        raise
    except Exception as exc:
        logger.warning("Context provider %s failed", name, exc_info=True)
        raise ContextBuildError(name, exc) from exc


def format_sections(sections: Iterable[ContextSection]) -> str:
    """Join section contents with a blank line between them."""
    return SECTION_SEPARATOR.join(s.content for s in sections if s.content)
