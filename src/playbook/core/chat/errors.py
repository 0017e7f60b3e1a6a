"""Chat pipeline exceptions.

Every error raised inside a pipeline run derives from ``PipelineError``
and carries a stable ``code`` used by the HTTP layer.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures that abort a pipeline run."""

    code = "PIPELINE_ERROR"


# ---------------------------------------------------------------------------
# Input / continuity
# ---------------------------------------------------------------------------


class PipelineValidationError(PipelineError):
    """Raised when a required input field is missing or invalid."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field} is required")
        self.field = field


class ContinuityError(PipelineError):
    """Raised when a step needs a chat id that no earlier step resolved."""

    code = "CONTINUITY_ERROR"


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class ChatSessionNotFound(PipelineError):
    """Raised when a session does not exist or belongs to another user."""

    code = "SESSION_NOT_FOUND"

    def __init__(self, chat_id: str) -> None:
        super().__init__(f"Chat session {chat_id} not found")
        self.chat_id = chat_id


class SessionArchived(PipelineError):
    """Raised when a write targets a session that has been rolled over."""

    code = "SESSION_ARCHIVED"

    def __init__(self, chat_id: str) -> None:
        super().__init__(f"Chat session {chat_id} is archived")
        self.chat_id = chat_id


class RolloverError(PipelineError):
    """Raised when archiving a session or creating its successor fails.

    The archive and the insert share one transaction, so when this is
    raised the original session is still the active one.
    """

    code = "ROLLOVER_FAILED"


# ---------------------------------------------------------------------------
# Context / upstream
# ---------------------------------------------------------------------------


class ContextBuildError(PipelineError):
    """Raised when a context provider fails; the whole build is aborted."""

    code = "CONTEXT_BUILD_FAILED"

    def __init__(self, provider: str, cause: BaseException) -> None:
        super().__init__(f"Context provider {provider} failed: {cause}")
        self.provider = provider


class UpstreamModelError(PipelineError):
    """Raised when the language-model provider rejects or fails a call."""

    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidApiKey(UpstreamModelError):
    """Raised when the provider rejects the caller's API key."""

    code = "INVALID_API_KEY"


class UpstreamTimeout(UpstreamModelError):
    """Raised when the model call exceeds the caller-supplied timeout."""

    code = "UPSTREAM_TIMEOUT"
