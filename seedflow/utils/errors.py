"""Custom exception hierarchy for seedflow.

All application exceptions inherit from :class:`SeedflowError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "document-backend", "sqlite") caused the
failure.

    SeedflowError  (base -- catch-all for any seedflow error)
    +-- UserFacingError          (carries a pre-authored user message)
    |   +-- ValidationError      (content too short / too long; never retried)
    |   +-- ExtractionError      (remote OCR / transcription / captions)
    |   +-- GenerationError      (explanation generation)
    |   +-- IngestionError       (normalized error raised by the orchestrator)
    +-- PersistenceError         (seed store failures)
    +-- LLMError                 (any LLM API call failure)
    +-- ConfigurationError       (startup / missing config)
    +-- TaskQueueError           (background queue misuse)

The orchestrator catches everything once at its boundary: validation errors
propagate verbatim, everything else is logged and re-raised as a single
:class:`IngestionError`.
"""

from __future__ import annotations

from enum import Enum

GENERIC_USER_MESSAGE = (
    "Something went wrong while processing your content. "
    "Please check your connection and try again."
)


class SeedflowError(Exception):
    """Base exception for all seedflow errors.

    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class UserFacingError(SeedflowError):
    """An error that carries a message safe to show to the end user.

    ``message`` is the technical description that goes to the logs;
    ``user_message`` is what the caller renders.
    """

    def __init__(
        self,
        message: str,
        user_message: str = GENERIC_USER_MESSAGE,
        retryable: bool = False,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._user_message = user_message
        self._retryable = retryable

    @property
    def user_message(self) -> str:
        return self._user_message

    @property
    def retryable(self) -> bool:
        return self._retryable


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationErrorKind(str, Enum):  # noqa: UP042
    TOO_SHORT = "TOO_SHORT"
    TOO_LONG = "TOO_LONG"


class ValidationError(UserFacingError):
    """Raised when extracted content falls outside the allowed length range.

    Always user-actionable and never retried automatically.
    """

    def __init__(
        self,
        kind: ValidationErrorKind,
        user_message: str,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message=message or user_message,
            user_message=user_message,
            retryable=False,
        )
        self._kind = kind

    @property
    def kind(self) -> ValidationErrorKind:
        return self._kind


# ---------------------------------------------------------------------------
# Extraction & generation
# ---------------------------------------------------------------------------


class ExtractionErrorKind(str, Enum):  # noqa: UP042
    EMPTY_RESULT = "EMPTY_RESULT"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    REMOTE_FAILURE = "REMOTE_FAILURE"


class ExtractionError(UserFacingError):
    """Raised when a content extractor cannot produce usable text."""

    def __init__(
        self,
        kind: ExtractionErrorKind,
        message: str = "Content extraction failed",
        user_message: str = GENERIC_USER_MESSAGE,
        retryable: bool = False,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            user_message=user_message,
            retryable=retryable,
            provider_name=provider_name,
        )
        self._kind = kind

    @property
    def kind(self) -> ExtractionErrorKind:
        return self._kind


class GenerationError(UserFacingError):
    """Raised when explanation generation fails or returns nothing."""

    def __init__(
        self,
        message: str = "Explanation generation failed",
        user_message: str = GENERIC_USER_MESSAGE,
        retryable: bool = True,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            user_message=user_message,
            retryable=retryable,
            provider_name=provider_name,
        )


class IngestionError(UserFacingError):
    """The single normalized error type surfaced by the ingestion pipeline."""


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------


class PersistenceError(SeedflowError):
    """Raised when the seed store fails to read or write a record."""

    def __init__(
        self,
        message: str = "Persistence operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(SeedflowError):
    """Raised when an LLM API call fails or returns an unparseable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(SeedflowError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TaskQueueError(SeedflowError):
    """Raised when the background task queue is used incorrectly."""

    def __init__(
        self,
        message: str = "Background task queue error",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
