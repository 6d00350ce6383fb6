"""Utility modules for seedflow.

- **errors** -- Exception hierarchy rooted at SeedflowError; user-facing
  errors carry a pre-authored message the orchestrator can surface verbatim.
- **language** -- Local language detection (n-gram classifier with a
  script-range fallback) and language-code normalization.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from seedflow.utils.errors import (
    ConfigurationError,
    ExtractionError,
    ExtractionErrorKind,
    GenerationError,
    IngestionError,
    LLMError,
    PersistenceError,
    SeedflowError,
    TaskQueueError,
    UserFacingError,
    ValidationError,
    ValidationErrorKind,
)
from seedflow.utils.language import detect_language, is_logographic, normalize_language_code
from seedflow.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "ExtractionError",
    "ExtractionErrorKind",
    "GenerationError",
    "IngestionError",
    "LLMError",
    "PersistenceError",
    "SeedflowError",
    "TaskQueueError",
    "UserFacingError",
    "ValidationError",
    "ValidationErrorKind",
    "configure_logging",
    "detect_language",
    "get_logger",
    "is_logographic",
    "normalize_language_code",
]
