"""Seed (content record) models.

A Seed is the persisted outcome of one ingestion run: the normalized text
extracted from the user's material, the generated explanation, and the
bookkeeping the rest of the system reads (status, language, confidence).

Seeds are frozen; the orchestrator advances them with
``seed.model_copy(update={...})`` and writes each version to the store.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContentKind(str, Enum):  # noqa: UP042
    """The five kinds of study material the pipeline accepts."""

    DOCUMENT = "document"
    IMAGE = "image"
    AUDIO = "audio"
    TEXT = "text"
    VIDEO = "video"


class ProcessingStatus(str, Enum):  # noqa: UP042
    """Persisted lifecycle of a Seed.

    Ordered ``PENDING < EXTRACTING < ANALYZING < COMPLETED``; ``FAILED`` is
    terminal and sits outside the ordering.
    """

    PENDING = "pending"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.get(self, -1)


_STATUS_ORDER = {
    ProcessingStatus.PENDING: 0,
    ProcessingStatus.EXTRACTING: 1,
    ProcessingStatus.ANALYZING: 2,
    ProcessingStatus.COMPLETED: 3,
}


class Intent(str, Enum):  # noqa: UP042
    """How the learner is expected to use the material."""

    EDUCATIONAL = "Educational"
    COMPREHENSION = "Comprehension"
    REFERENCE = "Reference"
    ANALYTICAL = "Analytical"
    PROCEDURAL = "Procedural"


class MaterialStatus(str, Enum):  # noqa: UP042
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


# Secondary artifacts tracked in ``extraction_metadata["materials_status"]``.
DERIVED_MATERIALS: tuple[str, ...] = ("flashcards", "quiz")


def initial_materials_status() -> dict[str, str]:
    return {name: MaterialStatus.PENDING.value for name in DERIVED_MATERIALS}


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class Seed(BaseModel):
    """A persisted content record.

    Invariant: a ``COMPLETED`` seed always has non-empty ``extracted_text``
    and ``explanation``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    title: str
    content_kind: ContentKind
    # URL, inline text excerpt or original file name.
    source_ref: str | None = None
    extracted_text: str = ""
    explanation: str | None = None
    intent: Intent | None = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    extraction_metadata: dict[str, Any] = Field(default_factory=dict)
    error_message: str | None = None
    language_code: str | None = None
    file_size: int | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _completed_has_content(self) -> Seed:
        if self.processing_status == ProcessingStatus.COMPLETED:
            if not self.extracted_text.strip() or not (self.explanation or "").strip():
                raise ValueError(
                    "A completed seed requires non-empty extracted_text and explanation"
                )
        return self

    @property
    def is_completed(self) -> bool:
        return self.processing_status == ProcessingStatus.COMPLETED

    @property
    def materials_status(self) -> dict[str, str]:
        return dict(self.extraction_metadata.get("materials_status") or {})
