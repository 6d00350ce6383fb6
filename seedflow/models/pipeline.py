"""Upload stage vocabulary and progress state.

The ingestion pipeline reports progress as a sequence of named stages.  Each
stage has a fixed target fraction and a 1-based step index::

    validating(0.05) → reading(0.18) → extracting(0.45) → analyzing(0.50)
        → generating(0.82) → finalizing(0.95) → completed(1.0)

``analyzing`` is part of the vocabulary (and the persisted status of the
same name) but the orchestrator goes straight from ``extracting`` to
``generating`` when it reports progress.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from seedflow.models.seed import ContentKind


class UploadStage(str, Enum):  # noqa: UP042
    VALIDATING = "validating"
    READING = "reading"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    FINALIZING = "finalizing"
    COMPLETED = "completed"

    @property
    def target_progress(self) -> float:
        return STAGE_TARGETS[self]

    @property
    def step_index(self) -> int:
        return STAGE_ORDER.index(self) + 1


STAGE_ORDER: tuple[UploadStage, ...] = tuple(UploadStage)

STAGE_TARGETS: dict[UploadStage, float] = {
    UploadStage.VALIDATING: 0.05,
    UploadStage.READING: 0.18,
    UploadStage.EXTRACTING: 0.45,
    UploadStage.ANALYZING: 0.50,
    UploadStage.GENERATING: 0.82,
    UploadStage.FINALIZING: 0.95,
    UploadStage.COMPLETED: 1.0,
}

# Steps shown as "step N of M"; the terminal stage is not counted.
PRIMARY_STAGE_COUNT = len(STAGE_ORDER) - 1

_CONTENT_LABELS = {
    ContentKind.DOCUMENT: "document",
    ContentKind.IMAGE: "image",
    ContentKind.AUDIO: "audio file",
    ContentKind.TEXT: "text",
    ContentKind.VIDEO: "video",
}


def stage_message(stage: UploadStage, content_kind: ContentKind | None = None) -> str:
    """Return the user-facing message for *stage*, specialized per content kind."""
    label = _CONTENT_LABELS.get(content_kind, "content") if content_kind else "content"
    is_video = content_kind == ContentKind.VIDEO

    if stage == UploadStage.VALIDATING:
        return "Validating video link…" if is_video else "Validating your upload…"
    if stage == UploadStage.READING:
        return "Extracting captions from video…" if is_video else f"Reviewing your {label}…"
    if stage == UploadStage.EXTRACTING:
        return f"Extracting insights from your {label}…"
    if stage == UploadStage.ANALYZING:
        return f"Analyzing your {label}…"
    if stage == UploadStage.GENERATING:
        return "Generating personalized study materials…"
    if stage == UploadStage.FINALIZING:
        return "Finalizing your mastery set…"
    return "Your mastery set is ready!"


class StageQueueItem(BaseModel):
    """A pending stage report awaiting promotion to the visible stage."""

    model_config = ConfigDict(frozen=True)

    stage: UploadStage
    message: str
    target_progress: float = Field(ge=0.0, le=1.0)
    step_index: int = Field(ge=1, le=len(STAGE_ORDER))


class ProgressState(BaseModel):
    """Actual vs displayed progress for one run.

    ``actual`` is the highest target reported so far; ``displayed`` trails it
    and never exceeds it.
    """

    model_config = ConfigDict(frozen=True)

    actual: float = Field(default=0.0, ge=0.0, le=1.0)
    displayed: float = Field(default=0.0, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _displayed_within_actual(self) -> ProgressState:
        if self.displayed > self.actual:
            raise ValueError("displayed progress cannot exceed actual progress")
        return self
