"""seedflow domain models -- re-exports all public model classes.

The models are organized by concern:
    - seed.py        -- the persisted content record and its enums
    - extraction.py  -- extractor / generator output and content limits
    - materials.py   -- flashcards and quiz questions
    - pipeline.py    -- upload stage vocabulary and progress state
    - task.py        -- background task records
"""

from __future__ import annotations

from seedflow.models.extraction import (
    AILimits,
    ExplanationResult,
    ExtractionMetadata,
    ExtractionResult,
)
from seedflow.models.materials import Flashcard, QuizQuestion
from seedflow.models.pipeline import (
    PRIMARY_STAGE_COUNT,
    STAGE_ORDER,
    STAGE_TARGETS,
    ProgressState,
    StageQueueItem,
    UploadStage,
    stage_message,
)
from seedflow.models.seed import (
    DERIVED_MATERIALS,
    ContentKind,
    Intent,
    MaterialStatus,
    ProcessingStatus,
    Seed,
    initial_materials_status,
)
from seedflow.models.task import BackgroundTask, TaskKind, TaskStatus

__all__ = [
    "AILimits",
    "BackgroundTask",
    "ContentKind",
    "DERIVED_MATERIALS",
    "ExplanationResult",
    "ExtractionMetadata",
    "ExtractionResult",
    "Flashcard",
    "Intent",
    "MaterialStatus",
    "PRIMARY_STAGE_COUNT",
    "ProcessingStatus",
    "ProgressState",
    "QuizQuestion",
    "STAGE_ORDER",
    "STAGE_TARGETS",
    "Seed",
    "StageQueueItem",
    "TaskKind",
    "TaskStatus",
    "UploadStage",
    "initial_materials_status",
    "stage_message",
]
