"""Pydantic request/response schemas for the seedflow HTTP API.

Response models are built from domain models with ``from_*`` helpers so the
routes never hand pydantic domain objects straight to clients.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from seedflow.models.seed import Seed
from seedflow.models.task import BackgroundTask


class TextIngestRequest(BaseModel):
    """Free text typed or pasted by the user."""

    user_id: str = Field(min_length=1)
    text: str
    title: str | None = None
    session_id: str | None = None
    is_premium: bool = False


class VideoIngestRequest(BaseModel):
    """A video link to ingest through its caption track."""

    user_id: str = Field(min_length=1)
    url: str = Field(min_length=1)
    title: str | None = None
    session_id: str | None = None
    is_premium: bool = False


class SeedResponse(BaseModel):
    """A content record as returned to clients."""

    id: str
    user_id: str
    title: str
    content_kind: str
    processing_status: str
    source_ref: str | None = None
    extracted_text: str
    explanation: str | None = None
    intent: str | None = None
    confidence_score: float | None = None
    language_code: str | None = None
    file_size: int | None = None
    materials_status: dict[str, str] = Field(default_factory=dict)
    extraction_metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_seed(cls, seed: Seed) -> SeedResponse:
        return cls(
            id=seed.id,
            user_id=seed.user_id,
            title=seed.title,
            content_kind=seed.content_kind.value,
            processing_status=seed.processing_status.value,
            source_ref=seed.source_ref,
            extracted_text=seed.extracted_text,
            explanation=seed.explanation,
            intent=seed.intent.value if seed.intent else None,
            confidence_score=seed.confidence_score,
            language_code=seed.language_code,
            file_size=seed.file_size,
            materials_status=seed.materials_status,
            extraction_metadata=seed.extraction_metadata,
            created_at=seed.created_at,
            updated_at=seed.updated_at,
        )


class SeedListResponse(BaseModel):
    seeds: list[SeedResponse]
    total: int


class DeleteSeedResponse(BaseModel):
    seed_id: str
    deleted: bool
    cancelled_tasks: int


class TaskResponse(BaseModel):
    """A background job as seen by clients."""

    id: str
    owner_id: str
    kind: str
    status: str
    cancelled: bool
    attempts: int
    error: str | None = None
    created_at: datetime
    finished_at: datetime | None = None

    @classmethod
    def from_task(cls, task: BackgroundTask) -> TaskResponse:
        return cls(
            id=task.id,
            owner_id=task.owner_id,
            kind=task.kind.value,
            status=task.status.value,
            cancelled=task.cancelled,
            attempts=task.attempts,
            error=task.error,
            created_at=task.created_at,
            finished_at=task.finished_at,
        )


class TaskListResponse(BaseModel):
    seed_id: str
    tasks: list[TaskResponse]


class MaterialsResponse(BaseModel):
    """Generated study materials for a seed."""

    seed_id: str
    materials_status: dict[str, str]
    materials: dict[str, Any]


class UsageResponse(BaseModel):
    user_id: str
    upload_count: int


class ProgressMessage(BaseModel):
    """One snapshot pushed over the progress WebSocket."""

    session_id: str
    is_uploading: bool = False
    stage: str | None = None
    step: int = 1
    total_steps: int = 6
    message: str = ""
    progress: float = 0.0
    actual_progress: float = 0.0
    error: str | None = None
    seed_id: str | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
    tasks: dict[str, int] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
    retryable: bool = False


class IngestResponse(BaseModel):
    """Result of a completed ingestion run."""

    session_id: str
    seed: SeedResponse
