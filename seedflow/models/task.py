"""Background task models.

A BackgroundTask is a unit of deferred work (today: generating study
materials) owned by a seed.  The owner id is what deletion cleanup uses to
cancel every outstanding task for a seed in one sweep.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskKind(str, Enum):  # noqa: UP042
    GENERATE_MATERIALS = "generate_materials"


class TaskStatus(str, Enum):  # noqa: UP042
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED)


class BackgroundTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    user_id: str
    kind: TaskKind = TaskKind.GENERATE_MATERIALS
    status: TaskStatus = TaskStatus.PENDING
    cancelled: bool = False
    attempts: int = 0
    error: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    finished_at: datetime | None = None
