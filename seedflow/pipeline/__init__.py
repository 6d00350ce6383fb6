"""Ingestion pipeline orchestration, stage pacing and background tasks."""

from seedflow.pipeline.orchestrator import IngestionPipeline
from seedflow.pipeline.progress_smoother import ProgressSmoother
from seedflow.pipeline.stage_controller import StageController, StageTimings, StageUpdate
from seedflow.pipeline.task_queue import BackgroundTaskQueue
from seedflow.pipeline.upload_session import UploadSession

__all__ = [
    "BackgroundTaskQueue",
    "IngestionPipeline",
    "ProgressSmoother",
    "StageController",
    "StageTimings",
    "StageUpdate",
    "UploadSession",
]
