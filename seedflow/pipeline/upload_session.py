"""One user's upload session: drives the pipeline and owns its pacing.

Each run gets a fresh :class:`StageController` and :class:`ProgressSmoother`,
so concurrent sessions never share timers or progress.  The session exposes
a flat :meth:`snapshot` for whatever renders it (the WebSocket endpoint in
this service) and notifies ``on_update`` whenever the snapshot changes.

Lifecycle of a successful run::

    upload_*() ─→ is_uploading=True ─→ stages paced ─→ completed shown
        ─→ (completion_dismiss_delay) ─→ is_uploading=False, seed surfaced

A failed run records exactly one user-facing error, drops back to the idle
state immediately and re-raises the :class:`IngestionError`.  A cancelled
run drops back to idle without an error and lets the cancellation through.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from seedflow.interfaces.usage_counter import IUsageCounter
from seedflow.models.pipeline import PRIMARY_STAGE_COUNT
from seedflow.models.seed import ContentKind, Seed
from seedflow.pipeline.orchestrator import IngestionPipeline
from seedflow.pipeline.progress_smoother import ProgressSmoother
from seedflow.pipeline.stage_controller import StageController, StageTimings, StageUpdate
from seedflow.services.content_extraction_service import classify_mime_type, resolve_mime_type
from seedflow.utils.callbacks import notify
from seedflow.utils.errors import (
    GENERIC_USER_MESSAGE,
    ExtractionError,
    IngestionError,
    UserFacingError,
)
from seedflow.utils.logging import get_logger

_IDLE_STEP_NAME = "Starting..."


class UploadSession:
    """Drives uploads for one user and tracks what they should see.

    Parameters
    ----------
    pipeline:
        The shared ingestion pipeline.
    timings:
        Stage pacing configuration.
    user_id:
        Owner of every seed created through this session.
    is_premium:
        Premium users' uploads are not counted.
    usage_counter:
        Incremented once per completed upload for non-premium users.
    on_update:
        Sync or async callable receiving :meth:`snapshot` after every change.
    on_complete:
        Sync or async callable receiving the finished seed once the
        completion stage has been dismissed.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        timings: StageTimings,
        user_id: str,
        is_premium: bool = False,
        usage_counter: IUsageCounter | None = None,
        on_update: Callable[[dict[str, Any]], Any] | None = None,
        on_complete: Callable[[Seed], Any] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._timings = timings
        self._user_id = user_id
        self._is_premium = is_premium
        self._usage_counter = usage_counter
        self._on_update = on_update
        self._on_complete = on_complete

        self._is_uploading = False
        self._error: str | None = None
        self._last_seed_id: str | None = None
        self._current_step: StageUpdate | None = None
        self._controller: StageController | None = None
        self._smoother: ProgressSmoother | None = None
        self._recording: bytearray | None = None
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def is_uploading(self) -> bool:
        return self._is_uploading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def last_created_seed_id(self) -> str | None:
        return self._last_seed_id

    @property
    def is_recording(self) -> bool:
        return self._recording is not None

    def snapshot(self) -> dict[str, Any]:
        step = self._current_step
        smoother = self._smoother
        return {
            "is_uploading": self._is_uploading,
            "stage": step.stage.value if step else None,
            "step": step.step if step else 1,
            "total_steps": step.total_steps if step else PRIMARY_STAGE_COUNT,
            "message": step.message if step else _IDLE_STEP_NAME,
            "progress": round(smoother.displayed, 4) if smoother else 0.0,
            "actual_progress": round(smoother.actual, 4) if smoother else 0.0,
            "error": self._error,
            "seed_id": self._last_seed_id,
        }

    def clear_error(self) -> None:
        """Drop the error and any leftover stage state.  No-op while uploading."""
        if self._is_uploading:
            return
        self._error = None
        self._current_step = None
        if self._controller is not None:
            self._controller.reset()

    async def teardown(self) -> None:
        """Stop every timer and ticker this session owns."""
        self._recording = None
        await self._dispose_run()
        self._is_uploading = False

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        data: bytes,
        file_name: str,
        mime_type: str | None,
        title: str | None = None,
        language_hints: list[str] | None = None,
    ) -> Seed:
        try:
            content_kind: ContentKind | None = classify_mime_type(
                resolve_mime_type(mime_type, file_name)
            )
        except ExtractionError:
            content_kind = None
        return await self._run(
            content_kind,
            lambda on_progress: self._pipeline.ingest_file(
                data,
                file_name,
                mime_type,
                self._user_id,
                title=title,
                on_progress=on_progress,
                language_hints=language_hints,
            ),
        )

    async def upload_text(self, text: str, title: str | None = None) -> Seed:
        return await self._run(
            ContentKind.TEXT,
            lambda on_progress: self._pipeline.ingest_text(
                text, self._user_id, title=title, on_progress=on_progress
            ),
        )

    async def upload_video(self, url: str, title: str | None = None) -> Seed:
        return await self._run(
            ContentKind.VIDEO,
            lambda on_progress: self._pipeline.ingest_video(
                url, self._user_id, title=title, on_progress=on_progress
            ),
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def start_recording(self) -> None:
        self._recording = bytearray()

    def add_recording_chunk(self, chunk: bytes) -> None:
        if self._recording is None:
            raise IngestionError(
                message="Recording chunk received while not recording",
                user_message="No recording is in progress.",
            )
        self._recording.extend(chunk)

    def cancel_recording(self) -> None:
        """Discard buffered audio without running the pipeline."""
        if self._recording is not None:
            self._logger.info("recording_cancelled", bytes_discarded=len(self._recording))
        self._recording = None

    async def finish_recording(
        self,
        mime_type: str,
        title: str | None = None,
        language_hints: list[str] | None = None,
    ) -> Seed:
        if self._recording is None:
            raise IngestionError(
                message="finish_recording called while not recording",
                user_message="No recording is in progress.",
            )
        audio = bytes(self._recording)
        self._recording = None
        return await self._run(
            ContentKind.AUDIO,
            lambda on_progress: self._pipeline.ingest_recording(
                audio,
                mime_type,
                self._user_id,
                title=title,
                on_progress=on_progress,
                language_hints=language_hints,
            ),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run(
        self,
        content_kind: ContentKind | None,
        start: Callable[[Callable[..., Any]], Awaitable[Seed]],
    ) -> Seed:
        if self._is_uploading:
            raise IngestionError(
                message="Upload already in progress",
                user_message="Please wait for the current upload to finish.",
            )

        await self._dispose_run()
        self._error = None
        self._current_step = None
        self._is_uploading = True

        smoother = ProgressSmoother(self._timings.tick_interval, on_tick=self._on_tick)
        controller = StageController(
            self._timings,
            smoother,
            content_kind=content_kind,
            on_stage=self._on_stage,
            on_dismiss=self._on_dismiss,
            usage_counter=self._usage_counter,
            user_id=self._user_id,
            is_premium=self._is_premium,
        )
        self._smoother = smoother
        self._controller = controller
        smoother.start()

        try:
            seed = await start(controller.handle_progress)
        except UserFacingError as exc:
            await self._fail(exc.user_message)
            if isinstance(exc, IngestionError):
                raise
            raise IngestionError(
                message=exc.message,
                user_message=exc.user_message,
                retryable=exc.retryable,
            ) from exc
        except Exception as exc:
            self._logger.error("upload_unexpected_error", error=str(exc), exc_info=True)
            await self._fail(GENERIC_USER_MESSAGE)
            raise IngestionError(message=str(exc)) from exc
        except asyncio.CancelledError:
            self._logger.warning("upload_cancelled", user_id=self._user_id)
            self._is_uploading = False
            self._current_step = None
            await asyncio.shield(self._dispose_run())
            await notify(self._on_update, self.snapshot(), logger=self._logger)
            raise

        controller.set_content_kind(seed.content_kind)
        controller.set_result(seed)
        self._last_seed_id = seed.id
        return seed

    async def _fail(self, message: str) -> None:
        await self._dispose_run()
        self._is_uploading = False
        self._current_step = None
        self._error = message
        await notify(self._on_update, self.snapshot(), logger=self._logger)

    async def _dispose_run(self) -> None:
        if self._controller is not None:
            await self._controller.aclose()
        if self._smoother is not None:
            await self._smoother.stop(reset=True)

    async def _on_stage(self, update: StageUpdate) -> None:
        self._current_step = update
        await notify(self._on_update, self.snapshot(), logger=self._logger)

    async def _on_tick(self, _displayed: float) -> None:
        await notify(self._on_update, self.snapshot(), logger=self._logger)

    async def _on_dismiss(self, seed: Seed) -> None:
        self._is_uploading = False
        if self._smoother is not None:
            await self._smoother.stop(reset=True)
        if self._controller is not None:
            self._controller.reset()
        self._current_step = None
        await notify(self._on_complete, seed, logger=self._logger)
        await notify(self._on_update, self.snapshot(), logger=self._logger)
