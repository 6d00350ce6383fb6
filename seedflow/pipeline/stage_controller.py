"""Turns raw stage reports into a readable, paced sequence of stages.

The pipeline can report stages faster than a person can read them (a short
text upload goes from ``reading`` to ``generating`` in milliseconds).  The
controller guarantees each visible stage stays up for at least its dwell
time before the next one replaces it:

    report(stage)
      │
      ├─ completed ───────────────────────────→ promote now
      ├─ nothing visible / same stage ────────→ promote now
      ├─ visible stage has dwelt long enough ─→ promote now
      └─ otherwise ─→ hold as *pending* (last writer wins) and arm a timer
                      for the visible stage's remaining dwell

The timer's deadline is measured from when the visible stage was promoted,
so later reports replace the pending stage without pushing the deadline
out.  Every timer handle lives on the instance and :meth:`reset` clears all
of them.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from seedflow.config.settings import Settings
from seedflow.interfaces.usage_counter import IUsageCounter
from seedflow.models.pipeline import (
    PRIMARY_STAGE_COUNT,
    StageQueueItem,
    UploadStage,
    stage_message,
)
from seedflow.models.seed import ContentKind, Seed
from seedflow.pipeline.progress_smoother import ProgressSmoother
from seedflow.utils.callbacks import notify, notify_soon
from seedflow.utils.logging import get_logger


@dataclass(frozen=True)
class StageTimings:
    """Pacing configuration, in seconds."""

    dwell: dict[UploadStage, float] = field(
        default_factory=lambda: {
            UploadStage.VALIDATING: 0.4,
            UploadStage.READING: 1.3,
            UploadStage.EXTRACTING: 1.95,
            UploadStage.ANALYZING: 1.0,
            UploadStage.GENERATING: 1.8,
            UploadStage.FINALIZING: 1.0,
            UploadStage.COMPLETED: 1.2,
        }
    )
    completion_dismiss_delay: float = 1.5
    tick_interval: float = 0.25

    @classmethod
    def from_settings(cls, settings: Settings) -> StageTimings:
        return cls(
            dwell={UploadStage(k): v for k, v in settings.stage_dwell_times().items()},
            completion_dismiss_delay=settings.completion_dismiss_delay,
            tick_interval=settings.progress_tick_interval,
        )

    def dwell_for(self, stage: UploadStage) -> float:
        return self.dwell.get(stage, 0.0)


@dataclass(frozen=True)
class StageUpdate:
    """What a caller renders when a stage is promoted."""

    step: int
    total_steps: int
    message: str
    progress: float
    stage: UploadStage


class StageController:
    """Paces stage promotion for a single ingestion run.

    Parameters
    ----------
    timings:
        Dwell times, completion dismissal delay and tick interval.
    smoother:
        Receives every reported target as the run's actual progress.
    content_kind:
        Selects stage message wording.
    on_stage:
        Sync or async callable receiving a :class:`StageUpdate` on promotion.
    on_dismiss:
        Sync or async callable receiving the finished :class:`Seed` once the
        completion stage has been shown for ``completion_dismiss_delay``.
    usage_counter, user_id, is_premium:
        On dismissal, non-premium users' upload count is incremented.
    clock:
        Monotonic clock in seconds; injectable for tests.
    """

    def __init__(
        self,
        timings: StageTimings,
        smoother: ProgressSmoother,
        content_kind: ContentKind | None = None,
        on_stage: Callable[[StageUpdate], Any] | None = None,
        on_dismiss: Callable[[Seed], Any] | None = None,
        usage_counter: IUsageCounter | None = None,
        user_id: str | None = None,
        is_premium: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timings = timings
        self._smoother = smoother
        self._content_kind = content_kind
        self._on_stage = on_stage
        self._on_dismiss = on_dismiss
        self._usage_counter = usage_counter
        self._user_id = user_id
        self._is_premium = is_premium
        self._clock = clock

        self._visible: StageQueueItem | None = None
        self._pending: StageQueueItem | None = None
        self._stage_started_at = 0.0
        self._result: Seed | None = None

        self._stage_timer: asyncio.TimerHandle | None = None
        self._completion_timer: asyncio.TimerHandle | None = None
        self._callback_tasks: set[asyncio.Task] = set()
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def visible(self) -> StageQueueItem | None:
        return self._visible

    @property
    def pending(self) -> StageQueueItem | None:
        return self._pending

    @property
    def completion_armed(self) -> bool:
        return self._completion_timer is not None

    def set_content_kind(self, content_kind: ContentKind) -> None:
        self._content_kind = content_kind

    def set_result(self, seed: Seed) -> None:
        """Record the finished seed surfaced when the completion stage is dismissed."""
        self._result = seed

    def handle_progress(self, step: int, stage: UploadStage | str, progress: float | None) -> None:
        """Entry point for the pipeline's ``on_progress`` reports.

        The effective target is the larger of the stage's default target and
        *progress*.  Unknown stage names only move the progress fraction.
        """
        try:
            stage = UploadStage(stage)
        except ValueError:
            if progress is not None:
                self._smoother.report(progress)
            self._logger.debug("stage_unknown", stage=str(stage), step=step)
            return

        target = max(stage.target_progress, progress if progress is not None else 0.0)
        self._smoother.report(target)
        self.enqueue(
            StageQueueItem(
                stage=stage,
                message=stage_message(stage, self._content_kind),
                target_progress=min(target, 1.0),
                step_index=stage.step_index,
            )
        )

    def enqueue(self, item: StageQueueItem) -> None:
        if item.stage == UploadStage.COMPLETED:
            self._promote(item)
            return

        visible = self._visible
        if visible is None or visible.stage == item.stage:
            self._promote(item)
            return

        if item.stage.step_index < visible.stage.step_index:
            self._logger.debug(
                "stage_regression_ignored",
                visible=visible.stage.value,
                reported=item.stage.value,
            )
            return

        dwell = self._timings.dwell_for(visible.stage)
        elapsed = self._clock() - self._stage_started_at
        if elapsed >= dwell:
            self._promote(item)
            return

        self._pending = item
        self._cancel_stage_timer()
        remaining = max(dwell - elapsed, 0.0)
        self._stage_timer = asyncio.get_running_loop().call_later(
            remaining, self._promote_pending
        )

    def reset(self) -> None:
        """Clear every timer and all stage state."""
        self._cancel_stage_timer()
        self._cancel_completion_timer()
        self._visible = None
        self._pending = None
        self._stage_started_at = 0.0
        self._result = None

    async def aclose(self) -> None:
        """Reset and cancel callbacks still in flight."""
        self.reset()
        for task in list(self._callback_tasks):
            task.cancel()
        if self._callback_tasks:
            await asyncio.gather(*self._callback_tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _promote_pending(self) -> None:
        self._stage_timer = None
        if self._pending is not None:
            self._promote(self._pending)

    def _promote(self, item: StageQueueItem) -> None:
        self._cancel_stage_timer()
        self._pending = None
        self._visible = item
        self._stage_started_at = self._clock()

        update = StageUpdate(
            step=min(item.step_index, PRIMARY_STAGE_COUNT),
            total_steps=PRIMARY_STAGE_COUNT,
            message=item.message,
            progress=item.target_progress,
            stage=item.stage,
        )
        self._logger.debug(
            "stage_promoted",
            stage=item.stage.value,
            step=update.step,
            progress=update.progress,
        )

        if item.stage == UploadStage.COMPLETED:
            self._smoother.snap_to_complete()
            self._arm_completion_timer()

        notify_soon(
            self._on_stage,
            update,
            logger=self._logger,
            pending=self._callback_tasks,
            event="stage_callback_error",
        )

    def _arm_completion_timer(self) -> None:
        self._cancel_completion_timer()
        self._completion_timer = asyncio.get_running_loop().call_later(
            self._timings.completion_dismiss_delay, self._on_completion_timer
        )

    def _on_completion_timer(self) -> None:
        self._completion_timer = None
        task = asyncio.get_running_loop().create_task(self._dismiss())
        self._callback_tasks.add(task)
        task.add_done_callback(self._callback_tasks.discard)

    async def _dismiss(self) -> None:
        seed = self._result
        if seed is None:
            self._logger.warning("completion_dismissed_without_result")
            return

        self._logger.info("upload_completion_dismissed", seed_id=seed.id)
        if not self._is_premium and self._usage_counter is not None and self._user_id:
            try:
                await self._usage_counter.increment(self._user_id)
            except Exception as exc:
                self._logger.warning(
                    "usage_increment_failed",
                    user_id=self._user_id,
                    error=str(exc),
                )

        await notify(self._on_dismiss, seed, logger=self._logger, event="dismiss_callback_error")

    def _cancel_stage_timer(self) -> None:
        if self._stage_timer is not None:
            self._stage_timer.cancel()
            self._stage_timer = None

    def _cancel_completion_timer(self) -> None:
        if self._completion_timer is not None:
            self._completion_timer.cancel()
            self._completion_timer = None
