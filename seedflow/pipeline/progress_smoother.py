"""Eases the displayed progress fraction towards the actual one.

Stage targets jump (0.18 → 0.45 → 0.82); showing those jumps directly makes
a progress bar lurch and then sit still.  While a run is active a ticker
moves ``displayed`` towards ``actual`` in steps sized by the remaining gap::

    gap > 0.30  → +0.030 per tick
    gap > 0.15  → +0.015
    gap > 0.05  → +0.008
    otherwise   → +0.004

``displayed`` never overshoots ``actual`` and never moves backwards.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from typing import Any

from seedflow.models.pipeline import ProgressState
from seedflow.utils.callbacks import notify
from seedflow.utils.logging import get_logger

# Displayed progress when a run starts, so the bar never sits at zero.
INITIAL_DISPLAYED = 0.03

_STEP_TIERS: tuple[tuple[float, float], ...] = (
    (0.30, 0.03),
    (0.15, 0.015),
    (0.05, 0.008),
)
_MIN_STEP = 0.004


def step_for_gap(gap: float) -> float:
    for threshold, step in _STEP_TIERS:
        if gap > threshold:
            return step
    return _MIN_STEP


class ProgressSmoother:
    """Periodic ticker that advances displayed progress for one run.

    Parameters
    ----------
    tick_interval:
        Seconds between ticks.
    on_tick:
        Optional sync or async callable receiving the displayed fraction
        after each tick that moved it.
    """

    def __init__(
        self,
        tick_interval: float = 0.25,
        on_tick: Callable[[float], Any] | None = None,
    ) -> None:
        self._tick_interval = tick_interval
        self._on_tick = on_tick
        self._actual = 0.0
        self._displayed = 0.0
        self._ticker: asyncio.Task | None = None
        self._logger = get_logger(__name__)

    @property
    def actual(self) -> float:
        return self._actual

    @property
    def displayed(self) -> float:
        return self._displayed

    @property
    def is_running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def state(self) -> ProgressState:
        return ProgressState(actual=self._actual, displayed=self._displayed)

    def start(self) -> None:
        """Begin ticking.  Displayed progress starts at a small non-zero floor."""
        if self.is_running:
            return
        self._actual = max(self._actual, INITIAL_DISPLAYED)
        self._displayed = max(self._displayed, INITIAL_DISPLAYED)
        self._ticker = asyncio.get_running_loop().create_task(self._run())

    async def stop(self, reset: bool = False) -> None:
        """Stop ticking; with *reset*, return both fractions to zero."""
        if self._ticker is not None:
            self._ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ticker
            self._ticker = None
        if reset:
            self._actual = 0.0
            self._displayed = 0.0

    def report(self, actual: float) -> None:
        """Record the actual progress.  Lower values than already seen are ignored."""
        self._actual = max(self._actual, min(1.0, max(0.0, actual)))

    def snap_to_complete(self) -> None:
        self._actual = 1.0
        self._displayed = 1.0

    def tick(self) -> float:
        """Advance displayed progress by one step and return it."""
        gap = self._actual - self._displayed
        if gap > 0:
            self._displayed = min(self._displayed + step_for_gap(gap), self._actual)
        return self._displayed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            before = self._displayed
            displayed = self.tick()
            if displayed != before:
                await notify(self._on_tick, displayed, logger=self._logger)
