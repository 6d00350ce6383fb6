"""Registry of live upload sessions and their progress listeners.

HTTP upload routes look a session up (or create it) by ``session_id``; the
progress WebSocket subscribes to the same id.  The registry keeps the last
snapshot of every session so a client that connects mid-run is immediately
up to date, and fans snapshots out to every listener of that session only.

Sessions that are idle, unwatched and quiet for ``idle_ttl`` seconds are
dropped the next time a session is looked up.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import structlog

from seedflow.interfaces.usage_counter import IUsageCounter
from seedflow.models.pipeline import PRIMARY_STAGE_COUNT
from seedflow.pipeline.orchestrator import IngestionPipeline
from seedflow.pipeline.stage_controller import StageTimings
from seedflow.pipeline.upload_session import UploadSession
from seedflow.utils.callbacks import notify
from seedflow.utils.errors import IngestionError
from seedflow.utils.logging import get_logger


def idle_snapshot() -> dict[str, Any]:
    return {
        "is_uploading": False,
        "stage": None,
        "step": 1,
        "total_steps": PRIMARY_STAGE_COUNT,
        "message": "",
        "progress": 0.0,
        "actual_progress": 0.0,
        "error": None,
        "seed_id": None,
    }


class UploadSessionRegistry:
    """Owns every :class:`UploadSession` created through the HTTP surface."""

    def __init__(
        self,
        pipeline: IngestionPipeline,
        timings: StageTimings,
        usage_counter: IUsageCounter | None = None,
        idle_ttl: float = 900.0,
    ) -> None:
        self._pipeline = pipeline
        self._idle_ttl = idle_ttl
        self._timings = timings
        self._usage_counter = usage_counter
        self._sessions: dict[str, UploadSession] = {}
        self._snapshots: dict[str, dict[str, Any]] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._last_active: dict[str, float] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def __len__(self) -> int:
        return len(self._sessions)

    def get_or_create(
        self,
        session_id: str,
        user_id: str,
        is_premium: bool = False,
    ) -> UploadSession:
        """Return the session for *session_id*, creating it on first use.

        A session is bound to one user; reusing an id for another user
        replaces the idle session, and is refused while it is uploading.
        """
        self.prune_idle()
        session = self._sessions.get(session_id)
        if session is not None and session.user_id == user_id:
            return session
        if session is not None and session.is_uploading:
            raise IngestionError(
                message=f"Session {session_id} is busy for another user",
                user_message="Please wait for the current upload to finish.",
            )

        async def _on_update(snapshot: dict[str, Any]) -> None:
            await self.publish(session_id, snapshot)

        session = UploadSession(
            self._pipeline,
            self._timings,
            user_id=user_id,
            is_premium=is_premium,
            usage_counter=self._usage_counter,
            on_update=_on_update,
        )
        self._sessions[session_id] = session
        self._last_active[session_id] = time.monotonic()
        self._logger.debug("upload_session_created", session_id=session_id, user_id=user_id)
        return session

    def get(self, session_id: str) -> UploadSession | None:
        return self._sessions.get(session_id)

    def get_status(self, session_id: str) -> dict[str, Any]:
        snapshot = self._snapshots.get(session_id)
        if snapshot is None:
            session = self._sessions.get(session_id)
            snapshot = session.snapshot() if session else idle_snapshot()
        return {"session_id": session_id, **snapshot}

    async def publish(self, session_id: str, snapshot: dict[str, Any]) -> None:
        self._snapshots[session_id] = snapshot
        self._last_active[session_id] = time.monotonic()
        message = {"session_id": session_id, **snapshot}
        for callback in list(self._listeners.get(session_id, [])):
            await notify(
                callback,
                message,
                logger=self._logger,
                event="progress_listener_error",
                session_id=session_id,
            )

    def register_listener(self, session_id: str, callback: Callable) -> None:
        listeners = self._listeners.setdefault(session_id, [])
        if callback not in listeners:
            listeners.append(callback)

    def unregister_listener(self, session_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(session_id, [])
        if callback in listeners:
            listeners.remove(callback)
        if not listeners:
            self._listeners.pop(session_id, None)

    async def close_all(self) -> None:
        """Tear down every session; called on application shutdown."""
        for session_id, session in list(self._sessions.items()):
            await session.teardown()
            self._logger.debug("upload_session_closed", session_id=session_id)
        self._sessions.clear()
        self._snapshots.clear()
        self._listeners.clear()
        self._last_active.clear()

    def prune_idle(self) -> int:
        """Drop idle, unwatched sessions quiet for longer than ``idle_ttl``.

        Returns the number of sessions dropped.
        """
        cutoff = time.monotonic() - self._idle_ttl
        stale = [
            session_id
            for session_id, session in self._sessions.items()
            if not session.is_uploading
            and not session.is_recording
            and session_id not in self._listeners
            and self._last_active.get(session_id, 0.0) <= cutoff
        ]
        for session_id in stale:
            self._sessions.pop(session_id, None)
            self._snapshots.pop(session_id, None)
            self._last_active.pop(session_id, None)
        if stale:
            self._logger.debug("upload_sessions_pruned", count=len(stale))
        return len(stale)
