"""WebSocket endpoint for real-time upload progress.

A client connects to ``/ws/progress/{session_id}`` with the same session id
it passes to the upload routes.  The current snapshot is sent immediately,
then every stage promotion and progress tick is pushed as JSON::

    {"session_id": "abc", "stage": "extracting", "step": 3, "total_steps": 6,
     "message": "Extracting text from document...", "progress": 0.42, ...}

The receive loop only keeps the connection open; pushes come from the
listener registered with :class:`UploadSessionRegistry`.
"""

from __future__ import annotations

import contextlib
from typing import Any

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from seedflow.api.schemas import ProgressMessage
from seedflow.api.sessions import UploadSessionRegistry
from seedflow.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


async def websocket_progress(websocket: WebSocket, session_id: str) -> None:
    """Stream upload progress snapshots for *session_id* until disconnect."""
    registry: UploadSessionRegistry = websocket.app.state.session_registry

    await websocket.accept()
    _logger.info("websocket_connected", session_id=session_id)

    async def _on_progress(message: dict[str, Any]) -> None:
        # The socket may close between the push and the disconnect below.
        with contextlib.suppress(Exception):
            await websocket.send_json(ProgressMessage.model_validate(message).model_dump())

    registry.register_listener(session_id, _on_progress)

    try:
        await websocket.send_json(
            ProgressMessage.model_validate(registry.get_status(session_id)).model_dump()
        )
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", session_id=session_id)
    finally:
        registry.unregister_listener(session_id, _on_progress)
        _logger.debug("websocket_listener_cleaned_up", session_id=session_id)
