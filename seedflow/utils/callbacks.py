"""Isolated invocation of caller-supplied callbacks.

Progress listeners belong to the caller (a WebSocket, a UI adapter, a test).
A listener that raises must never break the run that is reporting to it, so
every call goes through :func:`notify` or :func:`notify_soon`, which accept
sync and async callables alike and log failures instead of propagating them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog


def _log_failure(
    logger: structlog.BoundLogger,
    event: str,
    callback: Callable[..., Any],
    exc: Exception,
    log_fields: dict[str, Any],
) -> None:
    logger.warning(
        event,
        error=str(exc),
        error_type=type(exc).__name__,
        callback=getattr(callback, "__name__", repr(callback)),
        **log_fields,
    )


async def notify(
    callback: Callable[..., Any] | None,
    *args: Any,
    logger: structlog.BoundLogger,
    event: str = "listener_callback_error",
    **log_fields: Any,
) -> None:
    """Call *callback* with *args*, awaiting it when it returns a coroutine."""
    if callback is None:
        return
    try:
        result = callback(*args)
        if asyncio.iscoroutine(result):
            await result
    except Exception as exc:
        _log_failure(logger, event, callback, exc, log_fields)


def notify_soon(
    callback: Callable[..., Any] | None,
    *args: Any,
    logger: structlog.BoundLogger,
    pending: set[asyncio.Task],
    event: str = "listener_callback_error",
    **log_fields: Any,
) -> None:
    """Call *callback* from synchronous code (timer callbacks, sync handlers).

    A sync callback runs immediately.  When it returns a coroutine, that
    coroutine is scheduled on the running loop and tracked in *pending* until
    it finishes, so it can be cancelled on teardown.
    """
    if callback is None:
        return
    try:
        result = callback(*args)
    except Exception as exc:
        _log_failure(logger, event, callback, exc, log_fields)
        return
    if not asyncio.iscoroutine(result):
        return

    async def _await_result(coro: Awaitable[Any]) -> None:
        try:
            await coro
        except Exception as exc:
            _log_failure(logger, event, callback, exc, log_fields)

    task = asyncio.get_running_loop().create_task(_await_result(result))
    pending.add(task)
    task.add_done_callback(pending.discard)
