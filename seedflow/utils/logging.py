"""structlog wiring for seedflow.

Every event carries ``service="seedflow"`` plus whatever run context the
ingestion pipeline has bound (``user_id``, ``content_kind``).  The caller
decides the output format: ``main.py`` asks for JSON in production and the
console renderer everywhere else.

Standard-library loggers are routed through the same processors.  The
chatty client libraries (httpx, httpcore, aiosqlite, multipart) are held at
WARNING unless the service itself runs at DEBUG.
"""

import contextlib
import logging
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "seedflow"

_QUIET_LIBRARIES = ("httpx", "httpcore", "aiosqlite", "multipart")


def add_service_name(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Stamp the service name unless the event already names one."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _event_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _quiet_libraries(level: int) -> None:
    library_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Install the seedflow processor chain for structlog and stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Render one JSON object per line instead of the coloured
                     console format.

    Returns:
        A logger bound to the new configuration.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    processors = _event_processors()

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    _quiet_libraries(level)

    return structlog.get_logger(logger_name=SERVICE_NAME)


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger tagged with *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)


def bind_run_context(**values: object) -> contextlib.AbstractContextManager:
    """Bind key/values to every log line emitted inside the ``with`` block.

    The ingestion pipeline binds ``user_id`` and ``content_kind`` per run.
    Bindings live in contextvars, so concurrent runs on one event loop keep
    their own values.
    """
    return structlog.contextvars.bound_contextvars(**values)
