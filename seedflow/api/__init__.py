"""seedflow API layer: routes, schemas, WebSocket, session registry and middleware."""

from seedflow.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from seedflow.api.routes import router
from seedflow.api.schemas import (
    ErrorResponse,
    HealthResponse,
    IngestResponse,
    SeedResponse,
    TaskResponse,
    TextIngestRequest,
    VideoIngestRequest,
)
from seedflow.api.sessions import UploadSessionRegistry
from seedflow.api.websocket import websocket_progress

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "UploadSessionRegistry",
    "configure_cors",
    "router",
    "websocket_progress",
    "ErrorResponse",
    "HealthResponse",
    "IngestResponse",
    "SeedResponse",
    "TaskResponse",
    "TextIngestRequest",
    "VideoIngestRequest",
]
