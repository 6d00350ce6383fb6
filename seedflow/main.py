"""seedflow FastAPI application entry point.

Wires providers, services and routes together.  Loads configuration from
``.env`` and ``config/config.yaml``, configures structured logging, and
starts the background task queue for the lifetime of the app.

``build_pipeline`` builds the same component graph without the web server
for scripts and tests.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, WebSocket

from seedflow.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from seedflow.api.routes import router as api_router
from seedflow.api.sessions import UploadSessionRegistry
from seedflow.api.websocket import websocket_progress
from seedflow.config.loader import load_config
from seedflow.config.settings import Settings
from seedflow.models.task import TaskKind
from seedflow.pipeline.orchestrator import IngestionPipeline
from seedflow.pipeline.stage_controller import StageTimings
from seedflow.pipeline.task_queue import BackgroundTaskQueue
from seedflow.providers.cache.memory_cache import MemoryCacheProvider
from seedflow.providers.config.remote_config_provider import RemoteConfigProvider
from seedflow.providers.extraction.audio_extractor import AudioExtractor
from seedflow.providers.extraction.document_extractor import DocumentExtractor
from seedflow.providers.extraction.http_extraction_client import HttpExtractionClient
from seedflow.providers.extraction.image_extractor import ImageExtractor
from seedflow.providers.extraction.text_extractor import PlainTextExtractor
from seedflow.providers.extraction.video_caption_extractor import VideoCaptionExtractor
from seedflow.providers.llm.openai_provider import OpenAILLMProvider
from seedflow.providers.persistence.sqlite_seed_store import SQLiteSeedStore
from seedflow.providers.persistence.sqlite_usage_counter import SQLiteUsageCounter
from seedflow.services.content_extraction_service import ContentExtractionService
from seedflow.services.content_validator import ContentValidator
from seedflow.services.explanation_generator import ExplanationGenerator
from seedflow.services.study_material_generator import StudyMaterialGenerator
from seedflow.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production")
    or bool(config.get("logging", {}).get("json_output")),
)
_logger: structlog.BoundLogger = get_logger(__name__)


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    http_client = httpx.AsyncClient(timeout=app_settings.extraction_timeout_seconds)

    # -- Providers --
    llm = OpenAILLMProvider(settings=app_settings)
    backend = HttpExtractionClient(http_client, app_settings)
    cache = MemoryCacheProvider(
        max_size=app_config.get("cache", {}).get("max_size", 256),
        ttl=app_settings.config_cache_ttl_seconds,
    )
    config_provider = RemoteConfigProvider(http_client, app_settings, cache)
    seed_store = SQLiteSeedStore(app_settings.seed_db_path)
    usage_counter = SQLiteUsageCounter(app_settings.seed_db_path)

    extractors = [
        DocumentExtractor(backend),
        ImageExtractor(backend),
        AudioExtractor(backend),
        PlainTextExtractor(),
        VideoCaptionExtractor(backend),
    ]

    # -- Services --
    generation_config = app_config.get("generation", {})
    materials_config = app_config.get("materials", {})
    extraction_service = ContentExtractionService(extractors)
    validator = ContentValidator(config_provider)
    generator = ExplanationGenerator(
        llm,
        max_tokens=app_settings.explanation_max_tokens,
        temperature=generation_config.get("explanation_temperature", 0.4),
    )
    material_generator = StudyMaterialGenerator(
        llm,
        seed_store,
        flashcard_count=materials_config.get("flashcard_count", 12),
        quiz_count=materials_config.get("quiz_count", 8),
    )

    # -- Background tasks --
    task_queue = BackgroundTaskQueue(
        max_concurrent=app_settings.task_max_concurrent,
        task_timeout=app_settings.task_timeout_seconds,
        max_retries=app_settings.task_max_retries,
        retention=app_settings.task_retention_seconds,
    )
    task_queue.register_handler(TaskKind.GENERATE_MATERIALS, material_generator)

    # -- Pipeline --
    pipeline = IngestionPipeline(
        extraction_service=extraction_service,
        validator=validator,
        generator=generator,
        seed_store=seed_store,
        task_queue=task_queue,
    )
    session_registry = UploadSessionRegistry(
        pipeline,
        StageTimings.from_settings(app_settings),
        usage_counter=usage_counter,
        idle_ttl=app_settings.session_idle_ttl_seconds,
    )

    provider_registry: dict[str, Any] = {
        "llm": llm.is_available(),
        "llm_name": llm.get_provider_name(),
        "extraction_backend": backend.is_configured(),
        "extractors": [extractor.get_provider_name() for extractor in extractors],
        "seed_store": seed_store.get_provider_name(),
    }

    return {
        "http_client": http_client,
        "llm": llm,
        "config_provider": config_provider,
        "seed_store": seed_store,
        "usage_counter": usage_counter,
        "extraction_service": extraction_service,
        "validator": validator,
        "generator": generator,
        "task_queue": task_queue,
        "pipeline": pipeline,
        "session_registry": session_registry,
        "provider_registry": provider_registry,
    }


def build_pipeline(custom_settings: Settings | None = None) -> dict[str, Any]:
    """Build the component graph outside the web server.

    The caller owns startup: ``await seed_store.initialize()``,
    ``await usage_counter.initialize()`` and ``await task_queue.start()``.
    """
    app_settings = custom_settings or settings
    return _build_all(app_settings, load_config(settings=app_settings))


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    app_settings: Settings = application.state.settings
    components = _build_all(app_settings, application.state.config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["seed_store"].initialize()
    await components["usage_counter"].initialize()
    await components["task_queue"].start()

    _logger.info(
        "app_startup",
        version=application.version,
        environment=app_settings.app_env,
        llm=components["provider_registry"]["llm_name"],
        extraction_backend=components["provider_registry"]["extraction_backend"],
    )

    yield

    await components["session_registry"].close_all()
    await components["task_queue"].shutdown()
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="Task queue stopped, HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(custom_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = custom_settings or settings
    app_config = config if custom_settings is None else load_config(settings=app_settings)
    app_section = app_config.get("app", {})

    application = FastAPI(
        title=f"{app_section.get('name', 'seedflow')} API",
        version=str(app_section.get("version", "0.1.0")),
        description=(
            "Turn documents, images, recordings, text and video links into study "
            "seeds: extract the text, check its length, generate an explanation, "
            "and queue flashcard and quiz generation in the background."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    application.state.config = app_config

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_section.get("cors_origins"))

    application.include_router(api_router)

    @application.websocket("/ws/progress/{session_id}")
    async def ws_progress(websocket: WebSocket, session_id: str) -> None:
        await websocket_progress(websocket, session_id)

    return application


app = create_app()


def main() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "seedflow.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    main()
