"""FastAPI routes for the seedflow ingestion service.

Route map (all prefixed with ``/api/v1``)::

    /seeds/file                POST    Upload a document, image or audio file
    /seeds/text                POST    Ingest pasted text
    /seeds/video               POST    Ingest a video link via its captions
    /seeds                     GET     List a user's seeds
    /seeds/{seed_id}           GET     Fetch one seed
    /seeds/{seed_id}           DELETE  Delete a seed and cancel its jobs
    /seeds/{seed_id}/tasks     GET     Background jobs owned by a seed
    /seeds/{seed_id}/materials GET     Generated flashcards and quiz
    /users/{user_id}/usage     GET     Upload count for a user
    /health                    GET     Health check + provider status

Services are resolved from ``app.state`` (populated by the lifespan in
``main.py``) through ``Annotated[..., Depends(...)]`` aliases.  Upload
routes run through an :class:`UploadSession` so the progress WebSocket
for the same ``session_id`` sees paced stages while the request is open.  Seed
routes take the owner as a ``user_id`` query parameter; a seed owned by
anyone else answers 404.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, UploadFile

from seedflow.api.schemas import (
    DeleteSeedResponse,
    ErrorResponse,
    HealthResponse,
    IngestResponse,
    MaterialsResponse,
    SeedListResponse,
    SeedResponse,
    TaskListResponse,
    TaskResponse,
    TextIngestRequest,
    UsageResponse,
    VideoIngestRequest,
)
from seedflow.api.sessions import UploadSessionRegistry
from seedflow.interfaces.seed_store import ISeedStore
from seedflow.interfaces.usage_counter import IUsageCounter
from seedflow.models.seed import Seed
from seedflow.pipeline.task_queue import BackgroundTaskQueue
from seedflow.services.study_material_generator import effective_materials_status
from seedflow.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_MAX_FILE_SIZE = 50 * 1024 * 1024
_UPLOAD_CHUNK_SIZE = 64 * 1024

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency injection helpers -- resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_session_registry(request: Request) -> UploadSessionRegistry:
    return request.app.state.session_registry


def _get_seed_store(request: Request) -> ISeedStore:
    return request.app.state.seed_store


def _get_task_queue(request: Request) -> BackgroundTaskQueue:
    return request.app.state.task_queue


def _get_usage_counter(request: Request) -> IUsageCounter:
    return request.app.state.usage_counter


RegistryDep = Annotated[UploadSessionRegistry, Depends(_get_session_registry)]
SeedStoreDep = Annotated[ISeedStore, Depends(_get_seed_store)]
TaskQueueDep = Annotated[BackgroundTaskQueue, Depends(_get_task_queue)]
UsageCounterDep = Annotated[IUsageCounter, Depends(_get_usage_counter)]
UserIdQuery = Annotated[str, Query(min_length=1)]


async def _owned_seed(store: ISeedStore, seed_id: str, user_id: str) -> Seed:
    """Fetch a seed scoped to its owner; other users' seeds are a 404."""
    seed = await store.get_seed(seed_id, user_id=user_id)
    if seed is None:
        raise HTTPException(status_code=404, detail=f"Seed {seed_id} not found")
    return seed


def _split_hints(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [hint.strip() for hint in raw.split(",") if hint.strip()]


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload in chunks, rejecting oversized files early."""
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > _MAX_FILE_SIZE:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum: {_MAX_FILE_SIZE // (1024 * 1024)} MB.",
            )
        chunks.append(chunk)
    return b"".join(chunks)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/seeds/file",
    response_model=IngestResponse,
    responses={413: {"model": ErrorResponse}, **_ERROR_RESPONSES},
    summary="Upload a document, image or audio file",
)
async def ingest_file(
    file: UploadFile,
    user_id: Annotated[str, Form(min_length=1)],
    registry: RegistryDep,
    title: Annotated[str | None, Form()] = None,
    session_id: Annotated[str | None, Form()] = None,
    language_hints: Annotated[str | None, Form()] = None,
    is_premium: Annotated[bool, Form()] = False,
) -> IngestResponse:
    """Extract, validate and explain an uploaded file, then persist it."""
    data = await _read_upload(file)
    sid = session_id or str(uuid.uuid4())
    session = registry.get_or_create(sid, user_id, is_premium=is_premium)

    seed = await session.upload_file(
        data,
        file.filename or "upload",
        file.content_type,
        title=title,
        language_hints=_split_hints(language_hints),
    )
    return IngestResponse(session_id=sid, seed=SeedResponse.from_seed(seed))


@router.post(
    "/seeds/text",
    response_model=IngestResponse,
    responses=_ERROR_RESPONSES,
    summary="Ingest pasted text",
)
async def ingest_text(body: TextIngestRequest, registry: RegistryDep) -> IngestResponse:
    sid = body.session_id or str(uuid.uuid4())
    session = registry.get_or_create(sid, body.user_id, is_premium=body.is_premium)
    seed = await session.upload_text(body.text, title=body.title)
    return IngestResponse(session_id=sid, seed=SeedResponse.from_seed(seed))


@router.post(
    "/seeds/video",
    response_model=IngestResponse,
    responses=_ERROR_RESPONSES,
    summary="Ingest a video link through its captions",
)
async def ingest_video(body: VideoIngestRequest, registry: RegistryDep) -> IngestResponse:
    sid = body.session_id or str(uuid.uuid4())
    session = registry.get_or_create(sid, body.user_id, is_premium=body.is_premium)
    seed = await session.upload_video(body.url, title=body.title)
    return IngestResponse(session_id=sid, seed=SeedResponse.from_seed(seed))


# ---------------------------------------------------------------------------
# Seeds
# ---------------------------------------------------------------------------


@router.get("/seeds", response_model=SeedListResponse, summary="List a user's seeds")
async def list_seeds(
    store: SeedStoreDep,
    user_id: Annotated[str, Query(min_length=1)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> SeedListResponse:
    seeds = await store.list_seeds(user_id, limit=limit)
    return SeedListResponse(
        seeds=[SeedResponse.from_seed(seed) for seed in seeds],
        total=len(seeds),
    )


@router.get(
    "/seeds/{seed_id}",
    response_model=SeedResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Fetch one seed",
)
async def get_seed(seed_id: str, store: SeedStoreDep, user_id: UserIdQuery) -> SeedResponse:
    return SeedResponse.from_seed(await _owned_seed(store, seed_id, user_id))


@router.delete(
    "/seeds/{seed_id}",
    response_model=DeleteSeedResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a seed and cancel its background jobs",
)
async def delete_seed(
    seed_id: str,
    store: SeedStoreDep,
    task_queue: TaskQueueDep,
    user_id: UserIdQuery,
) -> DeleteSeedResponse:
    """Cancel every job owned by the seed, then delete the record.

    Jobs are cancelled first so a running materials job cannot write to a
    record that is about to disappear.  Seeds owned by someone else are
    reported as missing.
    """
    await _owned_seed(store, seed_id, user_id)
    cancelled = task_queue.cancel_by_owner(seed_id)
    deleted = await store.delete_seed(seed_id, user_id=user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Seed {seed_id} not found")

    _logger.info("seed_deleted", seed_id=seed_id, cancelled_tasks=cancelled)
    return DeleteSeedResponse(seed_id=seed_id, deleted=True, cancelled_tasks=cancelled)


@router.get(
    "/seeds/{seed_id}/tasks",
    response_model=TaskListResponse,
    summary="Background jobs owned by a seed",
)
async def list_seed_tasks(
    seed_id: str, task_queue: TaskQueueDep, user_id: UserIdQuery
) -> TaskListResponse:
    tasks = [task for task in task_queue.tasks_for_owner(seed_id) if task.user_id == user_id]
    return TaskListResponse(
        seed_id=seed_id,
        tasks=[TaskResponse.from_task(task) for task in tasks],
    )


@router.get(
    "/seeds/{seed_id}/materials",
    response_model=MaterialsResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Generated flashcards and quiz for a seed",
)
async def get_seed_materials(
    seed_id: str,
    store: SeedStoreDep,
    task_queue: TaskQueueDep,
    user_id: UserIdQuery,
) -> MaterialsResponse:
    seed = await _owned_seed(store, seed_id, user_id)
    materials = await store.get_materials(seed_id)
    return MaterialsResponse(
        seed_id=seed_id,
        materials_status=effective_materials_status(
            seed, task_queue.tasks_for_owner(seed_id)
        ),
        materials=materials,
    )


@router.get("/users/{user_id}/usage", response_model=UsageResponse, summary="Upload count")
async def get_usage(user_id: str, counter: UsageCounterDep) -> UsageResponse:
    return UsageResponse(user_id=user_id, upload_count=await counter.get_count(user_id))


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    if providers.get("llm", False) and providers.get("extraction_backend", False):
        status = "healthy"
    elif providers.get("llm", False) or providers.get("extraction_backend", False):
        status = "degraded"
    else:
        status = "unhealthy"

    task_queue: BackgroundTaskQueue | None = getattr(request.app.state, "task_queue", None)
    return HealthResponse(
        status=status,
        version="0.1.0",
        providers=providers,
        tasks=task_queue.stats() if task_queue is not None else {},
    )
