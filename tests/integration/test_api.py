"""Integration tests for the FastAPI endpoints using TestClient."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from fastapi import FastAPI, WebSocket
from fastapi.testclient import TestClient

from seedflow.api.middleware import ErrorHandlingMiddleware
from seedflow.api.routes import router as api_router
from seedflow.api.sessions import UploadSessionRegistry
from seedflow.api.websocket import websocket_progress
from seedflow.interfaces.llm_provider import ILLMProvider
from seedflow.models.seed import ContentKind
from seedflow.models.task import TaskStatus
from seedflow.pipeline.stage_controller import StageTimings
from seedflow.providers.extraction.text_extractor import PlainTextExtractor
from seedflow.providers.persistence.sqlite_seed_store import SQLiteSeedStore
from seedflow.providers.persistence.sqlite_usage_counter import SQLiteUsageCounter
from tests.conftest import FakeLLMProvider, ScriptedExtractor, english_words, make_pipeline

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_test_app(
    db_path: Path,
    timings: StageTimings,
    llm: ILLMProvider | None = None,
) -> FastAPI:
    """Create a FastAPI app around a real pipeline with scripted extractors."""
    seed_store = SQLiteSeedStore(db_path)
    usage_counter = SQLiteUsageCounter(db_path)
    extractors = [
        PlainTextExtractor(),
        ScriptedExtractor(ContentKind.IMAGE, text=english_words(40)),
        ScriptedExtractor(ContentKind.VIDEO, text=english_words(60), video_title="Cell division"),
    ]
    pipeline, task_queue = make_pipeline(seed_store, extractors, llm=llm)
    registry = UploadSessionRegistry(pipeline, timings, usage_counter=usage_counter)

    @asynccontextmanager
    async def lifespan(application: FastAPI):  # noqa: ANN202
        await seed_store.initialize()
        await usage_counter.initialize()
        yield
        await registry.close_all()

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(ErrorHandlingMiddleware)
    app.include_router(api_router)

    @app.websocket("/ws/progress/{session_id}")
    async def ws_progress(websocket: WebSocket, session_id: str) -> None:
        await websocket_progress(websocket, session_id)

    app.state.seed_store = seed_store
    app.state.usage_counter = usage_counter
    app.state.task_queue = task_queue
    app.state.session_registry = registry
    app.state.provider_registry = {"llm": True, "extraction_backend": True}
    return app


@pytest.fixture()
def client(db_path: Path, fast_timings: StageTimings) -> Iterator[TestClient]:
    with TestClient(_create_test_app(db_path, fast_timings)) as test_client:
        yield test_client


_OWNER = {"user_id": "user-1"}
_INTRUDER = {"user_id": "intruder"}


def _ingest_text(client: TestClient, user_id: str = "user-1", **extra) -> dict:
    response = client.post(
        "/api/v1/seeds/text",
        json={"user_id": user_id, "text": english_words(40), **extra},
    )
    assert response.status_code == 200, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class TestIngestion:
    def test_text_ingest(self, client: TestClient) -> None:
        body = _ingest_text(client, title="Photosynthesis", session_id="s-1")

        assert body["session_id"] == "s-1"
        seed = body["seed"]
        assert seed["processing_status"] == "completed"
        assert seed["title"] == "Photosynthesis"
        assert seed["content_kind"] == "text"
        assert seed["explanation"].startswith("# Overview")
        assert set(seed["materials_status"].values()) == {"pending"}

    def test_session_id_generated_when_missing(self, client: TestClient) -> None:
        body = _ingest_text(client)
        assert body["session_id"]

    def test_file_ingest(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/seeds/file",
            files={"file": ("whiteboard.png", b"\x89PNG....", "image/png")},
            data={"user_id": "user-1", "language_hints": "en, es"},
        )

        assert response.status_code == 200, response.text
        seed = response.json()["seed"]
        assert seed["content_kind"] == "image"
        assert seed["title"] == "whiteboard"
        assert seed["file_size"] == 8

    def test_video_ingest(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/seeds/video",
            json={"user_id": "user-1", "url": "https://youtu.be/dQw4w9WgXcQ"},
        )

        assert response.status_code == 200, response.text
        assert response.json()["seed"]["title"] == "Cell division"

    def test_too_short_text_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/seeds/text", json={"user_id": "user-1", "text": "only four words here"}
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "IngestionError"
        assert "at least 20 words" in body["detail"]
        assert body["retryable"] is False

    def test_unsupported_file_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/seeds/file",
            files={"file": ("archive.zip", b"PK..", "application/zip")},
            data={"user_id": "user-1"},
        )

        assert response.status_code == 422
        assert response.json()["detail"].startswith("File type not supported")

    def test_missing_user_id_is_rejected(self, client: TestClient) -> None:
        response = client.post("/api/v1/seeds/text", json={"text": english_words(40)})
        assert response.status_code == 422

    def test_generation_failure_is_502(self, db_path: Path, fast_timings: StageTimings) -> None:
        app = _create_test_app(db_path, fast_timings, llm=FakeLLMProvider(fail=True))
        with TestClient(app) as failing_client:
            response = failing_client.post(
                "/api/v1/seeds/text", json={"user_id": "user-1", "text": english_words(40)}
            )
            listed = failing_client.get("/api/v1/seeds", params={"user_id": "user-1"})

        assert response.status_code == 502
        assert response.json()["retryable"] is True
        assert listed.json()["total"] == 0


# ---------------------------------------------------------------------------
# Seeds
# ---------------------------------------------------------------------------


class TestSeeds:
    def test_list_and_get(self, client: TestClient) -> None:
        created = _ingest_text(client)["seed"]
        _ingest_text(client, user_id="user-2")

        listed = client.get("/api/v1/seeds", params=_OWNER).json()
        assert listed["total"] == 1
        assert listed["seeds"][0]["id"] == created["id"]

        fetched = client.get(f"/api/v1/seeds/{created['id']}", params=_OWNER)
        assert fetched.status_code == 200
        assert fetched.json()["id"] == created["id"]

    def test_get_scoped_to_owner(self, client: TestClient) -> None:
        created = _ingest_text(client)["seed"]
        response = client.get(f"/api/v1/seeds/{created['id']}", params=_INTRUDER)
        assert response.status_code == 404

    def test_get_requires_owner(self, client: TestClient) -> None:
        created = _ingest_text(client)["seed"]
        assert client.get(f"/api/v1/seeds/{created['id']}").status_code == 422

    def test_get_missing(self, client: TestClient) -> None:
        assert client.get("/api/v1/seeds/nope", params=_OWNER).status_code == 404

    def test_tasks_and_materials(self, client: TestClient) -> None:
        seed_id = _ingest_text(client)["seed"]["id"]

        tasks = client.get(f"/api/v1/seeds/{seed_id}/tasks", params=_OWNER).json()
        assert len(tasks["tasks"]) == 1
        assert tasks["tasks"][0]["kind"] == "generate_materials"
        assert tasks["tasks"][0]["status"] == "pending"

        materials = client.get(f"/api/v1/seeds/{seed_id}/materials", params=_OWNER).json()
        assert materials["materials"] == {}
        assert materials["materials_status"]["flashcards"] == "pending"

    def test_failed_materials_job_reported_as_error(self, client: TestClient) -> None:
        seed_id = _ingest_text(client)["seed"]["id"]
        queue = client.app.state.task_queue
        task = queue.tasks_for_owner(seed_id)[0]
        queue._update(task.id, status=TaskStatus.FAILED, error="llm down")

        materials = client.get(f"/api/v1/seeds/{seed_id}/materials", params=_OWNER).json()
        seed = client.get(f"/api/v1/seeds/{seed_id}", params=_OWNER).json()

        assert materials["materials_status"] == {"flashcards": "error", "quiz": "error"}
        assert set(seed["materials_status"].values()) == {"pending"}

    def test_other_users_cannot_see_tasks_or_materials(self, client: TestClient) -> None:
        seed_id = _ingest_text(client)["seed"]["id"]

        tasks = client.get(f"/api/v1/seeds/{seed_id}/tasks", params=_INTRUDER).json()
        materials = client.get(f"/api/v1/seeds/{seed_id}/materials", params=_INTRUDER)

        assert tasks["tasks"] == []
        assert materials.status_code == 404

    def test_delete_cancels_tasks(self, client: TestClient) -> None:
        seed_id = _ingest_text(client)["seed"]["id"]

        response = client.delete(f"/api/v1/seeds/{seed_id}", params=_OWNER)

        assert response.status_code == 200
        assert response.json() == {"seed_id": seed_id, "deleted": True, "cancelled_tasks": 1}
        assert client.get(f"/api/v1/seeds/{seed_id}", params=_OWNER).status_code == 404
        tasks = client.get(f"/api/v1/seeds/{seed_id}/tasks", params=_OWNER).json()["tasks"]
        assert tasks[0]["status"] == "cancelled"
        assert tasks[0]["cancelled"] is True

    def test_delete_by_other_user_is_404(self, client: TestClient) -> None:
        seed_id = _ingest_text(client)["seed"]["id"]

        response = client.delete(f"/api/v1/seeds/{seed_id}", params=_INTRUDER)

        assert response.status_code == 404
        assert client.get(f"/api/v1/seeds/{seed_id}", params=_OWNER).status_code == 200
        tasks = client.get(f"/api/v1/seeds/{seed_id}/tasks", params=_OWNER).json()["tasks"]
        assert tasks[0]["status"] == "pending"

    def test_delete_missing(self, client: TestClient) -> None:
        assert client.delete("/api/v1/seeds/nope", params=_OWNER).status_code == 404

    def test_usage_counted_after_dismissal(self, client: TestClient) -> None:
        _ingest_text(client, user_id="counted")

        count = 0
        deadline = time.monotonic() + 3.0
        while time.monotonic() < deadline:
            count = client.get("/api/v1/users/counted/usage").json()["upload_count"]
            if count:
                break
            time.sleep(0.05)

        assert count == 1

    def test_premium_usage_not_counted(self, client: TestClient) -> None:
        _ingest_text(client, user_id="premium", is_premium=True)
        time.sleep(0.3)
        assert client.get("/api/v1/users/premium/usage").json()["upload_count"] == 0


# ---------------------------------------------------------------------------
# Health & WebSocket
# ---------------------------------------------------------------------------


class TestHealthAndProgress:
    def test_health(self, client: TestClient) -> None:
        body = client.get("/api/v1/health").json()
        assert body["status"] == "healthy"
        assert body["tasks"]["queued"] == 0

    def test_health_degraded(self, client: TestClient) -> None:
        client.app.state.provider_registry = {"llm": True, "extraction_backend": False}
        assert client.get("/api/v1/health").json()["status"] == "degraded"

    def test_health_unhealthy(self, client: TestClient) -> None:
        client.app.state.provider_registry = {}
        assert client.get("/api/v1/health").json()["status"] == "unhealthy"

    def test_websocket_sends_idle_snapshot(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/progress/fresh") as websocket:
            message = websocket.receive_json()

        assert message["session_id"] == "fresh"
        assert message["is_uploading"] is False
        assert message["progress"] == 0.0

    def test_websocket_reports_last_snapshot(self, client: TestClient) -> None:
        seed_id = _ingest_text(client, session_id="watched")["seed"]["id"]

        with client.websocket_connect("/ws/progress/watched") as websocket:
            message = websocket.receive_json()

        assert message["session_id"] == "watched"
        assert message["stage"] in {"completed", None}
        if message["stage"] is None:
            assert message["seed_id"] == seed_id
