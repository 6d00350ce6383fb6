"""Tests for UploadSession: pacing, dismissal, errors and recordings."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from seedflow.models.seed import ContentKind, Seed
from seedflow.pipeline.stage_controller import StageTimings
from seedflow.pipeline.upload_session import UploadSession
from seedflow.providers.extraction.text_extractor import PlainTextExtractor
from seedflow.providers.persistence.sqlite_seed_store import SQLiteSeedStore
from seedflow.providers.persistence.sqlite_usage_counter import SQLiteUsageCounter
from seedflow.utils.errors import IngestionError
from tests.conftest import (
    BlockingExtractor,
    FakeLLMProvider,
    ScriptedExtractor,
    english_words,
    make_pipeline,
)


class Listener:
    def __init__(self) -> None:
        self.snapshots: list[dict[str, Any]] = []
        self.completed: list[Seed] = []
        self.done = asyncio.Event()

    def on_update(self, snapshot: dict[str, Any]) -> None:
        self.snapshots.append(snapshot)

    async def on_complete(self, seed: Seed) -> None:
        self.completed.append(seed)
        self.done.set()


def _session(
    seed_store: SQLiteSeedStore,
    timings: StageTimings,
    listener: Listener,
    usage_counter: SQLiteUsageCounter | None = None,
    is_premium: bool = False,
    **pipeline_kwargs: Any,
) -> UploadSession:
    pipeline, _ = make_pipeline(seed_store, **pipeline_kwargs)
    return UploadSession(
        pipeline,
        timings,
        user_id="user-1",
        is_premium=is_premium,
        usage_counter=usage_counter,
        on_update=listener.on_update,
        on_complete=listener.on_complete,
    )


class TestSuccessfulUpload:
    @pytest.mark.asyncio()
    async def test_text_upload_runs_to_dismissal(
        self,
        seed_store: SQLiteSeedStore,
        usage_counter: SQLiteUsageCounter,
        fast_timings: StageTimings,
    ) -> None:
        listener = Listener()
        session = _session(seed_store, fast_timings, listener, usage_counter)

        seed = await session.upload_text(english_words(40), title="Photosynthesis")

        assert seed.is_completed
        assert session.is_uploading is True
        assert session.last_created_seed_id == seed.id

        await asyncio.wait_for(listener.done.wait(), timeout=5.0)

        assert session.is_uploading is False
        assert listener.completed[0].id == seed.id
        assert await usage_counter.get_count("user-1") == 1

        stages = [s["stage"] for s in listener.snapshots if s["stage"]]
        assert stages[-1] == "completed"
        displayed = [s["progress"] for s in listener.snapshots if s["is_uploading"]]
        assert displayed == sorted(displayed)

        final = session.snapshot()
        assert final["is_uploading"] is False
        assert final["stage"] is None
        assert final["error"] is None
        assert final["seed_id"] == seed.id

        await session.teardown()

    @pytest.mark.asyncio()
    async def test_premium_upload_not_counted(
        self,
        seed_store: SQLiteSeedStore,
        usage_counter: SQLiteUsageCounter,
        fast_timings: StageTimings,
    ) -> None:
        listener = Listener()
        session = _session(seed_store, fast_timings, listener, usage_counter, is_premium=True)

        await session.upload_text(english_words(40))
        await asyncio.wait_for(listener.done.wait(), timeout=5.0)

        assert await usage_counter.get_count("user-1") == 0
        await session.teardown()

    @pytest.mark.asyncio()
    async def test_second_upload_rejected_while_busy(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        listener = Listener()
        session = _session(seed_store, fast_timings, listener)

        await session.upload_text(english_words(40))
        with pytest.raises(IngestionError) as exc_info:
            await session.upload_text(english_words(40))

        assert exc_info.value.user_message == "Please wait for the current upload to finish."
        await session.teardown()
        assert session.is_uploading is False


class TestFailedUpload:
    @pytest.mark.asyncio()
    async def test_validation_failure_surfaces_once(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        listener = Listener()
        session = _session(seed_store, fast_timings, listener)

        with pytest.raises(IngestionError) as exc_info:
            await session.upload_text("far too short")

        assert "at least 20 words" in exc_info.value.user_message
        assert session.is_uploading is False
        assert session.error == exc_info.value.user_message
        errors = [s["error"] for s in listener.snapshots if s["error"]]
        assert errors == [exc_info.value.user_message]
        assert listener.completed == []

    @pytest.mark.asyncio()
    async def test_generation_failure_is_retryable(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        listener = Listener()
        session = _session(
            seed_store, fast_timings, listener, llm=FakeLLMProvider(fail=True)
        )

        with pytest.raises(IngestionError) as exc_info:
            await session.upload_text(english_words(40))

        assert exc_info.value.retryable is True
        assert session.snapshot()["progress"] == 0.0

    @pytest.mark.asyncio()
    async def test_clear_error(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        session = _session(seed_store, fast_timings, Listener())

        with pytest.raises(IngestionError):
            await session.upload_text("short")
        session.clear_error()

        assert session.error is None
        assert session.snapshot()["message"] == "Starting..."

    @pytest.mark.asyncio()
    async def test_new_upload_clears_previous_error(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        session = _session(seed_store, fast_timings, Listener())

        with pytest.raises(IngestionError):
            await session.upload_text("short")
        await session.upload_text(english_words(30))

        assert session.error is None
        await session.teardown()

    @pytest.mark.asyncio()
    async def test_unsupported_file(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        session = _session(seed_store, fast_timings, Listener(), extractors=[PlainTextExtractor()])

        with pytest.raises(IngestionError) as exc_info:
            await session.upload_file(b"PK", "archive.zip", "application/zip")

        assert exc_info.value.user_message.startswith("File type not supported")

    @pytest.mark.asyncio()
    async def test_cancelled_upload_returns_to_idle(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        extractor = BlockingExtractor(ContentKind.IMAGE)
        session = _session(
            seed_store, fast_timings, Listener(), extractors=[extractor, PlainTextExtractor()]
        )

        upload = asyncio.create_task(session.upload_file(b"img", "a.png", "image/png"))
        await asyncio.wait_for(extractor.started.wait(), timeout=5.0)
        upload.cancel()
        with pytest.raises(asyncio.CancelledError):
            await upload

        snapshot = session.snapshot()
        assert session.is_uploading is False
        assert session.error is None
        assert snapshot["stage"] is None
        assert snapshot["progress"] == 0.0
        assert await seed_store.list_seeds("user-1") == []

        seed = await session.upload_text(english_words(30))
        assert seed.is_completed
        await session.teardown()


class TestRecording:
    @pytest.mark.asyncio()
    async def test_recording_roundtrip(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        extractor = ScriptedExtractor(ContentKind.AUDIO, text=english_words(40))
        session = _session(seed_store, fast_timings, Listener(), extractors=[extractor])

        session.start_recording()
        session.add_recording_chunk(b"abc")
        session.add_recording_chunk(b"def")
        assert session.is_recording is True

        seed = await session.finish_recording("audio/webm", language_hints=["en"])

        assert extractor.calls[0][0] == b"abcdef"
        assert seed.content_kind == ContentKind.AUDIO
        assert session.is_recording is False
        await session.teardown()

    @pytest.mark.asyncio()
    async def test_chunk_without_recording(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        session = _session(seed_store, fast_timings, Listener())
        with pytest.raises(IngestionError):
            session.add_recording_chunk(b"abc")

    @pytest.mark.asyncio()
    async def test_cancel_recording_runs_nothing(
        self, seed_store: SQLiteSeedStore, fast_timings: StageTimings
    ) -> None:
        extractor = ScriptedExtractor(ContentKind.AUDIO, text=english_words(40))
        session = _session(seed_store, fast_timings, Listener(), extractors=[extractor])

        session.start_recording()
        session.add_recording_chunk(b"abc")
        session.cancel_recording()

        with pytest.raises(IngestionError):
            await session.finish_recording("audio/webm")
        assert extractor.calls == []
