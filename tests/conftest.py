"""Shared pytest fixtures for the seedflow test suite."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from seedflow.interfaces.config_provider import IConfigProvider
from seedflow.interfaces.content_extractor import IContentExtractor
from seedflow.interfaces.llm_provider import ILLMProvider
from seedflow.interfaces.seed_store import ISeedStore
from seedflow.models.extraction import AILimits, ExtractionMetadata, ExtractionResult
from seedflow.models.pipeline import UploadStage
from seedflow.models.seed import ContentKind
from seedflow.models.task import TaskKind
from seedflow.pipeline.orchestrator import IngestionPipeline
from seedflow.pipeline.stage_controller import StageTimings
from seedflow.pipeline.task_queue import BackgroundTaskQueue
from seedflow.providers.extraction.text_extractor import PlainTextExtractor
from seedflow.providers.persistence.sqlite_seed_store import SQLiteSeedStore
from seedflow.providers.persistence.sqlite_usage_counter import SQLiteUsageCounter
from seedflow.services.content_extraction_service import ContentExtractionService
from seedflow.services.content_validator import ContentValidator
from seedflow.services.explanation_generator import ExplanationGenerator
from seedflow.utils.errors import LLMError

ENGLISH_SENTENCE = (
    "Photosynthesis lets plants turn light, water and carbon dioxide into sugar and oxygen. "
)

EXPLANATION_REPLY = (
    "INTENT: Educational\n\n"
    "EXPLANATION:\n"
    "# Overview\n"
    "Plants capture light energy in their leaves and use it to build sugar from water "
    "and carbon dioxide, releasing oxygen as a by-product. This guide walks through "
    "each step and why it matters."
)


def english_words(count: int) -> str:
    """Return exactly *count* whitespace-separated English words."""
    words = ENGLISH_SENTENCE.split()
    return " ".join(words[i % len(words)] for i in range(count))


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeLLMProvider(ILLMProvider):
    """Scripted LLM: streams ``stream_reply`` and answers ``complete`` in order."""

    def __init__(
        self,
        stream_reply: str = EXPLANATION_REPLY,
        complete_replies: list[str] | None = None,
        fail: bool = False,
        chunk_size: int = 40,
    ) -> None:
        self.stream_reply = stream_reply
        self.complete_replies = list(complete_replies or [])
        self.fail = fail
        self.chunk_size = chunk_size
        self.prompts: list[str] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        self.prompts.append(user_prompt)
        if self.fail:
            raise LLMError(message="scripted failure", provider_name="fake")
        if not self.complete_replies:
            raise LLMError(message="no scripted reply left", provider_name="fake")
        return self.complete_replies.pop(0)

    async def stream_complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> AsyncIterator[str]:
        self.prompts.append(user_prompt)
        if self.fail:
            raise LLMError(message="scripted stream failure", provider_name="fake")
        for start in range(0, len(self.stream_reply), self.chunk_size):
            yield self.stream_reply[start : start + self.chunk_size]

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True


class ScriptedExtractor(IContentExtractor):
    """Extractor for one content kind that returns fixed text or raises."""

    def __init__(
        self,
        kind: ContentKind,
        text: str = "",
        language: str | None = "en",
        error: Exception | None = None,
        video_title: str | None = None,
    ) -> None:
        self.kind = kind
        self.text = text
        self.language = language
        self.error = error
        self.video_title = video_title
        self.calls: list[tuple[bytes | str, str | None, list[str] | None]] = []

    async def extract(
        self,
        raw_content: bytes | str,
        mime_hint: str | None = None,
        language_hints: list[str] | None = None,
    ) -> ExtractionResult:
        self.calls.append((raw_content, mime_hint, language_hints))
        if self.error is not None:
            raise self.error
        return ExtractionResult(
            text=self.text,
            metadata=ExtractionMetadata(
                language=self.language,
                confidence=0.9,
                source="scripted",
                video_title=self.video_title,
            ),
        )

    def supported_kind(self) -> ContentKind:
        return self.kind

    def get_provider_name(self) -> str:
        return f"scripted-{self.kind.value}"


class BlockingExtractor(ScriptedExtractor):
    """Extractor that hangs until cancelled; ``started`` is set once it is entered."""

    def __init__(self, kind: ContentKind, **kwargs) -> None:
        super().__init__(kind, **kwargs)
        self.started = asyncio.Event()

    async def extract(
        self,
        raw_content: bytes | str,
        mime_hint: str | None = None,
        language_hints: list[str] | None = None,
    ) -> ExtractionResult:
        self.started.set()
        await asyncio.sleep(3600)
        return await super().extract(raw_content, mime_hint, language_hints)


class StaticConfigProvider(IConfigProvider):
    def __init__(self, max_words: int = 20000, max_characters: int = 150000) -> None:
        self.limits = AILimits(max_words=max_words, max_characters=max_characters)
        self.calls = 0

    async def get_ai_limits(self) -> AILimits:
        self.calls += 1
        return self.limits

    async def refresh(self) -> None:
        return None


def make_pipeline(
    seed_store: ISeedStore,
    extractors: list[IContentExtractor] | None = None,
    llm: ILLMProvider | None = None,
    config_provider: IConfigProvider | None = None,
    task_queue: BackgroundTaskQueue | None = None,
) -> tuple[IngestionPipeline, BackgroundTaskQueue]:
    """Wire a real pipeline around fakes.  The queue is not started."""
    if task_queue is None:
        task_queue = BackgroundTaskQueue(max_concurrent=1, task_timeout=5.0, max_retries=0)
        task_queue.register_handler(TaskKind.GENERATE_MATERIALS, AsyncMock())
    pipeline = IngestionPipeline(
        extraction_service=ContentExtractionService(
            extractors if extractors is not None else [PlainTextExtractor()]
        ),
        validator=ContentValidator(config_provider or StaticConfigProvider()),
        generator=ExplanationGenerator(llm or FakeLLMProvider()),
        seed_store=seed_store,
        task_queue=task_queue,
    )
    return pipeline, task_queue


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_llm() -> FakeLLMProvider:
    return FakeLLMProvider()


@pytest.fixture()
def config_provider() -> StaticConfigProvider:
    return StaticConfigProvider()


@pytest.fixture()
def fast_timings() -> StageTimings:
    """Stage pacing short enough to run a full upload in well under a second."""
    return StageTimings(
        dwell={stage: 0.01 for stage in UploadStage},
        completion_dismiss_delay=0.02,
        tick_interval=0.01,
    )


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "seeds.db"


@pytest_asyncio.fixture()
async def seed_store(db_path: Path) -> SQLiteSeedStore:
    store = SQLiteSeedStore(db_path)
    await store.initialize()
    return store


@pytest_asyncio.fixture()
async def usage_counter(db_path: Path) -> SQLiteUsageCounter:
    counter = SQLiteUsageCounter(db_path)
    await counter.initialize()
    return counter
