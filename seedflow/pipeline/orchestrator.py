"""Ingestion pipeline: raw material in, completed Seed out.

All four entry points (file, recording, text, video) share one skeleton:

    1.  report  validating
    2.  create the seed as ``pending``          (file kinds only)
    3.  status → ``extracting``; report reading; extract text
    4.  validate length                          (failure: roll back, re-raise as-is)
    5.  report  extracting
    6.  status → ``analyzing``; report generating; generate the explanation,
        mapping its sub-progress into [extracting target, generating target]
    7.  report  generating (full target), finalizing
    8.  persist explanation + metadata as ``completed``
        (update for file kinds, create-as-completed for text and video)
    9.  enqueue background material generation  (failure logged only)
    10. re-read the seed, report completed, return it

Any failure in steps 3-8 deletes the seed created in step 2 (best effort;
a failed delete is logged and never hides the original error) and surfaces
as one :class:`IngestionError`.  Validation errors are re-raised unchanged
so their message reaches the user verbatim.  A cancelled run rolls back the
same way before the cancellation propagates.  Nothing after step 8 can undo
a completed seed.

Each run is a single coroutine; every remote call is an ``await``, so
concurrent runs interleave on the event loop without sharing state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any

import structlog

from seedflow.interfaces.seed_store import ISeedStore
from seedflow.models.extraction import ExplanationResult, ExtractionResult
from seedflow.models.pipeline import STAGE_TARGETS, UploadStage
from seedflow.models.seed import (
    ContentKind,
    ProcessingStatus,
    Seed,
    initial_materials_status,
)
from seedflow.models.task import TaskKind
from seedflow.pipeline.task_queue import BackgroundTaskQueue
from seedflow.services.content_extraction_service import (
    ContentExtractionService,
    classify_mime_type,
    resolve_mime_type,
)
from seedflow.services.content_validator import ContentValidator
from seedflow.services.explanation_generator import ExplanationGenerator
from seedflow.utils.callbacks import notify
from seedflow.utils.errors import (
    GENERIC_USER_MESSAGE,
    IngestionError,
    UserFacingError,
    ValidationError,
)
from seedflow.utils.logging import bind_run_context, get_logger

# on_progress(step_index, stage, progress)
ProgressCallback = Callable[[int, UploadStage, float], Any]

# Share of the extracting→generating range reported as soon as generation starts.
_GENERATION_NUDGE = 0.02

_TITLE_MAX_LENGTH = 80
_SOURCE_REF_MAX_LENGTH = 500


@dataclass
class _IngestRequest:
    content_kind: ContentKind
    raw_content: bytes | str
    user_id: str
    title: str | None = None
    mime_type: str | None = None
    source_ref: str | None = None
    file_size: int | None = None
    language_hints: list[str] = field(default_factory=list)

    @property
    def persists_early(self) -> bool:
        """File-backed kinds get a ``pending`` record before extraction."""
        return self.content_kind in (ContentKind.DOCUMENT, ContentKind.IMAGE, ContentKind.AUDIO)


def _text_title(text: str) -> str:
    first_line = next((line.strip() for line in text.splitlines() if line.strip()), "")
    if len(first_line) <= _TITLE_MAX_LENGTH:
        return first_line or "Untitled note"
    return first_line[: _TITLE_MAX_LENGTH - 1].rstrip() + "…"


class IngestionPipeline:
    """Runs the ingestion skeleton for every content kind.

    Parameters
    ----------
    extraction_service:
        Dispatches raw material to the extractor for its kind.
    validator:
        Rejects text that is too short or too long.
    generator:
        Writes the explanation.
    seed_store:
        Persists seeds.
    task_queue:
        Receives the background material-generation task.
    """

    def __init__(
        self,
        extraction_service: ContentExtractionService,
        validator: ContentValidator,
        generator: ExplanationGenerator,
        seed_store: ISeedStore,
        task_queue: BackgroundTaskQueue,
    ) -> None:
        self._extraction = extraction_service
        self._validator = validator
        self._generator = generator
        self._store = seed_store
        self._task_queue = task_queue
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def ingest_file(
        self,
        data: bytes,
        file_name: str,
        mime_type: str | None,
        owner_user_id: str,
        title: str | None = None,
        on_progress: ProgressCallback | None = None,
        language_hints: list[str] | None = None,
    ) -> Seed:
        """Ingest an uploaded document, image or audio file."""
        await self._emit(on_progress, UploadStage.VALIDATING)
        mime = resolve_mime_type(mime_type, file_name)
        try:
            content_kind = classify_mime_type(mime)
        except UserFacingError as exc:
            self._logger.info("ingest_unsupported_file", file_name=file_name, mime_type=mime)
            raise self._normalize(exc) from exc

        request = _IngestRequest(
            content_kind=content_kind,
            raw_content=data,
            user_id=owner_user_id,
            title=title or PurePath(file_name).stem or file_name,
            mime_type=mime,
            source_ref=file_name,
            file_size=len(data),
            language_hints=list(language_hints or []),
        )
        return await self._run(request, on_progress, validating_emitted=True)

    async def ingest_recording(
        self,
        audio: bytes,
        mime_type: str,
        owner_user_id: str,
        title: str | None = None,
        on_progress: ProgressCallback | None = None,
        language_hints: list[str] | None = None,
    ) -> Seed:
        """Ingest audio captured by an in-app recorder."""
        recorded_at = datetime.now(tz=timezone.utc)  # noqa: UP017
        request = _IngestRequest(
            content_kind=ContentKind.AUDIO,
            raw_content=audio,
            user_id=owner_user_id,
            title=title or f"Recording {recorded_at:%Y-%m-%d %H:%M}",
            mime_type=mime_type,
            source_ref="recording",
            file_size=len(audio),
            language_hints=list(language_hints or []),
        )
        return await self._run(request, on_progress)

    async def ingest_text(
        self,
        text: str,
        owner_user_id: str,
        title: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> Seed:
        """Ingest free text typed or pasted by the user."""
        request = _IngestRequest(
            content_kind=ContentKind.TEXT,
            raw_content=text,
            user_id=owner_user_id,
            title=title or _text_title(text),
            mime_type="text/plain",
            source_ref=text.strip()[:_SOURCE_REF_MAX_LENGTH],
        )
        return await self._run(request, on_progress)

    async def ingest_video(
        self,
        url: str,
        owner_user_id: str,
        title: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> Seed:
        """Ingest a video by URL through its caption track."""
        request = _IngestRequest(
            content_kind=ContentKind.VIDEO,
            raw_content=url,
            user_id=owner_user_id,
            title=title,
            source_ref=url.strip(),
        )
        return await self._run(request, on_progress)

    # ------------------------------------------------------------------
    # Shared skeleton
    # ------------------------------------------------------------------

    async def _run(
        self,
        request: _IngestRequest,
        on_progress: ProgressCallback | None,
        validating_emitted: bool = False,
    ) -> Seed:
        kind = request.content_kind
        with bind_run_context(user_id=request.user_id, content_kind=kind.value):
            self._logger.info("ingest_start", title=request.title, file_size=request.file_size)
            if not validating_emitted:
                await self._emit(on_progress, UploadStage.VALIDATING)

            created_id: str | None = None
            try:
                if request.persists_early:
                    pending = await self._store.create_seed(
                        Seed(
                            user_id=request.user_id,
                            title=request.title or kind.value.title(),
                            content_kind=kind,
                            source_ref=request.source_ref,
                            file_size=request.file_size,
                            processing_status=ProcessingStatus.PENDING,
                        )
                    )
                    created_id = pending.id
                    await self._store.update_seed(
                        created_id, processing_status=ProcessingStatus.EXTRACTING
                    )

                await self._emit(on_progress, UploadStage.READING)
                extraction = await self._extraction.extract(
                    request.raw_content,
                    kind,
                    mime_hint=request.mime_type,
                    language_hints=request.language_hints or None,
                )
                language = extraction.metadata.language
                self._logger.info(
                    "ingest_extracted",
                    seed_id=created_id,
                    chars=len(extraction.text),
                    language=language,
                )

                await self._validator.validate(extraction.text, language, kind)

                await self._emit(on_progress, UploadStage.EXTRACTING)
                if created_id is not None:
                    await self._store.update_seed(
                        created_id, processing_status=ProcessingStatus.ANALYZING
                    )

                explanation = await self._generate(request, extraction, on_progress)

                await self._emit(on_progress, UploadStage.GENERATING)
                await self._emit(on_progress, UploadStage.FINALIZING)

                completed = await self._persist_completed(
                    request, created_id, extraction, explanation
                )
                created_id = completed.id
            except ValidationError:
                await self._rollback(created_id)
                raise
            except Exception as exc:
                self._logger.error(
                    "ingest_failed",
                    seed_id=created_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=True,
                )
                await self._rollback(created_id)
                raise self._normalize(exc) from exc
            except asyncio.CancelledError:
                self._logger.warning("ingest_cancelled", seed_id=created_id)
                await asyncio.shield(self._rollback(created_id))
                raise

            self._enqueue_materials(completed)
            final = await self._refetch(completed)
            await self._emit(on_progress, UploadStage.COMPLETED)
            self._logger.info(
                "ingest_completed",
                seed_id=final.id,
                intent=final.intent.value if final.intent else None,
            )
            return final

    async def _generate(
        self,
        request: _IngestRequest,
        extraction: ExtractionResult,
        on_progress: ProgressCallback | None,
    ) -> ExplanationResult:
        low = STAGE_TARGETS[UploadStage.EXTRACTING]
        high = STAGE_TARGETS[UploadStage.GENERATING]
        await self._emit(
            on_progress, UploadStage.GENERATING, low + (high - low) * _GENERATION_NUDGE
        )

        async def on_generation_progress(fraction: float, _message: str) -> None:
            await self._emit(on_progress, UploadStage.GENERATING, low + (high - low) * fraction)

        title = request.title or extraction.metadata.video_title
        return await self._generator.generate(
            extraction.text,
            title,
            extraction.metadata.language,
            on_progress=on_generation_progress,
        )

    async def _persist_completed(
        self,
        request: _IngestRequest,
        created_id: str | None,
        extraction: ExtractionResult,
        explanation: ExplanationResult,
    ) -> Seed:
        metadata = {
            **extraction.metadata.to_record(),
            "explanation": {
                "intent": explanation.intent.value,
                "confidence": explanation.confidence,
                "word_count": explanation.word_count,
                "processing_time": explanation.processing_time,
            },
            "materials_status": initial_materials_status(),
        }
        fields: dict[str, Any] = {
            "extracted_text": extraction.text,
            "explanation": explanation.explanation,
            "intent": explanation.intent,
            "confidence_score": extraction.metadata.confidence,
            "language_code": extraction.metadata.language,
            "extraction_metadata": metadata,
            "processing_status": ProcessingStatus.COMPLETED,
        }

        if created_id is not None:
            return await self._store.update_seed(created_id, **fields)

        title = request.title or extraction.metadata.video_title or "Untitled video"
        return await self._store.create_seed(
            Seed(
                user_id=request.user_id,
                title=title,
                content_kind=request.content_kind,
                source_ref=request.source_ref,
                file_size=request.file_size,
                **fields,
            )
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _emit(
        self,
        on_progress: ProgressCallback | None,
        stage: UploadStage,
        progress: float | None = None,
    ) -> None:
        value = STAGE_TARGETS[stage] if progress is None else progress
        await notify(
            on_progress,
            stage.step_index,
            stage,
            value,
            logger=self._logger,
            event="progress_callback_error",
            stage=stage.value,
        )

    async def _rollback(self, seed_id: str | None) -> None:
        if seed_id is None:
            return
        try:
            await self._store.delete_seed(seed_id)
            self._logger.info("seed_rolled_back", seed_id=seed_id)
        except Exception as exc:
            self._logger.error(
                "seed_rollback_failed",
                seed_id=seed_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def _enqueue_materials(self, seed: Seed) -> None:
        try:
            self._task_queue.enqueue(
                owner_id=seed.id,
                user_id=seed.user_id,
                kind=TaskKind.GENERATE_MATERIALS,
                payload={"content_kind": seed.content_kind.value},
            )
        except Exception as exc:
            self._logger.warning(
                "materials_enqueue_failed",
                seed_id=seed.id,
                error=str(exc),
            )

    async def _refetch(self, seed: Seed) -> Seed:
        try:
            fresh = await self._store.get_seed(seed.id, seed.user_id)
        except Exception as exc:
            self._logger.warning("seed_refetch_failed", seed_id=seed.id, error=str(exc))
            return seed
        return fresh or seed

    @staticmethod
    def _normalize(exc: Exception) -> IngestionError:
        if isinstance(exc, IngestionError):
            return exc
        if isinstance(exc, UserFacingError):
            return IngestionError(
                message=exc.message,
                user_message=exc.user_message,
                retryable=exc.retryable,
                provider_name=exc.provider_name,
            )
        return IngestionError(
            message=str(exc) or type(exc).__name__,
            user_message=GENERIC_USER_MESSAGE,
        )
