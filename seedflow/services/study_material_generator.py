"""Background handler that turns a completed seed into flashcards and a quiz.

Runs from the background task queue after ingestion has returned.  All
generation and parsing happens before anything is written, so a failed run
leaves the seed exactly as ingestion left it.  A seed deleted in the
meantime is skipped.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from seedflow.interfaces.llm_provider import ILLMProvider
from seedflow.interfaces.seed_store import ISeedStore
from seedflow.models.materials import Flashcard, QuizQuestion
from seedflow.models.seed import MaterialStatus, Seed
from seedflow.models.task import BackgroundTask, TaskKind, TaskStatus
from seedflow.utils.errors import GenerationError, LLMError
from seedflow.utils.language import normalize_for_prompt
from seedflow.utils.logging import get_logger

# LLMs often wrap JSON in markdown fences despite being asked not to.
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

_SYSTEM_PROMPT = (
    "You create study materials from a study guide. "
    "Respond with a single JSON object and nothing else."
)

_FLASHCARD_PROMPT = """Create {count} flashcards from the study guide below.
Write them in language code '{language}'.
Return JSON: {{"flashcards": [{{"front": "...", "back": "..."}}]}}

STUDY GUIDE:
{explanation}
"""

_QUIZ_PROMPT = """Create {count} multiple-choice questions from the study guide below.
Write them in language code '{language}'. Each question has 4 options.
Return JSON: {{"questions": [{{"question": "...", "options": ["..."], "correct_index": 0, "explanation": "..."}}]}}

STUDY GUIDE:
{explanation}
"""


def _parse_json_object(raw: str) -> dict[str, Any]:
    fence = _JSON_FENCE_RE.search(raw)
    candidate = fence.group(1) if fence else raw
    data = json.loads(candidate.strip())
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


def effective_materials_status(seed: Seed, tasks: list[BackgroundTask]) -> dict[str, str]:
    """Materials status as the learner should see it.

    A failed generation job never writes to the seed, so pending entries are
    reported as ``error`` while the owner's latest materials job is failed.
    """
    status = dict(seed.materials_status)
    jobs = [task for task in tasks if task.kind == TaskKind.GENERATE_MATERIALS]
    if jobs and jobs[-1].status == TaskStatus.FAILED:
        for name, value in status.items():
            if value == MaterialStatus.PENDING.value:
                status[name] = MaterialStatus.ERROR.value
    return status


class StudyMaterialGenerator:
    """Task handler for ``generate_materials`` tasks.

    Parameters
    ----------
    llm_provider:
        Backend used for both flashcards and quiz questions.
    seed_store:
        Read to check the seed still exists; written once everything parsed.
    flashcard_count, quiz_count:
        How many items to request.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        seed_store: ISeedStore,
        flashcard_count: int = 12,
        quiz_count: int = 8,
    ) -> None:
        self._llm = llm_provider
        self._store = seed_store
        self._flashcard_count = flashcard_count
        self._quiz_count = quiz_count
        self._logger = get_logger(__name__)

    async def __call__(self, task: BackgroundTask) -> None:
        await self.generate(task)

    async def generate(self, task: BackgroundTask) -> None:
        seed = await self._store.get_seed(task.owner_id)
        if seed is None:
            self._logger.info("materials_skipped_seed_missing", seed_id=task.owner_id)
            return

        flashcards = await self._generate_flashcards(seed)
        questions = await self._generate_quiz(seed)

        # Re-check after the slow part; the seed may have been deleted meanwhile.
        current = await self._store.get_seed(seed.id)
        if current is None:
            self._logger.info("materials_discarded_seed_deleted", seed_id=seed.id)
            return

        await self._store.save_materials(
            seed.id, "flashcards", [card.model_dump() for card in flashcards]
        )
        await self._store.save_materials(seed.id, "quiz", [q.model_dump() for q in questions])

        metadata = dict(current.extraction_metadata)
        materials_status = dict(metadata.get("materials_status") or {})
        materials_status["flashcards"] = MaterialStatus.READY.value
        materials_status["quiz"] = MaterialStatus.READY.value
        metadata["materials_status"] = materials_status
        await self._store.update_seed(seed.id, extraction_metadata=metadata)

        self._logger.info(
            "materials_generated",
            seed_id=seed.id,
            flashcards=len(flashcards),
            questions=len(questions),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _generate_flashcards(self, seed: Seed) -> list[Flashcard]:
        data = await self._complete_json(
            _FLASHCARD_PROMPT.format(
                count=self._flashcard_count,
                language=normalize_for_prompt(seed.language_code),
                explanation=seed.explanation,
            ),
            material="flashcards",
        )
        try:
            cards = [Flashcard.model_validate(item) for item in data.get("flashcards", [])]
        except PydanticValidationError as exc:
            raise GenerationError(message=f"Invalid flashcard payload: {exc}") from exc
        if not cards:
            raise GenerationError(message="LLM returned no flashcards")
        return cards

    async def _generate_quiz(self, seed: Seed) -> list[QuizQuestion]:
        data = await self._complete_json(
            _QUIZ_PROMPT.format(
                count=self._quiz_count,
                language=normalize_for_prompt(seed.language_code),
                explanation=seed.explanation,
            ),
            material="quiz",
        )
        try:
            questions = [QuizQuestion.model_validate(item) for item in data.get("questions", [])]
        except PydanticValidationError as exc:
            raise GenerationError(message=f"Invalid quiz payload: {exc}") from exc
        if not questions:
            raise GenerationError(message="LLM returned no quiz questions")
        return questions

    async def _complete_json(self, prompt: str, material: str) -> dict[str, Any]:
        try:
            raw = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=prompt,
                temperature=0.3,
                max_tokens=3000,
            )
        except LLMError as exc:
            raise GenerationError(
                message=f"{material} generation failed: {exc}",
                provider_name=exc.provider_name,
            ) from exc

        try:
            return _parse_json_object(raw)
        except ValueError as exc:
            self._logger.warning("materials_unparseable", material=material, preview=raw[:200])
            raise GenerationError(message=f"Unparseable {material} response: {exc}") from exc
