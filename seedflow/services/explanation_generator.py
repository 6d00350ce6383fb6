"""Explanation generation via a streaming LLM call.

The model is asked to classify the material's intent and then write an
in-depth study guide in the material's own language.  Its reply starts with
an ``INTENT:`` line, optionally followed by an ``EXPLANATION:`` marker::

    INTENT: Procedural

    EXPLANATION:
    # Overview
    ...

The reply is streamed so progress can be reported while it arrives.  The
fraction is estimated from characters received against an expected length
and held below 1.0 until the stream finishes.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from typing import Any

from seedflow.interfaces.llm_provider import ILLMProvider
from seedflow.models.extraction import ExplanationResult
from seedflow.models.seed import Intent
from seedflow.utils.callbacks import notify
from seedflow.utils.errors import GenerationError, LLMError
from seedflow.utils.language import is_logographic, normalize_for_prompt
from seedflow.utils.logging import get_logger

ProgressCallback = Callable[[float, str], Any]

_INTENT_RE = re.compile(
    r"^\**\s*INTENT:\s*\**\s*(Educational|Comprehension|Reference|Analytical|Procedural)\b",
    re.IGNORECASE,
)
_EXPLANATION_MARKER_RE = re.compile(r"^\**\s*EXPLANATION:\s*\**\s*", re.IGNORECASE)

# Intent is looked for in the first few lines; models sometimes lead with a title.
_INTENT_SEARCH_LINES = 3

_STREAMING_CEILING = 0.95
_MIN_EXPECTED_CHARS = 1200

_SYSTEM_PROMPT = (
    "You are an expert teacher who turns study material into clear, thorough "
    "study guides using the Feynman technique: explain every important idea "
    "simply, completely and accurately. Write mobile-friendly markdown."
)

_USER_TEMPLATE = """{language_instruction}

CONTENT TO PROCESS:
{title_block}{content}

STEP 1 - DETECT INTENT:
Determine which category best fits the content:
- Educational: Teaches concepts, learning objectives, explains how/why
- Comprehension: News, articles, factual information to understand
- Reference: Lists, formulas, lookup tables, technical references
- Analytical: Themes, interpretations, deeper meaning, critique
- Procedural: Instructions, steps, how-to guides, processes

If multiple apply, prioritize: Educational > Procedural > Analytical > Comprehension > Reference

Output the intent on the first line:
INTENT: [Educational|Comprehension|Reference|Analytical|Procedural]

Then add one blank line, the line EXPLANATION:, and start your content.

STEP 2 - CREATE IN-DEPTH STUDY GUIDE:
Include ALL important information from the content. Explain concepts fully
with the necessary detail and reasoning; remove only promotional content,
author bios and filler. Choose section headers that fit the detected intent.
"""

_GENERATION_FAILED_MESSAGE = "Failed to generate explanation. Please try again."
_EMPTY_RESPONSE_MESSAGE = "AI processing failed to generate content. Please try again."


def build_language_instruction(language: str | None) -> str:
    code = normalize_for_prompt(language)
    return (
        f"LANGUAGE: The content is in language code '{code}'. "
        f"Write the entire response in that language (the INTENT line stays in English)."
    )


def parse_explanation(response: str) -> tuple[Intent | None, str]:
    """Split a model reply into its intent and explanation body.

    Returns ``(None, body)`` when no intent line is found.
    """
    lines = response.strip().splitlines()
    intent: Intent | None = None
    start = 0

    for index, line in enumerate(lines[:_INTENT_SEARCH_LINES]):
        match = _INTENT_RE.match(line.strip())
        if match:
            intent = Intent(match.group(1).capitalize())
            start = index + 1
            break

    body_lines = lines[start:]
    while body_lines and not body_lines[0].strip():
        body_lines.pop(0)
    if body_lines and _EXPLANATION_MARKER_RE.match(body_lines[0].strip()):
        remainder = _EXPLANATION_MARKER_RE.sub("", body_lines[0].strip(), count=1)
        body_lines = ([remainder] if remainder else []) + body_lines[1:]

    return intent, "\n".join(body_lines).strip()


def score_confidence(
    source_text: str,
    explanation: str,
    language: str | None,
    intent_found: bool,
) -> float:
    confidence = 0.5
    if len(explanation) > 100:
        confidence += 0.3

    units = len(source_text) if is_logographic(language) else len(source_text.split())
    if units > 100:
        confidence += 0.1
    if units > 500:
        confidence += 0.1

    if not intent_found:
        confidence -= 0.2
    return round(max(0.0, min(confidence, 1.0)), 2)


class ExplanationGenerator:
    """Generates an explanation and intent for extracted text.

    Parameters
    ----------
    llm_provider:
        The streaming-capable LLM backend.
    max_tokens:
        Upper bound on the model's reply.
    temperature:
        Sampling temperature for the reply.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        max_tokens: int = 2000,
        temperature: float = 0.4,
    ) -> None:
        self._llm = llm_provider
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._logger = get_logger(__name__)

    async def generate(
        self,
        text: str,
        title: str | None,
        language: str | None,
        on_progress: ProgressCallback | None = None,
    ) -> ExplanationResult:
        """Generate an explanation for *text*.

        Parameters
        ----------
        text:
            The validated extracted text.
        title:
            Optional title, included in the prompt when present.
        language:
            Language code of *text*; the reply is requested in that language.
        on_progress:
            Called as ``on_progress(fraction, message)`` with non-decreasing
            fractions in [0, 1], ending with exactly 1.0 on success.

        Raises
        ------
        GenerationError
            Retryable; the provider failed or returned nothing usable.
        """
        started = time.monotonic()
        prompt = _USER_TEMPLATE.format(
            language_instruction=build_language_instruction(language),
            title_block=f"Title: {title}\n\n" if title else "",
            content=text,
        )
        expected_chars = max(_MIN_EXPECTED_CHARS, min(len(text), self._max_tokens * 3))

        last_fraction = 0.0

        async def report(fraction: float, message: str) -> None:
            nonlocal last_fraction
            if on_progress is None or fraction <= last_fraction:
                return
            last_fraction = fraction
            await notify(on_progress, fraction, message, logger=self._logger)

        await report(0.05, "Preparing content...")

        chunks: list[str] = []
        received = 0
        try:
            async for delta in self._llm.stream_complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            ):
                chunks.append(delta)
                received += len(delta)
                fraction = min(_STREAMING_CEILING, 0.05 + 0.9 * received / expected_chars)
                await report(round(fraction, 3), "Generating study materials...")
        except LLMError as exc:
            self._logger.error(
                "explanation_generation_failed",
                error=str(exc),
                provider=self._llm.get_provider_name(),
            )
            raise GenerationError(
                message=f"Explanation stream failed: {exc}",
                user_message=_GENERATION_FAILED_MESSAGE,
                provider_name=exc.provider_name,
            ) from exc

        intent, explanation = parse_explanation("".join(chunks))
        if not explanation:
            self._logger.error("explanation_empty", chars_received=received)
            raise GenerationError(
                message="LLM returned an empty explanation",
                user_message=_EMPTY_RESPONSE_MESSAGE,
                provider_name=self._llm.get_provider_name(),
            )

        if intent is None:
            self._logger.warning("explanation_intent_missing", defaulting_to="Educational")

        result = ExplanationResult(
            explanation=explanation,
            intent=intent or Intent.EDUCATIONAL,
            confidence=score_confidence(text, explanation, language, intent is not None),
            word_count=len(text) if is_logographic(language) else len(text.split()),
            processing_time=round(time.monotonic() - started, 3),
        )
        await report(1.0, "Study materials ready!")
        self._logger.info(
            "explanation_generated",
            intent=result.intent.value,
            confidence=result.confidence,
            chars=len(explanation),
            seconds=result.processing_time,
        )
        return result
