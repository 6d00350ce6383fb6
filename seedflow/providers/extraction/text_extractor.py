"""Plain-text extractor.  Runs locally; no remote call."""

from __future__ import annotations

from seedflow.interfaces.content_extractor import IContentExtractor
from seedflow.models.extraction import ExtractionMetadata, ExtractionResult
from seedflow.models.seed import ContentKind
from seedflow.providers.extraction.http_extraction_client import DEFAULT_CONFIDENCE
from seedflow.utils.errors import ExtractionError, ExtractionErrorKind
from seedflow.utils.language import detect_language


class PlainTextExtractor(IContentExtractor):
    async def extract(
        self,
        raw_content: bytes | str,
        mime_hint: str | None = None,
        language_hints: list[str] | None = None,
    ) -> ExtractionResult:
        if isinstance(raw_content, bytes):
            raw_content = raw_content.decode("utf-8", errors="replace")

        text = raw_content.strip()
        if not text:
            raise ExtractionError(
                ExtractionErrorKind.EMPTY_RESULT,
                message="Empty text input",
                user_message="No content found. Please ensure the source has at least 20 words.",
                provider_name=self.get_provider_name(),
            )

        return ExtractionResult(
            text=text,
            metadata=ExtractionMetadata(
                language=detect_language(text),
                confidence=DEFAULT_CONFIDENCE[ContentKind.TEXT],
                source="text",
            ),
        )

    def supported_kind(self) -> ContentKind:
        return ContentKind.TEXT

    def get_provider_name(self) -> str:
        return "plain-text"
