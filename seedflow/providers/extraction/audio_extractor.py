"""Audio extractor: remote speech-to-text for uploads and recordings."""

from __future__ import annotations

from seedflow.interfaces.content_extractor import IContentExtractor
from seedflow.models.extraction import ExtractionResult
from seedflow.models.seed import ContentKind
from seedflow.providers.extraction.http_extraction_client import (
    HttpExtractionClient,
    build_extraction_result,
    encode_content,
)
from seedflow.utils.errors import ExtractionError, ExtractionErrorKind
from seedflow.utils.logging import get_logger

_TRANSCRIBE_PATH = "/api/audio/transcribe"

# Browser recorders label audio-only WebM as video/webm.
_EXTRA_AUDIO_MIME_TYPES = frozenset({"video/webm"})


class AudioExtractor(IContentExtractor):
    """Transcribes audio through the backend.

    ``language_hints`` are passed through so the recogniser can bias towards
    the speaker's languages; the backend's detected language wins over them.
    """

    def __init__(self, client: HttpExtractionClient) -> None:
        self._client = client
        self._logger = get_logger(__name__)

    async def extract(
        self,
        raw_content: bytes | str,
        mime_hint: str | None = None,
        language_hints: list[str] | None = None,
    ) -> ExtractionResult:
        mime = (mime_hint or "").lower()
        if isinstance(raw_content, str) or not (
            mime.startswith("audio/") or mime in _EXTRA_AUDIO_MIME_TYPES
        ):
            raise ExtractionError(
                ExtractionErrorKind.UNSUPPORTED_FORMAT,
                message=f"Unsupported audio type: {mime or 'unknown'}",
                user_message="Unsupported audio format. Supported formats: MP3, WAV, M4A, AAC, OGG, FLAC, WMA",
                provider_name=self.get_provider_name(),
            )

        body: dict = {"contentBase64": encode_content(raw_content), "mimeType": mime}
        if language_hints:
            body["languageHints"] = list(language_hints)

        payload = await self._client.post_json(_TRANSCRIBE_PATH, body)
        result = build_extraction_result(payload, ContentKind.AUDIO, "speech-to-text")
        self._logger.info(
            "audio_transcribed",
            mime_type=mime,
            chars=len(result.text),
            duration=result.metadata.duration_seconds,
            language=result.metadata.language,
        )
        return result

    def supported_kind(self) -> ContentKind:
        return ContentKind.AUDIO

    def get_provider_name(self) -> str:
        return "audio-transcription"
