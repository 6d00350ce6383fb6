"""Routes raw material to the extractor registered for its content kind.

Also owns MIME classification for file uploads, since the upload entry
point only knows a file name and a MIME type.
"""

from __future__ import annotations

from pathlib import PurePath

from seedflow.interfaces.content_extractor import IContentExtractor
from seedflow.models.extraction import ExtractionResult
from seedflow.models.seed import ContentKind
from seedflow.utils.errors import ExtractionError, ExtractionErrorKind
from seedflow.utils.logging import get_logger

_DOCUMENT_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/rtf",
        "text/rtf",
        "text/plain",
    }
)

_EXTENSION_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".rtf": "application/rtf",
    ".txt": "text/plain",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".wma": "audio/x-ms-wma",
}

_UNSUPPORTED_FILE_MESSAGE = (
    "File type not supported. Please choose a PDF, image, audio, video, or text file."
)


def resolve_mime_type(mime_type: str | None, file_name: str | None = None) -> str:
    """Return a usable MIME type, guessing from the file extension when the
    reported one is missing or generic."""
    mime = (mime_type or "").split(";")[0].strip().lower()
    if mime and mime != "application/octet-stream":
        return mime
    if file_name:
        return _EXTENSION_MIME_TYPES.get(PurePath(file_name).suffix.lower(), mime)
    return mime


def classify_mime_type(mime_type: str) -> ContentKind:
    """Map a MIME type onto the content kind that handles it.

    Raises
    ------
    ExtractionError
        ``UNSUPPORTED_FORMAT`` when no extractor accepts the type.
    """
    if mime_type.startswith("image/"):
        return ContentKind.IMAGE
    if mime_type.startswith("audio/"):
        return ContentKind.AUDIO
    if mime_type in _DOCUMENT_MIME_TYPES:
        return ContentKind.DOCUMENT
    raise ExtractionError(
        ExtractionErrorKind.UNSUPPORTED_FORMAT,
        message=f"No extractor for MIME type {mime_type or 'unknown'}",
        user_message=_UNSUPPORTED_FILE_MESSAGE,
    )


class ContentExtractionService:
    """Dispatches extraction to one :class:`IContentExtractor` per kind."""

    def __init__(self, extractors: list[IContentExtractor]) -> None:
        self._extractors: dict[ContentKind, IContentExtractor] = {
            extractor.supported_kind(): extractor for extractor in extractors
        }
        self._logger = get_logger(__name__)

    @property
    def supported_kinds(self) -> frozenset[ContentKind]:
        return frozenset(self._extractors)

    async def extract(
        self,
        raw_content: bytes | str,
        content_kind: ContentKind,
        mime_hint: str | None = None,
        language_hints: list[str] | None = None,
    ) -> ExtractionResult:
        """Extract text with the extractor registered for *content_kind*.

        Raises
        ------
        ExtractionError
            ``UNSUPPORTED_FORMAT`` when no extractor is registered, or
            whatever the extractor raised.
        """
        extractor = self._extractors.get(content_kind)
        if extractor is None:
            raise ExtractionError(
                ExtractionErrorKind.UNSUPPORTED_FORMAT,
                message=f"No extractor registered for {content_kind.value}",
                user_message=_UNSUPPORTED_FILE_MESSAGE,
            )

        self._logger.debug(
            "extraction_dispatch",
            content_kind=content_kind.value,
            extractor=extractor.get_provider_name(),
            mime_type=mime_hint,
        )
        return await extractor.extract(raw_content, mime_hint, language_hints)
