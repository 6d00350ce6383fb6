"""Abstract base class for content extractors.

One implementation per content kind turns raw material (file bytes, inline
text, a video URL) into normalized text plus metadata.  Implementations live
in ``seedflow/providers/extraction/`` and are selected by
:class:`~seedflow.services.content_extraction_service.ContentExtractionService`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from seedflow.models.extraction import ExtractionResult
from seedflow.models.seed import ContentKind


class IContentExtractor(ABC):
    """Contract for turning one kind of raw material into text.

    Extractors have no side effects beyond their outbound remote call.
    """

    @abstractmethod
    async def extract(
        self,
        raw_content: bytes | str,
        mime_hint: str | None = None,
        language_hints: list[str] | None = None,
    ) -> ExtractionResult:
        """Extract text from *raw_content*.

        Parameters
        ----------
        raw_content:
            File bytes for documents, images and audio; a ``str`` for inline
            text and video URLs.
        mime_hint:
            The caller-reported MIME type, when known.
        language_hints:
            Optional BCP-47 codes forwarded to transcription backends.

        Returns
        -------
        ExtractionResult
            The extracted text and its metadata.  ``metadata.language`` is
            always populated.

        Raises
        ------
        seedflow.utils.errors.ExtractionError
            ``EMPTY_RESULT``, ``UNSUPPORTED_FORMAT`` or ``REMOTE_FAILURE``.
        """

    @abstractmethod
    def supported_kind(self) -> ContentKind:
        """Return the content kind this extractor handles."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and error reports."""
