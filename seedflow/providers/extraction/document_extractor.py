"""Document extractor: PDFs through remote OCR, word-processor files through
remote text extraction.

An empty PDF is returned as-is so the validator can explain what went
wrong; an empty DOC/DOCX means the file itself is unusable and is reported
as ``EMPTY_RESULT`` straight away.
"""

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

PDF_MIME = "application/pdf"
WORD_MIME_TYPES = frozenset(
    {
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
TEXT_DOCUMENT_MIME_TYPES = frozenset({"application/rtf", "text/rtf", "text/plain"})

_OCR_PATH = "/api/documentai/process"
_EXTRACT_PATH = "/api/document/extract"


class DocumentExtractor(IContentExtractor):
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
        data = raw_content.encode("utf-8") if isinstance(raw_content, str) else raw_content

        if mime == PDF_MIME:
            payload = await self._client.post_json(
                _OCR_PATH, {"contentBase64": encode_content(data), "mimeType": mime}
            )
            result = build_extraction_result(payload, ContentKind.DOCUMENT, "documentai")
        elif mime in WORD_MIME_TYPES or mime in TEXT_DOCUMENT_MIME_TYPES:
            payload = await self._client.post_json(
                _EXTRACT_PATH, {"contentBase64": encode_content(data), "mimeType": mime}
            )
            result = build_extraction_result(payload, ContentKind.DOCUMENT, "document-extract")
            if mime in WORD_MIME_TYPES and not result.text:
                raise ExtractionError(
                    ExtractionErrorKind.EMPTY_RESULT,
                    message=f"No text extracted from {mime} document",
                    user_message=(
                        "We couldn't find any text in this document. "
                        "Please check the file and try again."
                    ),
                    provider_name=self.get_provider_name(),
                )
        else:
            raise ExtractionError(
                ExtractionErrorKind.UNSUPPORTED_FORMAT,
                message=f"Unsupported document type: {mime or 'unknown'}",
                user_message="Unsupported document format. Supported formats: PDF, DOC, DOCX, RTF, TXT",
                provider_name=self.get_provider_name(),
            )

        self._logger.info(
            "document_extracted",
            mime_type=mime,
            chars=len(result.text),
            language=result.metadata.language,
            pages=result.metadata.page_count,
        )
        return result

    def supported_kind(self) -> ContentKind:
        return ContentKind.DOCUMENT

    def get_provider_name(self) -> str:
        return "document-extractor"
