"""Image extractor: remote OCR of photos and screenshots.

The original image MIME type is forwarded untouched.  Empty OCR output is
not an error here; the content validator turns it into "No text detected".
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

_OCR_PATH = "/api/documentai/process"


class ImageExtractor(IContentExtractor):
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
        if not mime.startswith("image/") or isinstance(raw_content, str):
            raise ExtractionError(
                ExtractionErrorKind.UNSUPPORTED_FORMAT,
                message=f"Unsupported image type: {mime or 'unknown'}",
                user_message="Unsupported image format. Supported formats: JPG, JPEG, PNG, GIF, BMP, WEBP",
                provider_name=self.get_provider_name(),
            )

        payload = await self._client.post_json(
            _OCR_PATH, {"contentBase64": encode_content(raw_content), "mimeType": mime}
        )
        result = build_extraction_result(payload, ContentKind.IMAGE, "vision")
        self._logger.info(
            "image_extracted",
            mime_type=mime,
            chars=len(result.text),
            confidence=result.metadata.confidence,
        )
        return result

    def supported_kind(self) -> ContentKind:
        return ContentKind.IMAGE

    def get_provider_name(self) -> str:
        return "image-ocr"
