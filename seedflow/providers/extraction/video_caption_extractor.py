"""Video extractor: fetches caption tracks for a video URL from the backend."""

from __future__ import annotations

import re

from seedflow.interfaces.content_extractor import IContentExtractor
from seedflow.models.extraction import ExtractionResult
from seedflow.models.seed import ContentKind
from seedflow.providers.extraction.http_extraction_client import (
    HttpExtractionClient,
    build_extraction_result,
)
from seedflow.utils.errors import ExtractionError, ExtractionErrorKind
from seedflow.utils.logging import get_logger

_CAPTIONS_PATH = "/api/youtube/captions"

_VIDEO_URL_PATTERN = re.compile(
    r"^(?:https?://)?(?:www\.|m\.|music\.)?"
    r"(?:youtube\.com/(?:watch\?(?:.*&)?v=|embed/|shorts/|live/)|youtu\.be/)"
    r"(?P<video_id>[A-Za-z0-9_-]{11})"
)

_NO_CAPTIONS_MESSAGE = (
    "This video does not have captions available. "
    "Please try a video with closed captions."
)
_INVALID_URL_MESSAGE = "The provided URL is not a valid YouTube video link."

_ERROR_CODES = {
    "NO_CAPTIONS": (ExtractionErrorKind.EMPTY_RESULT, _NO_CAPTIONS_MESSAGE),
    "INVALID_URL": (ExtractionErrorKind.UNSUPPORTED_FORMAT, _INVALID_URL_MESSAGE),
}


def parse_video_id(url: str) -> str | None:
    """Return the 11-character video id in *url*, or ``None`` if it is not a video link."""
    match = _VIDEO_URL_PATTERN.match(url.strip())
    return match.group("video_id") if match else None


class VideoCaptionExtractor(IContentExtractor):
    def __init__(self, client: HttpExtractionClient) -> None:
        self._client = client
        self._logger = get_logger(__name__)

    async def extract(
        self,
        raw_content: bytes | str,
        mime_hint: str | None = None,
        language_hints: list[str] | None = None,
    ) -> ExtractionResult:
        url = raw_content.decode("utf-8") if isinstance(raw_content, bytes) else raw_content
        url = url.strip()
        video_id = parse_video_id(url)
        if video_id is None:
            raise ExtractionError(
                ExtractionErrorKind.UNSUPPORTED_FORMAT,
                message=f"Not a video URL: {url[:100]}",
                user_message=_INVALID_URL_MESSAGE,
                provider_name=self.get_provider_name(),
            )

        payload = await self._client.post_json(_CAPTIONS_PATH, {"url": url}, _ERROR_CODES)
        result = build_extraction_result(payload, ContentKind.VIDEO, "youtube-captions")
        if not result.text:
            raise ExtractionError(
                ExtractionErrorKind.EMPTY_RESULT,
                message=f"Empty captions for video {video_id}",
                user_message=_NO_CAPTIONS_MESSAGE,
                provider_name=self.get_provider_name(),
            )

        self._logger.info(
            "video_captions_extracted",
            video_id=video_id,
            chars=len(result.text),
            language=result.metadata.language,
        )
        return result

    def supported_kind(self) -> ContentKind:
        return ContentKind.VIDEO

    def get_provider_name(self) -> str:
        return "video-captions"
