"""Shared transport for the remote extraction backend.

Every remote extractor (OCR, transcription, document text, captions) speaks
the same protocol: a JSON POST with a bearer token, binary content sent as
base64, and a JSON body back of the shape::

    {"text": "...", "metadata": {"language": "en", "confidence": 0.93, ...}}

Error responses carry a JSON ``message`` (and for some endpoints an
``error`` code).  Failures are mapped onto :class:`ExtractionError`:

    timeout / transport error ──→ REMOTE_FAILURE, retryable
    HTTP 5xx                  ──→ REMOTE_FAILURE, retryable
    HTTP 4xx                  ──→ REMOTE_FAILURE, not retryable,
                                  backend ``message`` shown to the user
    known backend error code  ──→ whatever the caller mapped it to
"""

from __future__ import annotations

import base64
from typing import Any

import httpx

from seedflow.config.settings import Settings
from seedflow.models.extraction import ExtractionMetadata, ExtractionResult
from seedflow.models.seed import ContentKind
from seedflow.utils.errors import GENERIC_USER_MESSAGE, ExtractionError, ExtractionErrorKind
from seedflow.utils.language import resolve_language
from seedflow.utils.logging import get_logger

DEFAULT_CONFIDENCE: dict[ContentKind, float] = {
    ContentKind.DOCUMENT: 0.9,
    ContentKind.IMAGE: 0.8,
    ContentKind.AUDIO: 0.85,
    ContentKind.TEXT: 1.0,
    ContentKind.VIDEO: 0.95,
}

# Metadata keys lifted into typed fields; everything else lands in ``extras``.
_KNOWN_METADATA_KEYS = frozenset(
    {"language", "confidence", "source", "pageCount", "duration", "title", "videoTitle"}
)

_PROVIDER_NAME = "extraction-backend"


def encode_content(data: bytes) -> str:
    """Base64-encode binary content for a JSON request body."""
    return base64.b64encode(data).decode("ascii")


def build_extraction_result(
    payload: dict[str, Any],
    content_kind: ContentKind,
    default_source: str,
) -> ExtractionResult:
    """Turn a backend response body into an :class:`ExtractionResult`.

    The language reported by the backend wins; when it is missing or
    ``und`` the text is classified locally.
    """
    text = str(payload.get("text") or payload.get("content") or "").strip()
    raw_meta = payload.get("metadata") or {}

    confidence = raw_meta.get("confidence")
    if not isinstance(confidence, (int, float)) or not 0.0 <= confidence <= 1.0:
        confidence = DEFAULT_CONFIDENCE[content_kind]

    duration = raw_meta.get("duration")
    page_count = raw_meta.get("pageCount")

    metadata = ExtractionMetadata(
        language=resolve_language(raw_meta.get("language"), text),
        confidence=float(confidence),
        source=str(raw_meta.get("source") or default_source),
        page_count=int(page_count) if isinstance(page_count, (int, float)) else None,
        duration_seconds=float(duration) if isinstance(duration, (int, float)) else None,
        video_title=raw_meta.get("videoTitle") or raw_meta.get("title"),
        extras={k: v for k, v in raw_meta.items() if k not in _KNOWN_METADATA_KEYS},
    )
    return ExtractionResult(text=text, metadata=metadata)


class HttpExtractionClient:
    """POSTs extraction requests to the backend.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` for connection pooling and testability.
    settings:
        Supplies ``backend_base_url``, ``backend_api_token`` and the
        per-call ``extraction_timeout_seconds``.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        self._http = http_client
        self._base_url = settings.backend_base_url.rstrip("/")
        self._token = settings.backend_api_token
        self._timeout = settings.extraction_timeout_seconds
        self._logger = get_logger(__name__)

    def is_configured(self) -> bool:
        return bool(self._base_url)

    async def post_json(
        self,
        path: str,
        body: dict[str, Any],
        error_codes: dict[str, tuple[ExtractionErrorKind, str]] | None = None,
    ) -> dict[str, Any]:
        """POST *body* to *path* and return the decoded JSON response.

        Parameters
        ----------
        path:
            Endpoint path, e.g. ``"/api/documentai/process"``.
        body:
            JSON-serialisable request body.
        error_codes:
            Backend ``error`` codes that map to a specific kind and user
            message (e.g. ``NO_CAPTIONS`` → ``EMPTY_RESULT``).

        Raises
        ------
        ExtractionError
            ``REMOTE_FAILURE`` (or a mapped kind) on any failure.
        """
        if not self._base_url:
            raise ExtractionError(
                ExtractionErrorKind.REMOTE_FAILURE,
                message="Extraction backend URL is not configured",
                user_message="Service configuration error. Please contact support.",
                provider_name=_PROVIDER_NAME,
            )

        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = await self._http.post(
                f"{self._base_url}{path}",
                json=body,
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise ExtractionError(
                ExtractionErrorKind.REMOTE_FAILURE,
                message=f"{path} timed out after {self._timeout}s",
                user_message="Processing took too long. Please try again.",
                retryable=True,
                provider_name=_PROVIDER_NAME,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExtractionError(
                ExtractionErrorKind.REMOTE_FAILURE,
                message=f"{path} transport error: {exc}",
                retryable=True,
                provider_name=_PROVIDER_NAME,
            ) from exc

        if response.is_error:
            raise self._error_from_response(path, response, error_codes or {})

        try:
            data = response.json()
        except ValueError as exc:
            raise ExtractionError(
                ExtractionErrorKind.REMOTE_FAILURE,
                message=f"{path} returned a non-JSON body",
                retryable=True,
                provider_name=_PROVIDER_NAME,
            ) from exc

        if not isinstance(data, dict):
            raise ExtractionError(
                ExtractionErrorKind.REMOTE_FAILURE,
                message=f"{path} returned {type(data).__name__}, expected an object",
                provider_name=_PROVIDER_NAME,
            )

        self._logger.debug("extraction_backend_ok", path=path, status=response.status_code)
        return data

    def _error_from_response(
        self,
        path: str,
        response: httpx.Response,
        error_codes: dict[str, tuple[ExtractionErrorKind, str]],
    ) -> ExtractionError:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        code = body.get("error")
        backend_message = body.get("message")
        self._logger.warning(
            "extraction_backend_error",
            path=path,
            status=status,
            code=code,
            backend_message=backend_message,
        )

        if code in error_codes:
            kind, user_message = error_codes[code]
            return ExtractionError(
                kind,
                message=f"{path} failed with {status} ({code})",
                user_message=user_message,
                retryable=False,
                provider_name=_PROVIDER_NAME,
            )

        retryable = status >= 500
        user_message = GENERIC_USER_MESSAGE
        if not retryable and isinstance(backend_message, str) and backend_message:
            user_message = backend_message

        return ExtractionError(
            ExtractionErrorKind.REMOTE_FAILURE,
            message=f"{path} failed with {status}: {backend_message or response.text[:200]}",
            user_message=user_message,
            retryable=retryable,
            provider_name=_PROVIDER_NAME,
        )
