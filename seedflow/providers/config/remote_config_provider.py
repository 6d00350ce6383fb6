"""Runtime configuration fetched from the backend's ``/api/config`` endpoint.

Only the content limits are consumed here.  The backend nests them under
``ai.feynman``::

    {"ai": {"feynman": {"maxWords": 20000, "maxCharacters": 150000, ...}}}

Fetched limits are cached for ``config_cache_ttl_seconds``.  When the backend
is unreachable or returns something unusable, the defaults from
:class:`~seedflow.config.settings.Settings` are returned instead, so
validation never blocks on configuration.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from seedflow.config.settings import Settings
from seedflow.interfaces.cache_provider import ICacheProvider
from seedflow.interfaces.config_provider import IConfigProvider
from seedflow.models.extraction import AILimits
from seedflow.utils.logging import get_logger

_CONFIG_PATH = "/api/config"
_LIMITS_CACHE_KEY = "config:ai_limits"


class RemoteConfigProvider(IConfigProvider):
    """Reads content limits from the backend, falling back to local settings.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` shared with the extraction client.
    settings:
        Supplies the base URL, auth token, timeout and fallback limits.
    cache:
        Holds the last successfully fetched limits.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        cache: ICacheProvider,
    ) -> None:
        self._http = http_client
        self._settings = settings
        self._cache = cache
        self._logger = get_logger(__name__)

    def default_limits(self) -> AILimits:
        return AILimits(
            max_words=self._settings.ai_max_words,
            max_characters=self._settings.ai_max_characters,
        )

    async def get_ai_limits(self) -> AILimits:
        cached = await self._cache.get(_LIMITS_CACHE_KEY)
        if isinstance(cached, AILimits):
            return cached

        if not self._settings.backend_base_url:
            return self.default_limits()

        try:
            payload = await self._fetch_config()
            limits = self._parse_limits(payload)
        except (httpx.HTTPError, ValueError, PydanticValidationError) as exc:
            self._logger.warning(
                "config_fetch_failed_using_defaults",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return self.default_limits()

        await self._cache.set(_LIMITS_CACHE_KEY, limits)
        self._logger.debug(
            "config_limits_loaded",
            max_words=limits.max_words,
            max_characters=limits.max_characters,
        )
        return limits

    async def refresh(self) -> None:
        await self._cache.delete(_LIMITS_CACHE_KEY)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch_config(self) -> dict[str, Any]:
        url = f"{self._settings.backend_base_url.rstrip('/')}{_CONFIG_PATH}"
        headers = {}
        if self._settings.backend_api_token:
            headers["Authorization"] = f"Bearer {self._settings.backend_api_token}"

        response = await self._http.get(
            url, headers=headers, timeout=self._settings.config_timeout_seconds
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("config response is not a JSON object")
        return data

    def _parse_limits(self, payload: dict[str, Any]) -> AILimits:
        feynman = (payload.get("ai") or {}).get("feynman") or {}
        defaults = self.default_limits()
        return AILimits(
            max_words=int(feynman.get("maxWords") or defaults.max_words),
            max_characters=int(feynman.get("maxCharacters") or defaults.max_characters),
        )
