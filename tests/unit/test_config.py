"""Unit tests for settings, the YAML loader, the memory cache and remote config."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from seedflow.config.loader import load_config
from seedflow.config.settings import Settings
from seedflow.providers.cache.memory_cache import MemoryCacheProvider
from seedflow.providers.config.remote_config_provider import RemoteConfigProvider


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


# ======================================================================
# Settings & loader
# ======================================================================


class TestSettings:
    def test_defaults(self) -> None:
        settings = _settings()
        assert settings.ai_max_words == 20000
        assert settings.ai_max_characters == 150000
        assert settings.task_max_concurrent == 3
        assert settings.stage_dwell_times()["extracting"] == 1.95

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AI_MAX_WORDS", "500")
        monkeypatch.setenv("STAGE_DWELL_READING", "0.5")
        settings = _settings()
        assert settings.ai_max_words == 500
        assert settings.stage_dwell_times()["reading"] == 0.5


class TestLoadConfig:
    def test_yaml_values_survive_merge(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("materials:\n  quiz_count: 5\napp:\n  name: custom\n")

        config = load_config(str(path), settings=_settings(app_port=9000))

        assert config["materials"]["quiz_count"] == 5
        assert config["app"]["name"] == "custom"
        assert config["app"]["port"] == 9000

    def test_missing_file_yields_env_sections(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=_settings())
        assert config["ai_limits"] == {"max_words": 20000, "max_characters": 150000}
        assert config["tasks"]["max_retries"] == 1


# ======================================================================
# MemoryCacheProvider
# ======================================================================


class TestMemoryCacheProvider:
    @pytest.fixture()
    def cache(self) -> MemoryCacheProvider:
        return MemoryCacheProvider(max_size=2, ttl=3600)

    @pytest.mark.asyncio()
    async def test_set_get_delete(self, cache: MemoryCacheProvider) -> None:
        await cache.set("k", {"a": 1})
        assert await cache.get("k") == {"a": 1}
        await cache.delete("k")
        assert await cache.get("k") is None

    @pytest.mark.asyncio()
    async def test_delete_missing_is_noop(self, cache: MemoryCacheProvider) -> None:
        await cache.delete("missing")

    @pytest.mark.asyncio()
    async def test_max_size_evicts(self, cache: MemoryCacheProvider) -> None:
        for key in ("a", "b", "c"):
            await cache.set(key, key)
        assert len(cache) == 2

    @pytest.mark.asyncio()
    async def test_clear(self, cache: MemoryCacheProvider) -> None:
        await cache.set("a", 1)
        await cache.clear()
        assert len(cache) == 0


# ======================================================================
# RemoteConfigProvider
# ======================================================================


def _provider(handler, **overrides) -> tuple[RemoteConfigProvider, MemoryCacheProvider]:
    settings = _settings(backend_base_url="https://backend.test", **overrides)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    cache = MemoryCacheProvider()
    return RemoteConfigProvider(client, settings, cache), cache


class TestRemoteConfigProvider:
    @pytest.mark.asyncio()
    async def test_reads_feynman_limits(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200, json={"ai": {"feynman": {"maxWords": 1000, "maxCharacters": 8000}}}
            )

        provider, _ = _provider(handler, backend_api_token="secret")
        limits = await provider.get_ai_limits()

        assert (limits.max_words, limits.max_characters) == (1000, 8000)
        assert requests[0].url.path == "/api/config"
        assert requests[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio()
    async def test_limits_are_cached_until_refresh(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"ai": {"feynman": {"maxWords": 100 * calls}}})

        provider, _ = _provider(handler)
        first = await provider.get_ai_limits()
        second = await provider.get_ai_limits()
        assert first == second
        assert calls == 1

        await provider.refresh()
        third = await provider.get_ai_limits()
        assert third.max_words == 200
        assert calls == 2

    @pytest.mark.asyncio()
    async def test_server_error_falls_back_to_settings(self) -> None:
        provider, cache = _provider(lambda request: httpx.Response(503))

        limits = await provider.get_ai_limits()

        assert (limits.max_words, limits.max_characters) == (20000, 150000)
        assert len(cache) == 0

    @pytest.mark.asyncio()
    async def test_connection_error_falls_back_to_settings(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider, _ = _provider(handler, ai_max_words=42)
        assert (await provider.get_ai_limits()).max_words == 42

    @pytest.mark.asyncio()
    async def test_malformed_payload_falls_back(self) -> None:
        provider, _ = _provider(lambda request: httpx.Response(200, json=["not", "a", "dict"]))
        assert (await provider.get_ai_limits()).max_words == 20000

    @pytest.mark.asyncio()
    async def test_missing_keys_use_defaults(self) -> None:
        provider, _ = _provider(
            lambda request: httpx.Response(200, json={"ai": {"feynman": {"maxWords": 500}}})
        )
        limits = await provider.get_ai_limits()
        assert (limits.max_words, limits.max_characters) == (500, 150000)

    @pytest.mark.asyncio()
    async def test_no_backend_uses_defaults_without_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = RemoteConfigProvider(client, _settings(), MemoryCacheProvider())
        assert (await provider.get_ai_limits()).max_words == 20000
