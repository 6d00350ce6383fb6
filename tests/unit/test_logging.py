"""Unit tests for the structlog wiring."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from seedflow.utils.logging import (
    SERVICE_NAME,
    add_service_name,
    bind_run_context,
    configure_logging,
)


@pytest.fixture()
def restore_logging() -> Iterator[None]:
    yield
    configure_logging()


class TestAddServiceName:
    def test_stamps_service(self) -> None:
        event = add_service_name(None, "info", {"event": "seed_created"})
        assert event["service"] == SERVICE_NAME

    def test_keeps_explicit_service(self) -> None:
        event = add_service_name(None, "info", {"event": "x", "service": "worker"})
        assert event["service"] == "worker"


class TestBindRunContext:
    def test_values_visible_only_inside_block(self) -> None:
        with bind_run_context(user_id="u1", content_kind="text"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["user_id"] == "u1"
            assert bound["content_kind"] == "text"

        assert "user_id" not in structlog.contextvars.get_contextvars()


@pytest.mark.usefixtures("restore_logging")
class TestConfigureLogging:
    def test_json_lines_carry_service_and_context(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(log_level="INFO", json_output=True)

        with bind_run_context(user_id="u1"):
            structlog.get_logger().info("seed_created", seed_id="s1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "seed_created"
        assert record["service"] == SERVICE_NAME
        assert record["user_id"] == "u1"
        assert record["level"] == "info"

    def test_events_below_level_are_dropped(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_level="WARNING", json_output=True)

        structlog.get_logger().info("ignored")

        assert capsys.readouterr().out == ""

    def test_client_libraries_held_at_warning(self) -> None:
        configure_logging(log_level="INFO")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING

    def test_debug_lets_client_libraries_through(self) -> None:
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(log_level="chatty")
        assert logging.getLogger().level == logging.INFO
