"""Tests for recordstore.logging (structlog configuration and context)."""

from __future__ import annotations

import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from recordstore.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    clear_context()
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    def test_json_output_uses_ecs_names(self, capsys):
        configure_logging(level="INFO", json_format=True, service="orders")
        get_logger("recordstore.test").info("saved", record_type="Person")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "saved"
        assert payload["record_type"] == "Person"
        assert payload["log.level"] == "info"
        assert payload["service.name"] == "orders"
        assert "@timestamp" in payload

    def test_level_filters_debug(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        logger = get_logger("recordstore.test")
        logger.debug("hidden")
        logger.warning("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out

    def test_console_output(self, capsys):
        configure_logging(level="DEBUG", json_format=False, add_timestamp=False)
        get_logger("recordstore.test").debug("statement_issued", table="pets")
        assert "statement_issued" in capsys.readouterr().out

    def test_stdlib_level_follows(self):
        configure_logging(level="ERROR", json_format=True)
        assert logging.getLogger().level == logging.ERROR


class TestContext:
    def test_bind_and_unbind(self):
        bind_context(request_id="r1", operation="save")
        assert structlog.contextvars.get_contextvars() == {"request_id": "r1", "operation": "save"}
        unbind_context("request_id")
        assert structlog.contextvars.get_contextvars() == {"operation": "save"}

    def test_clear(self):
        bind_context(request_id="r1")
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_log_context_scopes_keys(self):
        bind_context(service_run="x")
        with LogContext(operation="save", table="pets") as ctx:
            assert isinstance(ctx, LogContext)
            assert structlog.contextvars.get_contextvars()["table"] == "pets"
        assert structlog.contextvars.get_contextvars() == {"service_run": "x"}

    def test_context_reaches_rendered_output(self, capsys):
        configure_logging(level="INFO", json_format=True)
        with LogContext(request_id="abc123"):
            get_logger("recordstore.test").info("saved")
        payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert payload["request_id"] == "abc123"
