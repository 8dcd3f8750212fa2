"""Tests for cnstack.core.logging."""

import json

import pytest
import structlog

from cnstack.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)
from cnstack.core.settings import CnsSettings


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_json_output(self, capsys):
        configure_logging(level="INFO", json_format=True, service="cnstack-test")
        get_logger("test").info("recipe.build.complete", matched_rules=2)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "recipe.build.complete"
        assert payload["matched_rules"] == 2
        assert payload["service"] == "cnstack-test"
        assert payload["level"] == "info"
        assert payload["logger"] == "test"

    def test_level_filtering(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        get_logger("test").info("hidden.event")
        assert "hidden.event" not in capsys.readouterr().err

    def test_from_settings(self, capsys, monkeypatch):
        monkeypatch.setenv("CNS_LOG_FORMAT", "json")
        monkeypatch.setenv("CNS_LOG_LEVEL", "debug")
        configure_from_settings(CnsSettings(_env_file=None))
        get_logger("test").debug("debug.event")
        assert "debug.event" in capsys.readouterr().err


class TestContextBinding:
    def teardown_method(self):
        clear_context()

    def test_bind_context(self):
        bind_context(bundler_type="gpu-operator")
        assert structlog.contextvars.get_contextvars()["bundler_type"] == "gpu-operator"

    def test_log_context_scoped(self):
        with LogContext(run_id="abc"):
            assert structlog.contextvars.get_contextvars()["run_id"] == "abc"
        assert "run_id" not in structlog.contextvars.get_contextvars()
