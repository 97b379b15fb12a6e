"""Tests for waypoint.core.logging module.

Covers configuration (console, JSON, rotating file), secret redaction,
EvaluationContext propagation and the WaypointLogger wrapper.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from waypoint.core.config import LogConfig
from waypoint.core.logging import (
    EvaluationContext,
    configure_from_config,
    configure_logging,
    get_current_context,
    get_logger,
    with_context,
)


def _read_json_lines(path: Path) -> list[dict]:
    for handler in logging.getLogger().handlers:
        handler.flush()
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_both_without_file_rejected(self):
        with pytest.raises(ValueError, match="file_path"):
            configure_logging(format="both")

    def test_json_file_output(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "waypoint.log"
        configure_logging(level="DEBUG", format="json", file_path=log_file)

        get_logger("test.component").info("thing.happened", count=3)

        [entry] = _read_json_lines(log_file)
        assert entry["event"] == "thing.happened"
        assert entry["count"] == 3
        assert entry["component"] == "test.component"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_level_filters(self, tmp_path: Path):
        log_file = tmp_path / "w.log"
        configure_logging(level="WARNING", format="json", file_path=log_file)
        logger = get_logger("test")
        logger.info("hidden")
        logger.warning("shown")
        assert [e["event"] for e in _read_json_lines(log_file)] == ["shown"]

    def test_configure_from_config(self, tmp_path: Path):
        log_file = tmp_path / "w.log"
        configure_from_config(
            LogConfig(level="ERROR", format="json", file_path=log_file, include_timestamps=False)
        )
        get_logger("test").error("boom")
        [entry] = _read_json_lines(log_file)
        assert "timestamp" not in entry

    def test_exception_includes_traceback(self, tmp_path: Path):
        log_file = tmp_path / "w.log"
        configure_logging(format="json", file_path=log_file)
        try:
            raise RuntimeError("git offline")
        except RuntimeError:
            get_logger("test").exception("callback.failed")
        [entry] = _read_json_lines(log_file)
        assert entry["level"] == "error"
        assert "RuntimeError: git offline" in entry["exception"]


class TestSanitizing:
    """Secrets are redacted from log entries."""

    def test_sensitive_keys_redacted(self, tmp_path: Path):
        log_file = tmp_path / "w.log"
        configure_logging(format="json", file_path=log_file)
        get_logger("test").info("auth", api_key="sk-123", headers={"Authorization": "x", "ok": 1})
        [entry] = _read_json_lines(log_file)
        assert entry["api_key"] == "[REDACTED]"
        assert entry["headers"] == {"Authorization": "[REDACTED]", "ok": 1}


class TestEvaluationContext:
    """Tests for context propagation."""

    def test_with_context_sets_and_resets(self):
        ctx = EvaluationContext(document_path="a.md", component="test")
        assert get_current_context() is None
        with with_context(ctx) as active:
            assert get_current_context() is active
        assert get_current_context() is None

    def test_context_fields_added_to_entries(self, tmp_path: Path):
        log_file = tmp_path / "w.log"
        configure_logging(format="json", file_path=log_file)
        ctx = EvaluationContext(session_id="s1", document_path="a.md")
        with with_context(ctx):
            get_logger("test").info("inside")
        [entry] = _read_json_lines(log_file)
        assert entry["pass_id"] == ctx.pass_id
        assert entry["session_id"] == "s1"
        assert entry["document_path"] == "a.md"
        # Bound component wins over the context's component
        assert entry["component"] == "test"
