"""Shared CLI helpers: global logging state and input loading."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from waypoint.core.config import MilestoneSettings
from waypoint.core.errors import ConfigurationError
from waypoint.core.logging import configure_logging
from waypoint.milestones.models import DocumentState

# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """CLI logging options collected by the global option callbacks."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console", "both"] = "console"
    configured: bool = False


_log_config = CliLoggingConfig()


def get_log_level() -> str:
    return _log_config.level


def set_log_level(level: str) -> None:
    """Set the log level.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
    """
    _log_config.level = level.upper()  # type: ignore[assignment]


def get_log_file() -> Path | None:
    return _log_config.file


def set_log_file(path: Path | None) -> None:
    """Set the log file path. A file switches the format to JSON lines."""
    _log_config.file = path
    if path and _log_config.format == "console":
        _log_config.format = "json"


def get_log_format() -> str:
    return _log_config.format


def set_log_format(fmt: str) -> None:
    """Set the log format.

    Args:
        fmt: Log format string (json, console, both).
    """
    _log_config.format = fmt  # type: ignore[assignment]


def configure_global_logging(console: Console) -> None:
    """Configure logging from the global CLI options, once per process.

    Raises:
        typer.Exit: If the logging options are inconsistent.
    """
    if _log_config.configured:
        return

    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
        _log_config.configured = True
    except (ValueError, AttributeError) as e:
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None


def reset_logging_state() -> None:
    """Reset logging state (primarily for testing)."""
    global _log_config
    _log_config = CliLoggingConfig()


# =============================================================================
# Input loading
# =============================================================================


def load_settings_or_exit(path: Path, console: Console) -> MilestoneSettings:
    """Load milestone settings, exiting with code 2 on failure."""
    try:
        return MilestoneSettings.from_yaml(path)
    except ConfigurationError as e:
        console.print(f"[red]Cannot load settings:[/red] {escape(str(e))}")
        raise typer.Exit(2) from None


def load_document(path: Path, console: Console) -> tuple[DocumentState, dict[str, Any]]:
    """Load a document state JSON file.

    The file holds ``DocumentState`` fields plus an optional ``properties``
    object used for property-scoped milestones.

    Returns:
        The document state and its scope properties.

    Raises:
        typer.Exit: With code 2 if the file is unreadable or invalid.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = DocumentState.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Cannot load document state:[/red] {escape(str(e))}")
        raise typer.Exit(2) from None

    properties: dict[str, Any] = {
        "audience": state.audience,
        "origin": state.origin,
        "form": state.form,
    }
    properties.update(data.get("properties") or {})
    return state, properties
