"""Pytest fixtures for Waypoint tests."""

import logging
from collections.abc import Generator
from unittest.mock import AsyncMock

import pytest
import structlog

from tests.helpers import FakeClock
from waypoint.milestones.models import (
    CallbackResult,
    GitSnapshotCallbackResult,
    MilestoneCallbacks,
)


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging state before and after each test.

    This ensures test isolation for logging configuration.
    """
    import waypoint.cli.helpers as cli_helpers

    original_config = cli_helpers._log_config
    cli_helpers.reset_logging_state()

    # Reset structlog to default state
    structlog.reset_defaults()

    # Clear all handlers from root logger
    root_logger = logging.getLogger()
    original_level = root_logger.level
    original_handlers = root_logger.handlers[:]
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    cli_helpers._log_config = original_config
    structlog.reset_defaults()

    # Restore original handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def clock() -> FakeClock:
    """A controllable clock starting at 2023-11-14T22:13:20Z."""
    return FakeClock()


@pytest.fixture
def callbacks() -> MilestoneCallbacks:
    """Callbacks that all succeed, as AsyncMocks for call inspection."""
    return MilestoneCallbacks(
        execute_git_snapshot=AsyncMock(
            return_value=GitSnapshotCallbackResult(
                success=True,
                commit_sha="abc1234def",
                commit_message="milestone commit",
            )
        ),
        apply_property_change=AsyncMock(return_value=CallbackResult(success=True)),
        apply_stub_mutation=AsyncMock(return_value=CallbackResult(success=True)),
    )
