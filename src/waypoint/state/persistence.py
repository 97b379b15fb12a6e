"""Save and restore evaluator and sampler state through a ``StateStore``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from waypoint.core.constants import EVALUATOR_STATE_KEY, SAMPLER_STATE_KEY
from waypoint.core.errors import StateLoadError
from waypoint.core.logging import get_logger
from waypoint.state.base import StateStore

if TYPE_CHECKING:
    from waypoint.milestones.evaluator import MilestoneEvaluator
    from waypoint.qa.sampler import PowerLawSampler

_logger = get_logger("state.persistence")


async def save_evaluator(
    store: StateStore,
    evaluator: MilestoneEvaluator,
    key: str = EVALUATOR_STATE_KEY,
) -> None:
    await store.save(key, evaluator.export_state())


async def restore_evaluator(
    store: StateStore,
    evaluator: MilestoneEvaluator,
    key: str = EVALUATOR_STATE_KEY,
    *,
    strict: bool = False,
) -> bool:
    """Load saved state into ``evaluator``.

    Returns:
        True if state was found and imported. False if nothing was saved, or
        the saved data has the wrong shape and ``strict`` is False.

    Raises:
        StateLoadError: If the saved data has the wrong shape and ``strict`` is True.
    """
    data = await store.load(key)
    if data is None:
        return False
    try:
        evaluator.import_state(data)
    except ValidationError as e:
        if strict:
            raise StateLoadError(f"Invalid evaluator state under '{key}': {e}") from e
        _logger.warning("state.restore_failed", key=key, error_count=e.error_count())
        return False
    _logger.info("state.restored", key=key, kind="evaluator")
    return True


async def save_sampler(
    store: StateStore,
    sampler: PowerLawSampler,
    key: str = SAMPLER_STATE_KEY,
) -> None:
    await store.save(key, sampler.export_state())


async def restore_sampler(
    store: StateStore,
    sampler: PowerLawSampler,
    key: str = SAMPLER_STATE_KEY,
    *,
    strict: bool = False,
) -> bool:
    """Load saved state into ``sampler``. Same contract as ``restore_evaluator``."""
    data = await store.load(key)
    if data is None:
        return False
    try:
        sampler.import_state(data)
    except ValidationError as e:
        if strict:
            raise StateLoadError(f"Invalid sampler state under '{key}': {e}") from e
        _logger.warning("state.restore_failed", key=key, error_count=e.error_count())
        return False
    _logger.info("state.restored", key=key, kind="sampler")
    return True


__all__ = ["restore_evaluator", "restore_sampler", "save_evaluator", "save_sampler"]
