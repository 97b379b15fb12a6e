"""State persistence backends and helpers."""

from waypoint.state.base import StateStore
from waypoint.state.json_backend import JsonStateStore
from waypoint.state.memory import InMemoryStateStore
from waypoint.state.persistence import (
    restore_evaluator,
    restore_sampler,
    save_evaluator,
    save_sampler,
)

__all__ = [
    "InMemoryStateStore",
    "JsonStateStore",
    "StateStore",
    "restore_evaluator",
    "restore_sampler",
    "save_evaluator",
    "save_sampler",
]
