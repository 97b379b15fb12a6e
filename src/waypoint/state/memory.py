"""In-memory state store for testing.

Provides a state store that keeps everything in memory without filesystem I/O.
Useful for unit tests that need a real StateStore implementation.
"""

import copy
from typing import Any

from waypoint.state.base import StateStore


class InMemoryStateStore(StateStore):
    """In-memory state store for testing.

    Values are deep-copied on the way in and out, like a serializing store.
    """

    def __init__(self) -> None:
        self.states: dict[str, dict[str, Any]] = {}

    async def load(self, key: str) -> dict[str, Any] | None:
        data = self.states.get(key)
        return copy.deepcopy(data) if data is not None else None

    async def save(self, key: str, data: dict[str, Any]) -> None:
        self.states[key] = copy.deepcopy(data)

    async def delete(self, key: str) -> bool:
        if key in self.states:
            del self.states[key]
            return True
        return False

    async def list_keys(self) -> list[str]:
        return sorted(self.states)
