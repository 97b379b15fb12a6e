"""Abstract base for state stores."""

from abc import ABC, abstractmethod
from typing import Any


class StateStore(ABC):
    """Abstract base class for state storage backends.

    Stores plain JSON-compatible dicts under string keys, such as the output
    of ``MilestoneEvaluator.export_state()`` or ``PowerLawSampler.export_state()``.
    """

    @abstractmethod
    async def load(self, key: str) -> dict[str, Any] | None:
        """Load the data stored under a key.

        Args:
            key: State key

        Returns:
            The stored data if found, None otherwise
        """
        ...

    @abstractmethod
    async def save(self, key: str, data: dict[str, Any]) -> None:
        """Store data under a key, replacing any previous value.

        Args:
            key: State key
            data: JSON-compatible data to persist
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete the data stored under a key.

        Args:
            key: State key

        Returns:
            True if deleted, False if not found
        """
        ...

    @abstractmethod
    async def list_keys(self) -> list[str]:
        """List all stored keys, sorted."""
        ...
