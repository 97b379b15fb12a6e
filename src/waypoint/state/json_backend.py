"""JSON file-based state store.

Stores each key in its own JSON file under a state directory.
"""

import json
from pathlib import Path
from typing import Any

from waypoint.core.errors import StateLoadError
from waypoint.core.logging import get_logger
from waypoint.state.base import StateStore

_logger = get_logger("state.json")


class JsonStateStore(StateStore):
    """JSON file-based state storage.

    File naming: {state_dir}/{key}.json, with characters other than
    alphanumerics, '-' and '_' replaced by '_'.
    """

    def __init__(self, state_dir: Path, strict: bool = False):
        """Initialize JSON store.

        Args:
            state_dir: Directory to store state files
            strict: Raise StateLoadError on corrupt files instead of returning None
        """
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.strict = strict

    def _get_state_file(self, key: str) -> Path:
        """Get the state file path for a key."""
        safe_key = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return self.state_dir / f"{safe_key}.json"

    async def load(self, key: str) -> dict[str, Any] | None:
        """Load state from JSON file."""
        state_file = self._get_state_file(key)
        if not state_file.exists():
            return None

        try:
            with open(state_file, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        except (json.JSONDecodeError, ValueError) as e:
            if self.strict:
                raise StateLoadError(f"Corrupt state file {state_file}: {e}") from e
            _logger.warning("state.load_failed", path=str(state_file), error=str(e))
            return None

        return data

    async def save(self, key: str, data: dict[str, Any]) -> None:
        """Save state to JSON file."""
        state_file = self._get_state_file(key)

        # Write atomically using temp file + rename
        temp_file = state_file.with_suffix(".json.tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        temp_file.replace(state_file)
        _logger.debug("state.saved", key=key, path=str(state_file))

    async def delete(self, key: str) -> bool:
        """Delete state file."""
        state_file = self._get_state_file(key)
        if state_file.exists():
            state_file.unlink()
            return True
        return False

    async def list_keys(self) -> list[str]:
        """List keys with state files (sanitized names)."""
        return sorted(p.stem for p in self.state_dir.glob("*.json"))
