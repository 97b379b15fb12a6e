"""Power-law sampling of QA events.

Snapshots are captured when an event's occurrence count reaches a
checkpoint: 1, 2, 4, ... 512, 1000, then every multiple of 1000. Storage
grows logarithmically with occurrences while early, rare occurrences keep
full resolution. Each (key, checkpoint) pair is captured at most once.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from typing import Any

from waypoint.core.constants import (
    DEFAULT_MAX_SNAPSHOTS_PER_TYPE,
    LINEAR_CHECKPOINT_INTERVAL,
    POWER_CHECKPOINTS,
)
from waypoint.core.logging import get_logger
from waypoint.qa.models import (
    CaptureDecision,
    QAMilestoneEvent,
    QAMilestoneSnapshot,
    SamplerState,
    SamplerStats,
    event_name,
)

_logger = get_logger("qa.sampler")

_POWER_SET = frozenset(POWER_CHECKPOINTS)
_LINEAR_START = POWER_CHECKPOINTS[-1]


def is_checkpoint(value: int) -> bool:
    """Whether ``value`` is a sampling checkpoint."""
    if value in _POWER_SET:
        return True
    return value > _LINEAR_START and value % LINEAR_CHECKPOINT_INTERVAL == 0


def counter_key(event: QAMilestoneEvent | str, sub_key: str | None = None) -> str:
    name = event_name(event)
    return f"{name}:{sub_key}" if sub_key else name


class PowerLawSampler:
    """Counts events and decides which occurrences to snapshot.

    Snapshots are kept in a per-event ring buffer; the oldest is evicted
    once ``max_snapshots_per_type`` is reached.
    """

    def __init__(self, max_snapshots_per_type: int = DEFAULT_MAX_SNAPSHOTS_PER_TYPE) -> None:
        if max_snapshots_per_type < 1:
            raise ValueError(
                f"max_snapshots_per_type must be at least 1, got {max_snapshots_per_type}"
            )
        self._max_snapshots = max_snapshots_per_type
        self._counters: dict[str, int] = {}
        self._captured: set[str] = set()
        self._snapshots: dict[str, deque[QAMilestoneSnapshot]] = {}

    @property
    def max_snapshots_per_type(self) -> int:
        return self._max_snapshots

    def should_capture(self, key: str, value: int) -> bool:
        """Return True the first time ``value`` is a checkpoint for ``key``."""
        if not is_checkpoint(value):
            return False
        checkpoint = f"{key}:{value}"
        if checkpoint in self._captured:
            return False
        self._captured.add(checkpoint)
        return True

    def increment_and_check(
        self,
        event: QAMilestoneEvent | str,
        sub_key: str | None = None,
    ) -> CaptureDecision:
        key = counter_key(event, sub_key)
        count = self._counters.get(key, 0) + 1
        self._counters[key] = count
        return CaptureDecision(should_capture=self.should_capture(key, count), count=count)

    def record_snapshot(self, snapshot: QAMilestoneSnapshot) -> None:
        buffer = self._snapshots.get(snapshot.event)
        if buffer is None:
            buffer = deque(maxlen=self._max_snapshots)
            self._snapshots[snapshot.event] = buffer
        if len(buffer) == self._max_snapshots:
            _logger.debug(
                "qa.snapshot_evicted",
                qa_event=snapshot.event,
                evicted_occurrence=buffer[0].occurrence_number,
            )
        buffer.append(snapshot)
        _logger.debug(
            "qa.snapshot_recorded",
            qa_event=snapshot.event,
            occurrence=snapshot.occurrence_number,
            document_path=snapshot.document_path,
        )

    def get_snapshots(self, event: QAMilestoneEvent | str) -> list[QAMilestoneSnapshot]:
        return list(self._snapshots.get(event_name(event), ()))

    def get_all_snapshots(self) -> list[QAMilestoneSnapshot]:
        """All snapshots across event types, oldest first."""
        snapshots = [s for buffer in self._snapshots.values() for s in buffer]
        return sorted(snapshots, key=lambda s: s.timestamp)

    def get_count(self, event: QAMilestoneEvent | str, sub_key: str | None = None) -> int:
        return self._counters.get(counter_key(event, sub_key), 0)

    def get_all_counters(self) -> dict[str, int]:
        return dict(self._counters)

    def get_stats(self) -> SamplerStats:
        by_event = {event: len(buffer) for event, buffer in self._snapshots.items()}
        return SamplerStats(
            total_counters=len(self._counters),
            total_checkpoints_captured=len(self._captured),
            total_snapshots=sum(by_event.values()),
            snapshots_by_event=by_event,
            counters=self.get_all_counters(),
        )

    def export_state(self) -> dict[str, Any]:
        """Export counters, captured checkpoints and snapshots as JSON-compatible data."""
        return SamplerState(
            counters=dict(self._counters),
            captured_checkpoints=sorted(self._captured),
            snapshots={event: list(buffer) for event, buffer in self._snapshots.items()},
        ).model_dump(mode="json")

    def import_state(self, state: SamplerState | Mapping[str, Any]) -> None:
        """Replace all state with a previous export.

        Snapshot buffers longer than this sampler's capacity keep their newest
        entries.

        Raises:
            pydantic.ValidationError: If ``state`` does not have the exported shape.
        """
        loaded = state if isinstance(state, SamplerState) else SamplerState.model_validate(state)
        self._counters = dict(loaded.counters)
        self._captured = set(loaded.captured_checkpoints)
        self._snapshots = {
            event: deque(snapshots, maxlen=self._max_snapshots)
            for event, snapshots in loaded.snapshots.items()
        }

    def clear(self) -> None:
        self._counters.clear()
        self._captured.clear()
        self._snapshots.clear()


__all__ = ["PowerLawSampler", "counter_key", "is_checkpoint"]
