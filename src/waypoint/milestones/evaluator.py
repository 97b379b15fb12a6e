"""Milestone evaluator.

Holds the active milestones, the event ledgers (all-time counters and a
bounded event history), per-milestone last-triggered times, and the
triggered-history log. Each ``evaluate()`` pass walks the milestones in
priority order and, for each one that fires, runs its snapshot and
consequences through the host callbacks before moving on to the next one.

Failure semantics: ``evaluate()`` never raises. Missing callbacks, callbacks
that report failure and callbacks that raise all end up as ``error`` strings
on the returned events and in the history log.

Concurrency: one evaluator instance has a single writer. Callers must not
run two ``evaluate()`` calls on the same instance concurrently.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from waypoint.core.config import (
    MilestoneSettings,
    StubMutation,
    UserMilestoneConfig,
)
from waypoint.core.constants import (
    DEFAULT_MAX_EVENT_HISTORY,
    DEFAULT_MAX_MILESTONE_HISTORY,
    MS_PER_HOUR,
)
from waypoint.core.logging import EvaluationContext, get_current_context, get_logger, with_context
from waypoint.milestones.consequences import apply_consequence
from waypoint.milestones.models import (
    CallbackResult,
    ConsequenceResult,
    DocumentState,
    EvaluatorState,
    EventRecord,
    GitSnapshotCallbackResult,
    GitSnapshotResult,
    MilestoneCallbacks,
    MilestoneHistoryEntry,
    MilestoneTriggeredEvent,
    SnapshotOutcome,
)
from waypoint.milestones.scope import matches_scope
from waypoint.milestones.templating import build_template_variables
from waypoint.milestones.triggers import evaluate_trigger
from waypoint.utils.time import Clock, now_ms

_logger = get_logger("milestones.evaluator")

_ResultT = TypeVar("_ResultT", bound=BaseModel)

GIT_CALLBACK_MISSING = "Git callback not configured"
PROPERTY_CALLBACK_MISSING = "Property change callback not configured"
STUB_CALLBACK_MISSING = "Stub mutation callback not configured"


def _active(milestones: Iterable[UserMilestoneConfig]) -> list[UserMilestoneConfig]:
    # sorted() is stable: equal priorities keep their configured order
    return sorted((m for m in milestones if m.enabled), key=lambda m: m.priority)


class MilestoneEvaluator:
    """Evaluates milestones for documents and executes their consequences.

    Usage::

        evaluator = MilestoneEvaluator(settings.user_milestones, callbacks)
        evaluator.record_event("suggestion_accepted")
        fired = await evaluator.evaluate("notes/a.md", state, tags=["draft"])
    """

    def __init__(
        self,
        milestones: Iterable[UserMilestoneConfig],
        callbacks: MilestoneCallbacks | None = None,
        *,
        clock: Clock = now_ms,
        max_event_history: int = DEFAULT_MAX_EVENT_HISTORY,
        max_history: int = DEFAULT_MAX_MILESTONE_HISTORY,
        git_enabled: bool = True,
    ) -> None:
        """Initialize the evaluator.

        Args:
            milestones: Configured milestones. Disabled ones are dropped.
            callbacks: Host integrations for git, property and stub changes.
            clock: Returns the current time in epoch milliseconds.
            max_event_history: Capacity of the recorded-event history.
            max_history: Capacity of the triggered-milestone history log.
            git_enabled: When False, every snapshot form is treated as 'none'.
        """
        if max_event_history < 1 or max_history < 1:
            raise ValueError("history capacities must be at least 1")
        self._milestones = _active(milestones)
        self._callbacks = callbacks or MilestoneCallbacks()
        self._clock = clock
        self._git_enabled = git_enabled
        self._max_event_history = max_event_history
        self._max_history = max_history

        self._event_counters: dict[str, int] = {}
        self._event_history: deque[EventRecord] = deque(maxlen=max_event_history)
        self._history: deque[MilestoneHistoryEntry] = deque(maxlen=max_history)
        self._last_triggered: dict[str, int] = {}

    @classmethod
    def from_settings(
        cls,
        settings: MilestoneSettings,
        callbacks: MilestoneCallbacks | None = None,
        *,
        clock: Clock = now_ms,
    ) -> MilestoneEvaluator:
        """Build an evaluator for the settings' active milestones and git switch."""
        return cls(
            settings.active_milestones(),
            callbacks,
            clock=clock,
            git_enabled=settings.git.enabled,
        )

    @property
    def milestones(self) -> list[UserMilestoneConfig]:
        """Active milestones in evaluation order."""
        return list(self._milestones)

    def update_milestones(self, milestones: Iterable[UserMilestoneConfig]) -> None:
        self._milestones = _active(milestones)

    # ─── Event ledger ────────────────────────────────────────────────────

    def record_event(self, event: str) -> None:
        """Count an event and append it to the bounded history."""
        self._event_counters[event] = self._event_counters.get(event, 0) + 1
        if len(self._event_history) == self._max_event_history:
            _logger.debug("event_history.pruned", capacity=self._max_event_history)
        self._event_history.append(EventRecord(event=event, timestamp=self._clock()))

    # ─── Evaluation ──────────────────────────────────────────────────────

    def _is_in_cooldown(self, milestone: UserMilestoneConfig, now: int) -> bool:
        if not milestone.repeatable or not milestone.cooldown_hours:
            return False
        last = self._last_triggered.get(milestone.id)
        if last is None:
            return False
        return now - last < milestone.cooldown_hours * MS_PER_HOUR

    def _already_fired(self, milestone: UserMilestoneConfig, document_path: str) -> bool:
        return any(
            h.milestone_id == milestone.id and h.document_path == document_path and h.success
            for h in self._history
        )

    async def evaluate(
        self,
        document_path: str,
        state: DocumentState,
        tags: Sequence[str] | None = None,
        properties: Mapping[str, Any] | None = None,
    ) -> list[MilestoneTriggeredEvent]:
        """Evaluate every active milestone for one document.

        Args:
            document_path: Vault-relative document path.
            state: Current document metrics.
            tags: Document tags, for tag-scoped milestones.
            properties: Document properties, for property-scoped milestones.

        Returns:
            One event per milestone that fired, in priority order.
        """
        base = get_current_context()
        ctx = EvaluationContext(
            session_id=base.session_id if base else None,
            document_path=document_path,
            component="milestones.evaluator",
        )
        triggered: list[MilestoneTriggeredEvent] = []

        with with_context(ctx):
            for milestone in self._milestones:
                event = await self._evaluate_one(milestone, document_path, state, tags, properties)
                if event is not None:
                    triggered.append(event)

        return triggered

    async def _evaluate_one(
        self,
        milestone: UserMilestoneConfig,
        document_path: str,
        state: DocumentState,
        tags: Sequence[str] | None,
        properties: Mapping[str, Any] | None,
    ) -> MilestoneTriggeredEvent | None:
        if not matches_scope(milestone, document_path, tags, properties):
            _logger.debug("milestone.skipped", milestone_id=milestone.id, reason="out_of_scope")
            return None

        now = self._clock()
        if self._is_in_cooldown(milestone, now):
            _logger.debug("milestone.skipped", milestone_id=milestone.id, reason="cooldown")
            return None

        if not milestone.repeatable and self._already_fired(milestone, document_path):
            _logger.debug("milestone.skipped", milestone_id=milestone.id, reason="already_fired")
            return None

        trigger_result = evaluate_trigger(
            milestone.trigger,
            state,
            self._event_counters,
            self._event_history,
            now_ms=now,
        )
        if not trigger_result.matched:
            if "error" in trigger_result.details:
                _logger.warning(
                    "milestone.trigger_invalid",
                    milestone_id=milestone.id,
                    details=trigger_result.details,
                )
            return None

        _logger.info(
            "milestone.triggered",
            milestone_id=milestone.id,
            milestone_name=milestone.name,
            trigger_details=trigger_result.details,
        )

        snapshot = await self._execute_snapshot(milestone, document_path, state, now)
        consequences = await self._execute_consequences(milestone, document_path, state)

        fired_at = self._clock()
        self._last_triggered[milestone.id] = fired_at

        event = MilestoneTriggeredEvent(
            milestone=milestone,
            document_path=document_path,
            trigger_result=trigger_result,
            timestamp=fired_at,
            snapshot=snapshot,
            consequences=consequences,
        )

        error = snapshot.error if snapshot is not None else None
        if error is None:
            error = next((c.error for c in consequences if c.error), None)

        self._history.append(
            MilestoneHistoryEntry(
                milestone_id=milestone.id,
                milestone_name=milestone.name,
                document_path=document_path,
                timestamp=fired_at,
                success=event.success,
                error=error,
                git_snapshot=snapshot.git_snapshot if snapshot is not None else None,
            )
        )
        return event

    async def _invoke(
        self,
        name: str,
        result_type: type[_ResultT],
        callback: Any,
        *args: Any,
    ) -> tuple[_ResultT | None, str | None]:
        """Await a host callback, converting every failure mode to an error string."""
        try:
            raw = await callback(*args)
        except Exception as e:
            _logger.exception("milestone.callback_error", callback=name, error=str(e))
            return None, f"{type(e).__name__}: {e}"

        if isinstance(raw, result_type):
            return raw, None
        try:
            return result_type.model_validate(raw), None
        except ValidationError as e:
            _logger.error("milestone.callback_error", callback=name, error=str(e))
            return None, f"Invalid {name} result: {e.error_count()} validation error(s)"

    async def _execute_snapshot(
        self,
        milestone: UserMilestoneConfig,
        document_path: str,
        state: DocumentState,
        now: int,
    ) -> SnapshotOutcome | None:
        form = milestone.snapshot_form
        if form.operation == "none":
            return None
        if not self._git_enabled:
            _logger.debug("milestone.snapshot_skipped", milestone_id=milestone.id, reason="git_disabled")
            return None

        callback = self._callbacks.execute_git_snapshot
        if callback is None:
            _logger.warning(
                "milestone.snapshot_failed",
                milestone_id=milestone.id,
                error=GIT_CALLBACK_MISSING,
            )
            return SnapshotOutcome(operation=form.operation, success=False, error=GIT_CALLBACK_MISSING)

        variables = build_template_variables(milestone, document_path, state, now)
        result, error = await self._invoke(
            "execute_git_snapshot",
            GitSnapshotCallbackResult,
            callback,
            form,
            document_path,
            variables,
        )
        if result is None:
            return SnapshotOutcome(operation=form.operation, success=False, error=error)

        if not result.success:
            error = result.error or "Snapshot operation failed"
            _logger.warning("milestone.snapshot_failed", milestone_id=milestone.id, error=error)
            return SnapshotOutcome(operation=form.operation, success=False, error=error)

        return SnapshotOutcome(
            operation=form.operation,
            success=True,
            git_snapshot=GitSnapshotResult(
                commit_sha=result.commit_sha,
                branch_name=result.branch_name,
                tag_name=result.tag_name,
                commit_message=result.commit_message,
                git_timestamp=self._clock(),
            ),
        )

    async def _execute_consequences(
        self,
        milestone: UserMilestoneConfig,
        document_path: str,
        state: DocumentState,
    ) -> list[ConsequenceResult]:
        results: list[ConsequenceResult] = []

        for consequence in milestone.consequences:
            if isinstance(consequence, StubMutation):
                result = await self._apply_stub_mutation(consequence, document_path)
            else:
                result = await self._apply_property_change(consequence, document_path, state)

            if not result.applied:
                _logger.warning(
                    "milestone.consequence_failed",
                    milestone_id=milestone.id,
                    consequence_type=consequence.type,
                    error=result.error,
                )
            results.append(result)

        return results

    async def _apply_stub_mutation(
        self,
        consequence: StubMutation,
        document_path: str,
    ) -> ConsequenceResult:
        callback = self._callbacks.apply_stub_mutation
        if callback is None:
            return ConsequenceResult(consequence, applied=False, error=STUB_CALLBACK_MISSING)

        result, error = await self._invoke(
            "apply_stub_mutation",
            CallbackResult,
            callback,
            document_path,
            consequence.filter,
            consequence.mutation,
        )
        if result is None:
            return ConsequenceResult(consequence, applied=False, error=error)
        return ConsequenceResult(consequence, applied=result.success, error=result.error)

    async def _apply_property_change(
        self,
        consequence: Any,
        document_path: str,
        state: DocumentState,
    ) -> ConsequenceResult:
        change = apply_consequence(consequence, state)
        if change is None:
            # Already at the target state
            return ConsequenceResult(consequence, applied=True)

        callback = self._callbacks.apply_property_change
        if callback is None:
            return ConsequenceResult(consequence, applied=False, error=PROPERTY_CALLBACK_MISSING)

        result, error = await self._invoke(
            "apply_property_change",
            CallbackResult,
            callback,
            document_path,
            change.property,
            change.value,
        )
        if result is None:
            return ConsequenceResult(consequence, applied=False, error=error)
        return ConsequenceResult(consequence, applied=result.success, error=result.error)

    # ─── Inspection and persistence ──────────────────────────────────────

    def get_history(self) -> list[MilestoneHistoryEntry]:
        return list(self._history)

    def get_counters(self) -> dict[str, int]:
        return dict(self._event_counters)

    def get_event_history(self) -> list[EventRecord]:
        return list(self._event_history)

    def get_last_triggered(self) -> dict[str, int]:
        return dict(self._last_triggered)

    def export_state(self) -> dict[str, Any]:
        """Export ledgers and history as plain JSON-compatible data."""
        return EvaluatorState(
            event_counters=dict(self._event_counters),
            event_history=list(self._event_history),
            history=list(self._history),
            last_triggered=dict(self._last_triggered),
        ).model_dump(mode="json")

    def import_state(self, state: EvaluatorState | Mapping[str, Any]) -> None:
        """Replace all ledgers with previously exported state.

        Histories longer than this instance's capacities keep their newest
        entries.

        Raises:
            pydantic.ValidationError: If ``state`` does not have the exported shape.
        """
        loaded = (
            state if isinstance(state, EvaluatorState) else EvaluatorState.model_validate(state)
        )
        self._event_counters = dict(loaded.event_counters)
        self._event_history = deque(loaded.event_history, maxlen=self._max_event_history)
        self._history = deque(loaded.history, maxlen=self._max_history)
        self._last_triggered = dict(loaded.last_triggered)
        _logger.debug(
            "evaluator.state_imported",
            counters=len(self._event_counters),
            history_entries=len(self._history),
        )

    def clear(self) -> None:
        """Reset counters, histories and last-triggered times."""
        self._event_counters = {}
        self._event_history.clear()
        self._history.clear()
        self._last_triggered.clear()


__all__ = [
    "GIT_CALLBACK_MISSING",
    "MilestoneEvaluator",
    "PROPERTY_CALLBACK_MISSING",
    "STUB_CALLBACK_MISSING",
]
