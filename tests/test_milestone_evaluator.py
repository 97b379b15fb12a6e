"""Tests for waypoint.milestones.evaluator module.

Covers the evaluation pass (scope, cooldown, already-fired and trigger
gates), priority ordering, snapshot and consequence dispatch through
callbacks, failure reporting for missing, failing and raising callbacks,
bounded ledgers, and export/import round trips.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from tests.helpers import FakeClock, make_milestone, make_state
from waypoint.core.config import MilestoneSettings
from waypoint.core.constants import MS_PER_HOUR
from waypoint.milestones.evaluator import (
    GIT_CALLBACK_MISSING,
    PROPERTY_CALLBACK_MISSING,
    STUB_CALLBACK_MISSING,
    MilestoneEvaluator,
)
from waypoint.milestones.models import (
    CallbackResult,
    DocumentState,
    EvaluatorState,
    GitSnapshotCallbackResult,
    MilestoneCallbacks,
)


# ─── Helpers ──────────────────────────────────────────────────────────

COMMIT_FORM = {"operation": "commit", "message_template": "milestone: {{document}}"}
AUDIENCE_PUBLIC = {"type": "property_enum_change", "property": "audience", "value": "public"}
RESOLVE_STUBS = {
    "type": "stub_mutation",
    "filter": {"type": "source"},
    "mutation": {"action": "resolve"},
}


def _ready() -> DocumentState:
    return make_state("notes/doc.md", refinement=0.8)


# ─── Basic firing ─────────────────────────────────────────────────────


class TestEvaluateBasics:
    """Tests for matching, ordering and event contents."""

    @pytest.mark.asyncio
    async def test_unmatched_trigger_returns_empty(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone()], clock=clock)
        assert await evaluator.evaluate("notes/doc.md", make_state(refinement=0.2)) == []
        assert evaluator.get_history() == []

    @pytest.mark.asyncio
    async def test_matched_milestone_fires(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone()], clock=clock)
        events = await evaluator.evaluate("notes/doc.md", _ready())

        assert len(events) == 1
        event = events[0]
        assert event.milestone.id == "m1"
        assert event.document_path == "notes/doc.md"
        assert event.timestamp == clock.now
        assert event.snapshot is None
        assert event.consequences == []
        assert event.success is True
        assert event.trigger_result.matched is True

    @pytest.mark.asyncio
    async def test_fires_in_priority_order_and_continues(self, clock: FakeClock):
        """Every matching milestone fires, lowest priority value first."""
        milestones = [
            make_milestone("late", priority=50),
            make_milestone("early", priority=5),
            make_milestone("tie-a", priority=20),
            make_milestone("tie-b", priority=20),
        ]
        evaluator = MilestoneEvaluator(milestones, clock=clock)
        events = await evaluator.evaluate("notes/doc.md", _ready())
        assert [e.milestone.id for e in events] == ["early", "tie-a", "tie-b", "late"]

    @pytest.mark.asyncio
    async def test_disabled_milestones_are_ignored(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone(enabled=False)], clock=clock)
        assert evaluator.milestones == []
        assert await evaluator.evaluate("notes/doc.md", _ready()) == []

    @pytest.mark.asyncio
    async def test_scope_mismatch_skips(self, clock: FakeClock):
        milestone = make_milestone(scope={"mode": "folder", "folder_pattern": "projects/**"})
        evaluator = MilestoneEvaluator([milestone], clock=clock)
        assert await evaluator.evaluate("notes/doc.md", _ready()) == []
        assert len(await evaluator.evaluate("projects/doc.md", _ready())) == 1

    @pytest.mark.asyncio
    async def test_tag_scope_uses_tags_argument(self, clock: FakeClock):
        milestone = make_milestone(scope={"mode": "tag", "tag": "essay"})
        evaluator = MilestoneEvaluator([milestone], clock=clock)
        assert await evaluator.evaluate("a.md", _ready()) == []
        assert len(await evaluator.evaluate("a.md", _ready(), tags=["essay"])) == 1

    @pytest.mark.asyncio
    async def test_update_milestones_replaces_set(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone("a")], clock=clock)
        evaluator.update_milestones([make_milestone("b", priority=1), make_milestone("c", enabled=False)])
        assert [m.id for m in evaluator.milestones] == ["b"]

    def test_from_settings_uses_active_milestones_and_git_switch(self):
        settings = MilestoneSettings.model_validate({
            "user_milestones": [
                {"id": "on", "name": "On", "trigger": {"type": "event_count", "event": "e", "count": 1}},
                {"id": "off", "name": "Off", "enabled": False,
                 "trigger": {"type": "event_count", "event": "e", "count": 1}},
            ],
        })
        evaluator = MilestoneEvaluator.from_settings(settings)
        assert [m.id for m in evaluator.milestones] == ["on"]
        assert evaluator._git_enabled is False

    def test_invalid_capacity_rejected(self):
        with pytest.raises(ValueError):
            MilestoneEvaluator([], max_history=0)


# ─── Repeat gates ─────────────────────────────────────────────────────


class TestRepeatGates:
    """Tests for non-repeatable history checks and cooldowns."""

    @pytest.mark.asyncio
    async def test_non_repeatable_fires_once_per_document(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone()], clock=clock)
        assert len(await evaluator.evaluate("notes/doc.md", _ready())) == 1
        assert await evaluator.evaluate("notes/doc.md", _ready()) == []

    @pytest.mark.asyncio
    async def test_non_repeatable_fires_for_other_document(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone()], clock=clock)
        await evaluator.evaluate("a.md", _ready())
        assert len(await evaluator.evaluate("b.md", _ready())) == 1

    @pytest.mark.asyncio
    async def test_failed_firing_does_not_block_retry(self, clock: FakeClock):
        """Only successful history entries count as already fired."""
        milestone = make_milestone(consequences=[AUDIENCE_PUBLIC])
        evaluator = MilestoneEvaluator([milestone], clock=clock)

        first = await evaluator.evaluate("a.md", _ready())
        assert first[0].success is False
        assert len(await evaluator.evaluate("a.md", _ready())) == 1

    @pytest.mark.asyncio
    async def test_repeatable_without_cooldown_fires_every_time(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone(repeatable=True)], clock=clock)
        for _ in range(3):
            assert len(await evaluator.evaluate("a.md", _ready())) == 1
        assert len(evaluator.get_history()) == 3

    @pytest.mark.asyncio
    async def test_cooldown_blocks_until_elapsed(self, clock: FakeClock):
        """A 24h cooldown blocks re-firing within 24h and allows it after."""
        milestone = make_milestone(repeatable=True, cooldown_hours=24)
        evaluator = MilestoneEvaluator([milestone], clock=clock)

        assert len(await evaluator.evaluate("a.md", _ready())) == 1
        clock.advance(24 * MS_PER_HOUR - 1)
        assert await evaluator.evaluate("a.md", _ready()) == []
        clock.advance(1)
        assert len(await evaluator.evaluate("a.md", _ready())) == 1

    @pytest.mark.asyncio
    async def test_cooldown_is_per_milestone_across_documents(self, clock: FakeClock):
        milestone = make_milestone(repeatable=True, cooldown_hours=1)
        evaluator = MilestoneEvaluator([milestone], clock=clock)
        await evaluator.evaluate("a.md", _ready())
        assert await evaluator.evaluate("b.md", _ready()) == []

    @pytest.mark.asyncio
    async def test_cooldown_from_imported_last_triggered(self, clock: FakeClock):
        milestone = make_milestone(repeatable=True, cooldown_hours=24)
        evaluator = MilestoneEvaluator([milestone], clock=clock)
        evaluator.import_state({"last_triggered": {"m1": clock.now - 23 * MS_PER_HOUR}})
        assert await evaluator.evaluate("a.md", _ready()) == []
        evaluator.import_state({"last_triggered": {"m1": clock.now - 25 * MS_PER_HOUR}})
        assert len(await evaluator.evaluate("a.md", _ready())) == 1


# ─── Events ───────────────────────────────────────────────────────────


class TestEventLedger:
    """Tests for record_event and event-driven triggers."""

    def test_record_event_counts_and_timestamps(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([], clock=clock)
        evaluator.record_event("accepted")
        clock.advance(5)
        evaluator.record_event("accepted")
        assert evaluator.get_counters() == {"accepted": 2}
        assert [e.timestamp for e in evaluator.get_event_history()] == [clock.now - 5, clock.now]

    def test_event_history_is_bounded_counters_are_not(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([], clock=clock, max_event_history=3)
        for i in range(5):
            evaluator.record_event(f"e{i}")
        assert [e.event for e in evaluator.get_event_history()] == ["e2", "e3", "e4"]
        assert len(evaluator.get_counters()) == 5

    @pytest.mark.asyncio
    async def test_windowed_event_count_uses_clock(self, clock: FakeClock):
        milestone = make_milestone(
            trigger={"type": "event_count", "event": "accepted", "count": 2, "window_hours": 1},
            repeatable=True,
        )
        evaluator = MilestoneEvaluator([milestone], clock=clock)
        evaluator.record_event("accepted")
        evaluator.record_event("accepted")
        assert len(await evaluator.evaluate("a.md", make_state())) == 1

        clock.advance(MS_PER_HOUR + 1)
        assert await evaluator.evaluate("a.md", make_state()) == []

    def test_accessors_return_copies(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([], clock=clock)
        evaluator.record_event("x")
        evaluator.get_counters()["x"] = 99
        evaluator.get_event_history().clear()
        assert evaluator.get_counters() == {"x": 1}
        assert len(evaluator.get_event_history()) == 1


# ─── Snapshots ────────────────────────────────────────────────────────


class TestSnapshots:
    """Tests for git snapshot dispatch."""

    @pytest.mark.asyncio
    async def test_snapshot_callback_receives_rendered_inputs(
        self, clock: FakeClock, callbacks: MilestoneCallbacks
    ):
        milestone = make_milestone(name="Ready", snapshot_form=COMMIT_FORM)
        evaluator = MilestoneEvaluator([milestone], callbacks, clock=clock)

        events = await evaluator.evaluate("notes/essay.md", make_state(refinement=0.8))

        callbacks.execute_git_snapshot.assert_awaited_once()
        form, path, variables = callbacks.execute_git_snapshot.await_args.args
        assert form.operation == "commit"
        assert path == "notes/essay.md"
        assert variables == {
            "document": "essay",
            "refinement": "0.80",
            "milestone": "Ready",
            "date": "2023-11-14",
        }
        snapshot = events[0].snapshot
        assert snapshot is not None and snapshot.success
        assert snapshot.git_snapshot.commit_sha == "abc1234def"

        entry = evaluator.get_history()[0]
        assert entry.success is True
        assert entry.git_snapshot.commit_sha == "abc1234def"
        assert entry.git_snapshot.git_timestamp == clock.now

    @pytest.mark.asyncio
    async def test_operation_none_skips_git(self, clock: FakeClock, callbacks: MilestoneCallbacks):
        evaluator = MilestoneEvaluator([make_milestone()], callbacks, clock=clock)
        events = await evaluator.evaluate("a.md", _ready())
        callbacks.execute_git_snapshot.assert_not_awaited()
        assert events[0].snapshot is None
        assert events[0].success is True

    @pytest.mark.asyncio
    async def test_git_disabled_skips_git(self, clock: FakeClock, callbacks: MilestoneCallbacks):
        milestone = make_milestone(snapshot_form=COMMIT_FORM)
        evaluator = MilestoneEvaluator([milestone], callbacks, clock=clock, git_enabled=False)
        events = await evaluator.evaluate("a.md", _ready())
        callbacks.execute_git_snapshot.assert_not_awaited()
        assert events[0].snapshot is None

    @pytest.mark.asyncio
    async def test_missing_git_callback_is_recorded(self, clock: FakeClock):
        milestone = make_milestone(snapshot_form=COMMIT_FORM)
        evaluator = MilestoneEvaluator([milestone], clock=clock)

        events = await evaluator.evaluate("a.md", _ready())

        assert events[0].success is False
        assert events[0].snapshot.error == GIT_CALLBACK_MISSING
        entry = evaluator.get_history()[0]
        assert entry.success is False
        assert entry.error == GIT_CALLBACK_MISSING

    @pytest.mark.asyncio
    async def test_reported_git_failure_is_recorded(self, clock: FakeClock):
        callbacks = MilestoneCallbacks(
            execute_git_snapshot=AsyncMock(
                return_value=GitSnapshotCallbackResult(success=False, error="nothing to commit")
            )
        )
        evaluator = MilestoneEvaluator(
            [make_milestone(snapshot_form=COMMIT_FORM)], callbacks, clock=clock
        )
        await evaluator.evaluate("a.md", _ready())
        assert evaluator.get_history()[0].error == "nothing to commit"

    @pytest.mark.asyncio
    async def test_raising_git_callback_is_recorded_not_raised(self, clock: FakeClock):
        callbacks = MilestoneCallbacks(
            execute_git_snapshot=AsyncMock(side_effect=RuntimeError("repo locked"))
        )
        evaluator = MilestoneEvaluator(
            [make_milestone(snapshot_form=COMMIT_FORM)], callbacks, clock=clock
        )
        events = await evaluator.evaluate("a.md", _ready())
        assert events[0].snapshot.error == "RuntimeError: repo locked"
        assert evaluator.get_history()[0].error == "RuntimeError: repo locked"

    @pytest.mark.asyncio
    async def test_dict_result_is_accepted(self, clock: FakeClock):
        callbacks = MilestoneCallbacks(
            execute_git_snapshot=AsyncMock(
                return_value={"success": True, "commit_sha": "f00", "tag_name": "v1"}
            )
        )
        evaluator = MilestoneEvaluator(
            [make_milestone(snapshot_form={"operation": "tag", "tag_pattern": "{{document}}"})],
            callbacks,
            clock=clock,
        )
        events = await evaluator.evaluate("a.md", _ready())
        assert events[0].success is True
        assert events[0].snapshot.git_snapshot.tag_name == "v1"


# ─── Consequences ─────────────────────────────────────────────────────


class TestConsequences:
    """Tests for consequence dispatch and failure reporting."""

    @pytest.mark.asyncio
    async def test_property_change_dispatched(self, clock: FakeClock, callbacks: MilestoneCallbacks):
        milestone = make_milestone(
            consequences=[AUDIENCE_PUBLIC, {"type": "refinement_bump", "delta": 0.8, "max": 1.0}]
        )
        evaluator = MilestoneEvaluator([milestone], callbacks, clock=clock)

        events = await evaluator.evaluate("a.md", make_state(refinement=0.75))

        calls = [c.args for c in callbacks.apply_property_change.await_args_list]
        assert calls == [("a.md", "audience", "public"), ("a.md", "refinement", 1.0)]
        assert all(c.applied for c in events[0].consequences)
        assert events[0].success is True

    @pytest.mark.asyncio
    async def test_noop_change_applies_without_callback(
        self, clock: FakeClock, callbacks: MilestoneCallbacks
    ):
        milestone = make_milestone(
            consequences=[{"type": "array_mutation", "property": "tags", "operation": "add", "value": "x"}]
        )
        evaluator = MilestoneEvaluator([milestone], callbacks, clock=clock)
        events = await evaluator.evaluate("a.md", make_state(refinement=0.8, tags=["x"]))
        callbacks.apply_property_change.assert_not_awaited()
        assert events[0].consequences[0].applied is True

    @pytest.mark.asyncio
    async def test_stub_mutation_goes_to_stub_callback(
        self, clock: FakeClock, callbacks: MilestoneCallbacks
    ):
        evaluator = MilestoneEvaluator(
            [make_milestone(consequences=[RESOLVE_STUBS])], callbacks, clock=clock
        )
        await evaluator.evaluate("a.md", _ready())

        callbacks.apply_property_change.assert_not_awaited()
        path, stub_filter, mutation = callbacks.apply_stub_mutation.await_args.args
        assert path == "a.md"
        assert stub_filter.type == "source"
        assert mutation.action == "resolve"

    @pytest.mark.asyncio
    async def test_missing_callbacks_recorded_per_consequence(self, clock: FakeClock):
        milestone = make_milestone(consequences=[AUDIENCE_PUBLIC, RESOLVE_STUBS])
        evaluator = MilestoneEvaluator([milestone], clock=clock)

        events = await evaluator.evaluate("a.md", _ready())

        errors = [c.error for c in events[0].consequences]
        assert errors == [PROPERTY_CALLBACK_MISSING, STUB_CALLBACK_MISSING]
        assert evaluator.get_history()[0].error == PROPERTY_CALLBACK_MISSING

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_siblings_or_later_milestones(self, clock: FakeClock):
        property_cb = AsyncMock(
            side_effect=[
                CallbackResult(success=False, error="frontmatter locked"),
                CallbackResult(success=True),
                CallbackResult(success=True),
            ]
        )
        callbacks = MilestoneCallbacks(apply_property_change=property_cb)
        first = make_milestone(
            "first",
            priority=1,
            consequences=[AUDIENCE_PUBLIC, {"type": "property_enum_change", "property": "form", "value": "essay"}],
        )
        second = make_milestone("second", priority=2, consequences=[AUDIENCE_PUBLIC])
        evaluator = MilestoneEvaluator([first, second], callbacks, clock=clock)

        events = await evaluator.evaluate("a.md", _ready())

        assert [e.success for e in events] == [False, True]
        assert [c.applied for c in events[0].consequences] == [False, True]
        assert property_cb.await_count == 3
        assert evaluator.get_history()[0].error == "frontmatter locked"

    @pytest.mark.asyncio
    async def test_snapshot_error_takes_precedence_in_history(self, clock: FakeClock):
        callbacks = MilestoneCallbacks(
            apply_property_change=AsyncMock(return_value={"success": False, "error": "prop"})
        )
        milestone = make_milestone(snapshot_form=COMMIT_FORM, consequences=[AUDIENCE_PUBLIC])
        evaluator = MilestoneEvaluator([milestone], callbacks, clock=clock)
        await evaluator.evaluate("a.md", _ready())
        assert evaluator.get_history()[0].error == GIT_CALLBACK_MISSING

    @pytest.mark.asyncio
    async def test_invalid_callback_result_is_a_failure(self, clock: FakeClock):
        callbacks = MilestoneCallbacks(apply_property_change=AsyncMock(return_value={"ok": 1}))
        evaluator = MilestoneEvaluator(
            [make_milestone(consequences=[AUDIENCE_PUBLIC])], callbacks, clock=clock
        )
        events = await evaluator.evaluate("a.md", _ready())
        result = events[0].consequences[0]
        assert result.applied is False
        assert result.error.startswith("Invalid apply_property_change result")


# ─── History and persistence ──────────────────────────────────────────


class TestHistoryAndState:
    """Tests for bounded history and export/import."""

    @pytest.mark.asyncio
    async def test_history_is_bounded(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone(repeatable=True)], clock=clock, max_history=2)
        for _ in range(3):
            clock.advance(1)
            await evaluator.evaluate("a.md", _ready())
        timestamps = [h.timestamp for h in evaluator.get_history()]
        assert timestamps == [clock.now - 1, clock.now]

    @pytest.mark.asyncio
    async def test_last_triggered_recorded(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone()], clock=clock)
        await evaluator.evaluate("a.md", _ready())
        assert evaluator.get_last_triggered() == {"m1": clock.now}

    @pytest.mark.asyncio
    async def test_export_import_round_trip(self, clock: FakeClock):
        """A fresh evaluator restored from an export keeps counters and refuses re-firing."""
        milestone = make_milestone()
        evaluator = MilestoneEvaluator([milestone], clock=clock)
        evaluator.record_event("accepted")
        evaluator.record_event("rejected")
        assert len(await evaluator.evaluate("a.md", _ready())) == 1

        exported = evaluator.export_state()
        assert set(exported) == {"event_counters", "event_history", "history", "last_triggered"}

        restored = MilestoneEvaluator([milestone], clock=clock)
        restored.import_state(exported)

        assert restored.get_counters() == {"accepted": 1, "rejected": 1}
        assert restored.get_history() == evaluator.get_history()
        assert await restored.evaluate("a.md", _ready()) == []

    def test_import_truncates_to_capacity(self, clock: FakeClock):
        state = EvaluatorState.model_validate({
            "event_history": [{"event": f"e{i}", "timestamp": i} for i in range(5)],
        })
        evaluator = MilestoneEvaluator([], clock=clock, max_event_history=2)
        evaluator.import_state(state)
        assert [e.event for e in evaluator.get_event_history()] == ["e3", "e4"]

    def test_import_rejects_wrong_shape(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([], clock=clock)
        with pytest.raises(ValueError):
            evaluator.import_state({"event_counters": {"x": "many"}})

    @pytest.mark.asyncio
    async def test_clear_resets_everything(self, clock: FakeClock):
        evaluator = MilestoneEvaluator([make_milestone()], clock=clock)
        evaluator.record_event("x")
        await evaluator.evaluate("a.md", _ready())
        evaluator.clear()
        assert evaluator.get_counters() == {}
        assert evaluator.get_event_history() == []
        assert evaluator.get_history() == []
        assert evaluator.get_last_triggered() == {}
        assert len(await evaluator.evaluate("a.md", _ready())) == 1
