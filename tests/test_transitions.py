"""Tests for transition handling."""

import pytest

from stage_gate.core.roles import Role
from stage_gate.core.stage_state import ActionState, DenialKind, StageContext
from stage_gate.core.transitions import TransitionOutcome, apply_transition, format_message


class TestApplyTransition:
    """Tests for apply_transition."""

    def test_moves_status_and_counters(self, registry, sink):
        """Test that START_SESSION moves one pack from queued to in progress."""
        definition = registry.get_contract("S10")
        context = definition.initial_context()

        apply_transition(definition, context, "START_SESSION", Role.ENGINEERING, sink)

        assert context.status == "PROVISIONING"
        assert context.counters["packs_queued"] == 7
        assert context.counters["packs_in_progress"] == 2

    def test_emits_exactly_one_event(self, registry, sink):
        """Test that every transition leaves one audit event."""
        definition = registry.get_contract("S10")
        context = definition.initial_context()

        event = apply_transition(definition, context, "START_SESSION", Role.ENGINEERING, sink)

        assert sink.list() == [event]
        assert event.stage_id == "S10"
        assert event.action_id == "START_SESSION"
        assert event.actor_role == "Design / Engineering"
        assert event.message == "Provisioning session started for next pack in queue"
        assert event.timestamp == "17:05:30 (IST)"
        assert event.id.startswith("evt-")

    def test_counters_clamp_at_zero(self, registry, sink):
        """Test that repeated completion never drives a counter negative."""
        definition = registry.get_contract("S10")
        context = definition.initial_context()
        context.status = "VERIFYING"

        for _ in range(5):
            apply_transition(
                definition, context, "COMPLETE_PROVISIONING", Role.SUPERVISOR, sink
            )

        assert context.status == "COMPLETED"
        assert context.counters["packs_in_progress"] == 0
        assert context.counters["packs_completed"] == 47
        assert len(sink.list()) == 5

    def test_stamps_last_event(self, registry, sink, clock):
        """Test that stamping actions overwrite the last event timestamp."""
        definition = registry.get_contract("S10")
        context = definition.initial_context()
        context.status = "VERIFYING"

        apply_transition(
            definition, context, "COMPLETE_PROVISIONING", Role.SUPERVISOR, sink, clock=clock
        )

        assert context.last_event_at == "2026-01-16 17:05 IST"
        assert context.to_dict()["last_provisioned_at"] == "2026-01-16 17:05 IST"

    def test_non_stamping_action_keeps_last_event(self, registry, sink, clock):
        """Test that other actions leave the last event timestamp alone."""
        definition = registry.get_contract("S10")
        context = definition.initial_context()

        apply_transition(
            definition, context, "START_SESSION", Role.ENGINEERING, sink, clock=clock
        )

        assert context.last_event_at == "2026-01-16 16:45 IST"

    def test_observation_only_keeps_status(self, registry, sink):
        """Test that an action without a post-state keeps the status."""
        definition = registry.get_contract("S9")
        context = definition.initial_context()
        context.status = "CHECKING"

        apply_transition(definition, context, "COMPLETE_FINAL_QA", Role.QA_ENGINEER, sink)

        assert context.status == "CHECKING"
        assert len(sink.list()) == 1

    def test_notes_are_appended(self, registry, sink):
        """Test that free-text notes reach the audit message."""
        definition = registry.get_contract("S10")
        context = definition.initial_context()

        event = apply_transition(
            definition, context, "START_SESSION", Role.ENGINEERING, sink, notes="Line 2"
        )

        assert event.message.endswith(". Notes: Line 2")

    def test_unknown_action_raises(self, registry, sink):
        """Test that an unknown action is a programming error."""
        definition = registry.get_contract("S10")
        context = definition.initial_context()

        with pytest.raises(KeyError, match="SELF_DESTRUCT"):
            apply_transition(definition, context, "SELF_DESTRUCT", Role.ENGINEERING, sink)
        assert sink.list() == []


class TestFormatMessage:
    """Tests for format_message."""

    def test_placeholders(self, registry):
        """Test that templates can name the stage, action, role and status."""
        definition = registry.get_contract("S0")
        context = StageContext(stage_id="S0", status="CONFIGURING")
        message = format_message(
            "{stage}/{action} by {role} now {status}",
            definition,
            "MANAGE_LINES",
            Role.MANAGEMENT,
            context,
            None,
        )
        assert message == "S0/MANAGE_LINES by Management / Auditor now CONFIGURING"

    def test_notes_placeholder_is_not_duplicated(self, registry):
        """Test that a template with {notes} does not get them appended again."""
        definition = registry.get_contract("S0")
        context = StageContext(stage_id="S0", status="READY")
        message = format_message(
            "Reason: {notes}", definition, "SYNC_SOP", Role.SYSTEM_ADMIN, context, "audit"
        )
        assert message == "Reason: audit"


class TestTransitionOutcome:
    """Tests for TransitionOutcome."""

    def test_rejected_to_dict(self):
        """Test serializing a rejected outcome."""
        outcome = TransitionOutcome(
            accepted=False, state=ActionState.deny("Admin Only", DenialKind.ROLE)
        )
        assert outcome.reason == "Admin Only"
        assert outcome.to_dict()["event"] is None
