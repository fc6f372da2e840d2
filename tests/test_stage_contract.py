"""Tests for stage contracts and the contract registry."""

import pytest

from stage_gate.core.roles import Role
from stage_gate.core.stage_contract import (
    ActionRule,
    CounterEffect,
    DependencyLink,
    Interlock,
    Precondition,
    StageContractRegistry,
    StageDefinition,
    get_contract_registry,
    transfer,
)
from stage_gate.core.stage_state import DependencyState, StageContext


def _definition(**overrides):
    values = dict(
        stage_id="X1",
        title="Test Stage",
        status_field="test_status",
        states=("IDLE", "RUNNING", "DONE"),
        initial_status="IDLE",
        cleared_states={"DONE"},
        counters={"queued": 2, "running": 0},
        actions=(
            ActionRule(
                "START",
                roles={Role.OPERATOR},
                from_states={"IDLE"},
                to_state="RUNNING",
                effects=transfer("queued", "running"),
            ),
            ActionRule("FINISH", roles={Role.OPERATOR}, from_states={"RUNNING"}, to_state="DONE"),
        ),
    )
    values.update(overrides)
    return StageDefinition(**values)


class TestStageDefinition:
    """Tests for StageDefinition."""

    def test_initial_context(self):
        """Test that the seed context mirrors the definition."""
        definition = _definition(
            attributes={"line": "A"},
            seed_last_event="2026-01-16 09:00 IST",
            last_event_field="last_run_at",
        )
        context = definition.initial_context()

        assert context.stage_id == "X1"
        assert context.status == "IDLE"
        assert context.status_field == "test_status"
        assert context.counters == {"queued": 2, "running": 0}
        assert context.attributes == {"line": "A"}
        assert context.last_event_at == "2026-01-16 09:00 IST"
        assert context.get("last_run_at") == "2026-01-16 09:00 IST"

    def test_initial_context_is_deterministic_and_independent(self):
        """Test that two seed contexts are equal but do not share state."""
        definition = _definition()
        first = definition.initial_context()
        second = definition.initial_context()

        assert first == second
        first.counters["queued"] = 99
        assert second.counters["queued"] == 2
        assert definition.counters["queued"] == 2

    def test_every_default_seed_is_reproducible(self, registry):
        """Test that every default stage reloads to an identical seed."""
        for definition in registry.get_all_contracts().values():
            assert definition.initial_context() == definition.initial_context()

    def test_dependencies_seed_ok(self, registry):
        """Test that seed dependency flags start OK."""
        context = registry.get_contract("S10").initial_context()
        assert context.dependencies == {"registry_dependency": DependencyState.OK}

    def test_get_action(self):
        """Test looking up action rules."""
        definition = _definition()
        assert definition.action_ids == ["START", "FINISH"]
        assert definition.get_action("START").to_state == "RUNNING"
        assert definition.get_action("MISSING") is None

    def test_action_label_defaults_to_title_case(self):
        """Test that labels are derived from the action id."""
        assert ActionRule("START_SESSION").label == "Start Session"

    def test_rule_sets_are_frozen(self):
        """Test that role and state sets are normalized to frozensets."""
        rule = ActionRule("A", roles=[Role.OPERATOR], from_states="IDLE")
        assert rule.roles == frozenset({Role.OPERATOR})
        assert rule.from_states == frozenset({"IDLE"})

    def test_validate_clean(self):
        """Test that a consistent table has no problems."""
        assert _definition().validate() == []

    def test_validate_unknown_states(self):
        """Test that unknown pre- and post-states are reported."""
        definition = _definition(
            actions=(ActionRule("BAD", from_states={"NOPE"}, to_state="ALSO_NOPE"),),
        )
        problems = definition.validate()
        assert any("unknown from-state 'NOPE'" in p for p in problems)
        assert any("unknown to-state 'ALSO_NOPE'" in p for p in problems)

    def test_validate_seed_status(self):
        """Test that a seed status outside the status set is reported."""
        problems = _definition(initial_status="GONE").validate()
        assert any("seed status" in p for p in problems)

    def test_validate_undeclared_dependency(self):
        """Test that an action gated on an undeclared dependency is reported."""
        definition = _definition(actions=(ActionRule("GATED", dependency="upstream"),))
        assert any("undeclared dependency" in p for p in definition.validate())

    def test_validate_duplicate_actions(self):
        """Test that duplicate action ids are reported."""
        definition = _definition(actions=(ActionRule("A"), ActionRule("A")))
        assert "duplicate action ids" in definition.validate()


class TestPreconditionAndInterlock:
    """Tests for Precondition and Interlock."""

    def test_precondition_equals(self):
        """Test an equality precondition."""
        check = Precondition("repo", "Repo Offline", equals="ONLINE")
        context = StageContext(stage_id="X", status="IDLE", attributes={"repo": "ONLINE"})
        assert check.holds(context)
        context.attributes["repo"] = "OFFLINE"
        assert not check.holds(context)

    def test_precondition_minimum(self):
        """Test a lower-bound precondition on a counter."""
        check = Precondition("stock", "No stock", minimum=1)
        context = StageContext(stage_id="X", status="IDLE", counters={"stock": 0})
        assert not check.holds(context)
        context.counters["stock"] = 1
        assert check.holds(context)

    def test_precondition_missing_field(self):
        """Test that a missing field fails a minimum check."""
        check = Precondition("absent", "Missing", minimum=1)
        assert not check.holds(StageContext(stage_id="X", status="IDLE"))

    def test_interlock(self):
        """Test that an interlock engages on its values and skips exempt actions."""
        lock = Interlock("status", {"LOCKED"}, "Locked", exempt={"VIEW"})
        context = StageContext(stage_id="X", status="LOCKED")
        assert lock.engaged(context, "EDIT")
        assert not lock.engaged(context, "VIEW")
        context.status = "OPEN"
        assert not lock.engaged(context, "EDIT")

    def test_transfer(self):
        """Test that transfer produces a matching pair of effects."""
        assert transfer("a", "b", 2) == (CounterEffect("a", -2), CounterEffect("b", 2))


class TestStageContractRegistry:
    """Tests for StageContractRegistry."""

    def test_default_stages(self, registry):
        """Test that all eighteen stages are registered in workflow order."""
        assert registry.stage_ids() == [f"S{i}" for i in range(18)]
        assert len(registry) == 18

    def test_get_contract_case_insensitive(self, registry):
        """Test that stage ids are matched case-insensitively."""
        assert registry.get_contract("s10").stage_id == "S10"
        assert "s10" in registry
        assert "S99" not in registry

    def test_get_contract_unknown(self, registry):
        """Test that an unknown stage raises KeyError naming the stage."""
        with pytest.raises(KeyError, match="S99"):
            registry.get_contract("S99")

    def test_default_tables_are_valid(self, registry):
        """Test that every default table validates."""
        for definition in registry.get_all_contracts().values():
            assert definition.validate() == [], definition.stage_id

    def test_dependencies_point_upstream(self, registry):
        """Test that every dependency names an earlier stage."""
        order = registry.stage_ids()
        for definition in registry.get_all_contracts().values():
            for link in definition.dependencies.values():
                assert order.index(link.upstream_stage) < order.index(definition.stage_id)

    def test_get_all_contracts_returns_copy(self, registry):
        """Test that the returned mapping can be modified safely."""
        contracts = registry.get_all_contracts()
        contracts.pop("S0")
        assert "S0" in registry

    def test_singleton(self):
        """Test that get_contract_registry returns one shared instance."""
        assert get_contract_registry() is get_contract_registry()

    def test_register_custom_definition(self):
        """Test registering a definition on an empty registry."""
        registry = StageContractRegistry(load_defaults=False)
        assert len(registry) == 0
        registry.register_contract(_definition())
        assert registry.get_contract("X1").title == "Test Stage"

    def test_register_rejects_invalid_table(self):
        """Test that malformed tables are rejected at registration."""
        registry = StageContractRegistry(load_defaults=False)
        with pytest.raises(ValueError, match="X1"):
            registry.register_contract(_definition(initial_status="GONE"))

    def test_register_rejects_unknown_upstream(self):
        """Test that a dependency on an unregistered stage is rejected."""
        registry = StageContractRegistry(load_defaults=False)
        definition = _definition(dependencies={"up": DependencyLink("X0", "X0 Not Ready")})
        with pytest.raises(ValueError, match="unknown upstream stage"):
            registry.register_contract(definition)

    def test_register_rejects_self_dependency(self):
        """Test that a stage cannot depend on itself."""
        registry = StageContractRegistry(load_defaults=False)
        definition = _definition(dependencies={"me": DependencyLink("X1", "Self")})
        with pytest.raises(ValueError, match="own stage"):
            registry.register_contract(definition)
