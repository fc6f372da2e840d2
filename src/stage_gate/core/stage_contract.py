#!/usr/bin/env python3
"""
Stage Contracts for Stage Gate

Every stage is data, not code: a StageDefinition lists the stage's status set,
its seed context, its upstream dependency links, its interlocks and one
ActionRule per action. The guard, the transition handler and the dependency
resolver are generic and read these tables.

StageContractRegistry keeps the definitions in workflow order and rejects
malformed tables at registration time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .roles import Role
from .stage_state import DependencyState, StageContext


def _frozen(values: Iterable[Any] | None) -> frozenset | None:
    if values is None:
        return None
    if isinstance(values, str):
        return frozenset([values])
    return frozenset(values)


@dataclass(frozen=True)
class CounterEffect:
    """Signed adjustment of one counter, applied by a transition."""
    counter: str
    delta: int


def transfer(source: str, target: str, amount: int = 1) -> tuple[CounterEffect, CounterEffect]:
    """Move `amount` units from one counter to another."""
    return CounterEffect(source, -amount), CounterEffect(target, amount)


@dataclass(frozen=True)
class Precondition:
    """
    Action-level check on a counter or attribute.

    The check passes when the field equals `equals` (if given) and is at
    least `minimum` (if given).

    Attributes:
        field: Context field to read
        reason: Denial message when the check fails
        equals: Required value
        minimum: Required lower bound (inclusive)
    """
    field: str
    reason: str
    equals: Any = None
    minimum: int | None = None

    def holds(self, context: StageContext) -> bool:
        """Check the condition against a context."""
        value = context.get(self.field)
        if self.equals is not None and value != self.equals:
            return False
        if self.minimum is not None:
            if not isinstance(value, (int, float)) or value < self.minimum:
                return False
        return True


@dataclass(frozen=True)
class Interlock:
    """
    Stage-wide lock.

    While `field` holds one of `values`, every action not listed in `exempt`
    is denied with `reason`.
    """
    field: str
    values: frozenset
    reason: str
    exempt: frozenset = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _frozen(self.values))
        object.__setattr__(self, "exempt", _frozen(self.exempt))

    def engaged(self, context: StageContext, action_id: str) -> bool:
        """Check if the lock denies an action in a context."""
        if action_id in self.exempt:
            return False
        value = context.get(self.field)
        if isinstance(value, DependencyState):
            value = value.value
        return value in self.values


@dataclass(frozen=True)
class DependencyLink:
    """Upstream stage that owns one dependency field of a downstream stage."""
    upstream_stage: str
    reason: str


@dataclass(frozen=True)
class ActionRule:
    """
    Declarative rule for one action of a stage.

    Attributes:
        action_id: Action identifier (e.g. "START_SESSION")
        roles: Roles allowed besides the administrator (None = any role)
        from_states: Required pre-states (None = any state)
        to_state: Post-state (None keeps the status)
        role_reason: Denial message for a role mismatch
        state_reason: Denial message for a state mismatch, may use {status}
        dependency: Dependency field that gates this action
        preconditions: Checks evaluated after the state check
        effects: Counter adjustments applied by the transition
        stamps_event: Whether the transition overwrites the last event timestamp
        message: Audit message template ({stage}, {action}, {role}, {status}, {notes})
        label: Human-readable action name
    """
    action_id: str
    roles: frozenset | None = None
    from_states: frozenset | None = None
    to_state: str | None = None
    role_reason: str = "Access Denied"
    state_reason: str = "Invalid State: {status}"
    dependency: str | None = None
    preconditions: tuple[Precondition, ...] = ()
    effects: tuple[CounterEffect, ...] = ()
    stamps_event: bool = False
    message: str = "{action} performed by {role}"
    label: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", _frozen(self.roles))
        object.__setattr__(self, "from_states", _frozen(self.from_states))
        object.__setattr__(self, "preconditions", tuple(self.preconditions))
        object.__setattr__(self, "effects", tuple(self.effects))
        if not self.label:
            object.__setattr__(self, "label", self.action_id.replace("_", " ").title())

    @property
    def observation_only(self) -> bool:
        """Check if the action keeps the status."""
        return self.to_state is None

    def allows_role(self, role: Role) -> bool:
        """Check the role predicate; the administrator always passes."""
        if role.is_admin or self.roles is None:
            return True
        return role in self.roles

    def allows_state(self, status: str) -> bool:
        """Check the pre-state set."""
        return self.from_states is None or status in self.from_states


@dataclass
class StageDefinition:
    """
    Declarative description of one stage.

    Attributes:
        stage_id: Stage identifier ("S0" .. "S17")
        title: Display name
        status_field: Name of the lifecycle status field
        states: Every status the stage can hold
        initial_status: Seed status
        cleared_states: Statuses that count as OK for downstream stages
        actions: Action rules in display order
        counters: Seed counters
        attributes: Seed attributes
        dependencies: Dependency field -> upstream link
        interlocks: Stage-wide locks
        last_event_field: Name of the last event timestamp field
        seed_last_event: Seed last event timestamp
    """
    stage_id: str
    title: str
    status_field: str
    states: tuple[str, ...]
    initial_status: str
    cleared_states: frozenset
    actions: tuple[ActionRule, ...] = ()
    counters: dict[str, int] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)
    dependencies: dict[str, DependencyLink] = field(default_factory=dict)
    interlocks: tuple[Interlock, ...] = ()
    last_event_field: str = "last_event_at"
    seed_last_event: str = ""

    def __post_init__(self) -> None:
        self.states = tuple(self.states)
        self.cleared_states = _frozen(self.cleared_states)
        self.actions = tuple(self.actions)
        self.interlocks = tuple(self.interlocks)
        self._rules = {rule.action_id: rule for rule in self.actions}

    @property
    def action_ids(self) -> list[str]:
        """Action identifiers in display order."""
        return [rule.action_id for rule in self.actions]

    def get_action(self, action_id: str) -> ActionRule | None:
        """Look up an action rule, None when the stage has no such action."""
        return self._rules.get(action_id)

    def initial_context(self) -> StageContext:
        """
        Build the deterministic seed context.

        Every dependency flag starts OK. Two calls return equal but
        independent contexts.
        """
        return StageContext(
            stage_id=self.stage_id,
            status=self.initial_status,
            status_field=self.status_field,
            counters=dict(self.counters),
            dependencies={name: DependencyState.OK for name in self.dependencies},
            attributes=dict(self.attributes),
            last_event_at=self.seed_last_event,
            last_event_field=self.last_event_field,
        )

    def validate(self) -> list[str]:
        """
        Check the table for internal consistency.

        Returns:
            List of problems (empty when the table is valid)
        """
        problems: list[str] = []
        known = set(self.states)

        if self.initial_status not in known:
            problems.append(f"seed status {self.initial_status!r} not in {self.states}")
        for status in sorted(self.cleared_states - known):
            problems.append(f"cleared state {status!r} not in {self.states}")
        if len(self._rules) != len(self.actions):
            problems.append("duplicate action ids")

        for rule in self.actions:
            for status in sorted((rule.from_states or frozenset()) - known):
                problems.append(f"{rule.action_id}: unknown from-state {status!r}")
            if rule.to_state is not None and rule.to_state not in known:
                problems.append(f"{rule.action_id}: unknown to-state {rule.to_state!r}")
            if rule.dependency is not None and rule.dependency not in self.dependencies:
                problems.append(f"{rule.action_id}: undeclared dependency {rule.dependency!r}")

        for lock in self.interlocks:
            for action_id in sorted(lock.exempt - set(self._rules)):
                problems.append(f"interlock on {lock.field!r}: unknown exempt action {action_id!r}")

        return problems

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "stage_id": self.stage_id,
            "title": self.title,
            "status_field": self.status_field,
            "states": list(self.states),
            "initial_status": self.initial_status,
            "cleared_states": sorted(self.cleared_states),
            "dependencies": {
                name: link.upstream_stage for name, link in self.dependencies.items()
            },
            "actions": self.action_ids,
        }


class StageContractRegistry:
    """
    Registry of stage definitions in workflow order.

    Provides centralized access to the stage tables. A new registry starts
    with the eighteen default stages unless `load_defaults` is False.
    """

    def __init__(self, load_defaults: bool = True) -> None:
        """Initialize the registry, optionally with the default stages."""
        self._contracts: dict[str, StageDefinition] = {}
        if load_defaults:
            self._register_default_contracts()

    def _register_default_contracts(self) -> None:
        """Register the default definitions for all stages."""
        from ..stages import default_stage_definitions

        for definition in default_stage_definitions():
            self.register_contract(definition)

    def get_contract(self, stage_id: str) -> StageDefinition:
        """
        Get the definition for a stage.

        Args:
            stage_id: Stage identifier

        Returns:
            StageDefinition for the stage

        Raises:
            KeyError: If no definition is registered for the stage
        """
        key = stage_id.upper() if isinstance(stage_id, str) else stage_id
        if key not in self._contracts:
            raise KeyError(f"No contract registered for stage: {stage_id}")
        return self._contracts[key]

    def register_contract(self, definition: StageDefinition) -> None:
        """
        Register or override a stage definition.

        Args:
            definition: The definition to register

        Raises:
            ValueError: If the table is malformed or names an unknown upstream stage
        """
        problems = definition.validate()
        for name, link in definition.dependencies.items():
            if link.upstream_stage == definition.stage_id:
                problems.append(f"dependency {name!r} points at its own stage")
            elif link.upstream_stage not in self._contracts:
                problems.append(
                    f"dependency {name!r}: unknown upstream stage {link.upstream_stage!r}"
                )
        if problems:
            raise ValueError(
                f"Invalid definition for stage {definition.stage_id}: " + "; ".join(problems)
            )
        self._contracts[definition.stage_id] = definition

    def get_all_contracts(self) -> dict[str, StageDefinition]:
        """Get all registered definitions."""
        return self._contracts.copy()

    def stage_ids(self) -> list[str]:
        """Registered stage ids in workflow order."""
        return list(self._contracts)

    def __contains__(self, stage_id: object) -> bool:
        return isinstance(stage_id, str) and stage_id.upper() in self._contracts

    def __len__(self) -> int:
        return len(self._contracts)


# Global registry instance
_default_registry: StageContractRegistry | None = None


def get_contract_registry() -> StageContractRegistry:
    """Get the default contract registry (singleton)."""
    global _default_registry
    if _default_registry is None:
        _default_registry = StageContractRegistry()
    return _default_registry
