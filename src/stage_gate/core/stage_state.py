#!/usr/bin/env python3
"""
Stage State for Stage Gate

Holds the per-stage runtime records shared by the guard, the transition
handlers and the workflow:

- StageContext: lifecycle status, counters, upstream dependency flags and
  descriptive attributes of one stage in one session
- ActionState: the verdict of a guard evaluation
- AuditEvent: the record a transition leaves behind
- DependencyState / DenialKind: the small enums both of them use

A context is built from its stage definition's seed, mutated only by
transitions, and thrown away when the session ends.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DependencyState(str, Enum):
    """Whether an upstream stage has cleared its own gate."""
    OK = "OK"
    BLOCKED = "BLOCKED"


class DenialKind(str, Enum):
    """
    Category of a denied action.

    - DEPENDENCY: an upstream stage has not cleared
    - INTERLOCK: a stage-wide lock is engaged (maintenance, audit lock, ...)
    - ROLE: the acting role is not allowed to perform the action
    - STATE: the stage is not in one of the action's pre-states
    - PRECONDITION: a counter or attribute check failed
    - UNKNOWN_ACTION: the action id is not part of the stage
    - BUSY: another transition of the same stage is still in flight
    """
    DEPENDENCY = "dependency"
    INTERLOCK = "interlock"
    ROLE = "role"
    STATE = "state"
    PRECONDITION = "precondition"
    UNKNOWN_ACTION = "unknown_action"
    BUSY = "busy"


UNKNOWN_ACTION_REASON = "Unknown Action"


@dataclass(frozen=True)
class ActionState:
    """
    Verdict of a guard evaluation.

    Attributes:
        enabled: Whether the action may be performed
        reason: Why it may not (always set when enabled is False)
        kind: Category of the denial (None when enabled)
    """
    enabled: bool
    reason: str | None = None
    kind: DenialKind | None = None

    @classmethod
    def allow(cls) -> "ActionState":
        """Create an enabled verdict."""
        return cls(enabled=True)

    @classmethod
    def deny(cls, reason: str, kind: DenialKind) -> "ActionState":
        """Create a disabled verdict with its reason."""
        return cls(enabled=False, reason=reason, kind=kind)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {"enabled": self.enabled}
        if not self.enabled:
            data["reason"] = self.reason
            data["kind"] = self.kind.value if self.kind else None
        return data


@dataclass(frozen=True)
class AuditEvent:
    """
    Immutable record of one applied transition.

    Attributes:
        id: Event id, "evt-<epoch millis>-<0..999>"
        timestamp: Wall-clock time, "HH:MM:SS (<zone>)"
        actor_role: Label of the acting role
        stage_id: Stage the transition belongs to
        action_id: Applied action
        message: Human-readable summary
    """
    id: str
    timestamp: str
    actor_role: str
    stage_id: str
    action_id: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "actor_role": self.actor_role,
            "stage_id": self.stage_id,
            "action_id": self.action_id,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditEvent":
        """Create from dictionary (JSON deserialization)."""
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            actor_role=data["actor_role"],
            stage_id=data["stage_id"],
            action_id=data["action_id"],
            message=data.get("message", ""),
        )


@dataclass
class StageContext:
    """
    Runtime state of a single stage.

    Attributes:
        stage_id: Stage identifier (e.g. "S10")
        status: Current lifecycle status
        status_field: Name the stage gives its status (e.g. "provisioning_status")
        counters: Non-negative integer counters
        dependencies: Upstream dependency flags, owned by the upstream stage
        attributes: Descriptive values read by guards or displays
        last_event_at: Timestamp of the last stamped transition
        last_event_field: Name the stage gives its last event timestamp
    """
    stage_id: str
    status: str
    status_field: str = "status"
    counters: dict[str, int] = field(default_factory=dict)
    dependencies: dict[str, DependencyState] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)
    last_event_at: str = ""
    last_event_field: str = "last_event_at"

    def get(self, name: str, default: Any = None) -> Any:
        """
        Read a field by name.

        Lookup order: status (by "status" or the stage's status field name),
        last event timestamp, counters, dependencies, attributes.

        Args:
            name: Field name
            default: Value returned when the field is not present

        Returns:
            The field value or default
        """
        if name in ("status", self.status_field):
            return self.status
        if name in ("last_event_at", self.last_event_field):
            return self.last_event_at
        if name in self.counters:
            return self.counters[name]
        if name in self.dependencies:
            return self.dependencies[name]
        return self.attributes.get(name, default)

    def adjust_counter(self, name: str, delta: int) -> int:
        """
        Add delta to a counter, clamping the result at zero.

        Args:
            name: Counter name (created at 0 if missing)
            delta: Signed amount to add

        Returns:
            The new counter value
        """
        value = max(0, self.counters.get(name, 0) + delta)
        self.counters[name] = value
        return value

    def is_blocked(self, dependency: str) -> bool:
        """Check if a dependency flag is BLOCKED."""
        return self.dependencies.get(dependency) == DependencyState.BLOCKED

    def snapshot(self) -> "StageContext":
        """Return an independent deep copy."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "stage_id": self.stage_id,
            self.status_field: self.status,
            "counters": dict(self.counters),
            "dependencies": {k: v.value for k, v in self.dependencies.items()},
            "attributes": dict(self.attributes),
            self.last_event_field: self.last_event_at,
        }
