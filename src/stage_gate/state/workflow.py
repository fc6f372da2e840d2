#!/usr/bin/env python3
"""
Workflow for Stage Gate

Owns one StageSession per registered stage, a shared audit sink and the
dependency resolver. In live mode every applied transition re-derives the
downstream dependency flags from the upstream contexts; in asserted mode the
flags only change through assert_dependency().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.dependencies import DependencyChange, DependencyResolver
from ..core.roles import Role
from ..core.stage_contract import StageContractRegistry, get_contract_registry
from ..core.stage_state import ActionState, AuditEvent, DependencyState, StageContext
from ..core.transitions import Clock, TransitionOutcome
from ..settings.models import DependencyMode, Settings
from .audit_log import AuditSink, InMemoryAuditLog, JsonFileAuditLog
from .session import StageSession

logger = logging.getLogger(__name__)


def build_sink(settings: Settings) -> AuditSink:
    """Create the audit sink described by the settings."""
    if settings.audit_log_path:
        return JsonFileAuditLog(
            Path(settings.audit_log_path).expanduser(),
            capacity=settings.audit_log_capacity,
            zone_label=settings.timezone_label,
        )
    return InMemoryAuditLog(
        capacity=settings.audit_log_capacity,
        zone_label=settings.timezone_label,
    )


@dataclass
class StageSummary:
    """One row of Workflow.summary()."""
    stage_id: str
    title: str
    status: str
    dependencies: dict[str, DependencyState] = field(default_factory=dict)
    enabled_actions: int = 0
    total_actions: int = 0

    @property
    def blocked(self) -> bool:
        return any(state == DependencyState.BLOCKED for state in self.dependencies.values())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "stage_id": self.stage_id,
            "title": self.title,
            "status": self.status,
            "dependencies": {k: v.value for k, v in self.dependencies.items()},
            "enabled_actions": self.enabled_actions,
            "total_actions": self.total_actions,
        }


class Workflow:
    """All stage sessions of one operator session."""

    def __init__(
        self,
        registry: StageContractRegistry | None = None,
        sink: AuditSink | None = None,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize the workflow with every stage at its seed context.

        Args:
            registry: Stage definitions (the default registry if None)
            sink: Shared audit sink (built from settings if None)
            settings: Settings (defaults if None)
            clock: Time source for last event timestamps
        """
        self.settings = settings or Settings()
        self.registry = registry or get_contract_registry()
        self.sink = sink if sink is not None else build_sink(self.settings)
        self.mode = DependencyMode(self.settings.dependency_mode)
        self.resolver = DependencyResolver(self.registry)

        self._sessions: dict[str, StageSession] = {}
        for stage_id, definition in self.registry.get_all_contracts().items():
            session = StageSession(
                definition,
                self.sink,
                delay_seconds=self.settings.transition_delay_seconds,
                clock=clock,
            )
            session.on_transition.append(self._on_transition)
            self._sessions[stage_id] = session

        self.refresh_dependencies()

    @property
    def live(self) -> bool:
        return self.mode is DependencyMode.LIVE

    def stage_ids(self) -> list[str]:
        """Stage ids in workflow order."""
        return list(self._sessions)

    def session(self, stage_id: str) -> StageSession:
        """
        Get the session of a stage.

        Raises:
            KeyError: If the stage is not part of the workflow
        """
        key = stage_id.strip().upper() if isinstance(stage_id, str) else stage_id
        if key not in self._sessions:
            raise KeyError(f"Unknown stage: {stage_id}")
        return self._sessions[key]

    def context(self, stage_id: str) -> StageContext:
        """Live context of a stage."""
        return self.session(stage_id).context

    def contexts(self) -> dict[str, StageContext]:
        """Live contexts of every stage, in workflow order."""
        return {stage_id: session.context for stage_id, session in self._sessions.items()}

    def evaluate(self, stage_id: str, role: Role, action_id: str) -> ActionState:
        return self.session(stage_id).evaluate(role, action_id)

    def evaluate_all(self, stage_id: str, role: Role) -> dict[str, ActionState]:
        return self.session(stage_id).evaluate_all(role)

    def dispatch(
        self, stage_id: str, role: Role, action_id: str, notes: str | None = None
    ) -> TransitionOutcome:
        return self.session(stage_id).dispatch(role, action_id, notes=notes)

    async def submit(
        self, stage_id: str, role: Role, action_id: str, notes: str | None = None
    ) -> TransitionOutcome:
        return await self.session(stage_id).submit(role, action_id, notes=notes)

    def refresh_dependencies(self) -> list[DependencyChange]:
        """Re-derive dependency flags (live mode only)."""
        if not self.live:
            return []
        return self.resolver.apply(self.contexts())

    def _on_transition(self, session: StageSession, event: AuditEvent) -> None:
        self.refresh_dependencies()

    def assert_dependency(
        self, stage_id: str, dependency: str, state: DependencyState | str
    ) -> None:
        """
        Set a dependency flag on behalf of an external orchestrator.

        Args:
            stage_id: Downstream stage
            dependency: Dependency field name
            state: New flag value ("OK" or "BLOCKED")

        Raises:
            ValueError: In live mode, or if the stage has no such dependency
            KeyError: If the stage is unknown
        """
        if self.live:
            raise ValueError("Dependencies are derived in live mode and cannot be asserted")
        context = self.context(stage_id)
        if dependency not in context.dependencies:
            known = ", ".join(context.dependencies) or "none"
            raise ValueError(
                f"Stage {context.stage_id} has no dependency {dependency!r} (known: {known})"
            )
        if not isinstance(state, DependencyState):
            state = DependencyState(str(state).strip().upper())
        old = context.dependencies[dependency]
        context.dependencies[dependency] = state
        logger.info("Asserted %s.%s: %s -> %s", context.stage_id, dependency,
                    old.value, state.value)

    def reset(self, stage_id: str | None = None) -> None:
        """Reset one stage (or every stage) to its seed context."""
        sessions = [self.session(stage_id)] if stage_id else list(self._sessions.values())
        for session in sessions:
            session.reset()
        self.refresh_dependencies()

    def audit_log(self, stage_id: str | None = None) -> list[AuditEvent]:
        """Retained audit events, most recent first."""
        if stage_id is not None:
            stage_id = self.session(stage_id).stage_id
        return self.sink.list(stage_id)

    def summary(self, role: Role) -> list[StageSummary]:
        """One row per stage with its status, flags and enabled action count for a role."""
        rows = []
        for stage_id, session in self._sessions.items():
            verdicts = session.evaluate_all(role)
            rows.append(
                StageSummary(
                    stage_id=stage_id,
                    title=session.definition.title,
                    status=session.context.status,
                    dependencies=dict(session.context.dependencies),
                    enabled_actions=sum(1 for v in verdicts.values() if v.enabled),
                    total_actions=len(verdicts),
                )
            )
        return rows
