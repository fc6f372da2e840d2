"""
Stage Gate - lifecycle gating for a battery-pack manufacturing workflow

Stage Gate models eighteen workflow stages, from system setup to closure and
archive. Every stage owns a context (status, counters, dependency flags) and a
fixed set of actions. A pure guard decides, for an acting role, which actions
are enabled and why the others are not; accepted actions move the stage to its
next status and append an event to a bounded audit log.

Architecture:
    - Core: roles, stage contracts, the guard, transitions, dependency resolution
    - Stages: the default catalog of eighteen stage definitions
    - State: per-stage sessions, the workflow and the audit sinks
    - CLI: typer commands and an interactive operator console

Example usage:
    from stage_gate import Role, Workflow

    workflow = Workflow()
    verdict = workflow.evaluate("S10", Role.ENGINEERING, "START_SESSION")
    if verdict.enabled:
        workflow.dispatch("S10", Role.ENGINEERING, "START_SESSION")
"""

__version__ = "1.0.0"
__author__ = "Stage Gate Team"

from .core import (
    ActionRule,
    ActionState,
    AuditEvent,
    DenialKind,
    DependencyResolver,
    DependencyState,
    Role,
    StageContext,
    StageContractRegistry,
    StageDefinition,
    StageGuard,
    TransitionOutcome,
    apply_transition,
    get_contract_registry,
)
from .settings import DependencyMode, Settings, SettingsStorage
from .state import (
    AuditSink,
    InMemoryAuditLog,
    JsonFileAuditLog,
    StageSession,
    Workflow,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Core
    "Role",
    "ActionRule",
    "ActionState",
    "AuditEvent",
    "DenialKind",
    "DependencyState",
    "StageContext",
    "StageDefinition",
    "StageContractRegistry",
    "get_contract_registry",
    "StageGuard",
    "TransitionOutcome",
    "apply_transition",
    "DependencyResolver",
    # State
    "StageSession",
    "Workflow",
    "AuditSink",
    "InMemoryAuditLog",
    "JsonFileAuditLog",
    # Settings
    "DependencyMode",
    "Settings",
    "SettingsStorage",
]
