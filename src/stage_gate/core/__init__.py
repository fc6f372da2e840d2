"""
Stage Gate Core Module

Contains the gating model:
- Role: Operator role labels (System Admin satisfies every role check)
- StageContext / ActionState / AuditEvent: Stage state and guard verdicts
- StageDefinition / StageContractRegistry: Per-stage action rules
- StageGuard: Pure evaluation of (role, context, action)
- apply_transition: Applies an accepted action and emits its audit event
- DependencyResolver: Derives downstream dependency flags from upstream status
"""

from .dependencies import DependencyChange, DependencyResolver, dependency_state
from .guard import StageGuard
from .roles import ADMIN_ROLE, Role
from .stage_contract import (
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
from .stage_state import (
    UNKNOWN_ACTION_REASON,
    ActionState,
    AuditEvent,
    DenialKind,
    DependencyState,
    StageContext,
)
from .transitions import TransitionOutcome, apply_transition, format_message

__all__ = [
    # Roles
    "Role",
    "ADMIN_ROLE",
    # State
    "ActionState",
    "AuditEvent",
    "DenialKind",
    "DependencyState",
    "StageContext",
    "UNKNOWN_ACTION_REASON",
    # Contracts
    "ActionRule",
    "CounterEffect",
    "DependencyLink",
    "Interlock",
    "Precondition",
    "StageDefinition",
    "StageContractRegistry",
    "get_contract_registry",
    "transfer",
    # Guard and transitions
    "StageGuard",
    "TransitionOutcome",
    "apply_transition",
    "format_message",
    # Dependencies
    "DependencyChange",
    "DependencyResolver",
    "dependency_state",
]
