"""
Stage Guard for Stage Gate.

Decides whether a role may perform an action on a stage context. The guard
is a pure function of (role, context, action): it never mutates the context
and never raises. The first failing check wins:

    dependency -> interlock -> role -> state -> preconditions
"""

from __future__ import annotations

import logging

from .roles import Role
from .stage_contract import StageDefinition
from .stage_state import UNKNOWN_ACTION_REASON, ActionState, DenialKind, StageContext

logger = logging.getLogger(__name__)


class StageGuard:
    """Evaluates action admissibility against one stage definition."""

    def __init__(self, definition: StageDefinition):
        self.definition = definition

    def evaluate(self, role: Role, context: StageContext, action_id: str) -> ActionState:
        """
        Evaluate one action.

        Args:
            role: Acting role
            context: Current stage context (not modified)
            action_id: Action to evaluate

        Returns:
            ActionState with the first failing check's reason, or enabled
        """
        state = self._check(role, context, action_id)
        if not state.enabled:
            logger.debug(
                "Denied %s/%s for %s (%s): %s",
                self.definition.stage_id,
                action_id,
                getattr(role, "value", role),
                state.kind.value if state.kind else "-",
                state.reason,
            )
        return state

    def evaluate_all(self, role: Role, context: StageContext) -> dict[str, ActionState]:
        """Evaluate every action of the stage, in display order."""
        return {
            action_id: self.evaluate(role, context, action_id)
            for action_id in self.definition.action_ids
        }

    def _check(self, role: Role, context: StageContext, action_id: str) -> ActionState:
        rule = self.definition.get_action(action_id)
        if rule is None:
            return ActionState.deny(UNKNOWN_ACTION_REASON, DenialKind.UNKNOWN_ACTION)

        if rule.dependency is not None and context.is_blocked(rule.dependency):
            link = self.definition.dependencies[rule.dependency]
            return ActionState.deny(link.reason, DenialKind.DEPENDENCY)

        for lock in self.definition.interlocks:
            if lock.engaged(context, action_id):
                return ActionState.deny(lock.reason, DenialKind.INTERLOCK)

        if not isinstance(role, Role) or not rule.allows_role(role):
            return ActionState.deny(rule.role_reason, DenialKind.ROLE)

        if not rule.allows_state(context.status):
            return ActionState.deny(
                rule.state_reason.format(status=context.status), DenialKind.STATE
            )

        for check in rule.preconditions:
            if not check.holds(context):
                return ActionState.deny(check.reason, DenialKind.PRECONDITION)

        return ActionState.allow()
