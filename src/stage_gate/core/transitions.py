"""
Transition handling for Stage Gate.

apply_transition() is the single handler behind every action of every stage.
It trusts its caller: the guard is not re-evaluated here, so callers gate
first (StageSession does).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

from .roles import Role
from .stage_contract import StageDefinition
from .stage_state import ActionState, AuditEvent, StageContext

if TYPE_CHECKING:
    from ..state.audit_log import AuditSink

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

EVENT_STAMP_FORMAT = "%Y-%m-%d %H:%M"


@dataclass(frozen=True)
class TransitionOutcome:
    """
    Result of a gated command.

    Attributes:
        accepted: Whether the transition was applied
        state: Guard verdict the command was admitted or rejected with
        event: Audit event of the applied transition (None when rejected)
    """
    accepted: bool
    state: ActionState
    event: AuditEvent | None = None

    @property
    def reason(self) -> str | None:
        return self.state.reason

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "accepted": self.accepted,
            "state": self.state.to_dict(),
            "event": self.event.to_dict() if self.event else None,
        }


def format_message(
    template: str,
    definition: StageDefinition,
    action_id: str,
    role: Role,
    context: StageContext,
    notes: str | None,
) -> str:
    """Render an audit message template."""
    message = template.format(
        stage=definition.stage_id,
        action=action_id,
        role=role.value,
        status=context.status,
        notes=notes or "",
    )
    if notes and "{notes}" not in template:
        message = f"{message}. Notes: {notes}"
    return message


def apply_transition(
    definition: StageDefinition,
    context: StageContext,
    action_id: str,
    role: Role,
    sink: "AuditSink",
    notes: str | None = None,
    clock: Clock | None = None,
) -> AuditEvent:
    """
    Apply an admitted action to a context and emit its audit event.

    Args:
        definition: Stage the context belongs to
        context: Context to mutate in place
        action_id: Action to apply
        role: Acting role
        sink: Audit sink receiving exactly one event
        notes: Optional free-text notes for the audit message
        clock: Time source for the last event timestamp (defaults to now)

    Returns:
        The emitted AuditEvent

    Raises:
        KeyError: If the stage has no such action
    """
    rule = definition.get_action(action_id)
    if rule is None:
        raise KeyError(f"Stage {definition.stage_id} has no action: {action_id}")

    previous = context.status
    if rule.to_state is not None:
        context.status = rule.to_state

    for effect in rule.effects:
        context.adjust_counter(effect.counter, effect.delta)

    if rule.stamps_event:
        now = (clock or datetime.now)()
        zone = getattr(sink, "zone_label", "")
        stamp = now.strftime(EVENT_STAMP_FORMAT)
        context.last_event_at = f"{stamp} {zone}".strip()

    logger.info(
        "Applied %s/%s as %s: %s -> %s",
        definition.stage_id,
        action_id,
        role.value,
        previous,
        context.status,
    )

    message = format_message(rule.message, definition, action_id, role, context, notes)
    return sink.emit(
        stage_id=definition.stage_id,
        action_id=action_id,
        actor_role=role.value,
        message=message,
    )
