#!/usr/bin/env python3
"""
Stage Session for Stage Gate

A StageSession owns the live context of one stage and is its single actor:
every command is gated by the guard before anything changes, and at most
one transition is in flight at a time. A command arriving while another is
in flight is rejected up front with a BUSY verdict; it is never queued.

dispatch() is synchronous. submit() runs on an asyncio event loop and paces
the transition with the configured delay. Once a transition has started it
always completes, even if the awaiting task is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from ..core.guard import StageGuard
from ..core.roles import Role
from ..core.stage_contract import StageDefinition
from ..core.stage_state import ActionState, AuditEvent, DenialKind, StageContext
from ..core.transitions import Clock, TransitionOutcome, apply_transition
from .audit_log import AuditSink, InMemoryAuditLog

logger = logging.getLogger(__name__)

BUSY_REASON = "Transition In Progress"

TransitionCallback = Callable[["StageSession", AuditEvent], None]


class StageSession:
    """Serializes commands against one stage context."""

    def __init__(
        self,
        definition: StageDefinition,
        sink: AuditSink | None = None,
        guard: StageGuard | None = None,
        delay_seconds: float = 0.0,
        clock: Clock | None = None,
    ):
        """
        Initialize a session with the stage's seed context.

        Args:
            definition: Stage definition
            sink: Audit sink (a private in-memory log if None)
            guard: Guard to gate commands with (built from the definition if None)
            delay_seconds: Simulated latency before a transition commits
            clock: Time source for last event timestamps
        """
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must not be negative, got {delay_seconds}")
        self.definition = definition
        self.sink = sink if sink is not None else InMemoryAuditLog()
        self.guard = guard or StageGuard(definition)
        self.delay_seconds = delay_seconds
        self.clock = clock
        self.on_transition: list[TransitionCallback] = []
        self._context = definition.initial_context()
        self._in_flight = False

    @property
    def stage_id(self) -> str:
        return self.definition.stage_id

    @property
    def context(self) -> StageContext:
        """The live context (mutated by transitions)."""
        return self._context

    @property
    def in_flight(self) -> bool:
        """Whether a transition is currently being applied."""
        return self._in_flight

    def snapshot(self) -> StageContext:
        """Return an independent copy of the live context."""
        return self._context.snapshot()

    def evaluate(self, role: Role, action_id: str) -> ActionState:
        """Evaluate one action against the live context."""
        return self.guard.evaluate(role, self._context, action_id)

    def evaluate_all(self, role: Role) -> dict[str, ActionState]:
        """Evaluate every action of the stage against the live context."""
        return self.guard.evaluate_all(role, self._context)

    def _admit(self, role: Role, action_id: str) -> ActionState:
        if self._in_flight:
            logger.warning(
                "Rejected %s/%s for %s: transition already in flight",
                self.stage_id,
                action_id,
                getattr(role, "value", role),
            )
            return ActionState.deny(BUSY_REASON, DenialKind.BUSY)
        return self.evaluate(role, action_id)

    def _commit(self, role: Role, action_id: str, notes: str | None) -> AuditEvent:
        event = apply_transition(
            self.definition,
            self._context,
            action_id,
            role,
            self.sink,
            notes=notes,
            clock=self.clock,
        )
        for callback in list(self.on_transition):
            callback(self, event)
        return event

    def dispatch(self, role: Role, action_id: str, notes: str | None = None) -> TransitionOutcome:
        """
        Gate and apply one action synchronously.

        Args:
            role: Acting role
            action_id: Action to apply
            notes: Optional free-text notes for the audit message

        Returns:
            TransitionOutcome; rejected commands leave the context untouched
        """
        state = self._admit(role, action_id)
        if not state.enabled:
            return TransitionOutcome(accepted=False, state=state)

        self._in_flight = True
        try:
            if self.delay_seconds:
                time.sleep(self.delay_seconds)
            event = self._commit(role, action_id, notes)
        finally:
            self._in_flight = False
        return TransitionOutcome(accepted=True, state=state, event=event)

    async def _run(self, role: Role, action_id: str, notes: str | None) -> AuditEvent:
        try:
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            return self._commit(role, action_id, notes)
        finally:
            self._in_flight = False

    async def submit(
        self, role: Role, action_id: str, notes: str | None = None
    ) -> TransitionOutcome:
        """
        Gate and apply one action on the running event loop.

        A submission made while another transition of this stage is in
        flight is rejected with a BUSY verdict.

        Args:
            role: Acting role
            action_id: Action to apply
            notes: Optional free-text notes for the audit message

        Returns:
            TransitionOutcome; rejected commands leave the context untouched
        """
        state = self._admit(role, action_id)
        if not state.enabled:
            return TransitionOutcome(accepted=False, state=state)

        self._in_flight = True
        task = asyncio.ensure_future(self._run(role, action_id, notes))
        event = await asyncio.shield(task)
        return TransitionOutcome(accepted=True, state=state, event=event)

    def reset(self) -> None:
        """Restore the seed context."""
        self._context = self.definition.initial_context()
        logger.info("Reset %s to seed context", self.stage_id)
