#!/usr/bin/env python3
"""
Audit Sinks for Stage Gate

Every applied transition leaves exactly one AuditEvent behind. Sinks assign
the event id and timestamp, keep the most recent events first and retain at
most `capacity` events across all stages combined.

- InMemoryAuditLog: list-backed, the default for a single process
- JsonFileAuditLog: one JSON file guarded by a FileLock, so several console
  commands in one terminal session can share a log
"""

from __future__ import annotations

import json
import logging
import random
import time
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from ..core.stage_state import AuditEvent
from .file_lock import FileLock

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 20
DEFAULT_ZONE_LABEL = "IST"


class AuditSink(ABC):
    """
    Append-only event sink.

    Subclasses store events; this base class mints them.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        zone_label: str = DEFAULT_ZONE_LABEL,
        clock: Callable[[], datetime] | None = None,
    ):
        if capacity < 1:
            raise ValueError(f"Audit log capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.zone_label = zone_label
        self._clock = clock or datetime.now

    def _mint(self, stage_id: str, action_id: str, actor_role: str, message: str) -> AuditEvent:
        now = self._clock()
        event_id = f"evt-{int(time.time() * 1000)}-{random.randint(0, 999)}"
        return AuditEvent(
            id=event_id,
            timestamp=f"{now.strftime('%H:%M:%S')} ({self.zone_label})",
            actor_role=actor_role,
            stage_id=stage_id,
            action_id=action_id,
            message=message,
        )

    @abstractmethod
    def emit(self, stage_id: str, action_id: str, actor_role: str, message: str) -> AuditEvent:
        """
        Record one event.

        Args:
            stage_id: Stage the event belongs to
            action_id: Applied action
            actor_role: Label of the acting role
            message: Human-readable summary

        Returns:
            The stored event, with id and timestamp assigned
        """

    @abstractmethod
    def list(self, stage_id: str | None = None) -> list[AuditEvent]:
        """Return retained events, most recent first, optionally for one stage."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every retained event."""


class InMemoryAuditLog(AuditSink):
    """Audit sink that keeps events in a list."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        zone_label: str = DEFAULT_ZONE_LABEL,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(capacity=capacity, zone_label=zone_label, clock=clock)
        self._events: list[AuditEvent] = []

    def emit(self, stage_id: str, action_id: str, actor_role: str, message: str) -> AuditEvent:
        event = self._mint(stage_id, action_id, actor_role, message)
        self._events.insert(0, event)
        del self._events[self.capacity:]
        return event

    def list(self, stage_id: str | None = None) -> list[AuditEvent]:
        if stage_id is None:
            return self._events.copy()
        return [e for e in self._events if e.stage_id == stage_id]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


class JsonFileAuditLog(AuditSink):
    """
    Audit sink backed by a single JSON file.

    The file holds {"events": [...]} with the newest event first. Missing,
    unreadable or corrupt files read as an empty log; the next emit
    overwrites them.
    """

    def __init__(
        self,
        path: Path | str,
        capacity: int = DEFAULT_CAPACITY,
        zone_label: str = DEFAULT_ZONE_LABEL,
        clock: Callable[[], datetime] | None = None,
        lock_timeout: float = 10.0,
    ):
        super().__init__(capacity=capacity, zone_label=zone_label, clock=clock)
        self.path = Path(path)
        self._lock = FileLock(self.path.with_name(self.path.name + ".lock"), timeout=lock_timeout)

    def _read(self) -> list[AuditEvent]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data: Any = json.load(f)
            return [AuditEvent.from_dict(item) for item in data.get("events", [])]
        except (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable audit log %s: %s", self.path, e)
            return []

    def _write(self, events: list[AuditEvent]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"events": [e.to_dict() for e in events]}, f, indent=2)

    def emit(self, stage_id: str, action_id: str, actor_role: str, message: str) -> AuditEvent:
        event = self._mint(stage_id, action_id, actor_role, message)
        with self._lock:
            events = self._read()
            events.insert(0, event)
            self._write(events[: self.capacity])
        return event

    def list(self, stage_id: str | None = None) -> list[AuditEvent]:
        with self._lock:
            events = self._read()[: self.capacity]
        if stage_id is None:
            return events
        return [e for e in events if e.stage_id == stage_id]

    def clear(self) -> None:
        with self._lock:
            self._write([])
