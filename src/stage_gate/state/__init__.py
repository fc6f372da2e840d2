"""
Stage Gate State Module

Contains live state and persistence:
- StageSession: Single-actor command gate for one stage context
- Workflow: All stage sessions with shared audit log and dependency refresh
- AuditSink: Bounded, most-recent-first audit log (in memory or JSON file)
- FileLock: Cross-platform file locking for the JSON audit log
"""

from .audit_log import (
    DEFAULT_CAPACITY,
    DEFAULT_ZONE_LABEL,
    AuditSink,
    InMemoryAuditLog,
    JsonFileAuditLog,
)
from .file_lock import FileLock
from .session import BUSY_REASON, StageSession
from .workflow import StageSummary, Workflow, build_sink

__all__ = [
    "StageSession",
    "BUSY_REASON",
    "Workflow",
    "StageSummary",
    "build_sink",
    "AuditSink",
    "InMemoryAuditLog",
    "JsonFileAuditLog",
    "DEFAULT_CAPACITY",
    "DEFAULT_ZONE_LABEL",
    "FileLock",
]
