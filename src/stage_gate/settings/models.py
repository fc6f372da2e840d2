"""
Settings data models for Stage Gate.

This module defines the configuration data classes:
- DependencyMode: How downstream dependency flags are maintained
- Settings: Main settings class aggregating all configuration options
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import List


class DependencyMode(Enum):
    """
    How dependency flags are maintained.

    - LIVE: flags are derived from the upstream stage's context after every
      transition
    - ASSERTED: flags keep their seed value (OK) unless an external
      orchestrator asserts a new one
    """

    LIVE = "live"
    ASSERTED = "asserted"


@dataclass
class Settings:
    """
    Global settings for Stage Gate.

    Attributes:
        dependency_mode: How dependency flags are maintained.
        transition_delay_seconds: Simulated latency before a transition commits.
        audit_log_capacity: Number of audit events retained across all stages.
        timezone_label: Zone label printed in audit timestamps.
        default_role: Role label the console starts with.
        log_level: Logging level name for the CLI.
        audit_log_path: JSON file for a shared audit log (empty keeps it in memory).
    """

    dependency_mode: DependencyMode = DependencyMode.LIVE
    transition_delay_seconds: float = 0.0
    audit_log_capacity: int = 20
    timezone_label: str = "IST"
    default_role: str = "Production Operator"
    log_level: str = "WARNING"
    audit_log_path: str = ""

    @classmethod
    def field_names(cls) -> List[str]:
        """Return the names of all settings fields, in declaration order."""
        return [f.name for f in fields(cls)]
