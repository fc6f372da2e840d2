"""
Configuration validation for Stage Gate.

This module validates Settings objects:
- Dependency mode and pacing
- Audit log configuration
- Console defaults (role, log level)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from ..core.roles import Role
from .models import DependencyMode, Settings

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class ValidationResult:
    """
    Result of a configuration validation.

    Attributes:
        valid: Whether the configuration passed all validation checks.
        errors: List of error messages (validation failures).
        warnings: List of warning messages (non-critical issues).
    """

    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message and mark validation as failed."""
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message (does not affect validity)."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> None:
        """Merge another ValidationResult into this one."""
        if not other.valid:
            self.valid = False
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


class ConfigValidator:
    """Configuration validator for Stage Gate settings."""

    def validate(self, settings: Settings) -> ValidationResult:
        """
        Validate the complete settings configuration.

        Args:
            settings: Settings object to validate.

        Returns:
            ValidationResult with any errors or warnings.
        """
        result = ValidationResult()
        result.merge(self._validate_workflow(settings))
        result.merge(self._validate_audit_log(settings))
        result.merge(self._validate_console(settings))
        return result

    def _validate_workflow(self, settings: Settings) -> ValidationResult:
        result = ValidationResult()

        if not isinstance(settings.dependency_mode, DependencyMode):
            result.add_error(f"Invalid dependency_mode: {settings.dependency_mode}")

        if settings.transition_delay_seconds < 0:
            result.add_error("transition_delay_seconds must be non-negative")
        elif settings.transition_delay_seconds > 5:
            result.add_warning(
                f"transition_delay_seconds is {settings.transition_delay_seconds}, "
                "every action will feel slow"
            )

        return result

    def _validate_audit_log(self, settings: Settings) -> ValidationResult:
        result = ValidationResult()

        if settings.audit_log_capacity < 1:
            result.add_error("audit_log_capacity must be at least 1")
        elif settings.audit_log_capacity != 20:
            result.add_warning(
                f"audit_log_capacity is {settings.audit_log_capacity}, "
                "stage screens expect the 20 most recent events"
            )

        if not settings.timezone_label.strip():
            result.add_error("timezone_label must not be empty")

        if settings.audit_log_path:
            parent = Path(settings.audit_log_path).expanduser().parent
            if parent.exists() and not parent.is_dir():
                result.add_error(f"audit_log_path parent is not a directory: {parent}")

        return result

    def _validate_console(self, settings: Settings) -> ValidationResult:
        result = ValidationResult()

        try:
            Role.parse(settings.default_role)
        except ValueError as e:
            result.add_error(f"default_role: {e}")

        if settings.log_level.upper() not in LOG_LEVELS:
            result.add_warning(
                f"Unknown log_level: '{settings.log_level}'. "
                f"Valid values: {sorted(LOG_LEVELS)}"
            )
        elif logging.getLevelName(settings.log_level.upper()) <= logging.DEBUG:
            result.add_warning("log_level DEBUG logs every guard denial")

        return result
