"""
Settings management module for Stage Gate.

This module provides configuration management including:
- Settings data models (DependencyMode, Settings)
- YAML-based configuration storage
- Configuration validation
- Configuration migration and versioning
"""

from .migration import ConfigMigration
from .models import DependencyMode, Settings
from .storage import (
    SettingsStorage,
    SettingsValidationError,
    coerce_value,
    default_config_dir,
)
from .validation import ConfigValidator, ValidationResult

__all__ = [
    # Models
    "DependencyMode",
    "Settings",
    # Storage
    "SettingsStorage",
    "SettingsValidationError",
    "coerce_value",
    "default_config_dir",
    # Migration
    "ConfigMigration",
    # Validation
    "ConfigValidator",
    "ValidationResult",
]
