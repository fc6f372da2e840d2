"""
Settings storage management for Stage Gate.

This module provides YAML-based configuration file persistence with:
- Automatic directory creation
- Dataclass to dict conversion for serialization
- Default Settings when no configuration exists
- Fallback to defaults, with a logged warning, for invalid values
"""

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from .migration import ConfigMigration
from .models import DependencyMode, Settings
from .validation import ConfigValidator, ValidationResult

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "STAGE_GATE_CONFIG_DIR"


class SettingsValidationError(ValueError):
    """Raised when updated settings fail ConfigValidator checks."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("; ".join(result.errors))
        self.result = result


def default_config_dir() -> Path:
    """Return the configuration directory ($STAGE_GATE_CONFIG_DIR or ~/.stage-gate)."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".stage-gate"


def coerce_value(key: str, raw: Any) -> Any:
    """
    Convert a raw value (YAML scalar or CLI string) to a settings field type.

    Args:
        key: Settings field name.
        raw: Value to convert.

    Returns:
        The converted value.

    Raises:
        KeyError: If key is not a settings field.
        ValueError: If the value cannot be converted.
    """
    if key not in Settings.field_names():
        raise KeyError(f"Unknown setting: {key}")

    if key == "dependency_mode":
        if isinstance(raw, DependencyMode):
            return raw
        try:
            return DependencyMode(str(raw).strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in DependencyMode)
            raise ValueError(f"dependency_mode must be one of: {valid}") from None
    if key == "transition_delay_seconds":
        if isinstance(raw, bool):
            raise ValueError("transition_delay_seconds must be a number")
        delay = float(raw)
        if delay < 0:
            raise ValueError(f"transition_delay_seconds must be non-negative, got {delay}")
        return delay
    if key == "audit_log_capacity":
        if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
            raise ValueError("audit_log_capacity must be an integer")
        capacity = int(raw)
        if capacity < 1:
            raise ValueError(f"audit_log_capacity must be at least 1, got {capacity}")
        return capacity
    if key == "log_level":
        return str(raw).strip().upper()
    return "" if raw is None else str(raw)


class SettingsStorage:
    """
    Settings storage manager.

    Handles loading and saving Settings objects to YAML configuration files.
    Configuration is stored at ~/.stage-gate/config.yaml by default.

    Attributes:
        config_dir: Directory path for configuration files.
        config_file: Path to the main configuration file.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        """
        Initialize the settings storage.

        Args:
            config_dir: Optional path to configuration directory.
                       Defaults to $STAGE_GATE_CONFIG_DIR or ~/.stage-gate/
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_file = self.config_dir / "config.yaml"

    def load(self) -> Settings:
        """
        Load settings from the configuration file.

        Migrates older formats in place. A missing file, or a file that is
        not a YAML mapping, yields default Settings.
        """
        if not self.config_file.exists():
            return Settings()

        try:
            with open(self.config_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not read %s, using defaults: %s", self.config_file, e)
            return Settings()

        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a mapping", self.config_file)
            return Settings()

        if ConfigMigration.needs_migration(data):
            logger.info("Configuration file needs migration")
            data = ConfigMigration.migrate(data)
            self._save_raw_data(data)

        return self._dict_to_settings(data)

    def save(self, settings: Settings) -> None:
        """Save settings, tagged with the current configuration version."""
        data = self.to_dict(settings)
        data = ConfigMigration.set_version(data)
        self._save_raw_data(data)

    def set_value(self, key: str, raw: Any) -> Settings:
        """
        Validate and update one setting on disk.

        Args:
            key: Settings field name.
            raw: New value (converted to the field type).

        Returns:
            The saved Settings.

        Raises:
            KeyError: If key is not a settings field.
            ValueError: If the value cannot be converted.
            SettingsValidationError: If the updated settings fail validation.
                Nothing is written in that case.
        """
        settings = replace(self.load(), **{key: coerce_value(key, raw)})
        result = ConfigValidator().validate(settings)
        if not result.valid:
            raise SettingsValidationError(result)
        self.save(settings)
        return settings

    def _save_raw_data(self, data: dict[str, Any]) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    def to_dict(self, settings: Settings) -> dict[str, Any]:
        """Convert Settings to a dictionary suitable for YAML serialization."""
        result: dict[str, Any] = {}
        for name in Settings.field_names():
            value = getattr(settings, name)
            result[name] = value.value if isinstance(value, DependencyMode) else value
        return result

    def _dict_to_settings(self, data: dict[str, Any]) -> Settings:
        """
        Convert a dictionary to a Settings object.

        Unknown keys are ignored; invalid values fall back to their defaults.
        """
        defaults = Settings()
        values: dict[str, Any] = {}
        for name in Settings.field_names():
            if name not in data:
                continue
            try:
                values[name] = coerce_value(name, data[name])
            except (TypeError, ValueError) as e:
                logger.warning(
                    "Invalid %s in %s (%s), using default %r",
                    name,
                    self.config_file,
                    e,
                    getattr(defaults, name),
                )
        return replace(defaults, **values)
