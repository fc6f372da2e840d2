"""
Configuration migration and version management for Stage Gate.

This module provides version-aware configuration file handling:
- Version detection for existing configuration files
- Chain migration from older versions to current
- Version tagging during save operations
"""

import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Keys written by the pre-release console, before config files were versioned
LEGACY_KEYS: Dict[str, str] = {
    "dependencyMode": "dependency_mode",
    "transitionDelayMs": "transition_delay_seconds",
    "auditLogCapacity": "audit_log_capacity",
    "timezone": "timezone_label",
    "currentRole": "default_role",
    "logLevel": "log_level",
    "auditLogPath": "audit_log_path",
}


class ConfigMigration:
    """
    Configuration migration manager.

    Supports chain migrations (e.g. v0 -> v1 -> v2). Files without a
    `config_version` key are treated as version "0".

    Attributes:
        CURRENT_VERSION: The current configuration file version.
        MIGRATIONS: Source version -> (target version, migration function).
    """

    CURRENT_VERSION: str = "1.0.0"

    MIGRATIONS: Dict[str, tuple[str, Callable[[Dict[str, Any]], Dict[str, Any]]]] = {}

    @classmethod
    def register_migration(
        cls,
        from_version: str,
        to_version: str,
        migration_func: Callable[[Dict[str, Any]], Dict[str, Any]],
    ) -> None:
        """Register a migration function from one version to the next."""
        cls.MIGRATIONS[from_version] = (to_version, migration_func)

    @classmethod
    def get_version(cls, data: Dict[str, Any]) -> str:
        """Get the version of a configuration dictionary ("0" when missing)."""
        return str(data.get("config_version", "0"))

    @classmethod
    def set_version(cls, data: Dict[str, Any], version: Optional[str] = None) -> Dict[str, Any]:
        """Set the version field (defaults to CURRENT_VERSION)."""
        data["config_version"] = version or cls.CURRENT_VERSION
        return data

    @classmethod
    def needs_migration(cls, data: Dict[str, Any]) -> bool:
        """Check if configuration data is not at CURRENT_VERSION."""
        return cls.get_version(data) != cls.CURRENT_VERSION

    @classmethod
    def migrate(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Migrate configuration data to the current version.

        Args:
            data: Configuration dictionary to migrate.

        Returns:
            Migrated configuration dictionary at CURRENT_VERSION.
        """
        current_version = cls.get_version(data)
        if current_version == cls.CURRENT_VERSION:
            return data

        logger.info("Migrating config from version %s", current_version)

        migrated_data = data.copy()
        migration_path: List[str] = []

        while current_version != cls.CURRENT_VERSION:
            if current_version in cls.MIGRATIONS:
                target_version, migration_func = cls.MIGRATIONS[current_version]
                migrated_data = migration_func(migrated_data)
                migration_path.append(f"{current_version} -> {target_version}")
                current_version = target_version
            else:
                logger.warning(
                    "No migration path from version %s to %s. Using data as-is.",
                    current_version,
                    cls.CURRENT_VERSION,
                )
                break

        migrated_data["config_version"] = cls.CURRENT_VERSION
        if migration_path:
            logger.info("Migration complete: %s", ", ".join(migration_path))
        return migrated_data


def _migrate_from_v0(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate from v0 (unversioned, camelCase keys) to v1.0.0.

    Renames legacy keys and converts the millisecond delay to seconds.
    A snake_case key already present wins over its legacy spelling.
    """
    migrated: Dict[str, Any] = {}
    for key, value in data.items():
        new_key = LEGACY_KEYS.get(key, key)
        if key == "transitionDelayMs":
            try:
                value = float(value) / 1000.0
            except (TypeError, ValueError):
                logger.warning("Dropping invalid legacy transitionDelayMs: %r", value)
                continue
        if new_key in migrated and key in LEGACY_KEYS:
            continue
        migrated[new_key] = value

    migrated["config_version"] = "1.0.0"
    logger.debug("Migrated legacy config to v1.0.0")
    return migrated


ConfigMigration.register_migration("0", "1.0.0", _migrate_from_v0)
