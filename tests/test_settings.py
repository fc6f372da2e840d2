"""Tests for settings storage, migration and validation."""

import pytest
import yaml

from stage_gate.settings import (
    ConfigMigration,
    ConfigValidator,
    DependencyMode,
    Settings,
    SettingsStorage,
    SettingsValidationError,
    coerce_value,
    default_config_dir,
)


@pytest.fixture
def storage(tmp_path):
    return SettingsStorage(tmp_path / "cfg")


class TestSettingsStorage:
    """Tests for SettingsStorage."""

    def test_defaults_when_missing(self, storage):
        """Test that a missing file yields default settings."""
        assert storage.load() == Settings()
        assert not storage.config_file.exists()

    def test_round_trip(self, storage):
        """Test that saved settings load back unchanged."""
        settings = Settings(
            dependency_mode=DependencyMode.ASSERTED,
            transition_delay_seconds=0.25,
            audit_log_capacity=50,
            timezone_label="UTC",
            default_role="QA Engineer",
            log_level="INFO",
            audit_log_path="/tmp/audit.json",
        )
        storage.save(settings)
        assert storage.load() == settings

    def test_saved_yaml_is_plain(self, storage):
        """Test that the file stores enum values and the config version."""
        storage.save(Settings(dependency_mode=DependencyMode.ASSERTED))
        data = yaml.safe_load(storage.config_file.read_text(encoding="utf-8"))

        assert data["dependency_mode"] == "asserted"
        assert data["config_version"] == ConfigMigration.CURRENT_VERSION

    def test_invalid_value_falls_back(self, storage):
        """Test that an invalid value is replaced by its default."""
        storage.config_dir.mkdir(parents=True)
        storage.config_file.write_text(
            "config_version: '1.0.0'\ndependency_mode: sometimes\naudit_log_capacity: 7\n",
            encoding="utf-8",
        )
        settings = storage.load()
        assert settings.dependency_mode is DependencyMode.LIVE
        assert settings.audit_log_capacity == 7

    def test_out_of_range_values_fall_back(self, storage):
        """Test that a negative delay and a zero capacity load as their defaults."""
        storage.config_dir.mkdir(parents=True)
        storage.config_file.write_text(
            "config_version: '1.0.0'\n"
            "transition_delay_seconds: -1\n"
            "audit_log_capacity: 0\n"
            "timezone_label: UTC\n",
            encoding="utf-8",
        )
        settings = storage.load()
        assert settings.transition_delay_seconds == Settings().transition_delay_seconds
        assert settings.audit_log_capacity == Settings().audit_log_capacity
        assert settings.timezone_label == "UTC"

    def test_unknown_keys_ignored(self, storage):
        """Test that keys the settings do not know are ignored."""
        storage.config_dir.mkdir(parents=True)
        storage.config_file.write_text(
            "config_version: '1.0.0'\ntheme: dark\n", encoding="utf-8"
        )
        assert storage.load() == Settings()

    def test_not_a_mapping(self, storage):
        """Test that a YAML file that is not a mapping yields defaults."""
        storage.config_dir.mkdir(parents=True)
        storage.config_file.write_text("- just\n- a list\n", encoding="utf-8")
        assert storage.load() == Settings()

    def test_unparseable_yaml(self, storage):
        """Test that broken YAML yields defaults."""
        storage.config_dir.mkdir(parents=True)
        storage.config_file.write_text("dependency_mode: [unclosed\n", encoding="utf-8")
        assert storage.load() == Settings()

    def test_set_value(self, storage):
        """Test updating one setting on disk."""
        settings = storage.set_value("transition_delay_seconds", "0.5")
        assert settings.transition_delay_seconds == 0.5
        assert storage.load().transition_delay_seconds == 0.5

    def test_set_value_unknown_key(self, storage):
        """Test that an unknown key raises KeyError."""
        with pytest.raises(KeyError):
            storage.set_value("theme", "dark")

    def test_set_value_rejected_by_validator(self, storage):
        """Test that a value failing validation raises and is not written."""
        with pytest.raises(SettingsValidationError) as excinfo:
            storage.set_value("default_role", "janitor")
        assert excinfo.value.result.errors
        assert not storage.config_file.exists()

    def test_to_dict_uses_plain_values(self, storage):
        """Test that to_dict stores the dependency mode by value."""
        data = storage.to_dict(Settings(dependency_mode=DependencyMode.ASSERTED))
        assert data["dependency_mode"] == "asserted"
        assert set(data) == set(Settings.field_names())

    def test_env_override(self, isolated_config):
        """Test that the config directory follows the environment variable."""
        assert default_config_dir() == isolated_config
        assert SettingsStorage().config_file == isolated_config / "config.yaml"


class TestCoerceValue:
    """Tests for coerce_value."""

    def test_dependency_mode(self):
        """Test parsing dependency modes case-insensitively."""
        assert coerce_value("dependency_mode", "ASSERTED") is DependencyMode.ASSERTED

    def test_invalid_dependency_mode(self):
        """Test that an unknown mode lists the valid ones."""
        with pytest.raises(ValueError, match="live, asserted"):
            coerce_value("dependency_mode", "manual")

    def test_numbers(self):
        """Test numeric conversions."""
        assert coerce_value("transition_delay_seconds", "1") == 1.0
        assert coerce_value("transition_delay_seconds", 0) == 0.0
        assert coerce_value("audit_log_capacity", "30") == 30
        with pytest.raises(ValueError):
            coerce_value("audit_log_capacity", 2.5)
        with pytest.raises(ValueError):
            coerce_value("transition_delay_seconds", True)

    def test_ranges(self):
        """Test that out-of-range numbers are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            coerce_value("transition_delay_seconds", "-0.5")
        with pytest.raises(ValueError, match="at least 1"):
            coerce_value("audit_log_capacity", 0)

    def test_strings(self):
        """Test string fields."""
        assert coerce_value("log_level", " debug ") == "DEBUG"
        assert coerce_value("audit_log_path", None) == ""


class TestConfigMigration:
    """Tests for ConfigMigration."""

    def test_version_detection(self):
        """Test reading the config version."""
        assert ConfigMigration.get_version({}) == "0"
        assert ConfigMigration.needs_migration({})
        assert not ConfigMigration.needs_migration({"config_version": "1.0.0"})

    def test_legacy_migration_is_registered(self):
        """Test that the unversioned format has a registered migration step."""
        target, _ = ConfigMigration.MIGRATIONS["0"]
        assert target == ConfigMigration.CURRENT_VERSION

    def test_unknown_version_kept_as_is(self):
        """Test that data from an unknown version is only re-tagged."""
        migrated = ConfigMigration.migrate({"config_version": "9.9", "dependencyMode": "live"})
        assert migrated == {"config_version": "1.0.0", "dependencyMode": "live"}

    def test_migrate_legacy_keys(self):
        """Test that camelCase keys are renamed and the delay converted to seconds."""
        migrated = ConfigMigration.migrate({
            "dependencyMode": "asserted",
            "transitionDelayMs": 800,
            "currentRole": "Supervisor",
            "timezone": "UTC",
        })
        assert migrated == {
            "dependency_mode": "asserted",
            "transition_delay_seconds": 0.8,
            "default_role": "Supervisor",
            "timezone_label": "UTC",
            "config_version": "1.0.0",
        }

    def test_snake_case_wins(self):
        """Test that a snake_case key is kept over its legacy spelling."""
        migrated = ConfigMigration.migrate({"logLevel": "DEBUG", "log_level": "ERROR"})
        assert migrated["log_level"] == "ERROR"

    def test_load_migrates_file(self, storage):
        """Test that loading a legacy file upgrades it in place."""
        storage.config_dir.mkdir(parents=True)
        storage.config_file.write_text(
            "dependencyMode: asserted\ntransitionDelayMs: 250\n", encoding="utf-8"
        )

        settings = storage.load()

        assert settings.dependency_mode is DependencyMode.ASSERTED
        assert settings.transition_delay_seconds == 0.25
        data = yaml.safe_load(storage.config_file.read_text(encoding="utf-8"))
        assert data["config_version"] == "1.0.0"
        assert "dependencyMode" not in data


class TestConfigValidator:
    """Tests for ConfigValidator."""

    def test_defaults_are_valid(self):
        """Test that default settings pass without warnings."""
        result = ConfigValidator().validate(Settings())
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_errors(self):
        """Test that invalid values are reported as errors."""
        result = ConfigValidator().validate(Settings(
            transition_delay_seconds=-1,
            audit_log_capacity=0,
            timezone_label=" ",
            default_role="janitor",
        ))
        assert not result.valid
        assert len(result.errors) == 4

    def test_warnings(self):
        """Test that unusual values are reported as warnings only."""
        result = ConfigValidator().validate(Settings(
            transition_delay_seconds=10,
            audit_log_capacity=50,
            log_level="CHATTY",
        ))
        assert result.valid
        assert len(result.warnings) == 3

    def test_invalid_mode_type(self):
        """Test that a raw string dependency mode is rejected."""
        result = ConfigValidator().validate(Settings(dependency_mode="live"))
        assert not result.valid
