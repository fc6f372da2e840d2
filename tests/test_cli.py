"""Tests for the Stage Gate CLI."""

import json

from typer.testing import CliRunner

from stage_gate import __version__
from stage_gate.cli.main import app
from stage_gate.settings import DependencyMode, SettingsStorage

runner = CliRunner()


def _json(result):
    return json.loads(result.stdout)


class TestTopLevel:
    """Tests for top-level options."""

    def test_help(self):
        """Test that --help lists the commands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("stages", "actions", "run", "console", "config"):
            assert command in result.stdout

    def test_version(self):
        """Test that --version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestStagesCommand:
    """Tests for the stages command."""

    def test_table(self):
        """Test that the table renders."""
        result = runner.invoke(app, ["stages"])
        assert result.exit_code == 0
        assert "S17" in result.stdout

    def test_json(self):
        """Test that --json lists every stage with its links."""
        result = runner.invoke(app, ["stages", "--json"])
        assert result.exit_code == 0
        stages = _json(result)
        assert [s["stage_id"] for s in stages] == [f"S{i}" for i in range(18)]
        assert stages[10]["dependencies"] == {"registry_dependency": "S9"}


class TestActionsCommand:
    """Tests for the actions command."""

    def test_engineering_on_provisioning(self):
        """Test the verdicts for Engineering on the S10 seed."""
        result = runner.invoke(app, ["actions", "S10", "--role", "engineering", "--json"])
        assert result.exit_code == 0
        data = _json(result)
        assert data["role"] == "Design / Engineering"
        assert data["provisioning_status"] == "IDLE"
        assert data["actions"]["START_SESSION"] == {"enabled": True}
        assert data["actions"]["FLASH_FIRMWARE"]["reason"] == "Not in Provisioning Mode"

    def test_forced_status(self):
        """Test evaluating a stage forced into another status."""
        result = runner.invoke(
            app, ["actions", "s1", "--role", "management", "--status", "draft", "--json"]
        )
        assert result.exit_code == 0
        data = _json(result)
        assert data["approval_status"] == "DRAFT"
        assert data["actions"]["EDIT_BLUEPRINT"]["reason"] == "Requires Engineering Role"
        assert data["actions"]["EDIT_BLUEPRINT"]["kind"] == "role"

    def test_default_role_from_settings(self):
        """Test that the configured default role is used without --role."""
        SettingsStorage().set_value("default_role", "Supervisor")
        result = runner.invoke(app, ["actions", "S10", "--json"])
        assert _json(result)["role"] == "Supervisor"

    def test_table(self):
        """Test that the table renders."""
        result = runner.invoke(app, ["actions", "S10", "--role", "qa"])
        assert result.exit_code == 0
        assert "START_SESSION" in result.stdout

    def test_unknown_stage(self):
        """Test that an unknown stage exits with a usage error."""
        result = runner.invoke(app, ["actions", "S99", "--role", "admin"])
        assert result.exit_code == 2
        assert "Unknown stage" in result.stdout

    def test_unknown_role(self):
        """Test that an unknown role exits with a usage error."""
        result = runner.invoke(app, ["actions", "S10", "--role", "janitor"])
        assert result.exit_code == 2

    def test_unknown_status(self):
        """Test that a status outside the stage exits with a usage error."""
        result = runner.invoke(app, ["actions", "S10", "--role", "admin", "--status", "DONE"])
        assert result.exit_code == 2


class TestRunCommand:
    """Tests for the run command."""

    def test_asserted_walkthrough(self):
        """Test applying several actions in asserted mode."""
        result = runner.invoke(
            app,
            ["run", "S10", "START_SESSION", "flash_firmware",
             "--role", "engineering", "--mode", "asserted", "--json"],
        )
        assert result.exit_code == 0
        data = _json(result)
        assert data["mode"] == "asserted"
        assert [o["accepted"] for o in data["outcomes"]] == [True, True]
        assert data["context"]["provisioning_status"] == "VERIFYING"

    def test_live_dependency_denial(self):
        """Test that a blocked dependency stops the run with exit code 1."""
        result = runner.invoke(
            app,
            ["run", "S10", "START_SESSION", "FLASH_FIRMWARE", "--role", "engineering", "--json"],
        )
        assert result.exit_code == 1
        data = _json(result)
        assert len(data["outcomes"]) == 1
        assert data["outcomes"][0]["state"]["reason"] == "Registry (S9) Pre-requisites Not Met"
        assert data["context"]["provisioning_status"] == "IDLE"

    def test_mode_from_settings(self):
        """Test that the configured dependency mode is used without --mode."""
        SettingsStorage().set_value("dependency_mode", "asserted")
        result = runner.invoke(
            app, ["run", "S10", "START_SESSION", "--role", "engineering", "--json"]
        )
        assert result.exit_code == 0

    def test_notes_and_table_output(self):
        """Test the rendered output with notes."""
        result = runner.invoke(
            app, ["run", "S1", "CREATE_SKU", "--role", "engineering", "--notes", "Rev B"]
        )
        assert result.exit_code == 0
        assert "CREATE_SKU" in result.stdout

    def test_unknown_action(self):
        """Test that an unknown action is rejected before anything runs."""
        result = runner.invoke(app, ["run", "S10", "START_SESSION", "NOPE", "--role", "admin"])
        assert result.exit_code == 2
        assert "NOPE" in result.stdout


class TestConsoleCommand:
    """Tests for the interactive console."""

    def test_session(self):
        """Test a scripted console session."""
        script = "\n".join([
            "do CREATE_SKU first draft",
            "show",
            "actions",
            "log",
            "role management",
            "do EDIT_BLUEPRINT",
            "stage S2",
            "summary",
            "log all",
            "reset all",
            "bogus",
            "help",
            "quit",
        ]) + "\n"
        result = runner.invoke(
            app, ["console", "--role", "engineering", "--stage", "S1"], input=script
        )
        assert result.exit_code == 0
        assert "New SKU draft created" in result.stdout
        assert "denied" in result.stdout
        assert "Unknown command: bogus" in result.stdout
        assert "Bye" in result.stdout

    def test_end_of_input(self):
        """Test that the console exits cleanly at end of input."""
        result = runner.invoke(app, ["console", "--role", "qa"], input="")
        assert result.exit_code == 0

    def test_unknown_start_stage(self):
        """Test that an unknown starting stage exits with a usage error."""
        result = runner.invoke(app, ["console", "--stage", "S99"])
        assert result.exit_code == 2


class TestConfigCommands:
    """Tests for the config sub-commands."""

    def test_path(self, isolated_config):
        """Test printing the configuration file path."""
        result = runner.invoke(app, ["config", "path"])
        assert result.exit_code == 0
        assert result.stdout.strip() == str(isolated_config / "config.yaml")

    def test_show_json(self):
        """Test showing the defaults as JSON."""
        result = runner.invoke(app, ["config", "show", "--json"])
        assert result.exit_code == 0
        data = _json(result)
        assert data["dependency_mode"] == "live"
        assert data["audit_log_capacity"] == 20

    def test_show_panel(self):
        """Test that the panel renders."""
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "dependency_mode" in result.stdout

    def test_set(self):
        """Test changing a setting."""
        result = runner.invoke(app, ["config", "set", "dependency_mode", "ASSERTED"])
        assert result.exit_code == 0
        assert SettingsStorage().load().dependency_mode is DependencyMode.ASSERTED

    def test_set_unknown_key(self):
        """Test that an unknown key exits with a usage error."""
        result = runner.invoke(app, ["config", "set", "theme", "dark"])
        assert result.exit_code == 2

    def test_set_invalid_value(self):
        """Test that an unconvertible value exits with a usage error."""
        result = runner.invoke(app, ["config", "set", "audit_log_capacity", "many"])
        assert result.exit_code == 2

    def test_set_rejected_by_validator(self):
        """Test that a value failing validation is not saved."""
        result = runner.invoke(app, ["config", "set", "default_role", "janitor"])
        assert result.exit_code == 2
        assert "default_role" in result.stdout
        assert not SettingsStorage().config_file.exists()

    def test_set_out_of_range(self):
        """Test that an out-of-range number is rejected without saving."""
        result = runner.invoke(app, ["config", "set", "audit_log_capacity", "0"])
        assert result.exit_code == 2
        assert not SettingsStorage().config_file.exists()


class TestHandEditedConfig:
    """Tests for commands reading an out-of-range configuration file."""

    def _write(self, isolated_config, text):
        isolated_config.mkdir(parents=True)
        (isolated_config / "config.yaml").write_text(
            "config_version: '1.0.0'\n" + text, encoding="utf-8"
        )

    def test_run_with_negative_delay(self, isolated_config):
        """Test that run falls back to the default delay."""
        self._write(isolated_config, "transition_delay_seconds: -1\n")
        result = runner.invoke(app, ["run", "S1", "CREATE_SKU", "--role", "engineering"])
        assert result.exit_code == 0
        assert result.exception is None

    def test_console_with_zero_capacity(self, isolated_config):
        """Test that the console falls back to the default audit capacity."""
        self._write(isolated_config, "audit_log_capacity: 0\n")
        result = runner.invoke(app, ["console", "--role", "qa"], input="quit\n")
        assert result.exit_code == 0
        assert "Bye" in result.stdout
