"""Pytest configuration and fixtures for Stage Gate tests."""

from datetime import datetime

import pytest

from stage_gate.core.stage_contract import get_contract_registry
from stage_gate.settings import DependencyMode, Settings
from stage_gate.settings.storage import CONFIG_DIR_ENV
from stage_gate.state.audit_log import InMemoryAuditLog
from stage_gate.state.workflow import Workflow

FIXED_NOW = datetime(2026, 1, 16, 17, 5, 30)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the settings directory at a temporary path for every test."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv(CONFIG_DIR_ENV, str(config_dir))
    return config_dir


@pytest.fixture
def clock():
    """A clock frozen at 2026-01-16 17:05:30."""
    return lambda: FIXED_NOW


@pytest.fixture
def registry():
    """The default stage registry."""
    return get_contract_registry()


@pytest.fixture
def sink(clock):
    """An in-memory audit log with a frozen clock."""
    return InMemoryAuditLog(clock=clock)


@pytest.fixture
def workflow(sink, clock):
    """A workflow in live dependency mode."""
    return Workflow(sink=sink, clock=clock)


@pytest.fixture
def asserted_workflow(sink, clock):
    """A workflow in asserted dependency mode."""
    settings = Settings(dependency_mode=DependencyMode.ASSERTED)
    return Workflow(sink=sink, settings=settings, clock=clock)
