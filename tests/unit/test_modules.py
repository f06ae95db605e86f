"""Unit tests for the module registry."""

from __future__ import annotations

import pytest

from ci_runner.env import EnvRegistry
from ci_runner.errors import ConfigurationError
from ci_runner.modules import Module, ModuleRegistry, verify_modules

pytestmark = pytest.mark.unit


def test_default_registry_knows_performance_dependencies(job):
    """Test that every module the performance job asks for is available."""
    registry = ModuleRegistry()

    verify_modules(registry, *job.modules())


def test_verify_unknown_module_raises():
    registry = ModuleRegistry([Module("env"), Module("docker")])

    with pytest.raises(ConfigurationError) as exc_info:
        registry.verify("env", "docker-jmeter", "git")

    assert exc_info.value.missing == ["docker-jmeter", "git"]


def test_get_unknown_module_raises():
    with pytest.raises(ConfigurationError):
        ModuleRegistry([]).get("docker")


def test_initialize_declares_module_env_from_source():
    """Test that initializing modules declares their variables, empty or not."""
    # Arrange
    registry = ModuleRegistry(
        [
            Module("env", ("UUID", "WORKSPACE")),
            Module("git", ("GOOD_COMMIT", "BAD_COMMIT")),
        ]
    )
    env = EnvRegistry(source={"UUID": "run-1", "WORKSPACE": "/ws"})

    # Act
    registry.initialize(["env", "git"], env)

    # Assert
    assert env.names() == ["UUID", "WORKSPACE", "GOOD_COMMIT", "BAD_COMMIT"]
    assert env.get("UUID") == "run-1"
    assert env.is_declared("BAD_COMMIT")


def test_initialize_stops_before_declaring_anything_on_unknown_module():
    registry = ModuleRegistry([Module("env", ("UUID",))])
    env = EnvRegistry(source={})

    with pytest.raises(ConfigurationError):
        registry.initialize(["env", "docker"], env)

    assert env.names() == []
