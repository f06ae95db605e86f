"""
CI Runner: configuration.

Defines environment-specific configuration classes for the job runner.
Each class captures how the runner talks to Docker (binary, container
user, shared mount point) and operational settings such as the log level
and the default env file location.  The ``get_config`` factory selects the
right class based on the ``RUNNER_ENV`` environment variable (or an
explicit key).
"""

from __future__ import annotations

import os


class Config:
    """
    Base (shared) configuration for the runner.

    All environment-specific classes inherit from ``Config`` so that
    common defaults only need to be stated once.
    """

    # Docker CLI used for every container command.
    DOCKER_BIN: str = os.environ.get("RUNNER_DOCKER_BIN", "docker")

    # OS user owning the Moodle code inside the web server container.
    WEBSERVER_USER: str = os.environ.get("RUNNER_WEBSERVER_USER", "www-data")

    # Where SHAREDDIR is mounted inside the web server and JMeter containers.
    SHARED_MOUNT: str = os.environ.get("RUNNER_SHARED_MOUNT", "/shared")

    LOG_LEVEL: str = os.environ.get("RUNNER_LOG_LEVEL", "INFO")

    # Relative paths are resolved against WORKSPACE.
    ENV_FILE: str = os.environ.get("RUNNER_ENV_FILE", "runner.env")

    DRY_RUN: bool = False


class DevelopmentConfig(Config):
    """Local runs: commands are printed, not executed."""

    LOG_LEVEL: str = os.environ.get("RUNNER_LOG_LEVEL", "DEBUG")
    DRY_RUN: bool = True


class TestingConfig(Config):
    """Test-suite overrides. Tests inject their own docker client."""

    # Must never resolve to a real docker CLI.
    DOCKER_BIN: str = "docker-not-available-in-tests"
    LOG_LEVEL: str = "DEBUG"


class ProductionConfig(Config):
    """CI workers: values come from the job environment."""


# Lookup table mapping environment name strings to their config classes.
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": ProductionConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Return the configuration class for the given environment.

    Args:
        env: One of ``"development"``, ``"testing"``, or
            ``"production"``.  When *None*, the ``RUNNER_ENV``
            environment variable is consulted, falling back to
            ``"production"`` if unset.

    Returns:
        The ``Config`` subclass matching the requested environment,
        or ``ProductionConfig`` if the key is unrecognised.
    """
    if env is None:
        env = os.environ.get("RUNNER_ENV", "production")
    return config.get(env, config["default"])
