"""
Job types and their registry.

A job type is a named unit of CI pipeline behaviour.  The runner drives it
through a fixed lifecycle::

    check -> configure -> setup -> run -> teardown

Concrete job types subclass :class:`JobType` and register themselves with
the :func:`register_job_type` decorator; the runner looks them up by name
with :func:`get_job_type`.
"""

from __future__ import annotations

import abc
from collections.abc import Mapping
from typing import Any, Callable, TypeVar

from ci_runner.docker import DockerClient
from ci_runner.env import EnvRegistry
from ci_runner.errors import ConfigurationError
from ci_runner.modules import ModuleRegistry

J = TypeVar("J", bound=type)

JOB_TYPES: dict[str, type["JobType"]] = {}


class JobType(abc.ABC):
    """
    Base class of every job type.

    Declarations (``env_exports``, ``summary``, ``own_env``, ``modules``)
    have no side effects.  ``configure`` turns the env registry into a
    typed settings object that the remaining hooks receive explicitly.
    """

    name: str = ""

    def __init__(
        self,
        docker: DockerClient,
        *,
        webserver_user: str = "www-data",
        shared_mount: str = "/shared",
        options: Mapping[str, Any] | None = None,
    ):
        self.docker = docker
        self.webserver_user = webserver_user
        self.shared_mount = shared_mount
        # Job specific settings, e.g. load-test overrides.
        self.options = dict(options or {})

    def env_exports(self) -> list[str]:
        """Env variables to persist in the env file."""
        return []

    def summary(self, env: EnvRegistry) -> list[str]:
        """Human readable lines for the run summary."""
        return []

    def own_env(self) -> list[str]:
        """Env variables this job type defines itself."""
        return []

    @abc.abstractmethod
    def modules(self) -> list[str]:
        """Modules to initialize before the job, in order."""

    def check(self, env: EnvRegistry, modules: ModuleRegistry) -> None:
        modules.verify(*self.modules())

    @abc.abstractmethod
    def configure(self, env: EnvRegistry) -> Any:
        """Set defaults and derived variables, returning the job settings."""

    def setup(self, settings: Any) -> None:
        pass

    @abc.abstractmethod
    def run(self, settings: Any) -> int:
        """Execute the job and return its exit code."""

    def teardown(self, settings: Any) -> None:
        pass


def register_job_type(name: str) -> Callable[[J], J]:
    """Class decorator adding a job type to :data:`JOB_TYPES`."""

    def decorator(cls: J) -> J:
        cls.name = name
        JOB_TYPES[name] = cls
        return cls

    return decorator


def get_job_type(name: str) -> type[JobType]:
    """
    Return the job type class registered as *name*.

    Raises:
        ConfigurationError: If no such job type exists.
    """
    # Job type modules register on import.
    from ci_runner.jobtypes import performance  # noqa: F401

    try:
        return JOB_TYPES[name]
    except KeyError:
        known = ", ".join(sorted(JOB_TYPES)) or "none"
        raise ConfigurationError(f"Unknown job type '{name}' (known: {known})", missing=[name]) from None
