"""
Infrastructure modules known to the runner.

A module is a named capability (docker, a database container, the PHP web
server, ...) that a job type depends on.  Provisioning the containers
themselves happens outside this package; here a module only states which
env variables it provides, so that initializing the modules a job asks
for, in the order it asks for them, leaves the env registry with every
name the job may read.
"""

from __future__ import annotations

import dataclasses as dc
import logging
from collections.abc import Iterable, Sequence

from ci_runner.env import EnvRegistry
from ci_runner.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True)
class Module:
    name: str
    env: tuple[str, ...] = ()


DEFAULT_MODULES: tuple[Module, ...] = (
    Module("env", ("UUID", "WORKSPACE", "SHAREDDIR", "ENVIROPATH")),
    Module("summary"),
    Module("docker"),
    Module("docker-logs"),
    Module("git", ("MOODLE_BRANCH", "GIT_COMMIT", "GOOD_COMMIT", "BAD_COMMIT")),
    Module("browser", ("BROWSER",)),
    Module("plugins", ("PLUGINSTOINSTALL",)),
    Module(
        "docker-database",
        (
            "DBTYPE",
            "DBTAG",
            "DBHOST",
            "DBNAME",
            "DBUSER",
            "DBPASS",
            "DBCOLLATION",
            "DBREPLICAS",
            "DBHOST_DBREPLICA",
        ),
    ),
    Module("docker-php", ("PHP_VERSION", "WEBSERVER")),
    Module("moodle-config", ("MOODLE_CONFIG",)),
    Module("moodle-core-copy"),
    Module("docker-healthy"),
    Module("docker-summary"),
    Module("docker-jmeter", ("JMETER",)),
)


class ModuleRegistry:
    """Name -> :class:`Module` lookup with ordered initialization."""

    def __init__(self, modules: Iterable[Module] = DEFAULT_MODULES):
        self._modules: dict[str, Module] = {}
        for module in modules:
            self.register(module)

    def register(self, module: Module) -> None:
        self._modules[module.name] = module

    def __contains__(self, name: str) -> bool:
        return name in self._modules

    def get(self, name: str) -> Module:
        try:
            return self._modules[name]
        except KeyError:
            raise ConfigurationError(f"Unknown module: {name}", missing=[name]) from None

    def verify(self, *names: str) -> None:
        """
        Ensure every module in *names* is registered.

        Raises:
            ConfigurationError: Listing all unknown modules.
        """
        missing = [name for name in names if name not in self._modules]
        if missing:
            raise ConfigurationError(
                f"Required modules are not available: {', '.join(missing)}",
                missing=missing,
            )

    def initialize(self, names: Sequence[str], env: EnvRegistry) -> None:
        """Declare the env variables of each module, in the given order."""
        self.verify(*names)
        for name in names:
            module = self._modules[name]
            env.declare_all(module.env)
            logger.debug("Initialized module %s (%d env variables)", name, len(module.env))


def verify_modules(registry: ModuleRegistry, *names: str) -> None:
    """Function form of :meth:`ModuleRegistry.verify` used by job types."""
    registry.verify(*names)
