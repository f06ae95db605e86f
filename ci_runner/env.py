"""
Env registry shared by the runner, its modules and the job types.

Every variable a job can use has to be *declared* first, by a module or by
the job type itself.  A declared variable may hold an empty string: what
``verify`` checks is that the name is known, not that it has a value.
Declared variables can be exported to an env file so that later processes
(containers started with ``--env-file``, follow-up CI steps) see the same
values.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from ci_runner.errors import ConfigurationError

logger = logging.getLogger(__name__)


class EnvRegistry:
    """Ordered name -> value store for declared env variables."""

    def __init__(self, source: Mapping[str, str] | None = None):
        # Values are looked up here when a name is declared without one.
        self._source = os.environ if source is None else source
        self._values: dict[str, str] = {}

    def declare(self, name: str, value: str | None = None) -> None:
        """
        Make *name* known to the registry.

        When *value* is None the current value from the source mapping is
        used (empty string if absent).  Re-declaring an already known name
        without a value keeps the stored value.
        """
        if value is None:
            if name in self._values:
                return
            value = self._source.get(name, "")
        self._values[name] = str(value)

    def declare_all(self, names: Iterable[str]) -> None:
        for name in names:
            self.declare(name)

    def is_declared(self, name: str) -> bool:
        return name in self._values

    def get(self, name: str, default: str = "") -> str:
        return self._values.get(name, default)

    def set(self, name: str, value: object) -> None:
        """Assign a value, declaring the name if needed."""
        self._values[name] = str(value)

    def names(self) -> list[str]:
        return list(self._values)

    def verify(self, *names: str) -> None:
        """
        Ensure every name in *names* is declared.

        Raises:
            ConfigurationError: Listing all undeclared names.
        """
        missing = [name for name in names if not self.is_declared(name)]
        if missing:
            raise ConfigurationError(
                f"Required env variables are not declared: {', '.join(missing)}",
                missing=missing,
            )

    def write_env_file(self, path: Path, names: Iterable[str]) -> Path:
        """
        Write ``NAME=value`` lines for *names* to *path*.

        Undeclared names are written with an empty value so the file always
        has the same shape for a given job type.
        """
        lines = []
        for name in names:
            value = self.get(name)
            if "\n" in value:
                raise ConfigurationError(f"Env variable {name} contains a newline and cannot be exported")
            lines.append(f"{name}={value}")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Cannot write env file {path}: {exc}") from exc
        logger.info("Wrote %d variables to env file %s", len(lines), path)
        return path


def verify_env(env: EnvRegistry, *names: str) -> None:
    """Function form of :meth:`EnvRegistry.verify` used by job types."""
    env.verify(*names)
