"""
JMeter load-test plan and command line.

:class:`LoadTestPlan` holds every value the JMeter command needs.  Most of
them are filled in by the performance job type (test plan and users files
downloaded during setup, site branch and commit from the git module); the
optional load shape (users, loops, ramp-up, throughput) comes from a YAML
file such as::

    users: 10
    loops: 5
    rampup: 30
    throughput: 120
    includelogs: true
    group: nightly
    description: "Nightly XS run"

Keys left out keep the values baked into the generated test plan.
"""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path
from typing import Any

import yaml

from ci_runner.errors import ConfigurationError

JMETER_LOG = "logs/jmeter.log"

_INT_KEYS = ("users", "loops", "rampup", "throughput")
_STR_KEYS = (
    "testplanfile",
    "testusersfile",
    "group",
    "description",
    "siteversion",
    "sitebranch",
    "sitecommit",
    "samplerinit",
)


@dc.dataclass
class LoadTestPlan:
    testplanfile: str = ""
    testusersfile: str = ""
    group: str = ""
    description: str = ""
    siteversion: str = ""
    sitebranch: str = ""
    sitecommit: str = ""
    # -J overrides; None keeps the test plan default
    users: int | None = None
    loops: int | None = None
    rampup: int | None = None
    throughput: int | None = None
    includelogs: bool = False
    samplerinit: str = ""

    def merged(self, overrides: dict[str, Any]) -> "LoadTestPlan":
        """Return a copy with the non-empty *overrides* applied."""
        values = {k: v for k, v in overrides.items() if v not in (None, "")}
        return dc.replace(self, **values)


def _coerce(key: str, value: Any) -> Any:
    if key in _INT_KEYS:
        if isinstance(value, bool):
            raise ValueError(f"{key} must be an integer, got {value!r}")
        number = int(value)
        if number <= 0:
            raise ValueError(f"{key} must be positive, got {number}")
        return number
    if key == "includelogs":
        if not isinstance(value, bool):
            raise ValueError(f"includelogs must be true or false, got {value!r}")
        return value
    return str(value)


def load_plan_overrides(path: Path) -> dict[str, Any]:
    """
    Read load-test overrides from a YAML file.

    Args:
        path: YAML mapping using the field names of :class:`LoadTestPlan`.

    Returns:
        The validated overrides, ready for :meth:`LoadTestPlan.merged`.

    Raises:
        ConfigurationError: If the file cannot be read, is not a mapping,
            has unknown keys or values of the wrong type.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read load-test plan {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Load-test plan {path} must be a mapping")

    known = set(_INT_KEYS) | set(_STR_KEYS) | {"includelogs"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown keys in load-test plan {path}: {', '.join(unknown)}")

    overrides: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        try:
            overrides[key] = _coerce(key, value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid value in load-test plan {path}: {exc}") from exc
    return overrides


def jmeter_command(plan: LoadTestPlan, shared_mount: str = "/shared") -> list[str]:
    """
    Build the JMeter non-GUI command for *plan*.

    Paths in the plan are relative to the shared directory; they are
    resolved against *shared_mount*, where the JMeter container sees it.
    """
    def shared(name: str) -> str:
        return name if name.startswith("/") else f"{shared_mount}/{name}"

    cmd = [
        "jmeter",
        "-n",
        "-j", shared(JMETER_LOG),
        "-t", shared(plan.testplanfile),
        f"-Jusersfile={shared(plan.testusersfile) if plan.testusersfile else ''}",
        f"-Jgroup={plan.group}",
        f"-Jdesc={plan.description}",
        f"-Jsiteversion={plan.siteversion}",
        f"-Jsitebranch={plan.sitebranch}",
        f"-Jsitecommit={plan.sitecommit}",
    ]
    if plan.samplerinit:
        cmd.append(f"-Jbeanshell.listener.init={plan.samplerinit}")
    if plan.includelogs:
        cmd.append("-Jincludelogs=1")
    for key in _INT_KEYS:
        value = getattr(plan, key)
        if value is not None:
            cmd.append(f"-J{key}={value}")
    return cmd
