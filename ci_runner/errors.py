"""Exceptions raised by the runner, its registries and its job types."""

from __future__ import annotations

from typing import Any


class RunnerError(Exception):
    """Base exception for all runner errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(RunnerError):
    """
    A precondition of the job is not met.

    Raised before any side effect happens: unknown job type, missing
    module, undeclared env variable or an invalid load-test plan file.
    """

    def __init__(
        self,
        message: str,
        missing: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.missing = missing or []


class JobError(RunnerError):
    """Fatal error inside a lifecycle hook; the job is aborted."""


class DockerError(RunnerError):
    """The docker CLI could not be executed."""
