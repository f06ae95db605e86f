"""
Thin wrapper around ``docker exec``.

Job types never build ``docker`` command lines themselves: they hand the
container name and the in-container command to :class:`DockerClient`,
which logs the command, runs it to completion and returns the
``CompletedProcess``.  Non-zero exit codes are returned to the caller,
not raised; only a docker CLI that cannot be started at all is an error.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence
from typing import IO

from ci_runner.errors import DockerError

logger = logging.getLogger(__name__)


class DockerClient:
    """
    Execute commands inside running containers.

    Args:
        binary: Docker CLI executable.
        dry_run: When True, commands are logged and reported as
            successful without being executed.
    """

    def __init__(self, binary: str = "docker", dry_run: bool = False):
        self.binary = binary
        self.dry_run = dry_run

    def exec_command(
        self,
        container: str,
        command: Sequence[str],
        *,
        user: str | None = None,
        tty: bool = True,
    ) -> list[str]:
        """Return the full ``docker exec`` argument list."""
        cmd = [self.binary, "exec"]
        if tty:
            cmd.append("-t")
        if user:
            cmd += ["-u", user]
        cmd.append(container)
        cmd += list(command)
        return cmd

    def exec(
        self,
        container: str,
        command: Sequence[str],
        *,
        user: str | None = None,
        tty: bool = True,
        capture: bool = False,
        stdout: IO[str] | None = None,
    ) -> subprocess.CompletedProcess:
        """
        Run *command* inside *container* and wait for it to finish.

        Args:
            container: Target container name.
            command: Command and arguments to run in the container.
            user: Optional OS user to run as (``docker exec -u``).
            tty: Allocate a pseudo-TTY (``docker exec -t``).
            capture: Capture stdout/stderr as text on the result.
            stdout: Open file receiving stdout; ignored when *capture*.

        Returns:
            The completed process; ``returncode`` is the command's exit code.

        Raises:
            DockerError: If the docker CLI cannot be executed.
        """
        cmd = self.exec_command(container, command, user=user, tty=tty)
        logger.info("Running: %s", shlex.join(cmd))

        if self.dry_run:
            return subprocess.CompletedProcess(cmd, 0, stdout="" if capture else None, stderr="" if capture else None)

        try:
            if capture:
                result = subprocess.run(cmd, check=False, text=True, capture_output=True)
            else:
                result = subprocess.run(cmd, check=False, text=True, stdout=stdout)
        except OSError as exc:
            raise DockerError(f"Unable to execute {self.binary}: {exc}") from exc

        if result.returncode != 0:
            logger.warning("Command exited with %s in container %s", result.returncode, container)
        return result
