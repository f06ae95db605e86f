"""
Sequential job runner.

Drives one job type through its lifecycle, once::

    initialize modules -> check -> configure -> summary -> env file
        -> setup -> run -> env file -> teardown

The env file is written again once ``run`` has set EXITCODE.

There is no retry or recovery here: a :class:`~ci_runner.errors.RunnerError`
raised by any step propagates to the caller, and the exit code returned
by ``run`` is what the runner returns.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ci_runner.env import EnvRegistry
from ci_runner.jobtypes import JobType
from ci_runner.modules import ModuleRegistry

logger = logging.getLogger(__name__)


class JobRunner:
    """
    Run a single job.

    Args:
        job: The job type instance to drive.
        env: Env registry shared by modules and the job.
        modules: Registry the job's module dependencies are resolved in.
        env_file: Where exported variables are written; relative paths
            are resolved against WORKSPACE.  None disables the env file.
    """

    def __init__(
        self,
        job: JobType,
        env: EnvRegistry,
        modules: ModuleRegistry | None = None,
        env_file: Path | None = None,
    ):
        self.job = job
        self.env = env
        self.modules = modules or ModuleRegistry()
        self.env_file = env_file

    def execute(self) -> int:
        """Run the whole lifecycle and return the job exit code."""
        logger.info("Starting %s job", self.job.name)

        self.env.declare_all(self.job.own_env())
        self.modules.initialize(self.job.modules(), self.env)
        self.job.check(self.env, self.modules)

        settings = self.job.configure(self.env)
        self.print_summary()
        self.export_env()

        self.job.setup(settings)
        exitcode = self.job.run(settings)
        self.env.set("EXITCODE", exitcode)
        self.export_env()
        self.job.teardown(settings)

        logger.info("Finished %s job with exit code %s", self.job.name, exitcode)
        return exitcode

    def print_summary(self) -> None:
        print(f"== Job type: {self.job.name}")
        for line in self.job.summary(self.env):
            print(line)

    def export_env(self) -> Path | None:
        if self.env_file is None:
            return None
        path = self.env_file
        if not path.is_absolute() and self.env.get("WORKSPACE"):
            path = Path(self.env.get("WORKSPACE")) / path
        return self.env.write_env_file(path, self.job.env_exports() + self.job.own_env())
