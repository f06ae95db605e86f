"""
CI Runner: job runner factory.

This package runs a single CI job type (for example ``performance``)
against containers provisioned by the CI host.  :func:`create_runner`
wires together configuration, logging, the Docker client and the
requested job type so that each invocation (or test) receives a fresh,
independently configured runner.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ci_runner.config import get_config
from ci_runner.docker import DockerClient
from ci_runner.env import EnvRegistry
from ci_runner.job import JobRunner
from ci_runner.jobtypes import get_job_type
from ci_runner.modules import ModuleRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_runner(
    job_name: str,
    config_name: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    options: Mapping[str, Any] | None = None,
    docker: DockerClient | None = None,
    dry_run: bool | None = None,
    env_file: Path | None = None,
) -> JobRunner:
    """
    Construct a :class:`JobRunner` for *job_name*.

    Args:
        job_name: Registered job type name, e.g. ``"performance"``.
        config_name: Optional environment key ("development", "testing",
            "production").  When *None*, the RUNNER_ENV environment
            variable is consulted, defaulting to "production".
        environ: Source of env variable values; defaults to ``os.environ``.
        options: Job specific options (load-test overrides).
        docker: Pre-built Docker client, mainly for tests.
        dry_run: Overrides the configured dry-run flag.
        env_file: Overrides the configured env file path.

    Returns:
        A runner ready to ``execute()``.

    Raises:
        ConfigurationError: If the job type is unknown.
    """
    config_class = get_config(config_name)
    logging.getLogger("ci_runner").setLevel(config_class.LOG_LEVEL.upper())
    logger.info("Creating %s runner with config: %s", job_name, config_class.__name__)

    if docker is None:
        docker = DockerClient(
            binary=config_class.DOCKER_BIN,
            dry_run=config_class.DRY_RUN if dry_run is None else dry_run,
        )

    job_class = get_job_type(job_name)
    job = job_class(
        docker,
        webserver_user=config_class.WEBSERVER_USER,
        shared_mount=config_class.SHARED_MOUNT,
        options=options,
    )
    return JobRunner(
        job,
        EnvRegistry(environ),
        ModuleRegistry(),
        env_file=env_file if env_file is not None else Path(config_class.ENV_FILE),
    )
