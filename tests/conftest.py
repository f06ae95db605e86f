"""
Shared pytest fixtures for the CI runner test suite.

Every fixture works on a fresh ``tmp_path`` so that WORKSPACE and
SHAREDDIR never leak between tests, and on a :class:`RecordingDocker`
so that no test ever reaches a real container.
"""

import os
from pathlib import Path

import pytest

# Set testing environment before importing the runner
os.environ["RUNNER_ENV"] = "testing"

from ci_runner.jobtypes.performance import PerformanceJobType
from shared.test_helpers import TEST_PLAN_OUTPUT, RecordingDocker, make_env


@pytest.fixture
def docker():
    """Recording docker client whose test plan generator prints two URLs."""
    return RecordingDocker(outputs={"maketestplan.php": TEST_PLAN_OUTPUT})


@pytest.fixture
def env(tmp_path):
    """Env registry with everything a normal (non-bisect) run needs."""
    return make_env(tmp_path)


@pytest.fixture
def job(docker):
    """Performance job type bound to the recording docker client."""
    return PerformanceJobType(docker)


@pytest.fixture
def settings(job, env):
    """Settings as returned by ``configure`` for the default env."""
    return job.configure(env)


@pytest.fixture
def shared_dir(settings):
    """The SHAREDDIR of the default settings, created on disk."""
    path = Path(settings.shareddir)
    path.mkdir(parents=True, exist_ok=True)
    return path
