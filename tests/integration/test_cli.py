"""
Integration tests for the command-line entry point.

``create_runner`` is wrapped so the CLI builds its runner with a recording
docker client and a controlled environment; everything else (argument
parsing, YAML loading, exit code mapping) runs for real.
"""

from __future__ import annotations

import subprocess

import pytest

import ci_runner
from ci_runner import cli
from shared.test_helpers import TEST_PLAN_OUTPUT, RecordingDocker

pytestmark = pytest.mark.integration


@pytest.fixture
def fake_runner_factory(monkeypatch, tmp_path):
    """Route the CLI through a recording docker client; return the client."""
    docker = RecordingDocker(outputs={"maketestplan.php": TEST_PLAN_OUTPUT})
    environ = {
        "UUID": "cli-1",
        "WORKSPACE": str(tmp_path / "workspace"),
        "SHAREDDIR": str(tmp_path / "shared"),
        "WEBSERVER": "web1",
        "JMETER": "jmeter1",
    }

    def _create_runner(job_name, config_name=None, **kwargs):
        return ci_runner.create_runner(job_name, config_name, environ=environ, docker=docker, **kwargs)

    monkeypatch.setattr(cli, "create_runner", _create_runner)
    return docker


def test_successful_job_exits_zero(fake_runner_factory):
    assert cli.main(["performance"]) == cli.EXIT_PASS


def test_failed_load_test_exits_one(fake_runner_factory):
    fake_runner_factory.returncodes["jmeter"] = 4

    assert cli.main(["performance"]) == cli.EXIT_JOB_FAILURE


def test_unknown_job_type_exits_two(fake_runner_factory, capsys):
    exitcode = cli.main(["behat"])

    assert exitcode == cli.EXIT_RUNNER_ERROR
    assert "Unknown job type 'behat'" in capsys.readouterr().err


def test_plan_file_is_applied(fake_runner_factory, tmp_path):
    """Test that --plan overrides end up on the JMeter command line."""
    # Arrange
    plan = tmp_path / "plan.yml"
    plan.write_text("users: 5\nloops: 2\n", encoding="utf-8")

    # Act
    exitcode = cli.main(["performance", "--plan", str(plan)])

    # Assert
    assert exitcode == cli.EXIT_PASS
    command = fake_runner_factory.calls[-1].command
    assert "-Jusers=5" in command
    assert "-Jloops=2" in command


def test_invalid_plan_file_exits_two(fake_runner_factory, tmp_path):
    plan = tmp_path / "plan.yml"
    plan.write_text("users: many\n", encoding="utf-8")

    assert cli.main(["performance", "--plan", str(plan)]) == cli.EXIT_RUNNER_ERROR
    assert fake_runner_factory.calls == []


def test_env_file_option(fake_runner_factory, tmp_path):
    target = tmp_path / "custom" / "job.env"

    cli.main(["performance", "--env-file", str(target)])

    assert "WEBSERVER=web1" in target.read_text(encoding="utf-8").splitlines()


def test_shared_dir_that_is_a_file_exits_two(fake_runner_factory, tmp_path, capsys):
    """Test that a file system failure is reported as a runner error, not a failed load test."""
    # Arrange
    (tmp_path / "shared").write_text("", encoding="utf-8")

    # Act
    exitcode = cli.main(["performance"])

    # Assert
    assert exitcode == cli.EXIT_RUNNER_ERROR
    assert "performance job failed: Cannot prepare JMeter output directories" in capsys.readouterr().err


def test_dry_run_completes_on_fresh_workspace(monkeypatch, tmp_path):
    """Test that --dry-run logs every command and still runs the whole lifecycle."""
    # Arrange
    environ = {
        "UUID": "dry-1",
        "WORKSPACE": str(tmp_path / "workspace"),
        "SHAREDDIR": str(tmp_path / "shared"),
        "WEBSERVER": "web1",
        "JMETER": "jmeter1",
    }

    def _create_runner(job_name, config_name=None, **kwargs):
        return ci_runner.create_runner(job_name, config_name, environ=environ, **kwargs)

    def _no_subprocess(*args, **kwargs):
        raise AssertionError("subprocess.run must not be called in dry-run mode")

    monkeypatch.setattr(cli, "create_runner", _create_runner)
    monkeypatch.setattr(subprocess, "run", _no_subprocess)

    # Act
    exitcode = cli.main(["performance", "--dry-run"])

    # Assert
    assert exitcode == cli.EXIT_PASS
    assert (tmp_path / "shared" / "output" / "runs" / "dry-1_1.output").is_file()
