"""
Command-line entry point.

Runs one job type and maps the outcome to a three-state exit code so that
CI can tell "the load test failed" from "the runner crashed":

- ``0``: the job ran and its tool exited successfully
- ``1``: the job ran and its tool exited with a non-zero code
- ``2``: the runner itself failed (bad configuration, aborted job)
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from ci_runner import create_runner
from ci_runner.errors import RunnerError
from ci_runner.loadtest import load_plan_overrides

EXIT_PASS = 0
EXIT_JOB_FAILURE = 1
EXIT_RUNNER_ERROR = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the runner."""
    parser = argparse.ArgumentParser(prog="ci-runner", description="Run a CI job type.")
    parser.add_argument("jobtype", help="Job type to run, e.g. performance")
    parser.add_argument(
        "--config",
        dest="config_name",
        choices=["development", "testing", "production"],
        help="Configuration to use (defaults to RUNNER_ENV)",
    )
    parser.add_argument(
        "--plan",
        type=Path,
        help="YAML file with load-test overrides (users, loops, rampup, throughput...)",
    )
    parser.add_argument("--env-file", type=Path, help="Where to write the exported env variables")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log container commands without executing them",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point: build the runner, execute the job, map the exit code.

    Returns:
        ``EXIT_PASS``, ``EXIT_JOB_FAILURE`` or ``EXIT_RUNNER_ERROR``.
    """
    args = parse_args(argv)

    try:
        options = load_plan_overrides(args.plan) if args.plan else {}
        runner = create_runner(
            args.jobtype,
            args.config_name,
            options=options,
            dry_run=args.dry_run,
            env_file=args.env_file,
        )
        exitcode = runner.execute()
    except RunnerError as exc:
        print(f"{args.jobtype} job failed: {exc}", file=sys.stderr)
        return EXIT_RUNNER_ERROR

    return EXIT_PASS if exitcode == 0 else EXIT_JOB_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
