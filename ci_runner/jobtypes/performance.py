"""
Performance job type.

Provisions a Moodle site inside the web server container, generates a
fixed-size dataset and a JMeter test plan with the ``tool_generator`` CLI
scripts, then runs JMeter against the site from the JMeter container.

Lifecycle::

    check      verify modules and the required env names
    configure  EXITCODE, MOODLE_WWWROOT, SITESIZE, COURSENAME
    setup      install site, make test site, make test plan, download files
               (skipped for bisect sessions, which reuse the environment)
    run        jmeter -n ... in the JMeter container, RUNCOUNT times
    teardown   copy the JMeter log and run outputs to the results directory

Files are exchanged through SHAREDDIR, which both containers mount at
``/shared``.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import posixpath
import re
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from ci_runner.env import EnvRegistry, verify_env
from ci_runner.errors import ConfigurationError, DockerError, JobError
from ci_runner.jobtypes import JobType, register_job_type
from ci_runner.loadtest import JMETER_LOG, LoadTestPlan, jmeter_command
from ci_runner.modules import ModuleRegistry, verify_modules
from ci_runner.sections import RULE, now, section

logger = logging.getLogger(__name__)

DEFAULT_SITESIZE = "XS"
COURSENAME = "performance_course"

REQUIRED_ENV = ("UUID", "WORKSPACE", "SHAREDDIR", "ENVIROPATH", "WEBSERVER", "GOOD_COMMIT", "BAD_COMMIT")

# Test plan generator prints the download URLs of the files it creates.
_URL_RE = re.compile(r"http://\S+")

JMETER_ERROR_MSG = (
    "JMeter can not run, ensure that the JMeter container is running, "
    "the test plan file exists in the shared directory and is readable"
)


@dc.dataclass
class PerformanceSettings:
    """
    Typed view of the env registry, built by ``configure``.

    ``plan`` is filled in further by ``setup``, which records the test plan
    and users files it downloads.
    """

    uuid: str
    workspace: str
    shareddir: str
    webserver: str
    jmeter: str
    moodle_wwwroot: str
    sitesize: str
    coursename: str = COURSENAME
    good_commit: str = ""
    bad_commit: str = ""
    moodle_branch: str = ""
    git_commit: str = ""
    runcount: int = 1
    plan: LoadTestPlan = dc.field(default_factory=LoadTestPlan)

    @property
    def is_bisect(self) -> bool:
        return bool(self.good_commit or self.bad_commit)

    @property
    def results_dir(self) -> Path:
        return Path(self.workspace) / self.uuid / "performance"


def extract_urls(output: str) -> list[str]:
    """Return the ``http://`` URLs found in *output*, in order."""
    return _URL_RE.findall(output)


def url_basename(url: str) -> str:
    return posixpath.basename(urlparse(url).path)


def _runcount(value: str) -> int:
    if not value:
        return 1
    try:
        count = int(value)
    except ValueError:
        raise ConfigurationError(f"RUNCOUNT must be an integer, got {value!r}") from None
    if count < 1:
        raise ConfigurationError(f"RUNCOUNT must be at least 1, got {count}")
    return count


@register_job_type("performance")
class PerformanceJobType(JobType):
    """
    Moodle performance (JMeter) job.

    ``options`` are load-test overrides, as returned by
    :func:`ci_runner.loadtest.load_plan_overrides`.
    """

    # --- Declarations ---

    def env_exports(self) -> list[str]:
        return [
            "DBTYPE",
            "DBTAG",
            "DBHOST",
            "DBNAME",
            "DBUSER",
            "DBPASS",
            "DBCOLLATION",
            "DBREPLICAS",
            "DBHOST_DBREPLICA",
            "WEBSERVER",
            "MOODLE_WWWROOT",
        ]

    def summary(self, env: EnvRegistry) -> list[str]:
        return [
            f"== Moodle branch (version.php): {env.get('MOODLE_BRANCH')}",
            f"== PHP version: {env.get('PHP_VERSION')}",
            f"== DBTYPE: {env.get('DBTYPE')}",
            f"== DBTAG: {env.get('DBTAG')}",
            f"== DBREPLICAS: {env.get('DBREPLICAS')}",
            f"== MOODLE_CONFIG: {env.get('MOODLE_CONFIG')}",
            f"== PLUGINSTOINSTALL: {env.get('PLUGINSTOINSTALL')}",
            f"== SITESIZE: {env.get('SITESIZE')}",
        ]

    def own_env(self) -> list[str]:
        return ["RUNCOUNT", "EXITCODE"]

    def modules(self) -> list[str]:
        # Order matters: modules are initialized in sequence.
        return [
            "env",
            "summary",
            "docker",
            "docker-logs",
            "git",
            "browser",
            "plugins",
            "docker-database",
            "docker-php",
            "moodle-config",
            "moodle-core-copy",
            "docker-healthy",
            "docker-summary",
            "docker-jmeter",
        ]

    # --- Lifecycle ---

    def check(self, env: EnvRegistry, modules: ModuleRegistry) -> None:
        verify_modules(modules, *self.modules())
        verify_env(env, *REQUIRED_ENV)

    def configure(self, env: EnvRegistry) -> PerformanceSettings:
        """
        Derive the job variables and return the typed settings.

        Raises:
            ConfigurationError: If WORKSPACE or SHAREDDIR is empty.
        """
        empty = [name for name in ("WORKSPACE", "SHAREDDIR") if not env.get(name)]
        if empty:
            raise ConfigurationError(f"Empty env variables: {', '.join(empty)}", missing=empty)

        env.set("EXITCODE", 0)

        webserver = env.get("WEBSERVER")
        env.set("MOODLE_WWWROOT", f"http://{webserver}")
        env.set("SITESIZE", env.get("SITESIZE") or DEFAULT_SITESIZE)
        env.set("COURSENAME", COURSENAME)

        description = " ".join(
            part for part in ("Moodle", env.get("MOODLE_BRANCH"), env.get("SITESIZE"), "site") if part
        )
        plan = LoadTestPlan(
            group=env.get("UUID"),
            description=description,
            sitebranch=env.get("MOODLE_BRANCH"),
            sitecommit=env.get("GIT_COMMIT"),
        ).merged(self.options)

        return PerformanceSettings(
            uuid=env.get("UUID"),
            workspace=env.get("WORKSPACE"),
            shareddir=env.get("SHAREDDIR"),
            webserver=webserver,
            jmeter=env.get("JMETER"),
            moodle_wwwroot=env.get("MOODLE_WWWROOT"),
            sitesize=env.get("SITESIZE"),
            coursename=env.get("COURSENAME"),
            good_commit=env.get("GOOD_COMMIT"),
            bad_commit=env.get("BAD_COMMIT"),
            moodle_branch=env.get("MOODLE_BRANCH"),
            git_commit=env.get("GIT_COMMIT"),
            runcount=_runcount(env.get("RUNCOUNT")),
            plan=plan,
        )

    def setup(self, settings: PerformanceSettings) -> None:
        # Bisect sessions reuse an already provisioned environment.
        if settings.is_bisect:
            logger.info(
                "Bisect session (good: %s, bad: %s), skipping performance setup",
                settings.good_commit or "-",
                settings.bad_commit or "-",
            )
            return
        self.setup_normal(settings)

    def setup_normal(self, settings: PerformanceSettings) -> None:
        with section(f"Initialising Performance environment at {now()}"):
            self._exec_web(settings, self.init_command())
            print("Creating test data")
            self.generate_test_data(settings)

    def run(self, settings: PerformanceSettings) -> int:
        if settings.runcount > 1:
            title = f"Starting {settings.runcount} Performance main runs at {now()}"
        else:
            title = f"Starting Performance main run at {now()}"

        with section(title):
            cmd = self.main_command(settings)

            shared = Path(settings.shareddir)
            runs_dir = shared / "output" / "runs"
            try:
                (shared / posixpath.dirname(JMETER_LOG)).mkdir(parents=True, exist_ok=True)
                runs_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise JobError(f"Cannot prepare JMeter output directories in {shared}: {exc}") from exc

            exitcode = 0
            for index in range(1, settings.runcount + 1):
                print(f">>> Performance run at {now()} <<<")
                output = runs_dir / f"{settings.uuid or 'run'}_{index}.output"
                try:
                    handle = output.open("w", encoding="utf-8")
                except OSError as exc:
                    raise JobError(f"Cannot write JMeter run output {output}: {exc}") from exc
                with handle:
                    try:
                        result = self.docker.exec(settings.jmeter, cmd, stdout=handle)
                    except DockerError as exc:
                        raise JobError(JMETER_ERROR_MSG) from exc
                if result.returncode != 0 and exitcode == 0:
                    exitcode = result.returncode

            print(RULE)
            print(f"== Date: {now()}")
            print(f"== Exit code: {exitcode}")
        return exitcode

    def teardown(self, settings: PerformanceSettings) -> None:
        shared = Path(settings.shareddir)
        artifacts = [shared / JMETER_LOG]
        artifacts += sorted((shared / "output" / "runs").glob(f"{settings.uuid or 'run'}_*.output"))

        results_dir = settings.results_dir
        copied = 0
        try:
            results_dir.mkdir(parents=True, exist_ok=True)
            for artifact in artifacts:
                if not artifact.is_file():
                    logger.warning("Result file %s not found, not persisted", artifact)
                    continue
                shutil.copy2(artifact, results_dir / artifact.name)
                copied += 1
        except OSError as exc:
            raise JobError(f"Cannot copy results to {results_dir}: {exc}") from exc
        logger.info("Copied %d result files to %s", copied, results_dir)

    # --- Commands ---

    def init_command(self) -> list[str]:
        return [
            "php",
            "admin/cli/install_database.php",
            "--agree-license",
            "--fullname=Moodle Performance Test",
            "--shortname=moodle",
            "--adminuser=admin",
            "--adminpass=adminpass",
        ]

    def testsite_command(self, settings: PerformanceSettings) -> list[str]:
        return [
            "php",
            "admin/tool/generator/cli/maketestsite.php",
            f"--size={settings.sitesize}",
            "--fixeddataset",
            "--bypasscheck",
            "--filesizelimit=1000",
        ]

    def testplan_command(self, settings: PerformanceSettings) -> list[str]:
        return [
            "php",
            "admin/tool/generator/cli/maketestplan.php",
            f"--size={settings.sitesize}",
            f"--shortname={settings.coursename}",
            "--bypasscheck",
        ]

    def main_command(self, settings: PerformanceSettings) -> list[str]:
        """
        Build the JMeter command for the run.

        Raises:
            JobError: If there is no JMeter container or no test plan to run.
        """
        if not settings.jmeter:
            raise JobError("No JMeter container available (JMETER is empty)")
        plan = self.resolve_plan(settings)
        return jmeter_command(plan, self.shared_mount)

    def resolve_plan(self, settings: PerformanceSettings) -> LoadTestPlan:
        """
        Fill in test plan and users files missing from the settings.

        Setup records the files it downloads.  Bisect sessions skip setup
        and use the most recent ``.jmx``/``.csv`` files left in SHAREDDIR
        by a previous provisioning.  In dry-run mode nothing is downloaded,
        so the files are named after the site size.
        """
        plan = settings.plan
        shared = Path(settings.shareddir)
        if settings.is_bisect:
            if not plan.testplanfile:
                plan = dc.replace(plan, testplanfile=_latest(shared, "*.jmx"))
            if not plan.testusersfile:
                plan = dc.replace(plan, testusersfile=_latest(shared, "*.csv"))
        elif self.docker.dry_run:
            plan = dc.replace(
                plan,
                testplanfile=plan.testplanfile or f"testplan_{settings.sitesize}.jmx",
                testusersfile=plan.testusersfile or f"users_{settings.sitesize}.csv",
            )
            logger.info("Dry run, using test plan %s", plan.testplanfile)
        if not plan.testplanfile and settings.is_bisect:
            raise JobError(f"No JMeter test plan found in {shared}")
        if not plan.testplanfile:
            raise JobError("The test plan generator did not produce a JMeter test plan")
        return plan

    # --- Helpers ---

    def generate_test_data(self, settings: PerformanceSettings) -> None:
        self._exec_web(settings, self.testsite_command(settings))

        result = self._exec_web(settings, self.testplan_command(settings), capture=True)
        testplanfiles = result.stdout or ""
        print("Captured Output:")
        print(testplanfiles)

        for url in extract_urls(testplanfiles):
            filename = url_basename(url)
            target = f"{self.shared_mount}/{filename}"
            print(f"Downloading: {url} to {target}")
            self._exec_web(settings, ["curl", "-o", target, url], tty=False)

            if filename.endswith(".jmx") and not settings.plan.testplanfile:
                settings.plan.testplanfile = filename
            elif filename.endswith(".csv") and not settings.plan.testusersfile:
                settings.plan.testusersfile = filename

    def _exec_web(self, settings: PerformanceSettings, command: Sequence[str], **kwargs: Any):
        return self.docker.exec(settings.webserver, command, user=self.webserver_user, **kwargs)


def _latest(directory: Path, pattern: str) -> str:
    if not directory.is_dir():
        return ""
    candidates = sorted(directory.glob(pattern), key=lambda p: p.stat().st_mtime)
    return candidates[-1].name if candidates else ""
