"""Ordered install pipeline for one application.

Stages run strictly in sequence and each ends with a go/no-go gate.
Any gate failure raises a DeployError; rolling the host back is left to
the caller's rollback_guard, which reads the same ProgressMarker.
"""
import os
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from fastdeploy.core.config import DeploySettings
from fastdeploy.core.environment import EnvironmentPreparer
from fastdeploy.core.errors import CommandError, PreconditionError
from fastdeploy.core.host import server_ip
from fastdeploy.core.logger import get_logger
from fastdeploy.core.progress import ProgressMarker
from fastdeploy.core.prompter import Prompter
from fastdeploy.core.renderer import render_site, render_unit
from fastdeploy.core.runner import CommandRunner
from fastdeploy.core.summary import print_summary
from fastdeploy.models.descriptor import DeploymentDescriptor, InstallMode
from fastdeploy.services.apt import PackageManager
from fastdeploy.services.git_manager import GitManager
from fastdeploy.services.nginx import NginxManager
from fastdeploy.services.python_env import PythonEnvironment
from fastdeploy.services.systemd import ServiceManager

logger = get_logger(__name__)

APP_DIR_MODE = 0o750
UNIT_FILE_MODE = 0o644


class Stage(Enum):
    SYSTEM_PREP = 1
    IDENTITY = 2
    DIRECTORIES = 3
    SOURCE = 4
    MANIFEST = 5
    DEPENDENCIES = 6
    SERVICE = 7
    PROXY = 8
    COMPLETE = 9


class ManifestAction(Enum):
    SKIP = "skip"
    FILE = "file"
    ABORT = "abort"


class Provisioner:
    """Runs the install stages against a validated DeploymentDescriptor."""

    def __init__(
        self,
        runner: CommandRunner,
        settings: DeploySettings,
        marker: ProgressMarker,
        prompter: Prompter,
        mode: InstallMode,
        is_listening: Callable[[int], bool],
    ):
        self.runner = runner
        self.settings = settings
        self.marker = marker
        self.prompter = prompter
        self.mode = mode
        self.is_listening = is_listening

        self.packages = PackageManager(runner)
        self.services = ServiceManager(runner)
        self.nginx = NginxManager(runner, self.services, settings)
        self.git = GitManager(runner)
        self.python_env = PythonEnvironment(runner)
        self.environment = EnvironmentPreparer(self.packages, self.services, mode)

        self.completed_stages: List[Stage] = []
        self.requirements_file: Optional[str] = None

    def run(self, descriptor: DeploymentDescriptor) -> None:
        """Execute every stage in order.

        Raises:
            DeployError: On the first failed gate
        """
        steps = [
            (Stage.SYSTEM_PREP, self.prepare_system),
            (Stage.IDENTITY, self.create_identity),
            (Stage.DIRECTORIES, self.stage_directories),
            (Stage.SOURCE, self.acquire_source),
            (Stage.MANIFEST, self.resolve_manifest),
            (Stage.DEPENDENCIES, self.install_dependencies),
            (Stage.SERVICE, self.activate_service),
            (Stage.PROXY, self.activate_proxy),
            (Stage.COMPLETE, self.complete),
        ]
        for stage, step in steps:
            logger.debug(f"Entering stage {stage.value}: {stage.name}")
            step(descriptor)
            self.completed_stages.append(stage)

    def ensure_port_free(self, d: DeploymentDescriptor) -> None:
        if self.is_listening(d.port):
            raise PreconditionError(f"Port {d.port} is already in use. Please choose a different port.")

    # Stage 1
    def prepare_system(self, d: DeploymentDescriptor) -> None:
        self.packages.update()
        if self.settings.system_upgrade and self.packages.upgradable_count() > 0:
            logger.info("Package updates are available.")
            self.packages.upgrade()
            logger.info("System update and upgrade process finished.")
        else:
            logger.info("No system upgrade performed; packages are up to date or upgrades are disabled.")
        self.environment.prepare()
        self.ensure_port_free(d)

    # Stage 2
    def create_identity(self, d: DeploymentDescriptor) -> None:
        # Armed before adduser so a failed or interrupted attempt is rolled back too
        self.marker.arm(d.code_name)
        logger.info(f"Creating system user '{d.code_name}' and group...")
        result = self.runner.run([
            "adduser", "--system", "--group", "--no-create-home",
            "--home", str(d.app_dir), d.code_name,
        ])
        if not result.ok:
            raise CommandError(
                f"Creating system user '{d.code_name}'",
                result,
                hint="Check if the user already exists.",
            )

    # Stage 3
    def stage_directories(self, d: DeploymentDescriptor) -> None:
        d.app_dir.mkdir(parents=True, exist_ok=True)
        self.runner.execute(
            f"Setting ownership of {d.app_dir}",
            ["chown", f"{d.code_name}:{d.code_name}", str(d.app_dir)],
            announce=False,
        )
        os.chmod(d.app_dir, APP_DIR_MODE)

    # Stage 4
    def acquire_source(self, d: DeploymentDescriptor) -> None:
        token = d.git_token.get_secret_value() if d.uses_credentials else None
        self.git.clone_repo(
            d.repo_url,
            d.app_dir,
            user=d.code_name,
            username=d.git_username if token else None,
            token=token,
        )

    # Stage 5
    def resolve_manifest(self, d: DeploymentDescriptor) -> None:
        name = self.settings.requirements_file
        if (d.app_dir / name).is_file():
            self.requirements_file = name
            return

        logger.info(f"File '{name}' not found in '{d.app_dir}'.")
        if self.mode is InstallMode.GUIDED:
            logger.info(f"Easy Mode: Skipping project-specific dependencies as '{name}' is missing.")
            self.requirements_file = None
            return

        while True:
            action = self.prompter.choose(
                "Skip project dependencies, specify file, or abort? (Skip/File/Abort) [S/f/a, default: A]",
                {
                    "s": ManifestAction.SKIP, "skip": ManifestAction.SKIP,
                    "f": ManifestAction.FILE, "file": ManifestAction.FILE,
                    "a": ManifestAction.ABORT, "abort": ManifestAction.ABORT,
                },
                default="a",
            )
            if action is ManifestAction.SKIP:
                logger.info("Skipping project-specific dependency installation.")
                self.requirements_file = None
                return
            if action is ManifestAction.ABORT:
                raise PreconditionError("Aborting installation due to requirements file issue.")

            candidate = self.prompter.ask("Enter the name of your requirements file (e.g., requirements-dev.txt)")
            if not candidate:
                self.prompter.error("File name cannot be empty.")
                continue
            if self._is_inside(d.app_dir, candidate) and (d.app_dir / candidate).is_file():
                logger.info(f"Using '{candidate}' for project dependencies.")
                self.requirements_file = candidate
                return
            self.prompter.error(f"File '{candidate}' not found in '{d.app_dir}'. Please try again.")

    @staticmethod
    def _is_inside(root: Path, relative: str) -> bool:
        resolved_root = root.resolve()
        resolved = (root / relative).resolve()
        return resolved == resolved_root or resolved_root in resolved.parents

    # Stage 6
    def install_dependencies(self, d: DeploymentDescriptor) -> None:
        self.python_env.create(d.app_dir, d.code_name)
        notices = self.python_env.install(
            d.app_dir,
            d.code_name,
            essentials=self.settings.essential_packages,
            requirements_file=self.requirements_file,
        )
        for line in notices:
            self.prompter.say(line)
        self.runner.execute(
            "Setting ownership of the virtual environment",
            ["chown", "-R", f"{d.code_name}:{d.code_name}", str(d.venv_dir)],
            announce=False,
        )

    # Stage 7
    def activate_service(self, d: DeploymentDescriptor) -> None:
        self.ensure_port_free(d)

        unit_path = self.settings.unit_path(d.code_name)
        logger.info(f"Creating systemd service file: {unit_path}")
        unit_path.parent.mkdir(parents=True, exist_ok=True)
        unit_path.write_text(render_unit(d))
        os.chmod(unit_path, UNIT_FILE_MODE)

        reload = self.services.daemon_reload()
        if not reload.ok:
            raise CommandError("Reloading systemd units", reload)

        logger.info(f"Enabling service {d.code_name}...")
        enable = self.services.enable(d.unit_name)
        if not enable.ok:
            raise CommandError(f"Enabling {d.unit_name}", enable)

        logger.info(f"Starting service {d.code_name}...")
        start = self.services.start(d.unit_name)
        if not start.ok:
            raise CommandError(
                f"Starting {d.unit_name}",
                start,
                hint=(f"Check service status with: sudo systemctl status {d.unit_name}\n"
                      f"Check service logs with: sudo journalctl -u {d.code_name} -e"),
            )
        logger.info(f"Service {d.code_name} started successfully.")

    # Stage 8
    def activate_proxy(self, d: DeploymentDescriptor) -> None:
        site_path = self.nginx.write_site(d.site_name, render_site(d, self.settings.acme_webroot))
        self.nginx.enable_site(d.site_name)

        logger.info("Testing Nginx configuration...")
        test = self.nginx.test_config()
        if not test.ok:
            raise CommandError(
                "Testing Nginx configuration",
                test,
                hint=f"The problematic Nginx config file is likely {site_path}",
            )
        logger.info("Nginx configuration test successful.")

        logger.info("Restarting Nginx...")
        restart = self.nginx.restart()
        if not restart.ok:
            raise CommandError("Restarting Nginx", restart)
        logger.info("Nginx restarted successfully.")

    # Stage 9
    def complete(self, d: DeploymentDescriptor) -> None:
        print_summary(self.prompter, d, self.mode, server_ip(self.runner))
        self._show_nice_values()
        self.marker.complete()

    def _show_nice_values(self) -> None:
        result = self.runner.run(["ps", "-eo", "nice,user:20,comm", "--sort=nice"])
        if not result.ok:
            return
        rows = []
        for line in result.output.splitlines()[1:]:
            parts = line.split()
            if len(parts) >= 2 and parts[1] != "root" and line not in rows:
                rows.append(line)
        if rows:
            self.prompter.say("Nice values of user processes (excluding root):", style="yellow")
            for line in rows[-20:]:
                self.prompter.say(line)
