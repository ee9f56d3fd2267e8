"""Teardown of every artifact a deployment may have created.

Each step tolerates the artifact being absent, so the same routine rolls
back a half-finished install and uninstalls a complete one.
"""
import shutil
from pathlib import Path
from typing import Callable

from fastdeploy.core import validators
from fastdeploy.core.config import DeploySettings
from fastdeploy.core.errors import CommandError
from fastdeploy.core.logger import get_logger
from fastdeploy.core.progress import ProgressMarker
from fastdeploy.core.runner import CommandRunner
from fastdeploy.services.nginx import NginxManager
from fastdeploy.services.systemd import ServiceManager

logger = get_logger(__name__)


class CleanupProtocol:
    """Idempotent removal of the unit, site, user, group and directory of an app."""

    def __init__(
        self,
        runner: CommandRunner,
        settings: DeploySettings,
        services: ServiceManager = None,
        nginx: NginxManager = None,
    ):
        self.runner = runner
        self.settings = settings
        self.services = services or ServiceManager(runner)
        self.nginx = nginx or NginxManager(runner, self.services, settings)

    def run(self, code_name: str) -> bool:
        """Remove everything keyed by code_name.

        Returns:
            True if a teardown was performed, False when there was nothing to do
        """
        if not code_name:
            logger.info("Skipping cleanup (no action performed on this server).")
            return False

        app_dir = self.settings.app_dir(code_name)
        if not self._owns(app_dir, code_name):
            logger.error(f"Refusing to clean up '{code_name}': it is not a valid application code name.")
            return False

        logger.warning(f"Performing cleanup for '{code_name}'")
        unit = f"{code_name}.service"

        self._step("stop service", lambda: self.services.stop(unit))
        self._step("disable service", lambda: self.services.disable(unit))
        self._step("remove unit file", lambda: self.settings.unit_path(code_name).unlink(missing_ok=True))
        self._step("reload systemd", self.services.daemon_reload)
        self._step("remove nginx site", lambda: self.nginx.remove_site(code_name))
        self._reload_nginx()
        self._step("delete user", lambda: self.runner.run(["userdel", code_name]))
        self._step("delete group", lambda: self.runner.run(["groupdel", code_name]))
        self._step("remove application directory", lambda: self._remove_tree(app_dir))

        logger.warning(f"Cleanup completed for '{code_name}'.")
        return True

    def rollback(self, marker: ProgressMarker) -> bool:
        """Undo the run recorded in marker, if it did not complete."""
        if not marker.needs_rollback:
            return self.run("")
        return self.run(marker.code_name)

    def _reload_nginx(self) -> None:
        if not self.nginx.is_active():
            return
        result = self.nginx.reload()
        if not result.ok:
            logger.warning("Nginx reload might have failed or Nginx not running.")

    def _owns(self, app_dir: Path, code_name: str) -> bool:
        """True when app_dir is exactly <apps_base_dir>/<code_name>."""
        return (
            validators.is_code_name(code_name)
            and app_dir.name == code_name
            and app_dir.parent == self.settings.apps_base_dir
        )

    @staticmethod
    def _remove_tree(path: Path) -> None:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.exists():
            shutil.rmtree(path)

    @staticmethod
    def _step(name: str, action: Callable) -> None:
        """Run one teardown step; failures are reported, never raised."""
        try:
            action()
        except (CommandError, OSError) as e:
            logger.warning(f"Cleanup step '{name}' failed: {e}")
