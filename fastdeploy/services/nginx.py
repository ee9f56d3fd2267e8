"""nginx site management."""
from pathlib import Path

from fastdeploy.core.config import DeploySettings
from fastdeploy.core.logger import get_logger
from fastdeploy.core.runner import CommandResult, CommandRunner
from fastdeploy.services.systemd import ServiceManager

logger = get_logger(__name__)

NGINX_UNIT = "nginx"


class NginxManager:
    """Writes, enables, tests and removes nginx sites."""

    def __init__(self, runner: CommandRunner, services: ServiceManager, settings: DeploySettings):
        self.runner = runner
        self.services = services
        self.settings = settings

    def write_site(self, name: str, content: str) -> Path:
        path = self.settings.site_available_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        logger.info(f"Nginx configuration created: {path}")
        return path

    def enable_site(self, name: str) -> Path:
        """Point sites-enabled/<name> at sites-available/<name>, replacing a stale link."""
        target = self.settings.site_available_path(name)
        link = self.settings.site_enabled_path(name)
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink():
            logger.info("Nginx site symlink already exists. Overwriting.")
            link.unlink()
        link.symlink_to(target)
        logger.info("Nginx site enabled.")
        return link

    def remove_site(self, name: str) -> None:
        for path in (self.settings.site_enabled_path(name), self.settings.site_available_path(name)):
            path.unlink(missing_ok=True)

    def test_config(self) -> CommandResult:
        return self.runner.run(["nginx", "-t"])

    def is_active(self) -> bool:
        return self.services.is_active(NGINX_UNIT)

    def restart(self) -> CommandResult:
        return self.services.restart(NGINX_UNIT)

    def reload(self) -> CommandResult:
        return self.services.reload(NGINX_UNIT)
