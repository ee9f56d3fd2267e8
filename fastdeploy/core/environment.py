"""Host prerequisites: nginx, certbot, python3-venv and lsof."""
from fastdeploy.core.errors import CommandError
from fastdeploy.core.logger import get_logger
from fastdeploy.models.descriptor import InstallMode
from fastdeploy.services.apt import PackageManager
from fastdeploy.services.systemd import ServiceManager

logger = get_logger(__name__)


class EnvironmentPreparer:
    """Installs missing host tools and makes sure nginx is running."""

    def __init__(self, packages: PackageManager, services: ServiceManager, mode: InstallMode):
        self.packages = packages
        self.services = services
        self.mode = mode

    def prepare(self) -> None:
        """Ensure every prerequisite for the selected mode.

        Raises:
            CommandError: If an installation fails or nginx cannot be started
        """
        self.ensure_nginx()
        self.ensure_python_venv()
        if self.mode is InstallMode.GUIDED:
            self.ensure_certbot()
        self.ensure_lsof()

    def ensure_nginx(self) -> None:
        if not self.packages.has_command("nginx"):
            self.packages.install(["nginx"], "Installing Nginx")
        else:
            logger.info("Nginx is already installed.")

        logger.info("Ensuring Nginx is enabled and started...")
        result = self.services.enable_now("nginx")
        if not result.ok:
            raise CommandError("Starting and enabling Nginx", result)
        logger.info("Nginx is running.")

    def ensure_certbot(self) -> None:
        if self.packages.has_command("certbot"):
            logger.info("Certbot is already installed.")
            return
        if self.packages.is_installed("python3-certbot-nginx"):
            self.packages.install(["certbot"], "Installing Certbot")
        else:
            self.packages.install(
                ["certbot", "python3-certbot-nginx"],
                "Installing Certbot and Nginx plugin (certbot python3-certbot-nginx)",
            )

    def ensure_python_venv(self) -> None:
        if self.packages.is_installed("python3-venv"):
            logger.info("python3-venv is already installed.")
            return
        self.packages.install(["python3-venv"], "Installing python3-venv")

    def ensure_lsof(self) -> None:
        if not self.packages.has_command("lsof"):
            self.packages.install(["lsof"], "Installing lsof for port checking")
