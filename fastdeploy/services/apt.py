"""Debian package management through apt-get and dpkg."""
import shutil
from typing import List

from fastdeploy.core.logger import get_logger
from fastdeploy.core.runner import CommandResult, CommandRunner

logger = get_logger(__name__)

NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


class PackageManager:
    """Installs system packages and reports what is present."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def has_command(self, name: str) -> bool:
        return shutil.which(name) is not None

    def is_installed(self, package: str) -> bool:
        """True when dpkg knows the package as installed."""
        return self.runner.run(["dpkg", "-s", package]).ok

    def update(self) -> CommandResult:
        return self.runner.execute("Updating package lists", ["apt-get", "update", "-y"])

    def upgradable_count(self) -> int:
        """Number of packages `apt list --upgradable` reports."""
        result = self.runner.run(["apt", "list", "--upgradable"])
        if not result.ok:
            logger.warning("Could not list upgradable packages")
            return 0
        return len([
            line for line in result.output.splitlines()
            if line.strip() and "/" in line and not line.startswith(("Listing", "WARNING"))
        ])

    def upgrade(self) -> None:
        self.runner.execute("Upgrading system packages", ["apt-get", "upgrade", "-y"], env=NONINTERACTIVE)
        self.runner.execute("Performing system cleanup (autoremove)", ["apt-get", "autoremove", "-y"],
                            env=NONINTERACTIVE)

    def install(self, packages: List[str], description: str = None) -> CommandResult:
        description = description or f"Installing {' '.join(packages)}"
        return self.runner.execute(
            description,
            ["apt-get", "install", "-y"] + list(packages),
            env=NONINTERACTIVE,
        )
