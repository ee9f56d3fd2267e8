"""FastDeploy runtime configuration and settings."""
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from fastdeploy.core.errors import ConfigurationError

# Well-known service ports never suggested for an application
KNOWN_SERVICE_PORTS = (
    20, 21, 22, 25, 53, 80, 110, 143, 443, 465, 587, 993, 995,
    3306, 5432, 6379, 27017, 11211,
)

# Settings file search paths (ordered by proximity to current run)
CONFIG_PATHS = [
    "./fastdeploy.yml",
    "/etc/fastdeploy/fastdeploy.yml",
]


@dataclass
class DeploySettings:
    """Host layout and tunables for a deployment run.

    Attributes:
        apps_base_dir: Parent directory of every application root (default: /var/www)
        systemd_unit_dir: Directory for generated unit files
        nginx_sites_available: Directory for generated nginx sites
        nginx_sites_enabled: Directory holding the enabled-site symlinks
        acme_webroot: Static root served for ACME challenges
        requirements_file: Manifest looked up in the checked-out tree
        essential_packages: Python packages the process runner always needs
        reserved_ports: Ports the allocator never suggests
        fallback_port: Port suggested when allocation gives up
        port_attempts: Maximum random probes per allocation
        system_upgrade: Run apt-get upgrade when updates are available
        verbose: Show debug messages on the console (the run log always has them)
        log_file: Optional log file override
    """

    apps_base_dir: Path = Path("/var/www")
    systemd_unit_dir: Path = Path("/etc/systemd/system")
    nginx_sites_available: Path = Path("/etc/nginx/sites-available")
    nginx_sites_enabled: Path = Path("/etc/nginx/sites-enabled")
    acme_webroot: Path = Path("/var/www/html")
    requirements_file: str = "requirements.txt"
    essential_packages: Tuple[str, ...] = ("uvicorn", "uvloop", "httptools")
    reserved_ports: Tuple[int, ...] = KNOWN_SERVICE_PORTS
    fallback_port: int = 8000
    port_attempts: int = 50
    system_upgrade: bool = True
    verbose: bool = False
    log_file: Optional[str] = None
    source_file: Optional[Path] = field(default=None, compare=False)

    def app_dir(self, code_name: str) -> Path:
        return self.apps_base_dir / code_name

    def unit_path(self, code_name: str) -> Path:
        return self.systemd_unit_dir / f"{code_name}.service"

    def site_available_path(self, code_name: str) -> Path:
        return self.nginx_sites_available / code_name

    def site_enabled_path(self, code_name: str) -> Path:
        return self.nginx_sites_enabled / code_name

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], source_file: Optional[Path] = None) -> "DeploySettings":
        """Build settings from a parsed YAML mapping.

        Raises:
            ConfigurationError: On unknown keys or values of the wrong shape
        """
        known = {f.name for f in fields(cls)} - {"source_file"}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown settings in {source_file or 'configuration'}: {', '.join(sorted(unknown))}"
            )

        values: Dict[str, Any] = {}
        try:
            for key, value in data.items():
                if key in ("apps_base_dir", "systemd_unit_dir", "nginx_sites_available",
                           "nginx_sites_enabled", "acme_webroot"):
                    values[key] = Path(value)
                elif key == "essential_packages":
                    values[key] = tuple(str(v) for v in value)
                elif key == "reserved_ports":
                    values[key] = tuple(int(v) for v in value)
                elif key in ("fallback_port", "port_attempts"):
                    values[key] = int(value)
                elif key in ("system_upgrade", "verbose"):
                    values[key] = bool(value)
                else:
                    values[key] = None if value is None else str(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid value for '{key}': {e}") from e

        return cls(source_file=source_file, **values)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "DeploySettings":
        """Load settings from the first settings file found, then the environment.

        Environment variables:
            FASTDEPLOY_CONFIG: Settings file path
            FASTDEPLOY_APPS_DIR: Parent directory of application roots
            FASTDEPLOY_LOG_FILE: Log file path
            FASTDEPLOY_SKIP_UPGRADE: Set to 1 to skip apt-get upgrade
            FASTDEPLOY_VERBOSE: Set to 1 for debug output on the console

        Returns:
            DeploySettings instance
        """
        path = find_settings_file(config_path)
        settings = cls()
        if path is not None:
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Failed to parse {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigurationError(f"{path} must contain a mapping of settings")
            settings = cls.from_mapping(data, source_file=path)

        if apps_dir := os.environ.get("FASTDEPLOY_APPS_DIR"):
            settings.apps_base_dir = Path(apps_dir)
        if log_file := os.environ.get("FASTDEPLOY_LOG_FILE"):
            settings.log_file = log_file
        if os.environ.get("FASTDEPLOY_SKIP_UPGRADE") == "1":
            settings.system_upgrade = False
        if os.environ.get("FASTDEPLOY_VERBOSE") == "1":
            settings.verbose = True
        return settings


def find_settings_file(config_path: Optional[str] = None) -> Optional[Path]:
    """Locate the active settings file, if any."""
    if config_path:
        return Path(config_path)

    if env_config := os.environ.get("FASTDEPLOY_CONFIG"):
        return Path(env_config)

    for path in CONFIG_PATHS:
        if Path(path).exists():
            return Path(path)

    return None


# Global settings instance (can be overridden)
_settings: Optional[DeploySettings] = None


def get_settings() -> DeploySettings:
    """Get the global settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = DeploySettings.load()
    return _settings


def set_settings(settings: Optional[DeploySettings]):
    """Set the global settings (None forces a reload on next access)."""
    global _settings
    _settings = settings
