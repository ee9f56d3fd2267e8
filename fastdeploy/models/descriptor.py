"""Deployment descriptor: the validated parameter record for one install run."""
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from fastdeploy.core import validators


class InstallMode(str, Enum):
    """How the resolver treats fields that have a default."""

    GUIDED = "Easy"
    EXPLICIT = "Advanced"


def _check(value, predicate, message: str) -> str:
    text = str(value)
    if not predicate(text):
        raise ValueError(message.format(value=text))
    return text


class DeploymentDescriptor(BaseModel):
    """Immutable, fully validated input to the provisioner."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    # Identity
    app_name: str = Field(..., min_length=1, description="Human-readable display name")
    code_name: str = Field(..., description="Key for user, group, unit, site and directory")

    # Source
    repo_url: str
    git_username: Optional[str] = None
    git_token: Optional[SecretStr] = None
    app_module: str = "main:app"

    # Network
    domain: str
    port: int

    # Runtime tuning
    workers: int
    concurrency_limit: int = 1000
    backlog: int = 2048

    # Resource governance
    nice: int = 0
    cpu_quota: str = "80%"
    memory_max: str = "256M"

    # Proxy tuning
    gzip_level: int = 6

    apps_base_dir: Path = Path("/var/www")

    @field_validator('code_name')
    @classmethod
    def validate_code_name(cls, v):
        return _check(v, validators.is_code_name,
                      "Code name '{value}' must start with a letter, digit or '_' and may only "
                      "contain letters, digits, '_', '-', '.' and no '..'")

    @field_validator('repo_url')
    @classmethod
    def validate_repo_url(cls, v):
        return _check(v, validators.is_repo_url,
                      "Repository URL '{value}' is not a GitHub HTTPS or SSH URL")

    @field_validator('app_module')
    @classmethod
    def validate_app_module(cls, v):
        return _check(v, validators.is_module_reference,
                      "Module reference '{value}' must look like package.module:instance")

    @field_validator('domain')
    @classmethod
    def validate_domain(cls, v):
        return _check(v, validators.is_domain_name, "Domain '{value}' is not a valid domain name")

    @field_validator('port', mode='before')
    @classmethod
    def validate_port(cls, v):
        return int(_check(v, validators.is_port, "Port {value} is outside 1024-65535"))

    @field_validator('workers', 'concurrency_limit', 'backlog', mode='before')
    @classmethod
    def validate_positive(cls, v):
        return int(_check(v, validators.is_positive_integer, "'{value}' is not a positive integer"))

    @field_validator('nice', mode='before')
    @classmethod
    def validate_nice(cls, v):
        return int(_check(v, validators.is_nice_value, "Nice value {value} is outside -20..19"))

    @field_validator('cpu_quota')
    @classmethod
    def validate_cpu_quota(cls, v):
        return _check(v, validators.is_percentage, "CPU quota '{value}' must be 0%-100%")

    @field_validator('memory_max')
    @classmethod
    def validate_memory_max(cls, v):
        return _check(v, validators.is_memory_size, "Memory limit '{value}' needs a K, M or G suffix")

    @field_validator('gzip_level', mode='before')
    @classmethod
    def validate_gzip_level(cls, v):
        return int(_check(v, validators.is_gzip_level, "Gzip level {value} is outside 1-9"))

    @model_validator(mode='after')
    def validate_credentials(self) -> 'DeploymentDescriptor':
        """A token only makes sense alongside a username on an HTTPS URL."""
        if self.git_token is not None and not self.git_username:
            raise ValueError("A git token requires a git username")
        if self.git_username and not validators.is_https_url(self.repo_url):
            raise ValueError("Git credentials are only used with HTTPS repository URLs")
        return self

    @property
    def app_dir(self) -> Path:
        return self.apps_base_dir / self.code_name

    @property
    def unit_name(self) -> str:
        return f"{self.code_name}.service"

    @property
    def site_name(self) -> str:
        return self.code_name

    @property
    def venv_dir(self) -> Path:
        return self.app_dir / "venv"

    @property
    def uses_credentials(self) -> bool:
        return bool(self.git_username and self.git_token and self.git_token.get_secret_value())
