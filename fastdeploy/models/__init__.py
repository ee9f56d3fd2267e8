"""Data models for FastDeploy."""
from fastdeploy.models.descriptor import DeploymentDescriptor, InstallMode

__all__ = [
    'DeploymentDescriptor',
    'InstallMode',
]
