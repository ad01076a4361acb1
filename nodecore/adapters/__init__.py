"""Adapters — bindings for host tools (compose, package managers).

Public re-exports for convenient access.
"""

from nodecore.adapters.base import ComposeRunner, PackageInstaller
from nodecore.adapters.containers.compose import DockerComposeRunner
from nodecore.adapters.mock import MockComposeRunner, MockPackageInstaller
from nodecore.adapters.packages.system import SystemPackageInstaller

__all__ = [
    "ComposeRunner",
    "DockerComposeRunner",
    "MockComposeRunner",
    "MockPackageInstaller",
    "PackageInstaller",
    "SystemPackageInstaller",
]
