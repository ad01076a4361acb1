"""
Mock adapters — test doubles for the compose runner and package installer.

Record every call and return configurable results without touching
docker or a package manager.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from nodecore.adapters.base import ComposeRunner, PackageInstaller
from nodecore.core.errors import PrerequisiteMissing


class MockComposeRunner(ComposeRunner):
    """Compose runner that records restarts and returns a fixed status."""

    def __init__(self, returncode: int = 0, available: bool = True):
        self._returncode = returncode
        self._available = available
        self._calls: list[tuple[Path, str]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def calls(self) -> list[tuple[Path, str]]:
        """``(config_path, project_name)`` for every restart."""
        return self._calls

    def is_available(self) -> bool:
        return self._available

    def restart(self, config_path: Path, project_name: str) -> int:
        if not self._available:
            raise PrerequisiteMissing("Docker Compose not found (mock)")
        self._calls.append((config_path, project_name))
        return self._returncode


class MockPackageInstaller(PackageInstaller):
    """Package installer that records requested packages."""

    def __init__(self, available: bool = True, fail: bool = False):
        self._available = available
        self._fail = fail
        self._installed: list[str] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def installed(self) -> list[str]:
        return self._installed

    def is_available(self) -> bool:
        return self._available

    def install(self, packages: Sequence[str]) -> None:
        if not self._available or self._fail:
            raise PrerequisiteMissing(f"Cannot install {', '.join(packages)} (mock)")
        self._installed.extend(packages)

    def reset(self) -> None:
        self._installed.clear()
