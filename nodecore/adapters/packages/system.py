"""
System package installer — apt, dnf, yum, or apk.

The first package manager found on PATH wins, in that order.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Sequence

from nodecore.adapters.base import PackageInstaller
from nodecore.core.errors import PrerequisiteMissing

logger = logging.getLogger(__name__)

# (binary probed on PATH, manager name), in preference order
_MANAGERS: tuple[tuple[str, str], ...] = (
    ("apt-get", "apt"),
    ("dnf", "dnf"),
    ("yum", "yum"),
    ("apk", "apk"),
)


def detect_package_manager() -> str | None:
    """Return the name of the first supported package manager on PATH."""
    for binary, manager in _MANAGERS:
        if shutil.which(binary):
            return manager
    return None


def install_commands(manager: str, packages: Sequence[str]) -> list[list[str]]:
    """The command lines that install ``packages`` with ``manager``."""
    pkgs = list(packages)
    if manager == "apt":
        return [
            ["apt-get", "update", "-y"],
            ["apt-get", "install", "-y", "--no-install-recommends", *pkgs],
        ]
    if manager in ("dnf", "yum"):
        return [[manager, "install", "-y", *pkgs]]
    if manager == "apk":
        return [["apk", "add", "--no-cache", *pkgs]]
    raise ValueError(f"Unknown package manager: {manager}")


class SystemPackageInstaller(PackageInstaller):
    """Install OS packages with the host's package manager."""

    def __init__(self, manager: str | None = None, timeout: int = 600):
        self._manager = manager if manager is not None else detect_package_manager()
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._manager or "none"

    def is_available(self) -> bool:
        return self._manager is not None

    def install(self, packages: Sequence[str]) -> None:
        if not packages:
            return
        if self._manager is None:
            raise PrerequisiteMissing(
                f"No supported package manager (apt/dnf/yum/apk) to install: {', '.join(packages)}"
            )

        env = os.environ.copy()
        env["DEBIAN_FRONTEND"] = "noninteractive"

        commands = install_commands(self._manager, packages)
        for i, cmd in enumerate(commands):
            # apt-get update is best effort; a stale index may still install
            best_effort = self._manager == "apt" and i == 0
            logger.info("Running: %s", " ".join(cmd))
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                    env=env,
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                if best_effort:
                    logger.warning("%s failed: %s", " ".join(cmd), e)
                    continue
                raise PrerequisiteMissing(f"Cannot install {', '.join(packages)}: {e}") from e

            if result.returncode != 0:
                if best_effort:
                    logger.warning("%s exited %d", " ".join(cmd), result.returncode)
                    continue
                stderr = result.stderr.strip()[-500:]
                raise PrerequisiteMissing(
                    f"Installing {', '.join(packages)} with {self._manager} failed "
                    f"(exit {result.returncode}): {stderr}"
                )
