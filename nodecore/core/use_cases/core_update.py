"""
Core update use case — install a release and point the node at it.

    root check → probe platform → prerequisites → resolve release
    → fetch + unpack → patch compose file → restart compose project

Every step is fail-fast: the first error stops the run and is recorded
on the result.  There is no compensating rollback.  A failed restart
leaves the new binary and the compose edit in place.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from nodecore.adapters.base import ComposeRunner, PackageInstaller
from nodecore.core.config.settings import EXECUTABLE_ENV, Settings
from nodecore.core.errors import CoreUpdateError, InsufficientPrivileges, RestartFailed
from nodecore.core.models.platform import TargetPlatform
from nodecore.core.services.artifact_fetcher import fetch
from nodecore.core.services.compose_patch import PatchResult, patch_compose_file
from nodecore.core.services.core_version import installed_version
from nodecore.core.services.platform_probe import probe
from nodecore.core.services.prerequisites import ensure_prerequisites
from nodecore.core.services.release_index import ReleaseIndex
from nodecore.core.services.release_resolver import resolve

logger = logging.getLogger(__name__)


def running_as_root() -> bool:
    return os.geteuid() == 0


@dataclass
class CoreUpdateResult:
    """Outcome of a core update run."""

    ok: bool = False
    requested: str = ""
    tag: str | None = None
    platform: TargetPlatform | None = None
    asset_name: str | None = None
    installed_version: str | None = None
    patch: PatchResult | None = None
    steps_completed: list[str] = field(default_factory=list)
    error: CoreUpdateError | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "requested": self.requested,
            "tag": self.tag,
            "platform": self.platform.value if self.platform else None,
            "asset_name": self.asset_name,
            "installed_version": self.installed_version,
            "patch": self.patch.to_dict() if self.patch else None,
            "steps_completed": self.steps_completed,
            "error": (
                {"category": self.error.category, "message": str(self.error)}
                if self.error else None
            ),
        }


def requested_version(settings: Settings, version: str | None) -> str:
    """CLI argument, then ``XRAY_VERSION``, then ``latest``."""
    for candidate in (version, settings.xray_version):
        if candidate and candidate.strip():
            return candidate.strip()
    return "latest"


def run_core_update(
    settings: Settings,
    version: str | None = None,
    *,
    index: ReleaseIndex,
    compose_runner: ComposeRunner,
    installer: PackageInstaller,
    probe_fn: Callable[[], TargetPlatform] = probe,
    is_root: Callable[[], bool] = running_as_root,
    on_step: Callable[[str, str], None] | None = None,
) -> CoreUpdateResult:
    """Run the full update.

    Args:
        settings: Run configuration.
        version: Requested tag, ``"latest"``, or None (falls back to
            ``XRAY_VERSION``, then latest).
        index: Release index to resolve against.
        compose_runner: Restarts the compose project.
        installer: Installs missing host packages.
        probe_fn: Platform probe (injected for tests).
        is_root: Privilege check (injected for tests).
        on_step: Optional ``(step, message)`` progress callback.

    Returns:
        CoreUpdateResult — ``ok`` is True only if every step succeeded.
    """
    result = CoreUpdateResult(requested=requested_version(settings, version))

    def _done(step: str, message: str) -> None:
        result.steps_completed.append(step)
        logger.info("[%s] %s", step, message)
        if on_step is not None:
            on_step(step, message)

    try:
        if not is_root():
            raise InsufficientPrivileges("Must run as root.")

        result.platform = probe_fn()
        _done("probe", f"Platform: linux-{result.platform.value}")

        installed_pkgs = ensure_prerequisites(installer)
        _done(
            "prerequisites",
            f"Installed {', '.join(installed_pkgs)}" if installed_pkgs else "Prerequisites present",
        )

        ref = resolve(settings.core_repo, result.requested, index)
        result.tag = ref.tag
        _done("resolve", f"Selected version: {ref.tag}")

        core = fetch(
            ref,
            result.platform,
            settings.core_dir,
            index,
            timeout=settings.http_timeout,
        )
        result.asset_name = core.asset_name
        _done("fetch", f"Xray core unpacked to {core.directory}")

        result.patch = patch_compose_file(
            settings.compose_path,
            service=settings.compose_service,
            env_name=EXECUTABLE_ENV,
            env_value=settings.xray_dest_path_in_container,
            mount_entry=settings.mount_entry,
        )
        _done(
            "patch",
            f"Compose file {'updated' if result.patch.changed else 'already up to date'}",
        )

        returncode = compose_runner.restart(settings.compose_path, settings.app_name)
        if returncode != 0:
            raise RestartFailed(
                f"'{settings.app_name}' restart exited {returncode}; "
                "new core and compose edits were kept",
                returncode=returncode,
            )
        _done("restart", f"Restarted {settings.app_name}")

    except CoreUpdateError as e:
        logger.error("Core update failed: %s", e.render())
        result.error = e
        return result

    result.installed_version = installed_version(settings.binary_path)
    result.ok = True
    return result
