"""
Host prerequisites for an update run.

HTTP, archive handling, and YAML editing are all in-process, so the only
host dependency left is a CA bundle for talking HTTPS to the release
index.  Compose availability is checked by the compose runner itself.
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import Callable
from pathlib import Path

from nodecore.adapters.base import PackageInstaller

logger = logging.getLogger(__name__)

CA_PACKAGES = ("ca-certificates",)


def has_ca_bundle() -> bool:
    """Whether OpenSSL's default verify paths point at any certificates."""
    paths = ssl.get_default_verify_paths()
    if paths.cafile and Path(paths.cafile).is_file():
        return True
    if paths.capath and Path(paths.capath).is_dir():
        try:
            return any(Path(paths.capath).iterdir())
        except OSError as e:
            logger.debug("Cannot list %s: %s", paths.capath, e)
    return False


def ensure_prerequisites(
    installer: PackageInstaller,
    *,
    ca_check: Callable[[], bool] = has_ca_bundle,
) -> list[str]:
    """Install whatever the host is missing.

    Returns:
        Packages that were installed (empty when nothing was needed).

    Raises:
        PrerequisiteMissing: A required package could not be installed.
    """
    installed: list[str] = []
    if not ca_check():
        logger.warning("No CA bundle found — installing %s", ", ".join(CA_PACKAGES))
        installer.install(CA_PACKAGES)
        installed.extend(CA_PACKAGES)
    return installed
