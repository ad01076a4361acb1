"""
Installed core version — ask the binary what it is.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from nodecore.core.services.artifact_fetcher import is_executable_file

logger = logging.getLogger(__name__)

NOT_INSTALLED = "Not installed"


def installed_version(binary_path: Path, timeout: int = 10) -> str:
    """Return the version string reported by ``<binary> -version``.

    ``xray -version`` prints e.g. ``Xray 1.8.24 (Xray, Penetrates Everything.) ...``
    on its first line; the second token is the version.

    Returns:
        The version, or ``"Not installed"`` if the binary is missing,
        not executable, or does not answer.
    """
    if not is_executable_file(binary_path):
        return NOT_INSTALLED

    try:
        result = subprocess.run(
            [str(binary_path), "-version"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Cannot run %s -version: %s", binary_path, e)
        return NOT_INSTALLED

    first_line = (result.stdout or "").strip().splitlines()[:1]
    tokens = first_line[0].split() if first_line else []
    if result.returncode != 0 or len(tokens) < 2:
        logger.debug("Unexpected -version output from %s: %r", binary_path, result.stdout)
        return NOT_INSTALLED
    return tokens[1]
