"""
Docker Compose runner — restart the node's compose project.

Uses the docker CLI, never the Docker API.  Prefers the ``docker compose``
plugin and falls back to the standalone ``docker-compose`` binary.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from nodecore.adapters.base import ComposeRunner
from nodecore.core.errors import PrerequisiteMissing

logger = logging.getLogger(__name__)


class DockerComposeRunner(ComposeRunner):
    """``ComposeRunner`` backed by ``docker compose`` / ``docker-compose``."""

    def __init__(self, timeout: int = 300):
        self._timeout = timeout
        self._command: list[str] | None = None

    @property
    def name(self) -> str:
        return " ".join(self._command) if self._command else "docker compose"

    def is_available(self) -> bool:
        return self._detect() is not None

    def restart(self, config_path: Path, project_name: str) -> int:
        command = self._detect()
        if command is None:
            raise PrerequisiteMissing(
                "Docker Compose not found (tried 'docker compose' and 'docker-compose'). "
                "Install Docker & Compose for your distro, then re-run."
            )

        args = [*command, "-f", str(config_path), "-p", project_name, "restart"]
        logger.info("Running: %s", " ".join(args))
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error("Compose restart timed out after %ss", self._timeout)
            return 124
        except OSError as e:
            logger.error("Cannot run %s: %s", args[0], e)
            return 126

        if result.returncode != 0:
            logger.error(
                "Compose restart failed (exit %d): %s",
                result.returncode, result.stderr.strip()[-2000:],
            )
        return result.returncode

    def _detect(self) -> list[str] | None:
        """Find a working compose command, caching the answer."""
        if self._command is not None:
            return self._command

        if shutil.which("docker"):
            try:
                probe = subprocess.run(
                    ["docker", "compose", "version"],
                    capture_output=True,
                    text=True,
                    timeout=15,
                )
                if probe.returncode == 0:
                    self._command = ["docker", "compose"]
                    return self._command
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.debug("docker compose probe failed: %s", e)

        if shutil.which("docker-compose"):
            self._command = ["docker-compose"]
            return self._command
        return None
