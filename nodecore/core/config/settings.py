"""
Settings loader — reads environment overrides into an immutable model.

Built exactly once at process start (``load_settings``) and passed to
every component.  Nothing below the CLI reads ``os.environ`` directly.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nodecore.core.errors import InvalidSettings

logger = logging.getLogger(__name__)

# Fixed in-container side of the data bind mount
CONTAINER_DATA_DIR = "/var/lib/marzban-node"

CORE_SUBDIR = "xray-core"
BINARY_NAME = "xray"
EXECUTABLE_ENV = "XRAY_EXECUTABLE_PATH"

# env var → Settings field
_ENV_FIELDS: dict[str, str] = {
    "CORE_REPO": "core_repo",
    "LAST_XRAY_CORES": "last_xray_cores",
    "INSTALL_DIR": "install_dir",
    "APP_NAME": "app_name",
    "COMPOSE_SERVICE": "compose_service",
    "COMPOSE_FILE": "compose_file",
    "DATA_MAIN_DIR": "data_main_dir",
    "XRAY_DEST_PATH_IN_CONTAINER": "xray_dest_path_in_container",
    "XRAY_VERSION": "xray_version",
    "GH_TOKEN": "gh_token",
    "GITHUB_API_URL": "api_url",
    "NODECORE_HTTP_TIMEOUT": "http_timeout",
}


class Settings(BaseModel):
    """Immutable run configuration."""

    model_config = ConfigDict(frozen=True)

    core_repo: str = Field(default="GFW-knocker/Xray-core", description="GitHub repo for Xray binaries")
    last_xray_cores: int = Field(default=5, ge=1, description="How many releases the listing shows")
    install_dir: Path = Path("/opt")
    app_name: str = Field(default="marzban-node", description="Compose project name")
    compose_service: str = Field(default="marzban-node", description="Service to patch")
    compose_file: Path | None = None
    data_main_dir: Path = Path("/var/lib/marzban-node")
    xray_dest_path_in_container: str = "/var/lib/marzban-node/xray-core/xray"
    xray_version: str | None = None
    gh_token: str | None = Field(default=None, repr=False)
    api_url: str = "https://api.github.com"
    http_timeout: int = Field(default=60, ge=1)

    @property
    def compose_path(self) -> Path:
        """Compose file path, defaulting to ``<install_dir>/<app_name>/docker-compose.yml``."""
        if self.compose_file is not None:
            return self.compose_file
        return self.install_dir / self.app_name / "docker-compose.yml"

    @property
    def core_dir(self) -> Path:
        return self.data_main_dir / CORE_SUBDIR

    @property
    def binary_path(self) -> Path:
        return self.core_dir / BINARY_NAME

    @property
    def mount_entry(self) -> str:
        """Bind mount that exposes the data dir inside the container."""
        return f"{self.data_main_dir}:{CONTAINER_DATA_DIR}"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from environment variables.

    Empty values count as unset and fall back to defaults.

    Raises:
        InvalidSettings: If an override cannot be coerced (e.g. a
            non-integer ``LAST_XRAY_CORES``).
    """
    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    for var, field_name in _ENV_FIELDS.items():
        raw = env.get(var, "")
        if raw.strip():
            values[field_name] = raw.strip()

    try:
        settings = Settings.model_validate(values)
    except ValidationError as e:
        problems = "; ".join(
            f"{_env_name(err['loc'][0])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidSettings(problems) from e

    logger.debug(
        "Settings: repo=%s compose=%s data=%s",
        settings.core_repo, settings.compose_path, settings.data_main_dir,
    )
    return settings


def _env_name(field_name: object) -> str:
    for var, name in _ENV_FIELDS.items():
        if name == field_name:
            return var
    return str(field_name)
