"""
Compose patcher — point the node service at the installed binary.

Two edits to ``services.<service>`` in the compose file:

    environment.<env_name> = <env_value>     (always set, last writer wins)
    volumes += [<mount_entry>]                (only if not already present)

The file is rewritten only when one of the edits actually changes it, so
a file that is already patched keeps its bytes, comments included.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from nodecore.core.errors import ConfigMalformed, ConfigNotFound, ConfigWriteFailed
from nodecore.core.persistence.atomic_file import atomic_write_text

logger = logging.getLogger(__name__)


@dataclass
class PatchResult:
    """What a patch run changed."""

    changed: bool = False       # file was rewritten
    env_updated: bool = False
    mount_added: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "changed": self.changed,
            "env_updated": self.env_updated,
            "mount_added": self.mount_added,
        }


def load_compose(path: Path) -> dict[str, Any]:
    """Read and parse a compose file.

    Returns:
        The parsed document.

    Raises:
        ConfigNotFound: ``path`` is not a file.
        ConfigMalformed: Not YAML, or not a mapping at the top level.
    """
    if not path.is_file():
        raise ConfigNotFound(f"Compose file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigNotFound(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigMalformed(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigMalformed(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def _service_block(data: dict[str, Any], service: str, path: Path) -> dict[str, Any]:
    services = data.get("services")
    if not isinstance(services, dict):
        raise ConfigMalformed(f"No 'services' mapping in {path}")
    block = services.get(service)
    if block is None:
        raise ConfigMalformed(f"Service '{service}' is not defined in {path}")
    if not isinstance(block, dict):
        raise ConfigMalformed(f"Service '{service}' in {path} is not a mapping")
    return block


def _set_env(block: dict[str, Any], name: str, value: str, path: Path) -> bool:
    """Set ``name=value`` in the service environment; return True if it changed."""
    env = block.get("environment")
    if env is None:
        block["environment"] = {name: value}
        return True

    if isinstance(env, dict):
        if env.get(name) == value:
            return False
        env[name] = value
        return True

    if isinstance(env, list):
        new_env = _replace_env_entry(env, name, f"{name}={value}")
        if new_env == env:
            return False
        block["environment"] = new_env
        return True

    raise ConfigMalformed(f"'environment' in {path} is neither a mapping nor a list")


def _replace_env_entry(env: list[Any], name: str, entry: str) -> list[Any]:
    """List-form env: put ``entry`` where the first ``name`` entry was.

    Later entries for the same name are dropped; if there was none,
    ``entry`` is appended.
    """
    out: list[Any] = []
    placed = False
    for item in env:
        key = str(item).split("=", 1)[0]
        if key == name:
            if not placed:
                out.append(entry)
                placed = True
            continue
        out.append(item)
    if not placed:
        out.append(entry)
    return out


def _ensure_mount(block: dict[str, Any], mount_entry: str, path: Path) -> bool:
    """Append ``mount_entry`` to volumes unless an identical entry exists."""
    volumes = block.get("volumes")
    if volumes is None:
        volumes = []
        block["volumes"] = volumes
    if not isinstance(volumes, list):
        raise ConfigMalformed(f"'volumes' in {path} is not a list")

    if any(isinstance(v, str) and v == mount_entry for v in volumes):
        return False
    volumes.append(mount_entry)
    return True


def dump_compose(data: dict[str, Any]) -> str:
    return yaml.safe_dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def patch_compose_file(
    path: Path,
    *,
    service: str,
    env_name: str,
    env_value: str,
    mount_entry: str,
) -> PatchResult:
    """Apply the executable-path and bind-mount edits to ``path``.

    Args:
        path: Compose file to edit in place.
        service: Service whose block is edited (``services.<service>``).
        env_name: Environment variable to set, e.g. ``XRAY_EXECUTABLE_PATH``.
        env_value: Value to set it to.
        mount_entry: ``host:container`` bind mount to ensure.

    Raises:
        ConfigNotFound: The file does not exist.
        ConfigMalformed: The file or the service block has the wrong shape.
        ConfigWriteFailed: The patched file could not be written.
    """
    data = load_compose(path)
    block = _service_block(data, service, path)

    result = PatchResult()
    result.env_updated = _set_env(block, env_name, env_value, path)
    result.mount_added = _ensure_mount(block, mount_entry, path)

    if not (result.env_updated or result.mount_added):
        logger.debug("Compose file %s already up to date", path)
        return result

    try:
        atomic_write_text(path, dump_compose(data))
    except OSError as e:
        raise ConfigWriteFailed(f"Cannot write {path}: {e}") from e
    result.changed = True
    logger.info(
        "Patched %s: %s=%s%s",
        path, env_name, env_value,
        f", added volume {mount_entry}" if result.mount_added else "",
    )
    return result
