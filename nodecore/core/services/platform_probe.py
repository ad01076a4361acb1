"""
Platform probe — map the host's kernel name and CPU arch to a target.

Pure: no I/O beyond reading ``platform.system()`` / ``platform.machine()``
when no explicit values are passed.
"""

from __future__ import annotations

import platform

from nodecore.core.errors import UnsupportedArchitecture, UnsupportedOS
from nodecore.core.models.platform import TargetPlatform

SUPPORTED_OS = "Linux"

_ARCH_ALIASES: dict[str, TargetPlatform] = {
    "amd64": TargetPlatform.AMD64,
    "x86_64": TargetPlatform.AMD64,
    "aarch64": TargetPlatform.ARM64,
    "arm64": TargetPlatform.ARM64,
    "i386": TargetPlatform.I386,
    "i686": TargetPlatform.I386,
}


def probe(system: str | None = None, machine: str | None = None) -> TargetPlatform:
    """Return the target platform for this host.

    Args:
        system: Kernel name, as ``uname -s`` reports it.  Must be exactly
            ``"Linux"``.
        machine: Machine architecture, as ``uname -m`` reports it.

    Raises:
        UnsupportedOS: Kernel is anything but Linux.
        UnsupportedArchitecture: Arch is not in the alias table.
    """
    system = platform.system() if system is None else system
    if system != SUPPORTED_OS:
        raise UnsupportedOS(f"Unsupported OS: {system or '<empty>'} (only {SUPPORTED_OS})")

    machine = platform.machine() if machine is None else machine
    target = _ARCH_ALIASES.get(machine)
    if target is None:
        supported = ", ".join(sorted(_ARCH_ALIASES))
        raise UnsupportedArchitecture(
            f"Unsupported arch: {machine or '<empty>'} (supported: {supported})"
        )
    return target
