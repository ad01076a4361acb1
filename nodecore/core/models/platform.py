"""
Target platform — the OS/arch combination the installed binary must match.
"""

from __future__ import annotations

from enum import Enum


class TargetPlatform(str, Enum):
    """Supported Linux targets.

    The value is the platform suffix used in Xray-core asset names,
    e.g. ``Xray-linux-64.tar.gz``.
    """

    AMD64 = "64"
    ARM64 = "arm64-v8a"
    I386 = "32"

    @property
    def asset_suffix(self) -> str:
        return f"linux-{self.value}"
