"""Domain models — platform targets and release data.

Public re-exports for convenient access.
"""

from nodecore.core.models.platform import TargetPlatform
from nodecore.core.models.release import (
    LATEST,
    ArchiveKind,
    AssetManifest,
    InstalledCore,
    ReleaseAsset,
    ReleaseRef,
    ReleaseSummary,
    SelectedAsset,
)

__all__ = [
    "LATEST",
    "ArchiveKind",
    "AssetManifest",
    "InstalledCore",
    "ReleaseAsset",
    "ReleaseRef",
    "ReleaseSummary",
    "SelectedAsset",
    "TargetPlatform",
]
