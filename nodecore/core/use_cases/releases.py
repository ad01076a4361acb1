"""
Release listing use case — the newest N tags of the core repository.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from nodecore.core.config.settings import Settings
from nodecore.core.errors import CoreUpdateError
from nodecore.core.models.release import ReleaseSummary
from nodecore.core.services.core_version import installed_version
from nodecore.core.services.release_index import ReleaseIndex


@dataclass
class ReleaseListing:
    repository: str = ""
    installed: str = ""
    releases: list[ReleaseSummary] = field(default_factory=list)
    error: CoreUpdateError | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "installed": self.installed,
            "releases": [r.model_dump() for r in self.releases],
            "error": (
                {"category": self.error.category, "message": str(self.error)}
                if self.error else None
            ),
        }


def list_core_releases(settings: Settings, index: ReleaseIndex) -> ReleaseListing:
    """List the ``LAST_XRAY_CORES`` newest releases.

    The window size only affects this listing, never what "latest"
    resolves to.
    """
    listing = ReleaseListing(
        repository=settings.core_repo,
        installed=installed_version(settings.binary_path),
    )
    try:
        listing.releases = index.list_releases(settings.core_repo, settings.last_xray_cores)
    except CoreUpdateError as e:
        listing.error = e
    return listing
