"""
Release models — what the release index tells us about a repository.

A ``ReleaseRef`` always carries a concrete tag.  The ``latest`` sentinel
is resolved by the release resolver before a ref is ever constructed.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

LATEST = "latest"


class ReleaseRef(BaseModel):
    """A concrete release of a repository."""

    model_config = ConfigDict(frozen=True)

    repository: str         # "owner/name"
    tag: str

    @field_validator("tag")
    @classmethod
    def _concrete_tag(cls, value: str) -> str:
        if not value or value == LATEST:
            raise ValueError("ReleaseRef needs a concrete tag, not 'latest'")
        return value

    def __str__(self) -> str:
        return f"{self.repository}@{self.tag}"


class ReleaseAsset(BaseModel):
    """One downloadable file attached to a release."""

    model_config = ConfigDict(frozen=True)

    name: str
    download_url: str
    size: int = 0


class AssetManifest(BaseModel):
    """The assets of one release, in the order the index returned them.

    Fetched fresh on every invocation, never cached.
    """

    model_config = ConfigDict(frozen=True)

    ref: ReleaseRef
    assets: tuple[ReleaseAsset, ...] = ()

    def find(self, name: str) -> ReleaseAsset | None:
        """Look up an asset by exact name."""
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None

    @property
    def names(self) -> list[str]:
        return [a.name for a in self.assets]


class ReleaseSummary(BaseModel):
    """A row of the release listing view."""

    tag: str
    name: str = ""
    published_at: str = ""
    prerelease: bool = False


class ArchiveKind(str, Enum):
    TAR_GZ = "tar.gz"
    ZIP = "zip"

    @classmethod
    def from_url(cls, url: str) -> ArchiveKind:
        """Infer the archive kind from a download URL suffix."""
        path = url.split("?", 1)[0].lower()
        if path.endswith((".tar.gz", ".tgz")):
            return cls.TAR_GZ
        return cls.ZIP


class SelectedAsset(BaseModel):
    """The asset the fetcher chose for a platform."""

    model_config = ConfigDict(frozen=True)

    name: str
    download_url: str
    kind: ArchiveKind


class InstalledCore(BaseModel):
    """On-disk result of a successful fetch."""

    directory: str
    binary_path: str
    tag: str
    asset_name: str
    files: list[str] = Field(default_factory=list)
