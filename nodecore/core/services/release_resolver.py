"""
Release resolver — turn a requested version into a concrete ReleaseRef.
"""

from __future__ import annotations

import logging

from nodecore.core.errors import NoReleasesFound
from nodecore.core.models.release import LATEST, ReleaseRef
from nodecore.core.services.release_index import ReleaseIndex

logger = logging.getLogger(__name__)


def wants_latest(requested: str | None) -> bool:
    """Whether ``requested`` means "the newest release"."""
    return requested is None or not requested.strip() or requested.strip() == LATEST


def resolve(repo: str, requested: str | None, index: ReleaseIndex) -> ReleaseRef:
    """Resolve ``requested`` against ``repo``'s release index.

    An explicit tag is taken verbatim and NOT checked here: the manifest
    fetch that follows fails with ``ReleaseNotFound`` if it does not
    exist.  Only the "latest" path queries the listing endpoint.

    Raises:
        NoReleasesFound: "latest" was requested and the repo has none, or
            its newest release uses the reserved tag "latest".
        TransientFetchError: The index could not be queried.
    """
    tag = (requested or "").strip()
    if not wants_latest(tag):
        logger.info("Using requested tag %s for %s", tag, repo)
        return ReleaseRef(repository=repo, tag=tag)

    latest = index.latest_tag(repo)
    if not latest or latest == "null":
        raise NoReleasesFound(f"Failed to resolve latest release tag of {repo}")
    if latest == LATEST:
        raise NoReleasesFound(
            f"Newest release of {repo} is tagged '{LATEST}', a reserved name"
        )
    logger.info("Latest release of %s is %s", repo, latest)
    return ReleaseRef(repository=repo, tag=latest)
