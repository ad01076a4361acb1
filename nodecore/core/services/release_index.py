"""
Release index — GitHub releases API client.

Answers three questions about a repository: what is the newest release,
what are the N newest releases, and which assets does a given tag carry.

Authentication is optional.  With ``GH_TOKEN`` set, requests carry a
bearer token and get the higher authenticated rate limit; without it
everything still works, just with a lower ceiling.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from typing import Any

from nodecore import __version__
from nodecore.core.errors import ReleaseNotFound, TransientFetchError
from nodecore.core.models.release import (
    AssetManifest,
    ReleaseAsset,
    ReleaseRef,
    ReleaseSummary,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"nodecore/{__version__}"


class ReleaseIndex(ABC):
    """Read-only view of a release index."""

    @abstractmethod
    def latest_tag(self, repo: str) -> str | None:
        """Tag of the most recent release, or None if there is none."""

    @abstractmethod
    def list_releases(self, repo: str, limit: int) -> list[ReleaseSummary]:
        """The ``limit`` most recent releases, newest first."""

    @abstractmethod
    def release_assets(self, ref: ReleaseRef) -> AssetManifest:
        """Asset manifest for a concrete tag.

        Raises:
            ReleaseNotFound: No release exists for ``ref.tag``.
        """


class GitHubReleaseIndex(ReleaseIndex):
    """``ReleaseIndex`` backed by api.github.com (or a compatible host)."""

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        token: str | None = None,
        timeout: int = 60,
    ):
        self._api_url = api_url.rstrip("/")
        self._token = token or None
        self._timeout = timeout

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    # ── Queries ─────────────────────────────────────────────────

    def latest_tag(self, repo: str) -> str | None:
        data = self._get_json(self._releases_url(repo, per_page=1))
        if not isinstance(data, list) or not data:
            logger.info("No releases listed for %s", repo)
            return None
        tag = data[0].get("tag_name") if isinstance(data[0], dict) else None
        return tag or None

    def list_releases(self, repo: str, limit: int) -> list[ReleaseSummary]:
        data = self._get_json(self._releases_url(repo, per_page=limit))
        if not isinstance(data, list):
            return []
        releases: list[ReleaseSummary] = []
        for item in data[:limit]:
            if not isinstance(item, dict) or not item.get("tag_name"):
                continue
            releases.append(
                ReleaseSummary(
                    tag=item["tag_name"],
                    name=item.get("name") or "",
                    published_at=item.get("published_at") or "",
                    prerelease=bool(item.get("prerelease", False)),
                )
            )
        return releases

    def release_assets(self, ref: ReleaseRef) -> AssetManifest:
        tag = urllib.parse.quote(ref.tag, safe="")
        url = f"{self._api_url}/repos/{ref.repository}/releases/tags/{tag}"
        try:
            data = self._get_json(url)
        except TransientFetchError as e:
            if e.status == 404:
                raise ReleaseNotFound(
                    f"No release tagged '{ref.tag}' in {ref.repository}"
                ) from e
            raise

        if not isinstance(data, dict) or not data.get("tag_name"):
            raise ReleaseNotFound(f"No release tagged '{ref.tag}' in {ref.repository}")

        assets = tuple(
            ReleaseAsset(
                name=a["name"],
                download_url=a["browser_download_url"],
                size=a.get("size") or 0,
            )
            for a in data.get("assets") or []
            if isinstance(a, dict) and a.get("name") and a.get("browser_download_url")
        )
        logger.debug("%s has %d assets", ref, len(assets))
        return AssetManifest(ref=ref, assets=assets)

    # ── HTTP ────────────────────────────────────────────────────

    def _releases_url(self, repo: str, *, per_page: int) -> str:
        return f"{self._api_url}/repos/{repo}/releases?per_page={per_page}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get_json(self, url: str) -> Any:
        """GET ``url`` and decode the JSON body.

        Raises:
            TransientFetchError: Non-2xx status, network failure, or a
                body that is not JSON.  ``status`` is set for HTTP errors.
        """
        logger.debug("GET %s (auth=%s)", url, self.authenticated)
        req = urllib.request.Request(url, headers=self._headers())
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            hint = ""
            if e.code in (403, 429) and not self._token:
                hint = " (rate limited? set GH_TOKEN)"
            raise TransientFetchError(
                f"Release index returned HTTP {e.code} for {url}{hint}",
                url=url,
                status=e.code,
            ) from e
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            reason = getattr(e, "reason", e)
            raise TransientFetchError(
                f"Cannot reach release index at {url}: {reason}",
                url=url,
            ) from e

        try:
            return json.loads(raw)
        except ValueError as e:
            raise TransientFetchError(f"Invalid JSON from {url}: {e}", url=url) from e
