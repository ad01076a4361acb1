"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import http.client
import io
import tarfile
import textwrap
import urllib.error
import urllib.request
import zipfile
from pathlib import Path

import pytest

from nodecore.core.config.settings import Settings
from nodecore.core.errors import ReleaseNotFound
from nodecore.core.models.release import (
    AssetManifest,
    ReleaseAsset,
    ReleaseRef,
    ReleaseSummary,
)
from nodecore.core.services.release_index import ReleaseIndex

XRAY_SCRIPT = b"#!/bin/sh\necho 'Xray 1.8.24 (Xray, Penetrates Everything.) Custom'\n"

BASE_COMPOSE = textwrap.dedent("""\
    services:
      marzban-node:
        image: gozargah/marzban-node:latest
        restart: always
        network_mode: host
        environment:
          SSL_CLIENT_CERT_FILE: /var/lib/marzban-node/ssl_client_cert.pem
        volumes:
          - /var/lib/marzban-node:/var/lib/marzban-node
""")


# ── Fake release index ───────────────────────────────────────────────


class FakeReleaseIndex(ReleaseIndex):
    """In-memory release index that records every query."""

    def __init__(
        self,
        tags: list[str] | None = None,
        assets: dict[str, list[tuple[str, str]]] | None = None,
    ):
        self.tags = tags or []
        self.assets = assets or {}
        self.latest_calls: list[str] = []
        self.list_calls: list[tuple[str, int]] = []
        self.asset_calls: list[ReleaseRef] = []

    def latest_tag(self, repo: str) -> str | None:
        self.latest_calls.append(repo)
        return self.tags[0] if self.tags else None

    def list_releases(self, repo: str, limit: int) -> list[ReleaseSummary]:
        self.list_calls.append((repo, limit))
        return [ReleaseSummary(tag=t) for t in self.tags[:limit]]

    def release_assets(self, ref: ReleaseRef) -> AssetManifest:
        self.asset_calls.append(ref)
        if ref.tag not in self.assets:
            raise ReleaseNotFound(f"No release tagged '{ref.tag}' in {ref.repository}")
        return AssetManifest(
            ref=ref,
            assets=tuple(ReleaseAsset(name=n, download_url=u) for n, u in self.assets[ref.tag]),
        )


@pytest.fixture
def fake_index_cls() -> type[FakeReleaseIndex]:
    return FakeReleaseIndex


# ── Fake HTTP ───────────────────────────────────────────────────────


class FakeResponse(io.BytesIO):
    """Minimal stand-in for the object ``urlopen`` returns."""

    def __init__(self, body: bytes, status: int = 200):
        super().__init__(body)
        self.status = status

    def getcode(self) -> int:
        return self.status


class TruncatedResponse(FakeResponse):
    """Response whose body breaks off after ``body``."""

    def __init__(self, body: bytes, expected: int):
        super().__init__(b"")
        self._partial = body
        self._expected = expected

    def read(self, size: int = -1) -> bytes:
        raise http.client.IncompleteRead(self._partial, self._expected - len(self._partial))


def http_error(url: str, code: int) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(url, code, f"HTTP {code}", {}, None)


class FakeHTTP:
    """Routes ``urlopen`` calls by URL.

    Each route is a list of outcomes consumed in order (the last one
    repeats): ``bytes`` for a 200 body, a prepared ``FakeResponse``, or an
    ``Exception`` to raise.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[bytes | FakeResponse | Exception]] = {}
        self.requests: list[urllib.request.Request] = []

    def route(self, url: str, *outcomes: bytes | FakeResponse | Exception) -> None:
        self.routes[url] = list(outcomes)

    def count(self, url: str) -> int:
        return sum(1 for r in self.requests if r.full_url == url)

    def __call__(self, req: urllib.request.Request, timeout: float | None = None) -> FakeResponse:
        self.requests.append(req)
        outcomes = self.routes.get(req.full_url)
        if not outcomes:
            raise http_error(req.full_url, 404)
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, FakeResponse):
            return outcome
        return FakeResponse(outcome)


@pytest.fixture
def fake_http(monkeypatch: pytest.MonkeyPatch) -> FakeHTTP:
    """Patch ``urllib.request.urlopen`` with a URL router."""
    http = FakeHTTP()
    monkeypatch.setattr(urllib.request, "urlopen", http)
    return http


# ── Archives ────────────────────────────────────────────────────────


def build_tar_gz(entries: dict[str, tuple[bytes, int]]) -> bytes:
    """``{name: (content, mode)}`` → tar.gz bytes."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, (content, mode) in entries.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            info.mode = mode
            tf.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def build_zip(entries: dict[str, tuple[bytes, int]]) -> bytes:
    """``{name: (content, mode)}`` → zip bytes with Unix modes recorded."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, (content, mode) in entries.items():
            info = zipfile.ZipInfo(name)
            info.external_attr = (0o100000 | mode) << 16
            zf.writestr(info, content)
    return buf.getvalue()


def xray_release_files() -> dict[str, tuple[bytes, int]]:
    """The files an Xray-core release archive ships."""
    return {
        "xray": (XRAY_SCRIPT, 0o755),
        "geoip.dat": (b"geoip", 0o644),
        "geosite.dat": (b"geosite", 0o644),
        "LICENSE": (b"MPL-2.0", 0o644),
    }


@pytest.fixture
def xray_tar_gz() -> bytes:
    return build_tar_gz(xray_release_files())


@pytest.fixture
def xray_zip() -> bytes:
    return build_zip(xray_release_files())


# ── Settings & compose ──────────────────────────────────────────────


@pytest.fixture
def compose_file(tmp_path: Path) -> Path:
    path = tmp_path / "opt" / "marzban-node" / "docker-compose.yml"
    path.parent.mkdir(parents=True)
    path.write_text(BASE_COMPOSE)
    return path


@pytest.fixture
def settings(tmp_path: Path, compose_file: Path) -> Settings:
    """Settings rooted in tmp_path."""
    return Settings(
        install_dir=tmp_path / "opt",
        data_main_dir=tmp_path / "data",
        compose_file=compose_file,
    )
