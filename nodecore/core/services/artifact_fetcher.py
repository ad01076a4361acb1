"""
Artifact fetcher — select, download, and unpack the Xray-core release asset.

Lifecycle of the install directory during ``fetch``:

    manifest checked  →  archive downloaded to a temp file in dest_dir
    →  old binary removed  →  archive extracted  →  binary verified

Nothing is written to disk until the manifest lookup and asset selection
have succeeded.  If extraction does not produce an executable at the
canonical path, that path is cleared so a stale or half-written binary
can never be picked up by the container.
"""

from __future__ import annotations

import contextlib
import http.client
import logging
import os
import shutil
import tarfile
import tempfile
import time
import urllib.error
import urllib.request
import zipfile
import zlib
from collections.abc import Callable
from pathlib import Path

from nodecore.core.config.settings import BINARY_NAME
from nodecore.core.errors import (
    ExtractionIncomplete,
    NoMatchingAsset,
    TransientFetchError,
)
from nodecore.core.models.platform import TargetPlatform
from nodecore.core.models.release import (
    ArchiveKind,
    AssetManifest,
    InstalledCore,
    ReleaseRef,
    SelectedAsset,
)
from nodecore.core.reliability.retry import RetryPolicy, call_with_retry
from nodecore.core.services.release_index import USER_AGENT, ReleaseIndex

logger = logging.getLogger(__name__)

DOWNLOAD_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0)

_CHUNK = 64 * 1024


# ── Asset selection ─────────────────────────────────────────────


def candidate_asset_names(target: TargetPlatform) -> tuple[str, str]:
    """Asset names for ``target``: ``(tar.gz name, zip name)``."""
    stem = f"Xray-{target.asset_suffix}"
    return f"{stem}.tar.gz", f"{stem}.zip"


def select_asset(manifest: AssetManifest, target: TargetPlatform) -> SelectedAsset:
    """Pick the asset to install.

    The tar.gz always wins over the zip, wherever each sits in the
    manifest.

    Raises:
        NoMatchingAsset: Neither name is in the manifest.
    """
    tar_name, zip_name = candidate_asset_names(target)
    chosen = manifest.find(tar_name) or manifest.find(zip_name)
    if chosen is None:
        raise NoMatchingAsset(
            f"No asset found for {target.asset_suffix} in {manifest.ref.tag} "
            f"(looked for {tar_name}, {zip_name})"
        )
    return SelectedAsset(
        name=chosen.name,
        download_url=chosen.download_url,
        kind=ArchiveKind.from_url(chosen.download_url),
    )


# ── Download ────────────────────────────────────────────────────


def _is_retryable(exc: BaseException) -> bool:
    """Network-level failures and 5xx/429 are transient; other 4xx are not."""
    if not isinstance(exc, TransientFetchError):
        return False
    if exc.status is None:
        return True
    return exc.status >= 500 or exc.status == 429


def _network_error(url: str, exc: Exception) -> TransientFetchError:
    if isinstance(exc, urllib.error.HTTPError):
        return TransientFetchError(
            f"Download returned HTTP {exc.code}: {url}", url=url, status=exc.code,
        )
    reason = getattr(exc, "reason", exc)
    return TransientFetchError(f"Download failed: {url}: {reason}", url=url)


def _download_once(url: str, dest: Path, timeout: int) -> int:
    """One attempt.  Network errors become ``TransientFetchError``; local
    write errors propagate as ``OSError``."""
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    written = 0
    with open(dest, "wb") as f:
        try:
            resp = urllib.request.urlopen(req, timeout=timeout)
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            raise _network_error(url, e) from e
        with resp:
            while True:
                try:
                    chunk = resp.read(_CHUNK)
                except (http.client.HTTPException, OSError) as e:
                    raise _network_error(url, e) from e
                if not chunk:
                    break
                f.write(chunk)
                written += len(chunk)
    return written


def download(
    url: str,
    dest: Path,
    *,
    policy: RetryPolicy = DOWNLOAD_POLICY,
    timeout: int = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Download ``url`` to ``dest`` with bounded retry.

    Each attempt rewrites ``dest`` from scratch.

    Returns:
        Number of bytes written.

    Raises:
        TransientFetchError: All attempts failed, or the server answered
            with a non-retryable 4xx.
        OSError: ``dest`` could not be written (not retried).
    """
    size = call_with_retry(
        lambda: _download_once(url, dest, timeout),
        policy=policy,
        is_retryable=_is_retryable,
        label=f"download {url}",
        sleep=sleep,
    )
    logger.info("Downloaded %s (%d bytes)", url, size)
    return size


# ── Extraction ──────────────────────────────────────────────────


def _extract_tar(archive: Path, dest_dir: Path) -> list[str]:
    with tarfile.open(archive, "r:gz") as tf:
        names = tf.getnames()
        tf.extractall(dest_dir, filter="data")
    return names


def _extract_zip(archive: Path, dest_dir: Path) -> list[str]:
    names: list[str] = []
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            extracted = Path(zf.extract(info, dest_dir))
            names.append(info.filename)
            # ZipFile drops Unix permissions; restore them from external_attr
            mode = (info.external_attr >> 16) & 0o777
            if mode and not info.is_dir():
                os.chmod(extracted, mode)
    return names


def extract_archive(archive: Path, kind: ArchiveKind, dest_dir: Path) -> list[str]:
    """Unpack ``archive`` into ``dest_dir``, overwriting existing files.

    Returns:
        Member names, as stored in the archive.

    Raises:
        ExtractionIncomplete: The archive is corrupt or unsafe.
    """
    try:
        if kind is ArchiveKind.TAR_GZ:
            return _extract_tar(archive, dest_dir)
        return _extract_zip(archive, dest_dir)
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, zlib.error, OSError) as e:
        raise ExtractionIncomplete(f"Cannot extract {kind.value} archive: {e}") from e


def _clear_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


def is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


# ── Fetch ───────────────────────────────────────────────────────


def fetch(
    ref: ReleaseRef,
    target: TargetPlatform,
    dest_dir: Path,
    index: ReleaseIndex,
    *,
    policy: RetryPolicy = DOWNLOAD_POLICY,
    timeout: int = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> InstalledCore:
    """Install the release asset for ``target`` into ``dest_dir``.

    Raises:
        ReleaseNotFound: ``ref.tag`` has no release.
        NoMatchingAsset: The release has no asset for ``target``.
        TransientFetchError: Manifest or download failed at network level.
        ExtractionIncomplete: No executable binary after extraction, or the
            install directory could not be written.
    """
    manifest = index.release_assets(ref)
    selected = select_asset(manifest, target)
    logger.info("Selected %s (%s) from %s", selected.name, selected.kind.value, ref)

    binary = dest_dir / BINARY_NAME
    try:
        files = _unpack_into(
            selected, dest_dir, binary, policy=policy, timeout=timeout, sleep=sleep,
        )
    except OSError as e:
        with contextlib.suppress(OSError):
            _clear_path(binary)
        raise ExtractionIncomplete(f"Cannot write to {dest_dir}: {e}") from e

    logger.info("Xray core %s unpacked to %s", ref.tag, dest_dir)
    return InstalledCore(
        directory=str(dest_dir),
        binary_path=str(binary),
        tag=ref.tag,
        asset_name=selected.name,
        files=files,
    )


def _unpack_into(
    selected: SelectedAsset,
    dest_dir: Path,
    binary: Path,
    *,
    policy: RetryPolicy,
    timeout: int,
    sleep: Callable[[float], None],
) -> list[str]:
    """Download ``selected`` next to ``binary`` and unpack it over ``dest_dir``.

    Filesystem failures surface as ``OSError`` for the caller to classify.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=dest_dir, prefix=".xray_pkg_")
    os.close(fd)
    archive = Path(tmp_name)
    try:
        download(selected.download_url, archive, policy=policy, timeout=timeout, sleep=sleep)

        _clear_path(binary)
        try:
            files = extract_archive(archive, selected.kind, dest_dir)
        except ExtractionIncomplete:
            _clear_path(binary)
            raise

        if not is_executable_file(binary):
            _clear_path(binary)
            raise ExtractionIncomplete(
                f"{BINARY_NAME} binary not found (or not executable) after extracting {selected.name}"
            )
    finally:
        archive.unlink(missing_ok=True)
    return files
