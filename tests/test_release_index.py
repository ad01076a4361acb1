"""
Tests for the GitHub release index client (mocked urlopen).

Every test routes ``urllib.request.urlopen`` through the ``fake_http``
fixture, so no network access is needed.
"""

from __future__ import annotations

import http.client
import json
import urllib.error

import pytest

from nodecore.core.errors import ReleaseNotFound, TransientFetchError
from nodecore.core.models.release import ReleaseRef
from nodecore.core.services.release_index import GitHubReleaseIndex
from tests.conftest import TruncatedResponse, http_error

API = "https://api.github.com"
REPO = "GFW-knocker/Xray-core"
LIST_1 = f"{API}/repos/{REPO}/releases?per_page=1"


def _release(tag: str, *assets: str) -> dict:
    return {
        "tag_name": tag,
        "name": f"Xray-core {tag}",
        "published_at": "2025-01-01T00:00:00Z",
        "prerelease": False,
        "assets": [
            {"name": a, "browser_download_url": f"https://github.com/{REPO}/releases/download/{tag}/{a}", "size": 10}
            for a in assets
        ],
    }


class TestLatestTag:
    def test_returns_first_tag(self, fake_http):
        fake_http.route(LIST_1, json.dumps([_release("v3")]).encode())
        assert GitHubReleaseIndex().latest_tag(REPO) == "v3"

    def test_empty_list(self, fake_http):
        fake_http.route(LIST_1, b"[]")
        assert GitHubReleaseIndex().latest_tag(REPO) is None

    def test_null_tag(self, fake_http):
        fake_http.route(LIST_1, json.dumps([{"tag_name": None}]).encode())
        assert GitHubReleaseIndex().latest_tag(REPO) is None

    def test_no_auth_header_without_token(self, fake_http):
        fake_http.route(LIST_1, b"[]")
        GitHubReleaseIndex().latest_tag(REPO)
        req = fake_http.requests[0]
        assert req.get_header("Authorization") is None
        assert req.get_header("Accept") == "application/vnd.github+json"

    def test_bearer_token_attached(self, fake_http):
        fake_http.route(LIST_1, b"[]")
        GitHubReleaseIndex(token="ghp_secret").latest_tag(REPO)
        assert fake_http.requests[0].get_header("Authorization") == "Bearer ghp_secret"

    def test_custom_api_url(self, fake_http):
        fake_http.route("https://ghe.example.com/api/v3/repos/a/b/releases?per_page=1", b"[]")
        index = GitHubReleaseIndex(api_url="https://ghe.example.com/api/v3/")
        assert index.latest_tag("a/b") is None


class TestFailures:
    def test_server_error_is_transient(self, fake_http):
        fake_http.route(LIST_1, http_error(LIST_1, 502))
        with pytest.raises(TransientFetchError) as exc:
            GitHubReleaseIndex().latest_tag(REPO)
        assert exc.value.status == 502

    def test_rate_limit_hint(self, fake_http):
        fake_http.route(LIST_1, http_error(LIST_1, 403))
        with pytest.raises(TransientFetchError, match="GH_TOKEN"):
            GitHubReleaseIndex().latest_tag(REPO)

    def test_dns_failure_is_transient(self, fake_http):
        fake_http.route(LIST_1, urllib.error.URLError("Name or service not known"))
        with pytest.raises(TransientFetchError) as exc:
            GitHubReleaseIndex().latest_tag(REPO)
        assert exc.value.status is None

    def test_timeout_is_transient(self, fake_http):
        fake_http.route(LIST_1, TimeoutError("timed out"))
        with pytest.raises(TransientFetchError):
            GitHubReleaseIndex().latest_tag(REPO)

    def test_truncated_body_is_transient(self, fake_http):
        fake_http.route(LIST_1, TruncatedResponse(b"[{\"tag", 200))
        with pytest.raises(TransientFetchError) as exc:
            GitHubReleaseIndex().latest_tag(REPO)
        assert exc.value.status is None

    def test_aborted_connection_is_transient(self, fake_http):
        fake_http.route(LIST_1, http.client.RemoteDisconnected("closed"))
        with pytest.raises(TransientFetchError):
            GitHubReleaseIndex().latest_tag(REPO)

    def test_invalid_json_is_transient(self, fake_http):
        fake_http.route(LIST_1, b"<html>")
        with pytest.raises(TransientFetchError, match="Invalid JSON"):
            GitHubReleaseIndex().latest_tag(REPO)

    def test_manifest_query_not_retried(self, fake_http):
        fake_http.route(LIST_1, http_error(LIST_1, 503), b"[]")
        with pytest.raises(TransientFetchError):
            GitHubReleaseIndex().latest_tag(REPO)
        assert fake_http.count(LIST_1) == 1


class TestReleaseAssets:
    def test_manifest_in_index_order(self, fake_http):
        url = f"{API}/repos/{REPO}/releases/tags/v3"
        fake_http.route(url, json.dumps(_release("v3", "Xray-linux-64.zip", "Xray-linux-64.tar.gz")).encode())
        manifest = GitHubReleaseIndex().release_assets(ReleaseRef(repository=REPO, tag="v3"))
        assert manifest.names == ["Xray-linux-64.zip", "Xray-linux-64.tar.gz"]
        assert manifest.find("Xray-linux-64.tar.gz").download_url.endswith("/v3/Xray-linux-64.tar.gz")

    def test_404_is_release_not_found(self, fake_http):
        ref = ReleaseRef(repository=REPO, tag="v0.0.0-doesnotexist")
        with pytest.raises(ReleaseNotFound, match="v0.0.0-doesnotexist"):
            GitHubReleaseIndex().release_assets(ref)

    def test_empty_body_is_release_not_found(self, fake_http):
        url = f"{API}/repos/{REPO}/releases/tags/v9"
        fake_http.route(url, b"{}")
        with pytest.raises(ReleaseNotFound):
            GitHubReleaseIndex().release_assets(ReleaseRef(repository=REPO, tag="v9"))

    def test_tag_is_url_quoted(self, fake_http):
        url = f"{API}/repos/{REPO}/releases/tags/v1%2Fweird"
        fake_http.route(url, json.dumps(_release("v1/weird")).encode())
        manifest = GitHubReleaseIndex().release_assets(ReleaseRef(repository=REPO, tag="v1/weird"))
        assert manifest.assets == ()

    def test_500_stays_transient(self, fake_http):
        url = f"{API}/repos/{REPO}/releases/tags/v3"
        fake_http.route(url, http_error(url, 500))
        with pytest.raises(TransientFetchError):
            GitHubReleaseIndex().release_assets(ReleaseRef(repository=REPO, tag="v3"))


class TestListReleases:
    def test_limit_and_fields(self, fake_http):
        url = f"{API}/repos/{REPO}/releases?per_page=2"
        body = [_release("v3"), _release("v2"), {"tag_name": ""}]
        body[1]["prerelease"] = True
        fake_http.route(url, json.dumps(body).encode())
        releases = GitHubReleaseIndex().list_releases(REPO, 2)
        assert [r.tag for r in releases] == ["v3", "v2"]
        assert releases[1].prerelease is True
        assert releases[0].name == "Xray-core v3"
