"""Tests for repository-hosted sources (github / internalRepo)."""

from __future__ import annotations

import pytest

from conftest import GITHUB_API, FakeUpstream, github_entry, make_unit, release_json
from specsync.exceptions import HttpStatusError, NoReleaseError, NotFoundError
from specsync.models import Release, Resolution, SourceType
from specsync.sources.github import select_release

BASE = f"{GITHUB_API}/repos/acme/api"


# ---------------------------------------------------------------------------
# Release selection
# ---------------------------------------------------------------------------


class TestSelectRelease:
    def test_newest_by_publication_date(self) -> None:
        releases = [
            Release(tag="v1.0.0", published_at="2024-01-01T00:00:00Z"),
            Release(tag="v1.2.0", published_at="2024-03-01T00:00:00Z"),
            Release(tag="v1.1.0", published_at="2024-02-01T00:00:00Z"),
        ]
        assert select_release(releases).tag == "v1.2.0"

    def test_drafts_and_prereleases_ignored(self) -> None:
        releases = [
            Release(tag="v2.0.0-rc1", published_at="2024-05-01T00:00:00Z", is_prerelease=True),
            Release(tag="v2.0.0", published_at="2024-06-01T00:00:00Z", is_draft=True),
            Release(tag="v1.1.0", published_at="2024-02-01T00:00:00Z"),
        ]
        assert select_release(releases).tag == "v1.1.0"

    def test_none_when_nothing_stable(self) -> None:
        assert select_release([Release(tag="v1-rc", is_prerelease=True)]) is None
        assert select_release([]) is None


# ---------------------------------------------------------------------------
# Resolve
# ---------------------------------------------------------------------------


class TestGitHubResolve:
    def test_resolves_latest_stable_tag(self, upstream: FakeUpstream, sources) -> None:
        upstream.add_releases(
            "acme",
            "api",
            [
                release_json("v1.2.0-beta", "2024-04-01T00:00:00Z", prerelease=True),
                release_json("v1.1.0", "2024-03-01T00:00:00Z"),
                release_json("v1.0.0", "2024-01-01T00:00:00Z"),
            ],
        )
        handler = sources.get_handler(SourceType.GITHUB)
        resolution = handler.resolve(make_unit(github_entry(version="v1.0.0")))

        assert resolution.marker == "v1.1.0"
        assert resolution.reference_url == "https://github.com/acme/api/releases/tag/v1.1.0"
        assert resolution.release is not None

    def test_no_release_raises(self, upstream: FakeUpstream, sources) -> None:
        upstream.add_releases("acme", "api", [release_json("v0.1.0", draft=True)])
        handler = sources.get_handler(SourceType.GITHUB)
        with pytest.raises(NoReleaseError, match="no published stable release"):
            handler.resolve(make_unit(github_entry()))

    def test_missing_repo_raises_not_found(self, sources) -> None:
        handler = sources.get_handler(SourceType.GITHUB)
        with pytest.raises(NotFoundError):
            handler.resolve(make_unit(github_entry()))

    def test_rate_limit_is_http_error(self, upstream: FakeUpstream, sources) -> None:
        upstream.add(f"{BASE}/releases", json_body={"message": "rate limited"}, status=403)
        handler = sources.get_handler(SourceType.GITHUB)
        with pytest.raises(HttpStatusError) as exc_info:
            handler.resolve(make_unit(github_entry()))
        assert exc_info.value.status == 403

    def test_commit_tracking(self, upstream: FakeUpstream, sources) -> None:
        upstream.add(f"{BASE}/commits", json_body=[{"sha": "deadbeef"}])
        entry = github_entry(location={"track": "commit"})
        resolution = sources.get_handler(SourceType.GITHUB).resolve(make_unit(entry))

        assert resolution.marker == "deadbeef"
        assert resolution.reference_url.endswith("/acme/api/blob/deadbeef/openapi.yaml")
        assert f"{BASE}/releases" not in upstream.urls()


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


class TestGitHubFetch:
    def _resolution(self, tag: str) -> Resolution:
        return Resolution(marker=tag, reference_url="https://example.test")

    def test_release_asset_preferred(self, upstream: FakeUpstream, sources) -> None:
        upstream.add_releases("acme", "api", [release_json("v1.1.0", assets=["openapi.yaml"])])
        upstream.add(f"{BASE}/releases/assets/v1.1.0-openapi.yaml", content=b"asset: true\n")
        upstream.add_file("acme", "api", "openapi.yaml", "repo: true\n", ref="v1.1.0")

        handler = sources.get_handler(SourceType.GITHUB)
        content = handler.fetch(make_unit(github_entry()), self._resolution("v1.1.0"))

        assert content == b"asset: true\n"
        assert f"{BASE}/contents/openapi.yaml" not in upstream.urls()

    def test_named_asset(self, upstream: FakeUpstream, sources) -> None:
        upstream.add_releases("acme", "api", [release_json("v2", assets=["bundle.json"])])
        upstream.add(f"{BASE}/releases/assets/v2-bundle.json", content=b"{}")
        entry = github_entry(spec_path="spec/openapi.json", location={"assetName": "bundle.json"})

        content = sources.get_handler(SourceType.GITHUB).fetch(make_unit(entry), self._resolution("v2"))
        assert content == b"{}"

    def test_falls_back_to_repository_file(self, upstream: FakeUpstream, sources) -> None:
        upstream.add_releases("acme", "api", [release_json("v1.1.0", assets=["other.zip"])])
        upstream.add_file("acme", "api", "openapi.yaml", "openapi: 3.0.0\n", ref="v1.1.0")

        handler = sources.get_handler(SourceType.GITHUB)
        content = handler.fetch(make_unit(github_entry()), self._resolution("v1.1.0"))
        assert content == b"openapi: 3.0.0\n"

    def test_fetches_at_marker_ref_only(self, upstream: FakeUpstream, sources) -> None:
        upstream.add_releases("acme", "api", [release_json("v1.1.0")])
        upstream.add_file("acme", "api", "openapi.yaml", "old\n", ref="v1.0.0")

        handler = sources.get_handler(SourceType.GITHUB)
        with pytest.raises(NotFoundError, match="not found as a release asset or at v1.1.0"):
            handler.fetch(make_unit(github_entry()), self._resolution("v1.1.0"))

    def test_commit_mode_skips_release_lookup(self, upstream: FakeUpstream, sources) -> None:
        upstream.add_file("acme", "api", "openapi.yaml", "x: 1\n", ref="abc")
        entry = github_entry(location={"track": "commit"})

        content = sources.get_handler(SourceType.GITHUB).fetch(make_unit(entry), self._resolution("abc"))
        assert content == b"x: 1\n"
        assert not any("/releases" in url for url in upstream.urls())

    @pytest.mark.parametrize(
        ("spec_path", "body", "expected"),
        [
            ("openapi.json", b"openapi: 3", "json"),
            ("openapi.yml", b"{}", "yaml"),
            ("openapi", b'{"openapi": "3.0.0"}', "json"),
        ],
    )
    def test_file_format(self, sources, spec_path: str, body: bytes, expected: str) -> None:
        handler = sources.get_handler(SourceType.GITHUB)
        assert handler.file_format(make_unit(github_entry(spec_path=spec_path)), body) == expected


# ---------------------------------------------------------------------------
# internalRepo
# ---------------------------------------------------------------------------


class TestInternalRepo:
    def test_uses_location_api_url(self, upstream: FakeUpstream, sources) -> None:
        api = "https://git.corp.test/api/v3"
        upstream.add(
            f"{api}/repos/platform/payments/releases",
            json_body=[release_json("v5.0.0", owner="platform", repo="payments")],
        )
        entry = github_entry(
            owner="platform",
            repo="payments",
            sourceType="internalRepo",
            location={"apiUrl": api},
        )
        resolution = sources.get_handler(SourceType.INTERNAL_REPO).resolve(make_unit(entry))

        assert resolution.marker == "v5.0.0"
        request = upstream.requests[0]
        assert str(request.url).startswith(api)
        assert request.headers["Authorization"] == "Bearer test-token"
