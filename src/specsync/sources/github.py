"""Repository-hosted specs: ``github`` and ``internalRepo`` source types.

Release tags are the canonical version marker. Drafts and pre-releases are
dropped before a candidate is chosen, so a newer release candidate never
hides the latest stable tag. Entries whose repository publishes no releases
at all can opt into commit tracking with ``"track": "commit"``; the marker is
then the SHA of the newest commit touching ``specPath``.

Content is fetched through two channels, in fixed order:

1. the release asset named like the spec file (``assetName`` or the
   basename of ``specPath``), and
2. the file itself at the marker ref, via the contents API.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional, Union

from specsync.client import HostClient
from specsync.exceptions import NoReleaseError, NotFoundError
from specsync.models import (
    NotAvailable,
    Release,
    RepoLocation,
    Resolution,
    SourceType,
    SpecUnit,
)
from specsync.output import get_output
from specsync.sources.base import SourceHandler

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def select_release(releases: list[Release]) -> Optional[Release]:
    """Return the newest published release that is neither a draft nor a pre-release."""
    stable = [release for release in releases if release.is_stable]
    if not stable:
        return None
    return max(stable, key=lambda release: release.published_at or _EPOCH)


class GitHubSource(SourceHandler):
    """Specs published in a public GitHub repository."""

    @property
    def source_type(self) -> SourceType:
        return SourceType.GITHUB

    def _host(self, location: RepoLocation) -> HostClient:
        return self._hosts.default

    def resolve(self, unit: SpecUnit) -> Union[Resolution, NotAvailable]:
        location = _location(unit)
        host = self._host(location)
        owner, repo = location.owner, location.repo

        if location.track == "commit":
            sha = host.latest_commit(owner, repo, location.spec_path)
            return Resolution(
                marker=sha,
                reference_url=host.raw_url(owner, repo, sha, location.spec_path),
            )

        release = select_release(host.list_releases(owner, repo))
        if release is None:
            raise NoReleaseError(f"{owner}/{repo} has no published stable release")
        return Resolution(
            marker=release.tag,
            reference_url=release.html_url
            or host.raw_url(owner, repo, release.tag, location.spec_path),
            release=release,
        )

    def fetch(self, unit: SpecUnit, resolution: Resolution) -> bytes:
        location = _location(unit)
        host = self._host(location)
        owner, repo, ref = location.owner, location.repo, resolution.marker

        if location.track == "release":
            content = self._fetch_release_asset(host, location, ref)
            if content is not None:
                return content

        try:
            return host.raw_content(owner, repo, ref, location.spec_path)
        except NotFoundError as exc:
            raise NotFoundError(
                f"{location.spec_path} not found as a release asset or at "
                f"{ref} in {owner}/{repo}"
            ) from exc

    def file_format(self, unit: SpecUnit, content: bytes) -> str:
        suffix = PurePosixPath(_location(unit).spec_path).suffix.lower()
        if suffix == ".json":
            return "json"
        if suffix in (".yaml", ".yml"):
            return "yaml"
        return super().file_format(unit, content)

    def _fetch_release_asset(
        self, host: HostClient, location: RepoLocation, tag: str
    ) -> Optional[bytes]:
        """Download the expected asset of release *tag*, or ``None`` if it has none."""
        output = get_output()
        try:
            release = host.release_by_tag(location.owner, location.repo, tag)
        except NotFoundError:
            output.debug(f"No release tagged {tag} in {location.owner}/{location.repo}")
            return None

        name = location.expected_asset_name
        asset = next((a for a in release.assets if a.name == name), None)
        if asset is None:
            output.debug(f"Release {tag} has no asset named {name}; using repository file")
            return None
        try:
            return host.download_asset(asset.url)
        except NotFoundError:
            output.debug(f"Asset {name} of release {tag} disappeared; using repository file")
            return None


class InternalRepoSource(GitHubSource):
    """Specs in a privately hosted GitHub-compatible repository.

    Identical mechanics to :class:`GitHubSource`; the REST root comes from
    the location's ``apiUrl``.
    """

    @property
    def source_type(self) -> SourceType:
        return SourceType.INTERNAL_REPO

    def _host(self, location: RepoLocation) -> HostClient:
        return self._hosts.get(location.api_url)


def _location(unit: SpecUnit) -> RepoLocation:
    location = unit.entry.location
    assert isinstance(location, RepoLocation)
    return location
