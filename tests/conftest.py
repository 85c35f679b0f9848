"""Shared test fixtures for specsync.

Provides isolated config environments, output state management, catalogue
writers and :class:`FakeUpstream`, an in-memory stand-in for every upstream
host (GitHub API, vendor sites, API hubs) served through
:class:`httpx.MockTransport`. No test touches the real network.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

import httpx
import pytest

from specsync.client import HostPool
from specsync.models import RegistryEntry, SpecUnit
from specsync.output import OutputFormat, OutputManager, reset_output, set_output
from specsync.sources import create_default_registry


GITHUB_API = "https://api.github.com"

Route = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


# ---------------------------------------------------------------------------
# Fake upstream
# ---------------------------------------------------------------------------


class FakeUpstream:
    """Route table keyed by URL without its query string.

    Unknown URLs answer 404. Every request is recorded so tests can assert
    which hosts were (or were not) contacted.
    """

    def __init__(self) -> None:
        self._routes: dict[str, Route] = {}
        self._lock = threading.Lock()
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        *,
        json_body: Any = None,
        content: Union[bytes, str, None] = None,
        status: int = 200,
    ) -> None:
        if json_body is not None:
            self._routes[url] = httpx.Response(status, json=json_body)
        else:
            body = content.encode("utf-8") if isinstance(content, str) else (content or b"")
            self._routes[url] = httpx.Response(status, content=body)

    def add_route(self, url: str, route: Route) -> None:
        self._routes[url] = route

    def remove(self, url: str) -> None:
        self._routes.pop(url, None)

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        key = str(request.url).split("?", 1)[0]
        route = self._routes.get(key)
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if isinstance(route, Exception):
            raise route
        if isinstance(route, httpx.Response):
            return httpx.Response(
                route.status_code, headers=route.headers, content=route.content
            )
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def urls(self) -> list[str]:
        return [str(request.url).split("?", 1)[0] for request in self.requests]

    def hits(self, url: str) -> int:
        return self.urls().count(url)

    # -- GitHub helpers --------------------------------------------------

    def add_releases(self, owner: str, repo: str, releases: list[dict[str, Any]]) -> None:
        base = f"{GITHUB_API}/repos/{owner}/{repo}"
        self.add(f"{base}/releases", json_body=releases)
        for release in releases:
            self.add(f"{base}/releases/tags/{release['tag_name']}", json_body=release)

    def add_file(self, owner: str, repo: str, path: str, content: Union[bytes, str], ref: str) -> None:
        """Serve *path* from the contents API, only at *ref*."""
        body = content.encode("utf-8") if isinstance(content, str) else content
        url = f"{GITHUB_API}/repos/{owner}/{repo}/contents/{path}"
        previous = self._routes.get(url)

        def _route(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("ref") == ref:
                return httpx.Response(200, content=body)
            if callable(previous) and not isinstance(previous, (httpx.Response, Exception)):
                return previous(request)
            return httpx.Response(404, json={"message": "Not Found"})

        self._routes[url] = _route


def release_json(
    tag: str,
    published_at: str = "2024-01-01T00:00:00Z",
    *,
    owner: str = "acme",
    repo: str = "api",
    draft: bool = False,
    prerelease: bool = False,
    assets: Iterable[str] = (),
) -> dict[str, Any]:
    """A release payload shaped like the GitHub REST API's."""
    base = f"{GITHUB_API}/repos/{owner}/{repo}"
    return {
        "tag_name": tag,
        "published_at": published_at,
        "draft": draft,
        "prerelease": prerelease,
        "html_url": f"https://github.com/{owner}/{repo}/releases/tag/{tag}",
        "assets": [
            {
                "name": name,
                "url": f"{base}/releases/assets/{tag}-{name}",
                "browser_download_url": f"https://github.com/{owner}/{repo}/releases/download/{tag}/{name}",
            }
            for name in assets
        ],
    }


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def hosts(upstream: FakeUpstream):
    """A :class:`HostPool` whose clients all talk to ``upstream``."""
    with HostPool(token="test-token", transport=upstream.transport) as pool:
        yield pool


@pytest.fixture
def sources(hosts: HostPool):
    return create_default_registry(hosts)


# ---------------------------------------------------------------------------
# Catalogue helpers
# ---------------------------------------------------------------------------


def github_entry(
    name: str = "acme-api",
    version: str = "",
    *,
    owner: str = "acme",
    repo: str = "api",
    spec_path: str = "openapi.yaml",
    **extra: Any,
) -> dict[str, Any]:
    """Raw (on-disk shaped) ``github`` catalogue entry."""
    entry: dict[str, Any] = {
        "name": name,
        "displayName": extra.pop("displayName", "Acme API"),
        "vendor": extra.pop("vendor", "acme"),
        "moduleVersion": extra.pop("moduleVersion", "1.4.0"),
        "sourceType": "github",
        "location": {"owner": owner, "repo": repo, "specPath": spec_path, **extra.pop("location", {})},
        "versionInfo": {"lastKnownVersion": version},
    }
    entry.update(extra)
    return entry


def make_entry(data: dict[str, Any]) -> RegistryEntry:
    return RegistryEntry.model_validate(data)


def make_unit(data: dict[str, Any], unit_key: Optional[str] = None) -> SpecUnit:
    entry = make_entry(data)
    component = None
    if unit_key is not None:
        component = next(c for c in entry.submodule_units if c.unit_key == unit_key)
    return SpecUnit(entry=entry, unit_key=unit_key, component=component)


@pytest.fixture
def write_catalogue(tmp_path: Path) -> Callable[..., Path]:
    """Write a list of raw entries as a catalogue file and return its path."""

    def _write(entries: list[dict[str, Any]], name: str = "registry.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        return path

    return _write


def read_catalogue(path: Path) -> list[dict[str, Any]]:
    return json.loads(path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at subdirectories of tmp_path, clears the
    ``SPECSYNC_*`` variables and the default token variable, and changes the
    working directory to tmp_path.
    """
    monkeypatch.setattr("specsync.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "SPECSYNC_REGISTRY",
        "SPECSYNC_OUTPUT_DIR",
        "SPECSYNC_TOKEN_SOURCE",
        "GITHUB_TOKEN",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
