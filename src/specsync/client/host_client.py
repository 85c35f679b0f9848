"""HTTP client for the upstream release and content host.

This module provides :class:`HostClient`, the blocking client every source
handler uses for network reads. It wraps :class:`httpx.Client` and layers on:

- **Token injection** -- the host token is sent as a bearer header, but only
  to URLs under the host's REST root, never to vendor sites.
- **Structured failures** -- non-success responses raise a
  :class:`~specsync.exceptions.UnitError` subclass chosen by status code
  (404 -> :class:`NotFoundError`, other -> :class:`HttpStatusError`);
  timeouts and transport errors raise :class:`NetworkError`.
- **One attempt per call** -- requests are bounded by the configured timeout
  and never retried; the caller records the failure and moves on.

:class:`HostPool` hands out one client per REST root so that ``github`` and
``internalRepo`` entries hosted on different instances share a scan.

Example::

    with HostClient(token="ghp_...") as host:
        releases = host.list_releases("acme", "api")
"""

from __future__ import annotations

import threading
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from specsync import __version__
from specsync.exceptions import HttpStatusError, NetworkError, NotFoundError
from specsync.models import Release, ReleaseAsset
from specsync.output import get_output

DEFAULT_API_URL = "https://api.github.com"

_JSON_ACCEPT = "application/vnd.github+json"
_RAW_ACCEPT = "application/vnd.github.raw"
_ASSET_ACCEPT = "application/octet-stream"


class HostClient:
    """Client for a GitHub-compatible host plus arbitrary public URLs.

    Must be used as a context manager so that the underlying transport is
    opened and closed properly.

    Args:
        token: Access token for the host. Empty means anonymous access.
        api_url: REST root of the host (``https://api.github.com`` or an
            enterprise ``https://git.example.com/api/v3``).
        timeout: Per-request timeout in seconds.
        transport: Optional :class:`httpx.BaseTransport`, mainly for tests.
    """

    def __init__(
        self,
        token: str = "",
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def api_url(self) -> str:
        return self._api_url

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> HostClient:
        self._client = httpx.Client(
            timeout=self._timeout,
            follow_redirects=True,
            headers={"User-Agent": f"specsync/{__version__}"},
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Releases and repository content
    # ------------------------------------------------------------------ #

    def list_releases(self, owner: str, repo: str, per_page: int = 30) -> list[Release]:
        """Return the most recent releases, drafts and pre-releases included."""
        url = f"{self._repo_url(owner, repo)}/releases"
        data = self._get_json(url, params={"per_page": per_page})
        if not isinstance(data, list):
            raise HttpStatusError(f"Unexpected release list payload from {url}", status=200)
        return [_parse_release(item) for item in data]

    def latest_release(self, owner: str, repo: str) -> Release:
        """Return the release the host marks as latest.

        Raises:
            NotFoundError: If the repository has no releases.
        """
        url = f"{self._repo_url(owner, repo)}/releases/latest"
        return _parse_release(self._get_json(url))

    def release_by_tag(self, owner: str, repo: str, tag: str) -> Release:
        """Return the release identified by *tag*."""
        url = f"{self._repo_url(owner, repo)}/releases/tags/{quote(tag, safe='')}"
        return _parse_release(self._get_json(url))

    def latest_commit(self, owner: str, repo: str, path: str) -> str:
        """Return the SHA of the newest commit touching *path* on the default branch.

        Raises:
            NotFoundError: If no commit touches *path*.
        """
        url = f"{self._repo_url(owner, repo)}/commits"
        data = self._get_json(url, params={"path": path, "per_page": 1})
        if not isinstance(data, list) or not data:
            raise NotFoundError(f"No commits touch {path} in {owner}/{repo}", status=None)
        if not isinstance(data[0], dict) or not data[0].get("sha"):
            raise HttpStatusError("Unexpected commit payload", status=200)
        return str(data[0]["sha"])

    def raw_content(self, owner: str, repo: str, ref: str, path: str) -> bytes:
        """Return the raw bytes of *path* at *ref* via the contents API."""
        url = f"{self._repo_url(owner, repo)}/contents/{quote(path.lstrip('/'))}"
        response = self._send(url, accept=_RAW_ACCEPT, params={"ref": ref})
        return response.content

    def download_asset(self, url: str) -> bytes:
        """Download a release asset from its API URL."""
        return self._send(url, accept=_ASSET_ACCEPT).content

    def raw_url(self, owner: str, repo: str, ref: str, path: str) -> str:
        """Human-facing URL of *path* at *ref* (for reports, not for downloads)."""
        web_root = _web_root(self._api_url)
        return f"{web_root}/{owner}/{repo}/blob/{ref}/{path.lstrip('/')}"

    # ------------------------------------------------------------------ #
    # Generic reads
    # ------------------------------------------------------------------ #

    def get(self, url: str) -> bytes:
        """GET any URL and return the body bytes."""
        return self._send(url).content

    def get_json(self, url: str) -> Any:
        """GET any URL and decode the body as JSON."""
        return self._get_json(url)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self._api_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    def _get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        response = self._send(url, accept=_JSON_ACCEPT, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise HttpStatusError(
                f"Invalid JSON from {url}", status=response.status_code
            ) from exc

    def _send(
        self,
        url: str,
        accept: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one GET request and map failures to unit errors."""
        assert self._client is not None, "Client not initialised -- use as context manager"

        headers: dict[str, str] = {}
        if accept:
            headers["Accept"] = accept
        if self._token and url.startswith(self._api_url):
            headers["Authorization"] = f"Bearer {self._token}"

        get_output().debug(f"GET {url}")
        try:
            response = self._client.get(url, headers=headers, params=params)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Timed out after {self._timeout}s fetching {url}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Request to {url} failed: {exc}") from exc

        self._map_response_error(url, response)
        return response

    def _map_response_error(self, url: str, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return
        if status == 404:
            raise NotFoundError(f"HTTP 404 for {url}", status=404)
        raise HttpStatusError(f"HTTP {status} for {url}", status=status)


class HostPool:
    """Lazily opened :class:`HostClient` instances, one per REST root.

    The same token is used for every root. Safe to call from worker threads.

    Args:
        token: Access token for the upstream host(s).
        default_api_url: REST root used when no explicit root is requested.
        timeout: Per-request timeout in seconds.
        transport: Optional transport shared by every client, mainly for tests.
    """

    def __init__(
        self,
        token: str = "",
        default_api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._token = token
        self._default_api_url = default_api_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._clients: dict[str, HostClient] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> HostPool:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def default(self) -> HostClient:
        return self.get()

    def get(self, api_url: Optional[str] = None) -> HostClient:
        """Return the open client for *api_url* (default root when ``None``)."""
        key = (api_url or self._default_api_url).rstrip("/")
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                client = HostClient(
                    token=self._token,
                    api_url=key,
                    timeout=self._timeout,
                    transport=self._transport,
                ).__enter__()
                self._clients[key] = client
            return client

    def close(self) -> None:
        with self._lock:
            for client in self._clients.values():
                client.__exit__(None, None, None)
            self._clients.clear()


def _parse_release(data: Any) -> Release:
    """Convert a GitHub release payload into a :class:`Release`."""
    if not isinstance(data, dict) or "tag_name" not in data:
        raise HttpStatusError("Unexpected release payload", status=200)
    assets = data.get("assets") or []
    if not isinstance(assets, list) or not all(isinstance(asset, dict) for asset in assets):
        raise HttpStatusError(f"Unexpected assets in release {data['tag_name']}", status=200)
    try:
        return Release(
            tag=data["tag_name"],
            published_at=data.get("published_at"),
            is_draft=bool(data.get("draft", False)),
            is_prerelease=bool(data.get("prerelease", False)),
            html_url=data.get("html_url"),
            assets=[
                ReleaseAsset(
                    name=asset["name"],
                    url=asset["url"],
                    browser_download_url=asset.get("browser_download_url"),
                )
                for asset in assets
            ],
        )
    except (KeyError, ValidationError) as exc:
        raise HttpStatusError(
            f"Unexpected release payload for {data['tag_name']}: {exc}", status=200
        ) from exc


def _web_root(api_url: str) -> str:
    """Derive the web UI root from a REST root."""
    if api_url == DEFAULT_API_URL:
        return "https://github.com"
    if api_url.endswith("/api/v3"):
        return api_url[: -len("/api/v3")]
    return api_url
