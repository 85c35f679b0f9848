"""HTTP client module for specsync.

Provides :class:`HostClient`, a blocking client that wraps :mod:`httpx` for
release lookups, repository content, and plain vendor URLs, and
:class:`HostPool`, which shares one client per host REST root across the
worker threads of a scan.

Example::

    from specsync.client import HostPool

    with HostPool(token=token, timeout=30) as hosts:
        release = hosts.default.latest_release("acme", "api")
"""

from specsync.client.host_client import DEFAULT_API_URL, HostClient, HostPool

__all__ = ["DEFAULT_API_URL", "HostClient", "HostPool"]
