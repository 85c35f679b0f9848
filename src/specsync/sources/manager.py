"""Source registry -- maps source types to handlers.

The :class:`SourceRegistry` is the only place that knows which handler
serves which :class:`~specsync.models.SourceType`. The scan orchestrator
and the fetcher ask it for a handler and call the handler's methods; they
never branch on the source type themselves.

For most use cases, call :func:`create_default_registry`.
"""

from __future__ import annotations

from specsync.client import HostPool
from specsync.exceptions import SpecsyncError
from specsync.models import SourceType
from specsync.sources.base import SourceHandler


class SourceRegistry:
    """Registry and dispatcher for source handlers.

    Example::

        registry = SourceRegistry()
        registry.register(GitHubSource(hosts))
        handler = registry.get_handler(SourceType.GITHUB)
    """

    def __init__(self) -> None:
        self._handlers: dict[SourceType, SourceHandler] = {}

    def register(self, handler: SourceHandler) -> None:
        """Register *handler* under its source type, replacing any previous one."""
        self._handlers[handler.source_type] = handler

    def get_handler(self, source_type: SourceType) -> SourceHandler:
        """Return the handler for *source_type*.

        Raises:
            SpecsyncError: If no handler is registered for *source_type*.
        """
        handler = self._handlers.get(source_type)
        if handler is None:
            available = ", ".join(sorted(t.value for t in self._handlers)) or "(none)"
            raise SpecsyncError(
                f"No source handler registered for '{source_type.value}'. "
                f"Available types: {available}"
            )
        return handler

    def list_types(self) -> list[str]:
        """Return the registered source type identifiers, sorted."""
        return sorted(t.value for t in self._handlers)


def create_default_registry(hosts: HostPool) -> SourceRegistry:
    """Create a :class:`SourceRegistry` with every built-in handler.

    - ``github`` / ``internalRepo`` -- release tags (or commits) via the host API.
    - ``vendorPublicUrl`` -- content hash of a vendor URL.
    - ``vendorDocsCollection`` -- content hash per extracted sub-spec.
    - ``thirdPartyHub`` -- revision reported by APIs.guru or SwaggerHub.
    - ``restrictedAccess`` / ``unavailable`` -- manual tracking only.
    """
    from specsync.sources.github import GitHubSource, InternalRepoSource
    from specsync.sources.hub import ThirdPartyHubSource
    from specsync.sources.manual import RestrictedAccessSource, UnavailableSource
    from specsync.sources.vendor import VendorDocsCollectionSource, VendorPublicUrlSource

    registry = SourceRegistry()
    registry.register(GitHubSource(hosts))
    registry.register(InternalRepoSource(hosts))
    registry.register(VendorPublicUrlSource(hosts))
    registry.register(VendorDocsCollectionSource(hosts))
    registry.register(ThirdPartyHubSource(hosts))
    registry.register(RestrictedAccessSource(hosts))
    registry.register(UnavailableSource(hosts))
    return registry
