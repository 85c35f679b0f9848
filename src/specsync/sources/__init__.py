"""Pluggable source handlers, one per catalogue source type.

Each upstream specification origin is served by a :class:`SourceHandler`
that knows how to resolve the current version marker (the *locator* half)
and how to retrieve the spec bytes for that marker (the *fetcher* half).

The main entry points are:

- :class:`SourceHandler` -- abstract base class for a source type.
- :class:`SourceRegistry` -- maps :class:`~specsync.models.SourceType`
  values to handler instances.
- :func:`create_default_registry` -- a registry pre-loaded with every
  built-in handler, bound to a :class:`~specsync.client.HostPool`.

Typical usage::

    from specsync.sources import create_default_registry

    registry = create_default_registry(hosts)
    handler = registry.get_handler(unit.source_type)
    resolution = handler.resolve(unit)
"""

from specsync.sources.base import SourceHandler, content_marker
from specsync.sources.manager import SourceRegistry, create_default_registry

__all__ = [
    "SourceHandler",
    "SourceRegistry",
    "content_marker",
    "create_default_registry",
]
