"""Abstract base class for source handlers.

To support a new kind of upstream origin, add a location model to
:mod:`specsync.models`, subclass :class:`SourceHandler`, set the
:attr:`~SourceHandler.source_type` property, implement
:meth:`~SourceHandler.resolve`, and override :meth:`~SourceHandler.fetch`
when the content is not already captured while resolving. Register the
handler in :func:`~specsync.sources.manager.create_default_registry`;
nothing else dispatches on the source type.

See Also:
    :mod:`specsync.sources.manager` for registration and dispatch.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from typing import Union

from specsync.client import HostPool
from specsync.exceptions import NotFoundError
from specsync.models import NotAvailable, Resolution, SourceType, SpecUnit
from specsync.parser import detect_format


def content_marker(content: bytes) -> str:
    """Version marker for content-hashed sources: ``sha256:<hex digest>``."""
    return "sha256:" + hashlib.sha256(content).hexdigest()


class SourceHandler(ABC):
    """Abstract base class for one source type.

    Handlers are stateless apart from the :class:`~specsync.client.HostPool`
    they read through, so a single instance serves every worker thread.

    Args:
        hosts: Pool of open host clients shared by the scan.
    """

    def __init__(self, hosts: HostPool) -> None:
        self._hosts = hosts

    @property
    @abstractmethod
    def source_type(self) -> SourceType:
        """Return the :class:`~specsync.models.SourceType` this handler serves."""
        ...

    @abstractmethod
    def resolve(self, unit: SpecUnit) -> Union[Resolution, NotAvailable]:
        """Resolve the current upstream version marker of *unit*.

        Implementations download as little as the source type allows.

        Returns:
            A :class:`~specsync.models.Resolution`, or
            :class:`~specsync.models.NotAvailable` when the unit can only be
            tracked by hand.

        Raises:
            UnitError: On any upstream failure.
        """
        ...

    def fetch(self, unit: SpecUnit, resolution: Resolution) -> bytes:
        """Return the spec bytes for a resolved marker.

        The default returns the content captured by :meth:`resolve`, which is
        what content-hashed sources need: the bytes written are exactly the
        bytes that were hashed.

        Raises:
            UnitError: On any upstream failure.
        """
        if resolution.content is not None:
            return resolution.content
        raise NotFoundError(f"No content captured for {unit.label}", status=None)

    def file_format(self, unit: SpecUnit, content: bytes) -> str:
        """Serialisation of the fetched spec (``"json"`` or ``"yaml"``)."""
        return detect_format(content)
