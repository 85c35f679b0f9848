"""Manually tracked sources: ``restrictedAccess`` and ``unavailable``.

The engine has no channel to either kind of source, so both always resolve
to :class:`~specsync.models.NotAvailable` without touching the network.
Their recorded versions only change through ``specsync registry set-version``.
"""

from __future__ import annotations

from typing import Union

from specsync.models import NotAvailable, Resolution, SourceType, SpecUnit
from specsync.sources.base import SourceHandler


class RestrictedAccessSource(SourceHandler):
    """A spec that sits behind a vendor login."""

    @property
    def source_type(self) -> SourceType:
        return SourceType.RESTRICTED_ACCESS

    def resolve(self, unit: SpecUnit) -> Union[Resolution, NotAvailable]:
        return NotAvailable("Source requires authenticated access")


class UnavailableSource(SourceHandler):
    """A connector with no known public spec."""

    @property
    def source_type(self) -> SourceType:
        return SourceType.UNAVAILABLE

    def resolve(self, unit: SpecUnit) -> Union[Resolution, NotAvailable]:
        return NotAvailable("No public specification source is known")
