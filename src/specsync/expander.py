"""Expand catalogue entries into independently versioned spec units.

Most entries describe exactly one spec and become one
:class:`~specsync.models.SpecUnit`. A ``vendorDocsCollection`` entry
becomes one unit per declared component; the units keep pointing at their
parent entry, and their version state is stored back under the parent's
``versionInfo.units`` map rather than as new catalogue entries.
"""

from __future__ import annotations

from collections.abc import Iterable

from specsync.exceptions import RegistryCorruptError
from specsync.models import RegistryEntry, SourceType, SpecUnit


def expand(entries: Iterable[RegistryEntry]) -> list[SpecUnit]:
    """Return the spec units of *entries*, in catalogue order.

    Raises:
        RegistryCorruptError: If a docs collection declares the same unit key twice.
    """
    units: list[SpecUnit] = []
    for entry in entries:
        if entry.source_type != SourceType.VENDOR_DOCS_COLLECTION:
            units.append(SpecUnit(entry=entry))
            continue

        seen: set[str] = set()
        for component in entry.submodule_units:
            if component.unit_key in seen:
                raise RegistryCorruptError(
                    f"Entry '{entry.name}' declares unit '{component.unit_key}' twice"
                )
            seen.add(component.unit_key)
            units.append(SpecUnit(entry=entry, unit_key=component.unit_key, component=component))
    return units
