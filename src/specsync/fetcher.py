"""Retrieve spec content for a resolved marker and materialize it locally.

The retrieval channel is chosen by the unit's
:class:`~specsync.sources.SourceHandler`; this module owns the local side:
where a spec lands and how it is written.

Local layout::

    <output_dir>/<vendor>/<api>/openapi.<json|yaml>

``vendor`` is the entry's ``vendor`` (or its ``name``), ``api`` is the unit
key of a docs-collection unit, the location's ``api``, or the entry
``name``. All segments are slugs of catalogue identifiers, never of
display names, so repeated scans always target the same file. Writes are
atomic and overwrite the previous content.
"""

from __future__ import annotations

import re
from pathlib import Path

from specsync.config import atomic_write
from specsync.exceptions import MaterializeError
from specsync.models import Resolution, SpecUnit
from specsync.sources import SourceRegistry

_EXTENSIONS = ("json", "yaml")


def slugify(text: str) -> str:
    """Convert an identifier to a filesystem-safe slug."""
    slug = text.lower().strip()
    slug = re.sub(r"[^a-z0-9._]+", "-", slug)
    slug = slug.strip("-.")
    return slug or "default"


class SpecFetcher:
    """Fetch spec bytes through a unit's handler and write them to disk.

    Args:
        registry: Handlers used for retrieval and format detection.
        output_dir: Root of the materialized spec tree.
    """

    def __init__(self, registry: SourceRegistry, output_dir: Path) -> None:
        self._registry = registry
        self._output_dir = Path(output_dir)

    def fetch(self, unit: SpecUnit, resolution: Resolution) -> bytes:
        """Return the spec bytes for *resolution* via the unit's handler."""
        return self._registry.get_handler(unit.source_type).fetch(unit, resolution)

    def local_path(self, unit: SpecUnit, fmt: str) -> Path:
        """Deterministic destination of *unit*'s spec in format *fmt*."""
        entry = unit.entry
        vendor = entry.vendor or entry.name
        api = unit.unit_key or getattr(entry.location, "api", None) or entry.name
        return self._output_dir / slugify(vendor) / slugify(api) / f"openapi.{fmt}"

    def materialize(self, unit: SpecUnit, content: bytes) -> Path:
        """Write *content* to the unit's local path, replacing earlier copies.

        A copy in the other serialisation (left over from an upstream format
        switch) is removed so the directory never holds two specs.

        Raises:
            MaterializeError: If the directory or file cannot be written.
        """
        handler = self._registry.get_handler(unit.source_type)
        fmt = handler.file_format(unit, content)
        path = self.local_path(unit, fmt)
        try:
            atomic_write(path, content)
            for other in _EXTENSIONS:
                if other != fmt:
                    path.with_name(f"openapi.{other}").unlink(missing_ok=True)
        except OSError as exc:
            raise MaterializeError(f"Cannot write {path}: {exc}") from exc
        return path

    def retrieve(self, unit: SpecUnit, resolution: Resolution) -> Path:
        """Fetch and materialize in one step; returns the written path."""
        return self.materialize(unit, self.fetch(unit, resolution))
