"""Vendor-hosted specs: ``vendorPublicUrl`` and ``vendorDocsCollection``.

Neither source type exposes a version field, so the version marker is the
SHA-256 digest of the content. The bytes downloaded while resolving are
kept on the :class:`~specsync.models.Resolution` and later written out as
they are, so the materialized file always matches its marker.
"""

from __future__ import annotations

import json
import re
from typing import Any, Union

import yaml

from specsync.exceptions import NotFoundError
from specsync.models import (
    DocsCollectionLocation,
    NotAvailable,
    Resolution,
    SourceType,
    SpecComponent,
    SpecUnit,
    UrlLocation,
)
from specsync.parser import parse_document, resolve_pointer
from specsync.sources.base import SourceHandler, content_marker

_FORMATS = {"json": "json", "yaml": "yaml", "yml": "yaml"}


class VendorPublicUrlSource(SourceHandler):
    """A spec downloadable from one vendor URL.

    Templated URLs (``isTemplated: true``) contain a placeholder the engine
    cannot fill, so they are reported for manual tracking without any
    network access.
    """

    @property
    def source_type(self) -> SourceType:
        return SourceType.VENDOR_PUBLIC_URL

    def resolve(self, unit: SpecUnit) -> Union[Resolution, NotAvailable]:
        location = unit.entry.location
        assert isinstance(location, UrlLocation)
        if location.is_templated:
            return NotAvailable("URL is templated and needs a parameter only a human can supply")

        content = self._hosts.default.get(location.primary_url)
        return Resolution(
            marker=content_marker(content),
            reference_url=location.primary_url,
            content=content,
        )

    def file_format(self, unit: SpecUnit, content: bytes) -> str:
        location = unit.entry.location
        assert isinstance(location, UrlLocation)
        return _FORMATS.get(location.format.lower()) or super().file_format(unit, content)


class VendorDocsCollectionSource(SourceHandler):
    """One sub-spec of a documentation page that describes several APIs.

    Every unit downloads the page and extracts its own component, so units
    are versioned independently: a change to one API's section does not
    mark its siblings as updated.
    """

    @property
    def source_type(self) -> SourceType:
        return SourceType.VENDOR_DOCS_COLLECTION

    def resolve(self, unit: SpecUnit) -> Union[Resolution, NotAvailable]:
        location = unit.entry.location
        assert isinstance(location, DocsCollectionLocation)
        assert unit.component is not None

        page = self._hosts.default.get(location.primary_url)
        content = extract_component(page.decode("utf-8", errors="replace"), unit.component)
        return Resolution(
            marker=content_marker(content),
            reference_url=location.primary_url,
            content=content,
        )

    def file_format(self, unit: SpecUnit, content: bytes) -> str:
        if unit.component is not None and unit.component.format:
            fmt = _FORMATS.get(unit.component.format.lower())
            if fmt:
                return fmt
        return super().file_format(unit, content)


def extract_component(page: str, component: SpecComponent) -> bytes:
    """Extract one component's spec text from a documentation page.

    Extracted objects are serialised deterministically so that an unchanged
    section always hashes to the same marker.

    Raises:
        NotFoundError: If the extraction rule matches nothing.
    """
    if component.json_pointer is not None:
        node = resolve_pointer(parse_document(page), component.json_pointer)
        return _serialise(node, component.format)

    assert component.pattern is not None
    match = re.search(component.pattern, page, re.DOTALL)
    if match is None:
        raise NotFoundError(
            f"Pattern for component '{component.unit_key}' matched nothing", status=None
        )
    text = match.group(1) if match.groups() else match.group(0)
    return text.strip().encode("utf-8") + b"\n"


def _serialise(node: Any, fmt: str | None) -> bytes:
    if isinstance(node, str):
        return node.strip().encode("utf-8") + b"\n"
    if fmt and _FORMATS.get(fmt.lower()) == "yaml":
        return yaml.safe_dump(node, sort_keys=False, allow_unicode=True).encode("utf-8")
    # YAML pages yield dates and timestamps; emit them as their ISO text.
    return (json.dumps(node, indent=2, ensure_ascii=False, default=str) + "\n").encode("utf-8")
