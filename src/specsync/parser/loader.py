"""Parse JSON or YAML documents fetched from upstream sources.

Documentation pages that bundle several specifications are frequently plain
JSON or YAML (an index document, a Postman-style collection, a portal
export). :func:`parse_document` turns such a page into Python objects, and
:func:`detect_format` guesses the serialisation of spec bytes so the
materialized file gets the right extension.
"""

from __future__ import annotations

import json
from typing import Any

import yaml

from specsync.exceptions import NotFoundError


def parse_document(content: str, hint: str = "") -> Any:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is ``"yaml"``), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint (``"json"`` or ``"yaml"``).

    Returns:
        The parsed document (usually a ``dict``).

    Raises:
        NotFoundError: If the content parses as neither format, or is empty.
    """
    if not content.strip():
        raise NotFoundError("Document is empty", status=None)

    if hint != "yaml":
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise NotFoundError(f"Invalid JSON document: {exc}", status=None) from exc

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise NotFoundError(
            f"Document is neither JSON nor YAML: {exc}", status=None
        ) from exc


def detect_format(content: bytes, default: str = "yaml") -> str:
    """Return ``"json"`` when *content* looks like a JSON document, else *default*."""
    head = content.lstrip()[:1]
    if head in (b"{", b"["):
        try:
            json.loads(content)
        except ValueError:
            return default
        return "json"
    return default
