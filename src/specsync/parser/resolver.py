"""Resolve RFC 6901 JSON Pointers inside parsed documents.

Multi-spec documentation pages declare each bundled API by a pointer such as
``/apis/payments/spec``. The single public function is
:func:`resolve_pointer`.
"""

from __future__ import annotations

from typing import Any

from specsync.exceptions import NotFoundError


def resolve_pointer(document: Any, pointer: str) -> Any:
    """Return the value at *pointer* within *document*.

    Accepts both plain (``/a/b``) and URI-fragment (``#/a/b``) forms and
    handles RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``). The empty
    pointer addresses the whole document.

    Raises:
        NotFoundError: If any segment of the pointer does not exist.

    Example::

        resolve_pointer({"apis": [{"name": "a"}]}, "/apis/0/name")  # "a"
    """
    if pointer.startswith("#"):
        pointer = pointer[1:]
    if pointer == "":
        return document
    if not pointer.startswith("/"):
        raise NotFoundError(f"Invalid JSON pointer '{pointer}'", status=None)

    current: Any = document
    for segment in pointer[1:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")

        if isinstance(current, dict):
            if segment not in current:
                raise NotFoundError(
                    f"Pointer '{pointer}': key '{segment}' not found", status=None
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise NotFoundError(
                    f"Pointer '{pointer}': invalid array index '{segment}'", status=None
                ) from exc
        else:
            raise NotFoundError(
                f"Pointer '{pointer}': cannot navigate into {type(current).__name__}",
                status=None,
            )

    return current
