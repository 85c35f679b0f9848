"""Document helpers for spec extraction.

This sub-package turns the raw bytes of a downloaded page into something a
source handler can pick a single specification out of:

* :mod:`~specsync.parser.loader` -- JSON/YAML parsing with format detection.
* :mod:`~specsync.parser.resolver` -- RFC 6901 JSON Pointer navigation.

Typical usage::

    from specsync.parser import parse_document, resolve_pointer

    doc = parse_document(page_text)
    payments = resolve_pointer(doc, "/apis/payments")
"""

from specsync.parser.loader import detect_format, parse_document
from specsync.parser.resolver import resolve_pointer

__all__ = ["detect_format", "parse_document", "resolve_pointer"]
