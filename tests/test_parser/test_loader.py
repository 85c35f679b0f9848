"""Tests for specsync.parser.loader."""

from __future__ import annotations

import pytest

from specsync.exceptions import NotFoundError
from specsync.parser.loader import detect_format, parse_document


# ---------------------------------------------------------------------------
# parse_document
# ---------------------------------------------------------------------------


class TestParseDocument:
    """Test JSON/YAML parsing of documentation pages."""

    def test_parses_json(self) -> None:
        assert parse_document('{"apis": {"billing": {}}}') == {"apis": {"billing": {}}}

    def test_parses_yaml(self) -> None:
        doc = parse_document("apis:\n  billing:\n    openapi: 3.0.0\n")
        assert doc == {"apis": {"billing": {"openapi": "3.0.0"}}}

    def test_json_list_allowed(self) -> None:
        assert parse_document("[1, 2]") == [1, 2]

    def test_json_hint_forces_json_only(self) -> None:
        with pytest.raises(NotFoundError, match="Invalid JSON"):
            parse_document("key: value", hint="json")

    def test_yaml_hint_skips_json(self) -> None:
        assert parse_document('{"a": 1}', hint="yaml") == {"a": 1}

    def test_empty_content_raises(self) -> None:
        with pytest.raises(NotFoundError, match="empty"):
            parse_document("   \n")

    def test_garbage_raises(self) -> None:
        with pytest.raises(NotFoundError, match="neither JSON nor YAML"):
            parse_document("key: [unclosed")


# ---------------------------------------------------------------------------
# detect_format
# ---------------------------------------------------------------------------


class TestDetectFormat:
    def test_json_object(self) -> None:
        assert detect_format(b'  {"openapi": "3.1.0"}') == "json"

    def test_yaml_default(self) -> None:
        assert detect_format(b"openapi: 3.1.0\n") == "yaml"

    def test_custom_default(self) -> None:
        assert detect_format(b"openapi: 3.1.0\n", default="json") == "json"

    def test_brace_but_not_json(self) -> None:
        # YAML flow mapping, not strict JSON
        assert detect_format(b"{openapi: 3.1.0}") == "yaml"
