"""Tests for contractlens.normalization.access."""

from __future__ import annotations

import logging

import pytest

from contractlens.exceptions import SchemaExtractionFailure
from contractlens.normalization.access import (
    AccessorReader,
    PlainReader,
    has_field,
    raw_json,
    read_field,
    resolve_or_default,
    strip_parser_metadata,
)


class _Wrapped:
    """Accessor-style object: fields are zero-argument methods."""

    def __init__(self, data: dict) -> None:
        self._data = data

    def type(self) -> str:
        return self._data["type"]

    def min_length(self) -> int:
        return self._data["minLength"]

    def json(self) -> dict:
        return self._data


class _Attributes:
    description = "plain attribute"


# ---------------------------------------------------------------------------
# read_field / has_field
# ---------------------------------------------------------------------------


class TestReadField:
    """The same call reads plain mappings and accessor objects."""

    def test_plain_mapping(self) -> None:
        assert read_field({"type": "string"}, "type") == "string"

    def test_accessor_method_invoked(self) -> None:
        assert read_field(_Wrapped({"type": "integer"}), "type") == "integer"

    def test_camel_case_falls_back_to_snake_case(self) -> None:
        assert read_field(_Wrapped({"minLength": 3}), "minLength") == 3

    def test_plain_attribute(self) -> None:
        assert read_field(_Attributes(), "description") == "plain attribute"

    def test_absent_returns_default(self) -> None:
        assert read_field({}, "type", "object") == "object"
        assert read_field(_Wrapped({}), "format", "none") == "none"

    def test_none_and_scalars_read_nothing(self) -> None:
        assert read_field(None, "type") is None
        assert read_field("string", "upper") is None
        assert read_field([1, 2], "count") is None

    def test_explicit_reader(self) -> None:
        assert read_field(_Wrapped({"type": "x"}), "type", reader=PlainReader()) is None
        assert read_field({"type": "x"}, "type", reader=AccessorReader()) is None


class TestHasField:
    def test_mapping_with_null_value(self) -> None:
        assert has_field({"asyncapi": None}, "asyncapi")

    def test_accessor(self) -> None:
        assert has_field(_Wrapped({}), "type")
        assert not has_field(_Wrapped({}), "asyncapi")

    def test_none(self) -> None:
        assert not has_field(None, "type")


class TestRawJson:
    def test_mapping_returned_as_is(self) -> None:
        data = {"type": "string"}
        assert raw_json(data) is data

    def test_accessor_json(self) -> None:
        assert raw_json(_Wrapped({"type": "object"})) == {"type": "object"}

    def test_other_yields_none(self) -> None:
        assert raw_json(42) is None


# ---------------------------------------------------------------------------
# strip_parser_metadata
# ---------------------------------------------------------------------------


class TestStripParserMetadata:
    """Parser annotations are removed at every depth."""

    def test_nested(self) -> None:
        source = {
            "type": "object",
            "x-parser-schema-id": "Order",
            "properties": {
                "lines": {
                    "type": "array",
                    "items": [{"type": "string", "x-parser-schema-id": "<anonymous>"}],
                }
            },
        }
        assert strip_parser_metadata(source) == {
            "type": "object",
            "properties": {"lines": {"type": "array", "items": [{"type": "string"}]}},
        }

    def test_other_extensions_kept(self) -> None:
        assert strip_parser_metadata({"x-internal": True}) == {"x-internal": True}

    def test_input_not_modified(self) -> None:
        source = {"x-parser-circular": True, "type": "string"}
        strip_parser_metadata(source)
        assert "x-parser-circular" in source


# ---------------------------------------------------------------------------
# resolve_or_default
# ---------------------------------------------------------------------------


class TestResolveOrDefault:
    """Failures degrade to the default and are logged, never raised."""

    def test_success(self) -> None:
        result = resolve_or_default(lambda: [1, 2], [], context="numbers")
        assert result.ok
        assert result.value == [1, 2]
        assert result.failure is None

    def test_failure_returns_default(self, caplog: pytest.LogCaptureFixture) -> None:
        def broken() -> list:
            raise AttributeError("headers")

        with caplog.at_level(logging.WARNING, logger="contractlens"):
            result = resolve_or_default(broken, [], context="message headers")

        assert not result.ok
        assert result.value == []
        assert isinstance(result.failure, SchemaExtractionFailure)
        assert "message headers" in caplog.text
