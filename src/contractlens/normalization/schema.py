"""Recursive schema walker shared by both normalizers.

One walk handles every dialect.  It is parameterized by a
:class:`SchemaDialect`, which bundles the two capabilities that differ
between source protocols:

* a :class:`~contractlens.normalization.access.FieldReader` that reads
  fields from plain data or from wrapped accessor objects;
* a dialect-marker detector that maps a declared schema format (for
  AsyncAPI messages, ``schemaFormat``) onto a :class:`SchemaFormat`.

At every level the node is classified exactly once:

* **object** -- ``properties`` resolves to a non-empty mapping; every member
  is walked into a :class:`SchemaProperty`, keeping source order;
* **array** -- ``items`` resolves to a value; the item schema is walked,
  so arrays of objects and arrays of arrays nest to any depth;
* **scalar** -- neither; type, format, enum and validation are copied.

A failure while walking one member is logged and drops that member only.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from contractlens.models import (
    SchemaFormat,
    SchemaProperty,
    SchemaValidation,
    UnifiedDataSchema,
)
from contractlens.normalization.access import (
    DEFAULT_READER,
    FieldReader,
    raw_json,
    read_field,
    resolve_or_default,
    strip_parser_metadata,
)
from contractlens.parser.resolver import ref_name

# JSON Schema keyword -> SchemaValidation field
_VALIDATION_FIELDS = {
    "minimum": "minimum",
    "maximum": "maximum",
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
    "minItems": "min_items",
    "maxItems": "max_items",
}

_UNSET: Any = object()


def _always_json_schema(marker: Optional[str]) -> SchemaFormat:
    return SchemaFormat.JSON_SCHEMA


def detect_asyncapi_schema_format(marker: Optional[str]) -> SchemaFormat:
    """Map an AsyncAPI ``schemaFormat`` string onto a :class:`SchemaFormat`.

    Any marker mentioning ``avro`` (``application/vnd.apache.avro;version=1.9.0``,
    ``application/vnd.apache.avro+json``...) selects the Avro dialect.
    """
    if marker and "avro" in str(marker).lower():
        return SchemaFormat.AVRO
    return SchemaFormat.JSON_SCHEMA


@dataclass(frozen=True)
class SchemaDialect:
    """Capabilities a source protocol plugs into the shared walk.

    Attributes:
        name: Dialect name used in log messages.
        reader: How fields are read from schema nodes.
        detect_format: Maps a declared schema-format marker to a
            :class:`SchemaFormat`.
        examples_fallback: Whether a JSON Schema ``examples`` list may supply
            the example when ``example`` is absent.
    """

    name: str
    reader: FieldReader = field(default=DEFAULT_READER)
    detect_format: Callable[[Optional[str]], SchemaFormat] = _always_json_schema
    examples_fallback: bool = False


OPENAPI_DIALECT = SchemaDialect(name="openapi")
ASYNCAPI_DIALECT = SchemaDialect(
    name="asyncapi",
    detect_format=detect_asyncapi_schema_format,
    examples_fallback=True,
)


def schema_type(node: Any, default: str, reader: FieldReader = DEFAULT_READER) -> str:
    """Extract the type string from a schema node.

    OpenAPI 3.1 type arrays (e.g., ``["string", "null"]``) yield their first
    non-null entry.  An untyped node with ``properties`` is an object, one with
    ``items`` an array; otherwise *default* applies.
    """
    type_value = read_field(node, "type", reader=reader)

    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        if non_null:
            return str(non_null[0])
        return "null" if type_value else default

    if isinstance(type_value, str) and type_value:
        return type_value

    if read_field(node, "properties", reader=reader):
        return "object"
    if read_field(node, "items", reader=reader) is not None:
        return "array"
    return default


def extract_validation(node: Any, reader: FieldReader = DEFAULT_READER) -> Optional[SchemaValidation]:
    """Collect the validation keywords present on *node*, or ``None`` if there are none."""
    found: dict[str, Any] = {}
    for keyword, attr in _VALIDATION_FIELDS.items():
        value = read_field(node, keyword, reader=reader)
        if value is not None:
            found[attr] = value
    if not found:
        return None
    return SchemaValidation(**found)


def _extract_example(node: Any, dialect: SchemaDialect) -> Any:
    example = read_field(node, "example", reader=dialect.reader)
    if example is None and dialect.examples_fallback:
        examples = read_field(node, "examples", reader=dialect.reader)
        if isinstance(examples, list) and examples:
            example = examples[0]
    return example


def _required_names(node: Any, reader: FieldReader) -> Optional[list[str]]:
    required = read_field(node, "required", reader=reader)
    if isinstance(required, (list, tuple)):
        return [str(name) for name in required]
    return None


def _ref_name(node: Any) -> Optional[str]:
    if isinstance(node, Mapping) and isinstance(node.get("$ref"), str):
        return ref_name(node["$ref"])
    return None


def _common_fields(node: Any, dialect: SchemaDialect, default_type: str) -> dict[str, Any]:
    reader = dialect.reader
    enum_values = read_field(node, "enum", reader=reader)
    return {
        "type": schema_type(node, default_type, reader),
        "description": read_field(node, "description", reader=reader),
        "example": _extract_example(node, dialect),
        "enum": list(enum_values) if isinstance(enum_values, (list, tuple)) else None,
        "format": read_field(node, "format", reader=reader),
        "validation": extract_validation(node, reader),
    }


def _walk_members(node: Any, dialect: SchemaDialect) -> Optional[dict[str, SchemaProperty]]:
    """Walk the ``properties`` of *node*; ``None`` when it is not object-shaped."""
    members = resolve_or_default(
        lambda: read_field(node, "properties", reader=dialect.reader),
        None,
        context=f"{dialect.name} schema properties",
    ).value
    if not isinstance(members, Mapping) or not members:
        return None

    properties: dict[str, SchemaProperty] = {}
    for member_name, member in members.items():
        result = resolve_or_default(
            lambda member=member: normalize_property(member, dialect),
            None,
            context=f"{dialect.name} property '{member_name}'",
        )
        if result.value is not None:
            properties[str(member_name)] = result.value
    return properties


def _items_node(node: Any, dialect: SchemaDialect) -> Any:
    items = resolve_or_default(
        lambda: read_field(node, "items", reader=dialect.reader),
        None,
        context=f"{dialect.name} schema items",
    ).value
    # Tuple-style ``items`` lists describe the first position only.
    if isinstance(items, list):
        return items[0] if items else None
    return items


def normalize_property(node: Any, dialect: SchemaDialect) -> SchemaProperty:
    """Walk one object member (and everything below it) into a :class:`SchemaProperty`."""
    fields = _common_fields(node, dialect, default_type="string")
    fields["name"] = read_field(node, "title", reader=dialect.reader)
    fields["default"] = read_field(node, "default", reader=dialect.reader)

    properties = _walk_members(node, dialect)
    if properties is not None:
        fields["properties"] = properties
        fields["required"] = _required_names(node, dialect.reader)
    else:
        items = _items_node(node, dialect)
        if items is not None:
            fields["items"] = normalize_property(items, dialect)

    return SchemaProperty(**fields)


def normalize_schema(
    node: Any,
    dialect: SchemaDialect,
    *,
    name: Optional[str] = None,
    content_type: Optional[str] = None,
    status_code: Optional[str] = None,
    format_marker: Optional[str] = None,
    original: Any = _UNSET,
) -> UnifiedDataSchema:
    """Walk a root schema node into a :class:`UnifiedDataSchema`.

    Args:
        node: The schema, as plain data or as an accessor object.
        dialect: Reader and dialect detector for the source protocol.
        name: Explicit name; defaults to the schema ``title``.
        content_type: Media type the schema was declared under.
        status_code: Response status code (request-style responses only).
        format_marker: Declared schema format (``schemaFormat``), if any.
        original: Pre-normalization payload to preserve.  Defaults to the
            plain-data form of *node*.

    Returns:
        The normalized node.  ``original_schema`` holds the source payload
        with parser metadata removed, and Avro payloads carry their
        ``namespace`` in ``metadata``.
    """
    reader = dialect.reader
    fields = _common_fields(node, dialect, default_type="object")
    fields["name"] = name or read_field(node, "title", reader=reader) or _ref_name(node)

    properties = _walk_members(node, dialect)
    if properties is not None:
        fields["properties"] = properties
        fields["required"] = _required_names(node, reader)
    else:
        items = _items_node(node, dialect)
        if items is not None:
            fields["items"] = normalize_schema(
                items,
                dialect,
                content_type=content_type,
                format_marker=format_marker,
            )

    source = raw_json(node) if original is _UNSET else original
    original_schema = strip_parser_metadata(source) if source is not None else None

    schema_format = dialect.detect_format(format_marker)
    metadata = None
    if (
        schema_format == SchemaFormat.AVRO
        and isinstance(original_schema, Mapping)
        and original_schema.get("namespace")
    ):
        metadata = {"namespace": original_schema["namespace"]}

    return UnifiedDataSchema(
        **fields,
        status_code=status_code,
        content_type=content_type,
        original_schema=original_schema,
        schema_format=schema_format,
        metadata=metadata,
    )
