"""Parse AsyncAPI 2.x/3.x documents into an accessor object graph.

The AsyncAPI tooling ecosystem exposes parsed documents as objects whose
fields are read through zero-argument methods (``document.info().title()``,
``operation.channel().address()``, ``message.payload()``).  This module
provides that interface on top of a ``$ref``-resolved dict so the event-style
normalizer can be fed either this graph or any other library's objects of
the same shape.

Both major document layouts are supported:

* **3.x** -- operations are declared under ``operations`` with an explicit
  ``action`` (``send``/``receive``) and a ``channel`` reference.
* **2.x** -- operations live inside channel items as ``publish`` and
  ``subscribe``; they are exposed with actions ``send`` and ``receive``.

Schema-format parsers are enabled explicitly through
:class:`~contractlens.models.NormalizerOptions` (``schema_formats``) on every
call.  The Avro parser converts Avro payloads to JSON Schema and keeps the
source payload under ``x-parser-original-payload``.

The public entry point is :func:`parse_asyncapi_document`.
"""

from __future__ import annotations

import copy
from typing import Any, Optional

from contractlens.models import NormalizerOptions
from contractlens.parser.resolver import resolve_refs

ORIGINAL_PAYLOAD_KEY = "x-parser-original-payload"
ORIGINAL_SCHEMA_FORMAT_KEY = "x-parser-original-schema-format"

# 2.x channel item verb -> 3.x action
_LEGACY_ACTIONS = (("publish", "send"), ("subscribe", "receive"))


def parse_asyncapi_document(
    raw: dict[str, Any],
    options: Optional[NormalizerOptions] = None,
) -> "AsyncAPIDocument":
    """Resolve ``$ref`` pointers in *raw* and wrap it in accessor objects.

    Args:
        raw: The document as returned by
            :func:`~contractlens.parser.loader.load_document`.
        options: Parser configuration; ``schema_formats`` selects the
            schema-format parsers applied to message payloads.

    Returns:
        An :class:`AsyncAPIDocument`.

    Raises:
        DocumentLoadFailure: If an internal ``$ref`` cannot be resolved.
    """
    return AsyncAPIDocument(raw, resolve_refs(raw), options or NormalizerOptions())


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _ref_key(node: Any) -> Optional[str]:
    """Last JSON Pointer segment of an unresolved ``$ref`` node."""
    if isinstance(node, dict) and isinstance(node.get("$ref"), str):
        segment = node["$ref"].rsplit("/", 1)[-1]
        return segment.replace("~1", "/").replace("~0", "~")
    return None


class _Node:
    """Common base: every accessor object wraps one plain-data dict."""

    def __init__(self, data: Any) -> None:
        self._json = _mapping(data)

    def json(self) -> dict[str, Any]:
        return self._json

    def description(self) -> Optional[str]:
        return self._json.get("description")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._json!r})"


class Tag(_Node):
    """A tag object, or the bare tag name some documents use in its place."""

    def __init__(self, data: Any) -> None:
        super().__init__(data)
        self._name = data if isinstance(data, str) else self._json.get("name")

    def name(self) -> Optional[str]:
        return self._name



class Schema(_Node):
    """A JSON Schema node with one accessor per keyword the normalizer reads."""

    def type(self) -> Any:
        return self._json.get("type")

    def title(self) -> Optional[str]:
        return self._json.get("title")

    def format(self) -> Optional[str]:
        return self._json.get("format")

    def enum(self) -> Optional[list[Any]]:
        return self._json.get("enum")

    def example(self) -> Any:
        return self._json.get("example")

    def examples(self) -> Optional[list[Any]]:
        return self._json.get("examples")

    def default(self) -> Any:
        return self._json.get("default")

    def required(self) -> Optional[list[str]]:
        return self._json.get("required")

    def properties(self) -> Optional[dict[str, "Schema"]]:
        props = self._json.get("properties")
        if not isinstance(props, dict):
            return None
        return {name: Schema(value) for name, value in props.items()}

    def items(self) -> Optional["Schema"]:
        items = self._json.get("items")
        if isinstance(items, list):
            items = items[0] if items else None
        return Schema(items) if isinstance(items, dict) else None

    def minimum(self) -> Any:
        return self._json.get("minimum")

    def maximum(self) -> Any:
        return self._json.get("maximum")

    def min_length(self) -> Optional[int]:
        return self._json.get("minLength")

    def max_length(self) -> Optional[int]:
        return self._json.get("maxLength")

    def pattern(self) -> Optional[str]:
        return self._json.get("pattern")

    def min_items(self) -> Optional[int]:
        return self._json.get("minItems")

    def max_items(self) -> Optional[int]:
        return self._json.get("maxItems")


class Example(_Node):
    def name(self) -> Optional[str]:
        return self._json.get("name")

    def summary(self) -> Optional[str]:
        return self._json.get("summary")

    def payload(self) -> Any:
        return self._json.get("payload")

    def headers(self) -> Any:
        return self._json.get("headers")


class Message(_Node):
    def __init__(self, message_id: Optional[str], data: Any, document: "AsyncAPIDocument") -> None:
        super().__init__(data)
        self._id = message_id
        self._document = document

    def id(self) -> Optional[str]:
        return self._json.get("messageId") or self._id

    def name(self) -> Optional[str]:
        return self._json.get("name")

    def title(self) -> Optional[str]:
        return self._json.get("title")

    def summary(self) -> Optional[str]:
        return self._json.get("summary")

    def content_type(self) -> Optional[str]:
        return self._json.get("contentType") or self._document.default_content_type()

    def schema_format(self) -> Optional[str]:
        """Declared payload schema format (3.x multi-format payload or 2.x message field)."""
        payload = self._json.get("payload")
        if _is_multi_format(payload):
            return payload.get("schemaFormat")
        return self._json.get("schemaFormat")

    def payload(self) -> Optional[Schema]:
        payload = self._json.get("payload")
        if _is_multi_format(payload):
            payload = payload.get("schema")
        if payload is None:
            return None
        schema_format = self.schema_format()
        if (
            schema_format
            and "avro" in schema_format.lower()
            and self._document.schema_format_enabled("avro")
        ):
            converted = avro_to_json_schema(payload)
            converted[ORIGINAL_PAYLOAD_KEY] = payload
            converted[ORIGINAL_SCHEMA_FORMAT_KEY] = schema_format
            return Schema(converted)
        return Schema(payload)

    def headers(self) -> Optional[Schema]:
        headers = self._json.get("headers")
        if _is_multi_format(headers):
            headers = headers.get("schema")
        return Schema(headers) if isinstance(headers, dict) else None

    def examples(self) -> list[Example]:
        examples = self._json.get("examples")
        if not isinstance(examples, list):
            return []
        return [Example(example) for example in examples]

    def tags(self) -> list[Tag]:
        return [Tag(tag) for tag in self._json.get("tags") or []]


def _is_multi_format(value: Any) -> bool:
    return isinstance(value, dict) and "schemaFormat" in value and "schema" in value


class Channel(_Node):
    def __init__(
        self,
        channel_id: Optional[str],
        data: Any,
        document: "AsyncAPIDocument",
        legacy: bool = False,
    ) -> None:
        super().__init__(data)
        self._id = channel_id
        self._document = document
        self._legacy = legacy

    def id(self) -> Optional[str]:
        return self._id

    def address(self) -> Optional[str]:
        # 2.x channels are addressed by their key; 3.x declares ``address``
        # and may leave it null for dynamic channels.
        if self._legacy:
            return self._id
        return self._json.get("address")

    def title(self) -> Optional[str]:
        return self._json.get("title")

    def tags(self) -> list[Tag]:
        return [Tag(tag) for tag in self._json.get("tags") or []]

    def bindings(self) -> dict[str, Any]:
        return _mapping(self._json.get("bindings"))

    def messages(self) -> list[Message]:
        if self._legacy:
            messages: list[Message] = []
            for verb, _ in _LEGACY_ACTIONS:
                operation = _mapping(self._json.get(verb))
                messages.extend(self._document._legacy_messages(operation))
            return messages
        return [
            Message(key, value, self._document)
            for key, value in _mapping(self._json.get("messages")).items()
        ]


class Operation(_Node):
    def __init__(
        self,
        operation_id: Optional[str],
        data: Any,
        action: str,
        channel: Optional[Channel],
        messages: list[Message],
    ) -> None:
        super().__init__(data)
        self._id = operation_id
        self._action = action
        self._channel = channel
        self._messages = messages

    def id(self) -> Optional[str]:
        return self._id

    def action(self) -> str:
        return self._action

    def channel(self) -> Optional[Channel]:
        return self._channel

    def messages(self) -> list[Message]:
        if self._messages:
            return self._messages
        if self._channel is not None:
            return self._channel.messages()
        return []

    def title(self) -> Optional[str]:
        return self._json.get("title")

    def summary(self) -> Optional[str]:
        return self._json.get("summary")

    def tags(self) -> list[Tag]:
        return [Tag(tag) for tag in self._json.get("tags") or []]

    def bindings(self) -> dict[str, Any]:
        return _mapping(self._json.get("bindings"))


class Server(_Node):
    def __init__(self, server_id: str, data: Any, legacy: bool = False) -> None:
        super().__init__(data)
        self._id = server_id
        self._legacy = legacy

    def id(self) -> str:
        return self._id

    def url(self) -> str:
        if self._legacy:
            return str(self._json.get("url", ""))
        host = str(self._json.get("host", ""))
        return host + str(self._json.get("pathname") or "")

    def host(self) -> Optional[str]:
        return self._json.get("host")

    def protocol(self) -> Optional[str]:
        return self._json.get("protocol")


class Info(_Node):
    def __init__(self, data: Any, root_tags: Any = None) -> None:
        super().__init__(data)
        self._root_tags = root_tags

    def title(self) -> Optional[str]:
        return self._json.get("title")

    def version(self) -> Optional[str]:
        version = self._json.get("version")
        return str(version) if version is not None else None

    def tags(self) -> list[Tag]:
        tags = self._json.get("tags") or self._root_tags or []
        return [Tag(tag) for tag in tags]


class AsyncAPIDocument(_Node):
    """Root accessor over a resolved AsyncAPI document."""

    def __init__(
        self,
        raw: dict[str, Any],
        resolved: dict[str, Any],
        options: NormalizerOptions,
    ) -> None:
        super().__init__(resolved)
        self._raw = raw
        self._options = options

    def asyncapi(self) -> Optional[str]:
        version = self._json.get("asyncapi")
        return str(version) if version is not None else None

    def version(self) -> Optional[str]:
        return self.asyncapi()

    def is_legacy(self) -> bool:
        """True for 2.x documents (publish/subscribe channel items)."""
        return (self.asyncapi() or "").startswith("2.")

    def schema_format_enabled(self, name: str) -> bool:
        return name in self._options.schema_formats

    def default_content_type(self) -> Optional[str]:
        return self._json.get("defaultContentType")

    def info(self) -> Info:
        return Info(self._json.get("info"), root_tags=self._json.get("tags"))

    def servers(self) -> dict[str, Server]:
        return {
            key: Server(key, value, legacy=self.is_legacy())
            for key, value in _mapping(self._json.get("servers")).items()
        }

    def channels(self) -> dict[str, Channel]:
        return {
            key: Channel(key, value, self, legacy=self.is_legacy())
            for key, value in _mapping(self._json.get("channels")).items()
        }

    def security_schemes(self) -> dict[str, Any]:
        components = _mapping(self._json.get("components"))
        return _mapping(components.get("securitySchemes"))

    def operations(self) -> list[Operation]:
        """All operations in document order."""
        if self.is_legacy():
            return self._legacy_operations()

        channels = self.channels()
        raw_operations = _mapping(self._raw.get("operations"))
        result: list[Operation] = []
        for key, data in _mapping(self._json.get("operations")).items():
            raw_op = _mapping(raw_operations.get(key))
            channel_key = _ref_key(raw_op.get("channel"))
            channel = channels.get(channel_key) if channel_key else None
            if channel is None and isinstance(data.get("channel"), dict):
                channel = Channel(channel_key, data["channel"], self)

            raw_messages = raw_op.get("messages") or []
            messages = [
                Message(
                    _ref_key(raw_messages[index]) if index < len(raw_messages) else None,
                    message,
                    self,
                )
                for index, message in enumerate(data.get("messages") or [])
            ]
            result.append(
                Operation(key, data, str(data.get("action") or ""), channel, messages)
            )
        return result

    def _legacy_operations(self) -> list[Operation]:
        result: list[Operation] = []
        for key, channel in self.channels().items():
            item = channel.json()
            for verb, action in _LEGACY_ACTIONS:
                data = item.get(verb)
                if not isinstance(data, dict):
                    continue
                result.append(
                    Operation(
                        data.get("operationId"),
                        data,
                        action,
                        channel,
                        self._legacy_messages(data),
                    )
                )
        return result

    def _legacy_messages(self, operation: dict[str, Any]) -> list[Message]:
        message = operation.get("message")
        if not isinstance(message, dict):
            return []
        if isinstance(message.get("oneOf"), list):
            return [Message(None, item, self) for item in message["oneOf"]]
        return [Message(None, message, self)]


# --- Avro schema format ---

_AVRO_PRIMITIVES = {
    "null": "null",
    "boolean": "boolean",
    "int": "integer",
    "long": "integer",
    "float": "number",
    "double": "number",
    "bytes": "string",
    "string": "string",
}

_AVRO_LOGICAL_FORMATS = {
    "timestamp-millis": "date-time",
    "timestamp-micros": "date-time",
    "local-timestamp-millis": "date-time",
    "local-timestamp-micros": "date-time",
    "date": "date",
    "time-millis": "time",
    "time-micros": "time",
    "uuid": "uuid",
}


def avro_to_json_schema(avro: Any, named: Optional[dict[str, dict[str, Any]]] = None) -> dict[str, Any]:
    """Convert an Avro schema into an equivalent JSON Schema dict.

    Records become objects (fields without a default or a ``null`` branch are
    required), enums become string enums, arrays and maps keep their element
    schema, and logical types map onto JSON Schema formats.  Named types may
    be referenced by name after their definition.

    Args:
        avro: An Avro schema: primitive name, union list, or complex dict.
        named: Named types seen so far, keyed by name and full name.

    Returns:
        A new JSON Schema dict; *avro* is not modified.
    """
    if named is None:
        named = {}

    if isinstance(avro, str):
        if avro in _AVRO_PRIMITIVES:
            return {"type": _AVRO_PRIMITIVES[avro]}
        if avro in named:
            return copy.deepcopy(named[avro])
        return {"type": avro}

    if isinstance(avro, list):
        branches = [branch for branch in avro if branch != "null"]
        if len(branches) == 1:
            return avro_to_json_schema(branches[0], named)
        return {"oneOf": [avro_to_json_schema(branch, named) for branch in branches]}

    if not isinstance(avro, dict):
        return {}

    avro_type = avro.get("type")
    if isinstance(avro_type, (dict, list)):
        return avro_to_json_schema(avro_type, named)

    result: dict[str, Any]
    if avro_type in ("record", "error"):
        result = {"type": "object"}
        _register_named(avro, {"type": "object", "title": avro.get("name")}, named)
        properties: dict[str, Any] = {}
        required: list[str] = []
        for avro_field in avro.get("fields") or []:
            if not isinstance(avro_field, dict) or "name" not in avro_field:
                continue
            prop = avro_to_json_schema(avro_field.get("type"), named)
            if avro_field.get("doc"):
                prop["description"] = avro_field["doc"]
            if "default" in avro_field:
                prop["default"] = avro_field["default"]
            elif not _is_nullable(avro_field.get("type")):
                required.append(avro_field["name"])
            properties[avro_field["name"]] = prop
        result["properties"] = properties
        if required:
            result["required"] = required
    elif avro_type == "enum":
        result = {"type": "string", "enum": list(avro.get("symbols") or [])}
    elif avro_type == "array":
        result = {"type": "array", "items": avro_to_json_schema(avro.get("items"), named)}
    elif avro_type == "map":
        result = {
            "type": "object",
            "additionalProperties": avro_to_json_schema(avro.get("values"), named),
        }
    elif avro_type == "fixed":
        size = avro.get("size")
        result = {"type": "string", "minLength": size, "maxLength": size}
    else:
        result = avro_to_json_schema(avro_type, named) if avro_type else {}
        logical_format = _AVRO_LOGICAL_FORMATS.get(avro.get("logicalType", ""))
        if logical_format:
            result["format"] = logical_format

    if avro.get("name") and avro_type in ("record", "error", "enum", "fixed"):
        result["title"] = avro["name"]
        _register_named(avro, result, named)
    if avro.get("doc"):
        result["description"] = avro["doc"]
    return result


def _register_named(avro: dict[str, Any], schema: dict[str, Any], named: dict[str, dict[str, Any]]) -> None:
    name = avro.get("name")
    if not name:
        return
    named[name] = schema
    namespace = avro.get("namespace")
    if namespace:
        named[f"{namespace}.{name}"] = schema


def _is_nullable(avro_type: Any) -> bool:
    return isinstance(avro_type, list) and "null" in avro_type
