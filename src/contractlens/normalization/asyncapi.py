"""Normalize event-style (AsyncAPI) documents into the unified model.

The normalizer reads an accessor object graph such as the one built by
:func:`~contractlens.parser.asyncapi.parse_asyncapi_document`; a plain dict
is parsed first.  Every field goes through the dual-access helpers, so
objects from other AsyncAPI tooling with the same accessor surface work too.

Mapping rules:

* ``send`` becomes ``PUBLISH`` with the message as ``input``; every other
  action becomes ``SUBSCRIBE`` with the message as the single ``output``.
* The location is the channel address, then the address recorded in the
  channel's raw document, then the operation id.
* Operation tags and channel tags are concatenated without de-duplication.
* Message headers become ``header`` parameters; a failure while reading them
  yields no parameters rather than an error.
* Only known transport bindings (kafka, mqtt, amqp) are carried over.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from contractlens.exceptions import ContractAssemblyError
from contractlens.models import (
    ActionType,
    AsyncMetadata,
    CommunicationPattern,
    ContractMetadata,
    NormalizerOptions,
    OperationMetadata,
    ParameterLocation,
    Protocol,
    ServerInfo,
    UnifiedContract,
    UnifiedDataSchema,
    UnifiedOperation,
    UnifiedParameter,
)
from contractlens.normalization.access import (
    raw_json,
    read_field,
    resolve_or_default,
)
from contractlens.normalization.contract import (
    collect_tags,
    contract_id,
    entries,
    items,
    normalize_security_schemes,
    unique_operation_id,
)
from contractlens.normalization.schema import ASYNCAPI_DIALECT, normalize_schema, schema_type
from contractlens.parser.asyncapi import ORIGINAL_PAYLOAD_KEY, parse_asyncapi_document

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"

# transport -> binding fields carried into operation metadata
KNOWN_BINDINGS: dict[str, tuple[str, ...]] = {
    "kafka": ("topic", "partitions", "replicas", "configs"),
    "mqtt": ("qos", "retain"),
    "amqp": ("is", "exchange", "queue"),
}


def normalize_asyncapi_spec(
    document: Any,
    options: Optional[NormalizerOptions] = None,
) -> UnifiedContract:
    """Build a :class:`UnifiedContract` from an AsyncAPI document.

    Args:
        document: An accessor-object document, or a plain dict which is
            parsed with *options* first.
        options: Normalizer options (server protocol fallback, schema-format
            parsers, whether to keep the original document).

    Returns:
        The normalized contract.

    Raises:
        ContractAssemblyError: If ``info.title``/``info.version`` are missing
            or the assembled contract is invalid.
        DocumentLoadFailure: If a plain dict has unresolvable ``$ref`` pointers.
    """
    options = options or NormalizerOptions()
    if isinstance(document, Mapping):
        document = parse_asyncapi_document(dict(document), options)

    info = read_field(document, "info")
    title = read_field(info, "title")
    version = read_field(info, "version")
    if not title or version is None:
        raise ContractAssemblyError(
            "AsyncAPI document must declare info.title and info.version"
        )

    original = raw_json(document) if options.include_original_spec else None

    try:
        operations = _normalize_operations(document)
        return UnifiedContract(
            id=contract_id(Protocol.ASYNCAPI, str(title)),
            name=str(title),
            description=read_field(info, "description"),
            version=str(version),
            protocol=Protocol.ASYNCAPI,
            operations=operations,
            tags=collect_tags(
                read_field(info, "tags"),
                (tag for operation in operations for tag in operation.tags),
            ),
            servers=normalize_servers(read_field(document, "servers"), options),
            security_schemes=normalize_security_schemes(read_field(document, "securitySchemes")),
            metadata=ContractMetadata(
                source_protocol=Protocol.ASYNCAPI,
                original_spec=dict(original) if isinstance(original, Mapping) else None,
            ),
        )
    except ValidationError as exc:
        raise ContractAssemblyError(f"Invalid AsyncAPI contract '{title}': {exc}") from exc


def _normalize_operations(document: Any) -> list[UnifiedOperation]:
    operations: list[UnifiedOperation] = []
    seen_ids: set[str] = set()
    for index, operation in enumerate(items(read_field(document, "operations"))):
        op_id = unique_operation_id(Protocol.ASYNCAPI, read_field(operation, "id"), index, seen_ids)
        operations.append(normalize_operation(operation, operation_id=op_id))
    logger.debug("Normalized %d AsyncAPI operations", len(operations))
    return operations


# --- Operations ---


def channel_address(channel: Any, fallback: str) -> str:
    """Resolve the channel address: accessor/field, then the raw document, then *fallback*."""
    address = read_field(channel, "address")
    if not address:
        raw = raw_json(channel)
        if isinstance(raw, Mapping):
            address = raw.get("address")
    return str(address) if address else fallback


def normalize_operation(operation: Any, *, operation_id: str) -> UnifiedOperation:
    """Normalize one AsyncAPI operation into a :class:`UnifiedOperation`."""
    action = str(read_field(operation, "action", ""))
    action_type = ActionType.PUBLISH if action == "send" else ActionType.SUBSCRIBE

    channel = read_field(operation, "channel")
    address = channel_address(channel, read_field(operation, "id") or operation_id)

    messages = items(
        resolve_or_default(
            lambda: read_field(operation, "messages"),
            [],
            context=f"messages of operation '{operation_id}'",
        ).value
    )
    message = messages[0] if messages else None
    data_schema = None
    if message is not None:
        data_schema = resolve_or_default(
            lambda: normalize_message(message),
            None,
            context=f"message of operation '{operation_id}'",
        ).value

    bindings = normalize_bindings(read_field(channel, "bindings"))
    for transport, values in normalize_bindings(read_field(operation, "bindings")).items():
        bindings.setdefault(transport, {}).update(values)

    return UnifiedOperation(
        id=operation_id,
        name=(
            read_field(operation, "summary")
            or read_field(operation, "title")
            or f"{action_type.value} {address}"
        ),
        description=read_field(operation, "description") or read_field(channel, "description"),
        action_type=action_type,
        location=address,
        communication_pattern=CommunicationPattern.PUBLISH_SUBSCRIBE,
        tags=tag_names(operation) + tag_names(channel),
        input=data_schema if action_type == ActionType.PUBLISH else None,
        output=[data_schema] if action_type == ActionType.SUBSCRIBE and data_schema else [],
        parameters=extract_message_headers(message),
        metadata=OperationMetadata(
            protocol=Protocol.ASYNCAPI,
            operation_id=read_field(operation, "id"),
            async_=AsyncMetadata(channel=address, action=action, bindings=bindings),
        ),
    )


def tag_names(source: Any) -> list[str]:
    """Names of the tags on an operation or channel, in order.

    Falls back to the raw ``tags`` list of the source document when the
    accessor form cannot be read.
    """
    if source is None:
        return []
    result = resolve_or_default(
        lambda: [
            tag if isinstance(tag, str) else read_field(tag, "name")
            for tag in items(read_field(source, "tags"))
        ],
        None,
        context="tags",
    )
    names = result.value
    if names is None:
        raw = raw_json(source)
        raw_tags = raw.get("tags") if isinstance(raw, Mapping) else None
        names = [tag if isinstance(tag, str) else read_field(tag, "name") for tag in items(raw_tags)]
    return [str(name) for name in names if name]


# --- Messages ---


def normalize_message(message: Any) -> UnifiedDataSchema:
    """Normalize a message into the payload's :class:`UnifiedDataSchema`.

    A message without a payload yields an empty ``object`` node.  The payload's
    own example wins; otherwise the first message example's payload is used.
    """
    name = (
        read_field(message, "name")
        or read_field(message, "title")
        or read_field(message, "id")
    )
    description = read_field(message, "summary") or read_field(message, "description")
    content_type = read_field(message, "contentType") or DEFAULT_CONTENT_TYPE
    schema_format = read_field(message, "schemaFormat")

    payload = read_field(message, "payload")
    if payload is None:
        return UnifiedDataSchema(
            name=name,
            description=description,
            type="object",
            content_type=content_type,
        )

    raw_payload = raw_json(payload)
    overrides: dict[str, Any] = {}
    # Converted payloads keep their source schema for display.
    if isinstance(raw_payload, Mapping) and ORIGINAL_PAYLOAD_KEY in raw_payload:
        overrides["original"] = raw_payload[ORIGINAL_PAYLOAD_KEY]

    normalized = normalize_schema(
        payload,
        ASYNCAPI_DIALECT,
        content_type=content_type,
        format_marker=schema_format,
        **overrides,
    )

    update: dict[str, Any] = {"name": name or normalized.name}
    if description:
        update["description"] = description
    if normalized.example is None:
        update["example"] = first_example_payload(message)
    return normalized.model_copy(update=update)


def first_example_payload(message: Any) -> Any:
    """Payload of the message's first example, or ``None``."""
    examples = items(read_field(message, "examples"))
    if not examples:
        return None
    first = examples[0]
    payload = read_field(first, "payload")
    if payload is None:
        raw = raw_json(first)
        if isinstance(raw, Mapping):
            payload = raw.get("payload")
    return payload


def extract_message_headers(message: Any) -> list[UnifiedParameter]:
    """Map the message ``headers`` schema onto ``header`` parameters.

    Any failure while reading the headers yields an empty list.
    """
    if message is None:
        return []
    return resolve_or_default(
        lambda: _header_parameters(message),
        [],
        context="message headers",
    ).value


def _header_parameters(message: Any) -> list[UnifiedParameter]:
    headers = read_field(message, "headers")
    if headers is None:
        return []
    required = read_field(headers, "required")
    if required is None:
        raw = raw_json(headers)
        required = raw.get("required") if isinstance(raw, Mapping) else None
    required_names = {str(name) for name in items(required)}

    parameters: list[UnifiedParameter] = []
    for header_name, header in entries(read_field(headers, "properties")):
        parameters.append(
            UnifiedParameter(
                name=str(header_name),
                location=ParameterLocation.HEADER,
                description=read_field(header, "description"),
                required=str(header_name) in required_names,
                type=schema_type(header, "string"),
                format=read_field(header, "format"),
                example=read_field(header, "example"),
                default=read_field(header, "default"),
                enum=read_field(header, "enum"),
            )
        )
    return parameters


# --- Bindings and servers ---


def normalize_bindings(bindings: Any) -> dict[str, dict[str, Any]]:
    """Keep the known fields of known transports; unknown transports are dropped."""
    result: dict[str, dict[str, Any]] = {}
    for transport, fields in KNOWN_BINDINGS.items():
        binding = read_field(bindings, transport)
        if binding is None:
            continue
        values = {name: read_field(binding, name) for name in fields}
        if transport == "kafka" and values["configs"] is None:
            values["configs"] = read_field(binding, "topicConfiguration")
        result[transport] = {name: value for name, value in values.items() if value is not None}
    return result


def normalize_servers(servers: Any, options: NormalizerOptions) -> list[ServerInfo]:
    """One :class:`ServerInfo` per server; the protocol defaults to the configured transport."""
    result: list[ServerInfo] = []
    for _, server in entries(servers):
        result.append(
            ServerInfo(
                url=str(read_field(server, "url", "")),
                description=read_field(server, "description"),
                protocol=read_field(server, "protocol") or options.default_server_protocol,
            )
        )
    return result
