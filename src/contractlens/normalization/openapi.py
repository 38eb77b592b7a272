"""Normalize request-style (OpenAPI) documents into the unified model.

The input is a dereferenced document, normally the output of
:func:`~contractlens.parser.openapi.parse_openapi_document`.  Every field is
read through :func:`~contractlens.normalization.access.read_field`, so an
accessor-object representation of the same document is accepted as well.

Operations are produced in source order: every path template in declaration
order, and within a path the methods GET, POST, PUT, PATCH, DELETE, OPTIONS,
HEAD and TRACE, each only when present.  Every operation is
``request-response``.

Path-level parameters are merged with operation-level ones (operation wins
on the same ``name`` + ``in``), and an operation without its own
``security`` inherits the document-level requirements; an explicit empty
list means no auth.

Swagger 2.0 documents are normalized best effort: servers are built from
``schemes``/``host``/``basePath``, an ``in: body`` parameter becomes the
input, and response-level ``schema`` entries become outputs.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from contractlens.exceptions import ContractAssemblyError
from contractlens.models import (
    ActionType,
    CommunicationPattern,
    ContractMetadata,
    NormalizerOptions,
    OperationMetadata,
    ParameterLocation,
    Protocol,
    RestMetadata,
    ServerInfo,
    UnifiedContract,
    UnifiedDataSchema,
    UnifiedOperation,
    UnifiedParameter,
)
from contractlens.normalization.access import raw_json, read_field, resolve_or_default
from contractlens.normalization.contract import (
    collect_tags,
    contract_id,
    entries as _entries,
    items as _items,
    normalize_security_schemes,
    unique_operation_id,
)
from contractlens.normalization.schema import OPENAPI_DIALECT, normalize_schema, schema_type
from contractlens.parser.resolver import is_reference

logger = logging.getLogger(__name__)

# Iteration order for the methods of one path item
HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head", "trace")

JSON_MEDIA_TYPE = "application/json"


def normalize_openapi_spec(
    document: Any,
    options: Optional[NormalizerOptions] = None,
) -> UnifiedContract:
    """Build a :class:`UnifiedContract` from a dereferenced OpenAPI document.

    Args:
        document: The dereferenced document (plain data or accessor object).
        options: Normalizer options; ``include_original_spec`` controls
            whether the document is attached to the contract metadata.

    Returns:
        The normalized contract.

    Raises:
        ContractAssemblyError: If ``info.title``/``info.version`` are missing
            or the assembled contract is invalid.
    """
    options = options or NormalizerOptions()
    info = read_field(document, "info")
    title = read_field(info, "title")
    version = read_field(info, "version")
    if not title or version is None:
        raise ContractAssemblyError(
            "OpenAPI document must declare info.title and info.version"
        )

    original = raw_json(document) if options.include_original_spec else None

    try:
        operations = _normalize_operations(document)
        return UnifiedContract(
            id=contract_id(Protocol.OPENAPI, str(title)),
            name=str(title),
            description=read_field(info, "description"),
            version=str(version),
            protocol=Protocol.OPENAPI,
            operations=operations,
            tags=collect_tags(
                read_field(document, "tags"),
                (tag for operation in operations for tag in operation.tags),
            ),
            servers=_normalize_servers(document),
            security_schemes=normalize_security_schemes(_security_scheme_map(document)),
            metadata=ContractMetadata(
                source_protocol=Protocol.OPENAPI,
                original_spec=dict(original) if isinstance(original, dict) else None,
            ),
        )
    except ValidationError as exc:
        raise ContractAssemblyError(f"Invalid OpenAPI contract '{title}': {exc}") from exc


# --- Operations ---


def _normalize_operations(document: Any) -> list[UnifiedOperation]:
    global_security = read_field(document, "security")
    operations: list[UnifiedOperation] = []
    seen_ids: set[str] = set()
    index = 0

    for path, path_item in _entries(read_field(document, "paths")):
        if path_item is None:
            continue
        path_params = _items(read_field(path_item, "parameters"))

        for method in HTTP_METHODS:
            operation = read_field(path_item, method)
            if operation is None:
                continue
            op_id = unique_operation_id(
                Protocol.OPENAPI, read_field(operation, "operationId"), index, seen_ids
            )
            operations.append(
                normalize_operation(
                    str(path),
                    method,
                    operation,
                    operation_id=op_id,
                    path_parameters=path_params,
                    global_security=global_security,
                )
            )
            index += 1

    logger.debug("Normalized %d OpenAPI operations", len(operations))
    return operations


def normalize_operation(
    path: str,
    method: str,
    operation: Any,
    *,
    operation_id: str,
    path_parameters: Optional[list[Any]] = None,
    global_security: Any = None,
) -> UnifiedOperation:
    """Normalize one path + method pair into a :class:`UnifiedOperation`."""
    method_upper = method.upper()
    raw_parameters = merge_parameters(path_parameters or [], _items(read_field(operation, "parameters")))
    responses = read_field(operation, "responses")

    input_schema = resolve_or_default(
        lambda: _operation_input(read_field(operation, "requestBody"), raw_parameters),
        None,
        context=f"request body of operation '{operation_id}'",
    ).value

    op_security = read_field(operation, "security")
    security = op_security if op_security is not None else global_security

    return UnifiedOperation(
        id=operation_id,
        name=read_field(operation, "summary") or f"{method_upper} {path}",
        description=read_field(operation, "description"),
        action_type=ActionType(method_upper),
        location=path,
        communication_pattern=CommunicationPattern.REQUEST_RESPONSE,
        tags=[str(tag) for tag in _items(read_field(operation, "tags"))],
        input=input_schema,
        output=normalize_responses(responses),
        parameters=normalize_parameters(raw_parameters),
        security=security_names(security),
        metadata=OperationMetadata(
            protocol=Protocol.OPENAPI,
            operation_id=read_field(operation, "operationId"),
            rest=RestMetadata(
                method=method_upper,
                path=path,
                status_codes=[str(code) for code, _ in _entries(responses)],
            ),
        ),
    )


def security_names(requirements: Any) -> Optional[list[str]]:
    """Union of scheme names across security requirement objects, in first-seen order."""
    if requirements is None:
        return None
    names: list[str] = []
    for requirement in _items(requirements):
        for name, _ in _entries(requirement):
            if name not in names:
                names.append(str(name))
    return names


# --- Bodies ---


def _choose_media_type(content: Any) -> Optional[tuple[str, Any]]:
    entries = _entries(content)
    if not entries:
        return None
    for media_type, media in entries:
        if media_type == JSON_MEDIA_TYPE:
            return media_type, media
    return entries[0]


def _normalize_media(
    media_type: str,
    media: Any,
    *,
    status_code: Optional[str] = None,
) -> UnifiedDataSchema:
    schema = read_field(media, "schema")
    media_example = read_field(media, "example")
    if schema is None:
        return UnifiedDataSchema(
            type="null",
            content_type=media_type,
            status_code=status_code,
            example=media_example,
        )

    normalized = normalize_schema(
        schema, OPENAPI_DIALECT, content_type=media_type, status_code=status_code
    )
    if normalized.example is None and media_example is not None:
        normalized = normalized.model_copy(update={"example": media_example})
    return normalized


def normalize_request_body(request_body: Any) -> Optional[UnifiedDataSchema]:
    """Normalize a ``requestBody``; ``None`` when absent, unresolved, or without content."""
    if request_body is None or is_reference(request_body):
        return None
    chosen = _choose_media_type(read_field(request_body, "content"))
    if chosen is None:
        return None
    normalized = _normalize_media(*chosen)
    if normalized.description is None and read_field(request_body, "description"):
        normalized = normalized.model_copy(
            update={"description": read_field(request_body, "description")}
        )
    return normalized


def _operation_input(request_body: Any, parameters: list[Any]) -> Optional[UnifiedDataSchema]:
    input_schema = normalize_request_body(request_body)
    if input_schema is None:
        input_schema = _swagger_body_parameter(parameters)
    return input_schema


def _swagger_body_parameter(parameters: list[Any]) -> Optional[UnifiedDataSchema]:
    for param in parameters:
        if read_field(param, "in") == "body" and read_field(param, "schema") is not None:
            normalized = normalize_schema(
                read_field(param, "schema"), OPENAPI_DIALECT, content_type=JSON_MEDIA_TYPE
            )
            if normalized.description is None and read_field(param, "description"):
                normalized = normalized.model_copy(
                    update={"description": read_field(param, "description")}
                )
            return normalized
    return None


def normalize_responses(responses: Any) -> list[UnifiedDataSchema]:
    """One output entry per declared status code, in declaration order.

    A response without content yields a ``type: "null"`` entry rather than
    being dropped.  A response that fails to normalize is logged and left
    out; the other responses are kept.
    """
    outputs: list[UnifiedDataSchema] = []
    for code, response in _entries(responses):
        status_code = str(code)
        if response is None or is_reference(response):
            continue
        normalized = resolve_or_default(
            lambda: _normalize_response(status_code, response),
            None,
            context=f"response {status_code}",
        ).value
        if normalized is not None:
            outputs.append(normalized)
    return outputs


def _normalize_response(status_code: str, response: Any) -> UnifiedDataSchema:
    description = read_field(response, "description")
    fallback_name = f"{status_code} Response"

    chosen = _choose_media_type(read_field(response, "content"))
    if chosen is None:
        legacy_schema = read_field(response, "schema")
        if legacy_schema is not None:
            chosen = (JSON_MEDIA_TYPE, {"schema": legacy_schema})
    if chosen is None:
        return UnifiedDataSchema(
            name=fallback_name,
            description=description,
            type="null",
            status_code=status_code,
        )

    normalized = _normalize_media(*chosen, status_code=status_code)
    return normalized.model_copy(
        update={
            "name": normalized.name or fallback_name,
            "description": normalized.description or description,
        }
    )


# --- Parameters ---


def merge_parameters(path_params: list[Any], op_params: list[Any]) -> list[Any]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level ones with the same
    ``name`` and ``in`` values.
    """
    op_keys = {
        (read_field(param, "name", ""), read_field(param, "in", ""))
        for param in op_params
    }
    merged = [
        param
        for param in path_params
        if (read_field(param, "name", ""), read_field(param, "in", "")) not in op_keys
    ]
    merged.extend(op_params)
    return merged


def normalize_parameters(parameters: list[Any]) -> list[UnifiedParameter]:
    """Convert parameter objects into :class:`UnifiedParameter` entries.

    Unresolved ``$ref`` parameters, Swagger 2.0 body/form parameters, and
    unknown locations are skipped.  Path parameters are always required.  A
    parameter that fails to normalize is logged and skipped.
    """
    result: list[UnifiedParameter] = []
    for param in parameters:
        if param is None or is_reference(param):
            continue
        normalized = resolve_or_default(
            lambda: _normalize_parameter(param),
            None,
            context=f"parameter '{read_field(param, 'name', '')}'",
        ).value
        if normalized is not None:
            result.append(normalized)
    return result


def _normalize_parameter(param: Any) -> Optional[UnifiedParameter]:
    try:
        location = ParameterLocation(read_field(param, "in", "query"))
    except ValueError:
        return None

    # Swagger 2.0 declares type/format/enum on the parameter itself.
    schema = read_field(param, "schema")
    if schema is None:
        schema = param

    required = bool(read_field(param, "required", False))
    if location == ParameterLocation.PATH:
        required = True

    example = read_field(param, "example")
    if example is None:
        example = read_field(schema, "example")
    enum_values = read_field(schema, "enum")

    return UnifiedParameter(
        name=str(read_field(param, "name", "")),
        location=location,
        description=read_field(param, "description"),
        required=required,
        type=schema_type(schema, "string"),
        format=read_field(schema, "format"),
        example=example,
        default=read_field(schema, "default"),
        enum=list(enum_values) if isinstance(enum_values, (list, tuple)) else None,
    )


# --- Contract-level sections ---


def _normalize_servers(document: Any) -> list[ServerInfo]:
    servers = _items(read_field(document, "servers"))
    if servers:
        result = []
        for server in servers:
            url = str(read_field(server, "url", "/"))
            result.append(
                ServerInfo(
                    url=url,
                    description=read_field(server, "description"),
                    protocol="https" if url.startswith("https") else "http",
                )
            )
        return result

    host = read_field(document, "host")
    if not host:
        return []
    base_path = read_field(document, "basePath", "")
    schemes = _items(read_field(document, "schemes")) or ["https"]
    return [
        ServerInfo(url=f"{scheme}://{host}{base_path}", protocol=str(scheme))
        for scheme in schemes
    ]


def _security_scheme_map(document: Any) -> Any:
    components = read_field(document, "components")
    schemes = read_field(components, "securitySchemes")
    if schemes is None:
        schemes = read_field(document, "securityDefinitions")
    return schemes

