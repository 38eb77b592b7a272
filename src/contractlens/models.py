"""Canonical Pydantic models shared across all contractlens modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Unified model** -- the protocol-agnostic output of both normalizers and the
only shape the CLI, search, and any rendering layer ever read:
    :class:`Protocol`, :class:`CommunicationPattern`, :class:`ActionType`,
    :class:`ParameterLocation`, :class:`SchemaFormat`, :class:`SchemaValidation`,
    :class:`SchemaProperty`, :class:`UnifiedDataSchema`, :class:`UnifiedParameter`,
    :class:`RestMetadata`, :class:`AsyncMetadata`, :class:`OperationMetadata`,
    :class:`UnifiedOperation`, :class:`ContractTag`, :class:`ServerInfo`,
    :class:`SecurityScheme`, :class:`ContractMetadata`, and :class:`UnifiedContract`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig`, :class:`NormalizerOptions`, and :class:`GlobalConfig`.

Unified-model instances are frozen value objects built once during
normalization. Field names are snake_case in Python and camelCase on the wire:
use :meth:`UnifiedModel.to_json_dict` to get the JSON-compatible structure
consumed by front ends (``statusCode``, ``originalSchema``, ``actionType``...).
"""

from __future__ import annotations

import enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# --- Unified model enums ---


class Protocol(str, enum.Enum):
    """Source protocol family of a contract."""

    OPENAPI = "openapi"
    ASYNCAPI = "asyncapi"


class CommunicationPattern(str, enum.Enum):
    """Interaction style, derived 1:1 from :class:`Protocol`."""

    REQUEST_RESPONSE = "request-response"
    PUBLISH_SUBSCRIBE = "publish-subscribe"


PATTERN_BY_PROTOCOL: dict[Protocol, CommunicationPattern] = {
    Protocol.OPENAPI: CommunicationPattern.REQUEST_RESPONSE,
    Protocol.ASYNCAPI: CommunicationPattern.PUBLISH_SUBSCRIBE,
}


class ActionType(str, enum.Enum):
    """Universal action vocabulary across protocols.

    HTTP verbs for request-style operations, ``PUBLISH``/``SUBSCRIBE`` for
    event-style ones.  ``HEAD``, ``OPTIONS`` and ``TRACE`` are carried so that
    every method a path item may declare has a faithful action.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PUBLISH = "PUBLISH"
    SUBSCRIBE = "SUBSCRIBE"


class ParameterLocation(str, enum.Enum):
    """Locations where a parameter can appear."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


class SchemaFormat(str, enum.Enum):
    """Schema dialect a data schema was written in."""

    JSON_SCHEMA = "json-schema"
    AVRO = "avro"


# --- Unified model ---


class UnifiedModel(BaseModel):
    """Base class for every unified-model value object.

    Instances are immutable, accept either snake_case field names or their
    camelCase aliases on construction, and serialise to camelCase.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible dict with camelCase keys and unset fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SchemaValidation(UnifiedModel):
    """Validation constraints actually declared on a schema node.

    Normalizers only build this when at least one constraint is present.
    """

    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None


def _check_shape(node: Any) -> None:
    if node.properties is not None and node.items is not None:
        raise ValueError("schema node cannot have both 'properties' and 'items'")


class SchemaProperty(UnifiedModel):
    """A member of an object schema.

    Mirrors :class:`UnifiedDataSchema` minus the contract-level fields
    (status code, content type, original schema, schema format).  Like the
    root node it is object-shaped, array-shaped, or scalar, never both
    object- and array-shaped.
    """

    name: Optional[str] = None
    type: str = "string"
    description: Optional[str] = None
    required: Optional[list[str]] = None
    example: Any = None
    enum: Optional[list[Any]] = None
    format: Optional[str] = None
    default: Any = None
    properties: Optional[dict[str, SchemaProperty]] = None
    items: Optional[SchemaProperty] = None
    validation: Optional[SchemaValidation] = None

    @model_validator(mode="after")
    def _single_shape(self) -> "SchemaProperty":
        _check_shape(self)
        return self


class UnifiedDataSchema(UnifiedModel):
    """Recursive data schema node (request body, response body, or message payload).

    ``type`` is a free-form discriminator string rather than an enum because
    source dialects (Avro in particular) may introduce primitive names that
    JSON Schema does not know.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    type: str = "object"
    properties: Optional[dict[str, SchemaProperty]] = None
    items: Optional[UnifiedDataSchema] = None
    required: Optional[list[str]] = None
    example: Any = None
    enum: Optional[list[Any]] = None
    format: Optional[str] = None
    validation: Optional[SchemaValidation] = None
    status_code: Optional[str] = None
    content_type: Optional[str] = None
    original_schema: Any = None
    schema_format: Optional[SchemaFormat] = None
    metadata: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def _single_shape(self) -> "UnifiedDataSchema":
        _check_shape(self)
        return self

    @property
    def is_object(self) -> bool:
        return self.properties is not None

    @property
    def is_array(self) -> bool:
        return self.items is not None


class UnifiedParameter(UnifiedModel):
    """A path, query, header, or cookie parameter of an operation."""

    name: str
    location: ParameterLocation
    description: Optional[str] = None
    required: bool = False
    type: str = "string"
    format: Optional[str] = None
    example: Any = None
    default: Any = None
    enum: Optional[list[Any]] = None


class RestMetadata(UnifiedModel):
    """Request-style detail: HTTP method, path template, declared status codes."""

    method: str
    path: str
    status_codes: list[str] = Field(default_factory=list)


class AsyncMetadata(UnifiedModel):
    """Event-style detail: channel address, source action, transport bindings."""

    channel: str
    action: str
    bindings: dict[str, Any] = Field(default_factory=dict)


class OperationMetadata(UnifiedModel):
    """Protocol-specific metadata; exactly one of ``rest``/``async`` is set."""

    protocol: Protocol
    operation_id: Optional[str] = None
    rest: Optional[RestMetadata] = None
    async_: Optional[AsyncMetadata] = Field(default=None, alias="async")

    @model_validator(mode="after")
    def _one_protocol_block(self) -> "OperationMetadata":
        if self.protocol == Protocol.OPENAPI:
            if self.rest is None or self.async_ is not None:
                raise ValueError("openapi operations carry 'rest' metadata only")
        elif self.async_ is None or self.rest is not None:
            raise ValueError("asyncapi operations carry 'async' metadata only")
        return self


class UnifiedOperation(UnifiedModel):
    """One callable or subscribable unit of a contract.

    * REST: an HTTP endpoint (``GET /users``, ``POST /orders``).
    * AsyncAPI: a channel action (publish to / subscribe from ``orders.created``).

    ``location`` is kept verbatim, including unresolved placeholders such as
    ``{id}``.  ``communication_pattern`` always follows the protocol recorded
    in ``metadata``.
    """

    id: str
    name: str
    description: Optional[str] = None
    action_type: ActionType
    location: str
    communication_pattern: CommunicationPattern
    tags: list[str] = Field(default_factory=list)
    input: Optional[UnifiedDataSchema] = None
    output: list[UnifiedDataSchema] = Field(default_factory=list)
    parameters: list[UnifiedParameter] = Field(default_factory=list)
    security: Optional[list[str]] = None
    metadata: OperationMetadata

    @model_validator(mode="after")
    def _pattern_follows_protocol(self) -> "UnifiedOperation":
        expected = PATTERN_BY_PROTOCOL[self.metadata.protocol]
        if self.communication_pattern != expected:
            raise ValueError(
                f"{self.metadata.protocol.value} operations must use the "
                f"'{expected.value}' pattern"
            )
        if self.metadata.protocol == Protocol.ASYNCAPI:
            if len(self.output) > 1:
                raise ValueError("event-style operations have at most one output")
            if self.input is not None and self.output:
                raise ValueError("event-style operations have input or output, not both")
        return self

    @property
    def protocol(self) -> Protocol:
        return self.metadata.protocol

    @property
    def is_synchronous(self) -> bool:
        return self.communication_pattern == CommunicationPattern.REQUEST_RESPONSE

    @property
    def is_asynchronous(self) -> bool:
        return self.communication_pattern == CommunicationPattern.PUBLISH_SUBSCRIBE


class ContractTag(UnifiedModel):
    """Tag used to group operations."""

    name: str
    description: Optional[str] = None


class ServerInfo(UnifiedModel):
    """A server entry; ``protocol`` is a hint such as ``https`` or ``kafka``."""

    url: str
    description: Optional[str] = None
    protocol: Optional[str] = None


class SecurityScheme(UnifiedModel):
    """A named security scheme declared by a contract.

    The ``type`` field discriminates between ``apiKey``, ``http``, ``oauth2``,
    ``openIdConnect`` and the broker-specific AsyncAPI types.  Only the fields
    relevant to the scheme type are populated.
    """

    type: str
    scheme: Optional[str] = None
    description: Optional[str] = None
    bearer_format: Optional[str] = None
    param_name: Optional[str] = None
    location: Optional[str] = None
    flows: Optional[dict[str, Any]] = None
    open_id_connect_url: Optional[str] = None


class ContractMetadata(UnifiedModel):
    """Source protocol plus an optional reference to the original parsed document."""

    source_protocol: Protocol
    original_spec: Optional[dict[str, Any]] = None


class UnifiedContract(UnifiedModel):
    """A complete API contract (one OpenAPI or AsyncAPI document).

    ``operations`` keeps source-document order and every operation id is
    unique within the contract.  Tags are unique by name.
    """

    id: str
    name: str
    description: Optional[str] = None
    version: str
    protocol: Protocol
    operations: list[UnifiedOperation] = Field(default_factory=list)
    tags: list[ContractTag] = Field(default_factory=list)
    servers: list[ServerInfo] = Field(default_factory=list)
    security_schemes: Optional[dict[str, SecurityScheme]] = None
    metadata: ContractMetadata

    @model_validator(mode="after")
    def _unique_ids(self) -> "UnifiedContract":
        seen: set[str] = set()
        for op in self.operations:
            if op.id in seen:
                raise ValueError(f"duplicate operation id '{op.id}'")
            seen.add(op.id)
        tag_names = [tag.name for tag in self.tags]
        if len(tag_names) != len(set(tag_names)):
            raise ValueError("contract tags must be unique by name")
        return self


# --- Configuration models ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class NormalizerOptions(BaseModel):
    """Options passed explicitly into every parse and normalize call.

    Replaces any process-wide parser registry: each call receives the
    schema-format parsers and defaults it should use.
    """

    default_server_protocol: str = Field(
        default="kafka",
        description="Protocol hint for AsyncAPI servers that declare none",
    )
    include_original_spec: bool = Field(
        default=True,
        description="Attach the source document to contract metadata",
    )
    schema_formats: list[str] = Field(
        default_factory=lambda: ["avro"],
        description="Schema-format parsers enabled for AsyncAPI payloads",
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/contractlens/config.json``.

    Loaded by :func:`~contractlens.config.load_global_config`.  Fields here have
    the lowest precedence and can be overridden by project config, environment
    variables, or CLI flags.  See :func:`~contractlens.config.resolve_config`.
    """

    specs_dir: str = Field(
        default="specs",
        description="Directory holding openapi/ and asyncapi/ sub-directories",
    )
    output: OutputConfig = Field(default_factory=OutputConfig)
    normalizer: NormalizerOptions = Field(default_factory=NormalizerOptions)
