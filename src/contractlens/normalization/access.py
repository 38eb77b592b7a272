"""Dual-access field reading and the resolve-or-default combinator.

Source documents reach the normalizers in two incompatible shapes:

* **plain data** -- nested dicts and lists straight from JSON/YAML (every
  OpenAPI document, and AsyncAPI documents handed over unparsed);
* **wrapped accessors** -- objects from
  :mod:`contractlens.parser.asyncapi` (or any compatible library) that
  expose each field as a zero-argument method, e.g. ``schema.type()``.

Normalizers never branch on the shape themselves.  They read every field
through a :class:`FieldReader`, usually via :func:`read_field`, and wrap
each optional sub-tree read in :func:`resolve_or_default` so that one
malformed accessor degrades to an empty value instead of aborting the
whole contract.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from contractlens.exceptions import SchemaExtractionFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

PARSER_METADATA_PREFIX = "x-parser-"

_MISSING = object()
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
_SCALAR_TYPES = (str, bytes, int, float, bool, list, tuple)


class FieldReader(Protocol):
    """Resolve one field of a source node by name, or return ``None``."""

    def read(self, source: Any, name: str) -> Any: ...


class PlainReader:
    """Reads fields of plain mappings."""

    def read(self, source: Any, name: str) -> Any:
        if isinstance(source, Mapping):
            return source.get(name)
        return None


class AccessorReader:
    """Reads fields exposed as attributes or zero-argument accessor methods.

    The camelCase field name is tried first, then its snake_case form, so
    ``minLength`` finds either ``obj.minLength()`` or ``obj.min_length()``.
    """

    def read(self, source: Any, name: str) -> Any:
        for attr in _attribute_names(name):
            value = getattr(source, attr, _MISSING)
            if value is _MISSING:
                continue
            return value() if callable(value) else value
        return None


class DualAccessReader:
    """Selects :class:`PlainReader` or :class:`AccessorReader` per node."""

    def __init__(self) -> None:
        self._plain = PlainReader()
        self._accessor = AccessorReader()

    def read(self, source: Any, name: str) -> Any:
        if source is None or isinstance(source, _SCALAR_TYPES):
            return None
        if isinstance(source, Mapping):
            return self._plain.read(source, name)
        return self._accessor.read(source, name)


DEFAULT_READER: FieldReader = DualAccessReader()


def _attribute_names(name: str) -> tuple[str, ...]:
    snake = _CAMEL_BOUNDARY.sub("_", name).lower()
    if snake == name:
        return (name,)
    return (name, snake)


def read_field(
    source: Any,
    name: str,
    default: Any = None,
    reader: FieldReader = DEFAULT_READER,
) -> Any:
    """Read *name* from *source* in whichever shape it is exposed.

    Args:
        source: A mapping, an accessor object, or ``None``.
        name: The field name as spelled in the source format (camelCase).
        default: Returned when the field is absent or ``None``.
        reader: Field-reading capability; the dual-access reader by default.

    Returns:
        The field value, with accessor methods already invoked.
    """
    value = reader.read(source, name)
    return default if value is None else value


def has_field(source: Any, name: str) -> bool:
    """Return True if *source* declares *name* at all (even with a null value)."""
    if isinstance(source, Mapping):
        return name in source
    if source is None or isinstance(source, _SCALAR_TYPES):
        return False
    return any(hasattr(source, attr) for attr in _attribute_names(name))


def raw_json(source: Any) -> Any:
    """Return the plain-data form of *source*.

    Mappings are returned as-is; accessor objects are asked for their
    underlying document through ``json()``.  Anything else yields ``None``.
    """
    if isinstance(source, Mapping):
        return source
    accessor = getattr(source, "json", None)
    if callable(accessor):
        return accessor()
    return None


def strip_parser_metadata(obj: Any, prefix: str = PARSER_METADATA_PREFIX) -> Any:
    """Return a copy of *obj* without keys starting with *prefix*, at every depth.

    Parser tooling annotates schemas with fields such as
    ``x-parser-schema-id``; these must never reach the display layer.
    """
    if isinstance(obj, Mapping):
        return {
            key: strip_parser_metadata(value, prefix)
            for key, value in obj.items()
            if not (isinstance(key, str) and key.startswith(prefix))
        }
    if isinstance(obj, list):
        return [strip_parser_metadata(item, prefix) for item in obj]
    return obj


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """Outcome of :func:`resolve_or_default`.

    ``ok`` is True when the value came from the source, False when the
    default was substituted after a failure (described by ``failure``).
    """

    value: T
    failure: Optional[SchemaExtractionFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def resolve_or_default(
    resolve: Callable[[], T],
    default: T,
    *,
    context: str,
) -> Resolved[T]:
    """Run *resolve*, substituting *default* if it raises.

    The failure is logged as a warning and wrapped in a
    :class:`~contractlens.exceptions.SchemaExtractionFailure`; it never
    propagates to the caller.

    Args:
        resolve: Zero-argument callable performing the read.
        default: Empty value used when the read fails.
        context: Short description of what was being read, for the log.
    """
    try:
        return Resolved(resolve())
    except Exception as exc:
        failure = SchemaExtractionFailure(f"Could not resolve {context}: {exc}")
        logger.warning("%s", failure)
        return Resolved(default, failure)
