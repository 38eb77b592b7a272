"""Normalization -- turn parsed documents into unified contracts.

* :mod:`~contractlens.normalization.access` -- dual-access field reading and
  the resolve-or-default combinator.
* :mod:`~contractlens.normalization.schema` -- the recursive schema walker
  shared by both protocols.
* :mod:`~contractlens.normalization.contract` -- ids, tags and security
  schemes common to both protocols.
* :mod:`~contractlens.normalization.openapi` -- request-style normalizer.
* :mod:`~contractlens.normalization.asyncapi` -- event-style normalizer.
"""

from contractlens.normalization.asyncapi import extract_message_headers, normalize_asyncapi_spec
from contractlens.normalization.openapi import normalize_openapi_spec
from contractlens.normalization.schema import (
    ASYNCAPI_DIALECT,
    OPENAPI_DIALECT,
    SchemaDialect,
    normalize_property,
    normalize_schema,
)

__all__ = [
    "ASYNCAPI_DIALECT",
    "OPENAPI_DIALECT",
    "SchemaDialect",
    "extract_message_headers",
    "normalize_asyncapi_spec",
    "normalize_openapi_spec",
    "normalize_property",
    "normalize_schema",
]
