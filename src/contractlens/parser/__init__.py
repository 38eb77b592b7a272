"""Document parsing -- load, classify, and dereference contract documents.

This sub-package turns a document source (file path, URL, or stdin) into a
parsed document that the normalizers in :mod:`contractlens.normalization`
consume.

Typical usage::

    from contractlens.parser import load_document, detect_spec_type

    raw = load_document("specs/asyncapi/orders.yaml")
    protocol = detect_spec_type(raw, "specs/asyncapi/orders.yaml")

Sub-modules:

* :mod:`~contractlens.parser.loader` -- I/O layer (URL, file, stdin) and
  JSON/YAML decoding.
* :mod:`~contractlens.parser.resolver` -- recursive ``$ref`` resolution with
  circular-reference detection.
* :mod:`~contractlens.parser.detector` -- protocol detection and version
  checks.
* :mod:`~contractlens.parser.openapi` -- dereferenced plain-data OpenAPI
  documents.
* :mod:`~contractlens.parser.asyncapi` -- AsyncAPI accessor object graph and
  schema-format parsers.
"""

from contractlens.parser.asyncapi import AsyncAPIDocument, parse_asyncapi_document
from contractlens.parser.detector import (
    detect_spec_type,
    detect_spec_type_from_path,
    validate_spec_version,
)
from contractlens.parser.loader import load_document
from contractlens.parser.openapi import parse_openapi_document

__all__ = [
    "AsyncAPIDocument",
    "detect_spec_type",
    "detect_spec_type_from_path",
    "load_document",
    "parse_asyncapi_document",
    "parse_openapi_document",
    "validate_spec_version",
]
