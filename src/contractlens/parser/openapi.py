"""Prepare OpenAPI documents for normalization.

OpenAPI documents are normalized as plain data.  Parsing therefore only
means dereferencing every internal ``$ref`` so the normalizer sees inline
schemas, parameters, request bodies and responses.
"""

from __future__ import annotations

from typing import Any

from contractlens.parser.resolver import resolve_refs


def parse_openapi_document(raw: dict[str, Any]) -> dict[str, Any]:
    """Return a dereferenced copy of *raw*.

    Raises:
        DocumentLoadFailure: If an internal ``$ref`` cannot be resolved.
    """
    return resolve_refs(raw)
