"""Classify contract documents as request-style (OpenAPI) or event-style (AsyncAPI).

Detection is purely structural: a document carrying an ``asyncapi`` field is
event-style, one carrying ``openapi`` (or the legacy ``swagger``) is
request-style.  Anything else is rejected with
:class:`~contractlens.exceptions.UnrecognizedSpecFormat`.

Version checks are advisory.  OpenAPI 3.x and AsyncAPI 2.x/3.x are the
supported majors; other versions are logged as warnings and normalized on a
best-effort basis.  Only a marker field without a value is an error.
"""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Any, Optional

from contractlens.exceptions import (
    MissingVersionField,
    UnrecognizedSpecFormat,
    UnsupportedVersion,
)
from contractlens.models import Protocol
from contractlens.normalization.access import has_field, read_field

logger = logging.getLogger(__name__)

SUPPORTED_MAJOR_VERSIONS: dict[Protocol, tuple[str, ...]] = {
    Protocol.OPENAPI: ("3",),
    Protocol.ASYNCAPI: ("2", "3"),
}

_PATH_MARKERS: tuple[tuple[str, Protocol], ...] = (
    ("asyncapi", Protocol.ASYNCAPI),
    ("openapi", Protocol.OPENAPI),
    ("swagger", Protocol.OPENAPI),
)


def detect_spec_type(spec: Any, source_path: Optional[str] = None) -> Protocol:
    """Return the protocol family of a parsed document.

    Works on plain dicts and on accessor objects alike.

    Args:
        spec: The parsed document.
        source_path: Optional file path or URL; only consulted when the
            document carries both protocol markers.

    Raises:
        UnrecognizedSpecFormat: If neither marker field is present.
    """
    is_async = has_field(spec, "asyncapi")
    is_rest = has_field(spec, "openapi") or has_field(spec, "swagger")

    if is_async and is_rest:
        hinted = detect_spec_type_from_path(source_path) if source_path else None
        chosen = hinted or Protocol.ASYNCAPI
        logger.warning(
            "Document declares both asyncapi and openapi fields; treating it as %s",
            chosen.value,
        )
        return chosen
    if is_async:
        return Protocol.ASYNCAPI
    if is_rest:
        return Protocol.OPENAPI
    raise UnrecognizedSpecFormat(
        "Unknown spec format: document has neither an 'openapi'/'swagger' nor an "
        "'asyncapi' field",
        source=source_path,
    )


def detect_spec_type_from_path(path: str) -> Optional[Protocol]:
    """Guess the protocol from a file path or URL, or return ``None``.

    Case-insensitive substring match on the file name first, then on each
    directory segment from the innermost outwards, so ``orders.asyncapi.yaml``,
    ``petstore-swagger.json`` and ``specs/openapi/shop.yaml`` are all
    recognised.
    """
    segments = [part.lower() for part in PurePath(path).parts]
    for segment in reversed(segments):
        for marker, protocol in _PATH_MARKERS:
            if marker in segment:
                return protocol
    return None


def validate_spec_version(spec: Any, protocol: Protocol, source: Optional[str] = None) -> str:
    """Check the declared version of a document and return it as a string.

    Args:
        spec: The parsed document (plain dict or accessor object).
        protocol: The protocol returned by :func:`detect_spec_type`.
        source: Optional path or URL used in messages.

    Returns:
        The version string, e.g. ``"3.0.3"`` or ``"2.6.0"``.

    Raises:
        MissingVersionField: If the marker field is absent or empty.
    """
    if protocol == Protocol.OPENAPI:
        version = read_field(spec, "openapi") or read_field(spec, "swagger")
        field_name = "openapi"
    else:
        version = read_field(spec, "asyncapi")
        field_name = "asyncapi"

    if version is None or str(version).strip() == "":
        raise MissingVersionField(
            f"Missing '{field_name}' version field", source=source
        )

    version_str = str(version).strip()
    major = version_str.split(".", 1)[0]
    if major not in SUPPORTED_MAJOR_VERSIONS[protocol]:
        supported = ", ".join(f"{m}.x" for m in SUPPORTED_MAJOR_VERSIONS[protocol])
        warning = UnsupportedVersion(
            f"{protocol.value} version {version_str} is not supported "
            f"(supported: {supported}); normalizing on a best-effort basis",
            source=source,
        )
        logger.warning("%s", warning)
    return version_str
