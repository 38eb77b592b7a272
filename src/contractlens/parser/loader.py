"""Read raw contract documents from a local file, an HTTP(S) URL, or stdin.

The loader only turns bytes into a mapping; it has no knowledge of either
protocol (see :mod:`contractlens.parser.detector` for classification).

Format selection uses a *hint* derived from the file suffix or the response
``Content-Type``:

* ``"json"`` -- JSON only, a syntax error is reported as such.
* ``"yaml"`` -- YAML only.
* anything else -- JSON first, then YAML; both errors are reported if
  neither parser accepts the content.

Every failure is a :class:`~contractlens.exceptions.DocumentLoadFailure`
whose ``source`` names the path or URL.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from contractlens.exceptions import DocumentLoadFailure

DOCUMENT_SUFFIXES = (".json", ".yaml", ".yml")

_SUFFIX_HINTS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}
_HTTP_TIMEOUT = 30.0


def load_document(source: str) -> dict[str, Any]:
    """Load the document at *source*: a URL, a file path, or ``-`` for stdin.

    Raises:
        DocumentLoadFailure: If the source cannot be read or does not hold a
            JSON/YAML object.
    """
    try:
        if source == "-":
            return _load_from_stdin()
        if source.startswith(("http://", "https://")):
            return _load_from_url(source)
        return _load_from_file(source)
    except DocumentLoadFailure as exc:
        raise exc.with_source(source)


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except (OSError, ValueError) as exc:
        raise DocumentLoadFailure(f"Failed to read from stdin: {exc}") from exc
    if not content.strip():
        raise DocumentLoadFailure("No input received from stdin")
    return parse_content(content)


def _load_from_url(url: str) -> dict[str, Any]:
    """Fetch *url*, following redirects; the ``Content-Type`` picks the parser."""
    try:
        response = httpx.get(url, timeout=_HTTP_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise DocumentLoadFailure(
            f"HTTP {exc.response.status_code} fetching document from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise DocumentLoadFailure(f"Failed to fetch document from {url}: {exc}") from exc

    media_type = response.headers.get("content-type", "").lower()
    if "json" in media_type:
        hint = "json"
    elif "yaml" in media_type or "yml" in media_type:
        hint = "yaml"
    else:
        hint = ""
    return parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    """Read a local document; the suffix picks the parser."""
    file_path = Path(path)
    if not file_path.is_file():
        raise DocumentLoadFailure(f"Document not found: {path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentLoadFailure(f"Failed to read document {path}: {exc}") from exc
    if not content.strip():
        raise DocumentLoadFailure(f"Document is empty: {path}")
    return parse_content(content, hint=_SUFFIX_HINTS.get(file_path.suffix.lower(), ""))


def parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Decode *content* as JSON or YAML according to *hint*.

    Raises:
        DocumentLoadFailure: If the content does not parse, or parses to
            something other than a mapping.
    """
    if hint == "yaml":
        try:
            return _require_mapping(yaml.safe_load(content))
        except yaml.YAMLError as exc:
            raise DocumentLoadFailure(f"Invalid YAML: {exc}") from exc

    try:
        return _require_mapping(json.loads(content))
    except json.JSONDecodeError as json_error:
        if hint == "json":
            raise DocumentLoadFailure(f"Invalid JSON: {json_error}") from json_error
        try:
            return _require_mapping(yaml.safe_load(content))
        except yaml.YAMLError as yaml_error:
            raise DocumentLoadFailure(
                "Failed to parse document as JSON or YAML"
                f"\n  JSON error: {json_error}"
                f"\n  YAML error: {yaml_error}"
            ) from yaml_error


def _require_mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    kind = "empty document" if value is None else type(value).__name__
    raise DocumentLoadFailure(f"Document must be a JSON/YAML object (got {kind})")
