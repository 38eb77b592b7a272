"""Inline internal ``$ref`` pointers of OpenAPI and AsyncAPI documents.

:func:`resolve_refs` returns a dereferenced copy of a document: every
``{"$ref": "#/..."}`` node is replaced by a copy of its target.  The input
is never modified.

* External references (another file or a URL) stay as ``$ref`` nodes and
  are reported once per document at DEBUG level.
* A reference that is already being expanded higher up the same branch is a
  cycle; it is kept as a ``$ref`` node, so the result is always a finite
  tree.  Normalizers name such nodes after the pointer tail, see
  :func:`ref_name`.
* A pointer to a location that does not exist is a
  :class:`~contractlens.exceptions.DocumentLoadFailure`.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from contractlens.exceptions import DocumentLoadFailure

logger = logging.getLogger(__name__)

_INTERNAL_PREFIX = "#/"


def resolve_refs(document: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *document* with its internal references inlined.

    Raises:
        DocumentLoadFailure: If an internal ``$ref`` points nowhere.

    Example::

        resolved = resolve_refs(load_document("orders.yaml"))
        resolved["channels"]["orderCreated"]["messages"]["OrderCreated"]["payload"]
    """
    dereferencer = _Dereferencer(copy.deepcopy(document))
    result = dereferencer.expand(dereferencer.root, ())
    if dereferencer.external:
        logger.debug(
            "Left %d external $ref(s) unresolved: %s",
            len(dereferencer.external),
            ", ".join(sorted(dereferencer.external)),
        )
    return result


def is_reference(obj: Any) -> bool:
    """True for a node that still carries ``$ref`` (external or cyclic)."""
    return isinstance(obj, dict) and "$ref" in obj


def ref_name(ref: str) -> str:
    """Last pointer segment, e.g. ``Order`` for ``#/components/schemas/Order``."""
    return pointer_segments(ref)[-1] if ref.startswith(_INTERNAL_PREFIX) else ref.rsplit("/", 1)[-1]


def pointer_segments(ref: str) -> list[str]:
    """Decode the RFC 6901 segments of an internal pointer (``~1`` is ``/``, ``~0`` is ``~``)."""
    return [
        segment.replace("~1", "/").replace("~0", "~")
        for segment in ref[len(_INTERNAL_PREFIX):].split("/")
    ]


def _resolve_ref(ref: str, root: dict[str, Any]) -> Any:
    """Follow the internal pointer *ref* from *root* and return its target.

    Raises:
        DocumentLoadFailure: If a segment is missing, an array index is not
            valid, or the pointer runs into a scalar.
    """
    target: Any = root
    for segment in pointer_segments(ref):
        if isinstance(target, dict):
            if segment not in target:
                raise DocumentLoadFailure(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found at path"
                )
            target = target[segment]
        elif isinstance(target, list):
            try:
                target = target[int(segment)]
            except (ValueError, IndexError) as exc:
                raise DocumentLoadFailure(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'"
                ) from exc
        else:
            raise DocumentLoadFailure(
                f"Cannot resolve $ref '{ref}': cannot navigate into {type(target).__name__}"
            )
    return target


class _Dereferencer:
    """Depth-first expansion with the chain of references open on the current branch."""

    def __init__(self, root: dict[str, Any]) -> None:
        self.root = root
        self.external: set[str] = set()

    def expand(self, node: Any, open_refs: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [self.expand(item, open_refs) for item in node]
        if not isinstance(node, dict):
            return node

        ref = node.get("$ref")
        if not isinstance(ref, str):
            return {key: self.expand(value, open_refs) for key, value in node.items()}
        if not ref.startswith(_INTERNAL_PREFIX):
            self.external.add(ref)
            return node
        if ref in open_refs:
            return node
        return self.expand(_resolve_ref(ref, self.root), open_refs + (ref,))
