"""Contract-level helpers shared by both normalizers.

Ids, tag collection, and security schemes are built the same way for every
source protocol; only where the data is read from differs.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from contractlens.models import ContractTag, Protocol, SecurityScheme
from contractlens.normalization.access import read_field
from contractlens.parser.resolver import is_reference

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def entries(value: Any) -> list[tuple[Any, Any]]:
    """Key/value pairs of a mapping in source order; empty for anything else."""
    if isinstance(value, Mapping):
        return list(value.items())
    return []


def items(value: Any) -> list[Any]:
    """Elements of a list or tuple; empty for anything else."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def contract_id(protocol: Protocol, title: str) -> str:
    """Stable contract id: ``<protocol>-<title lowercased, whitespace as dashes>``."""
    return f"{protocol.value}-{_WHITESPACE.sub('-', title.lower())}"


def fallback_operation_id(protocol: Protocol, index: int) -> str:
    return f"{protocol.value}-op-{index}"


def unique_operation_id(
    protocol: Protocol,
    explicit: Any,
    index: int,
    seen: set[str],
) -> str:
    """Pick the id for the operation at *index* and record it in *seen*.

    The explicit id wins unless it was already used, in which case the
    synthetic ``<protocol>-op-<index>`` id is used instead.
    """
    fallback = fallback_operation_id(protocol, index)
    candidate = str(explicit) if explicit else fallback
    if candidate in seen:
        if explicit:
            logger.warning("Duplicate operation id '%s'; using '%s' instead", candidate, fallback)
        candidate = fallback
        suffix = 1
        while candidate in seen:
            candidate = f"{fallback}-{suffix}"
            suffix += 1
    seen.add(candidate)
    return candidate


def collect_tags(declared: Any, operation_tags: Iterable[str]) -> list[ContractTag]:
    """Declared tags (with descriptions) first, then tags only used by operations.

    The result is unique by name.
    """
    tags: list[ContractTag] = []
    seen: set[str] = set()
    for tag in items(declared):
        name = read_field(tag, "name")
        if not name or name in seen:
            continue
        seen.add(name)
        tags.append(ContractTag(name=str(name), description=read_field(tag, "description")))
    for name in operation_tags:
        if name not in seen:
            seen.add(name)
            tags.append(ContractTag(name=name))
    return tags


def normalize_security_schemes(schemes: Any) -> Optional[dict[str, SecurityScheme]]:
    """Convert a ``securitySchemes`` map; ``None`` when nothing is declared."""
    result: dict[str, SecurityScheme] = {}
    for name, scheme in entries(schemes):
        if scheme is None or is_reference(scheme):
            continue
        scheme_type = read_field(scheme, "type")
        if not scheme_type:
            continue
        flows = read_field(scheme, "flows")
        result[str(name)] = SecurityScheme(
            type=str(scheme_type),
            scheme=read_field(scheme, "scheme"),
            description=read_field(scheme, "description"),
            bearer_format=read_field(scheme, "bearerFormat"),
            param_name=read_field(scheme, "name"),
            location=read_field(scheme, "in"),
            flows=dict(flows) if isinstance(flows, Mapping) else None,
            open_id_connect_url=read_field(scheme, "openIdConnectUrl"),
        )
    return result or None
