"""Read-only queries over unified contracts and their operations.

Everything here works on already-normalized models and never mutates them;
functions that "change" an operation return a copy.  These are the building
blocks of the ``operations`` command's filters and of any other front end
that lists, groups, or looks up operations.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Optional, Sequence

from contractlens.exceptions import InvalidUsageError, NotFoundError
from contractlens.models import (
    ActionType,
    CommunicationPattern,
    ContractMetadata,
    ContractTag,
    ServerInfo,
    UnifiedContract,
    UnifiedOperation,
)

UNTAGGED_GROUP = "Other"
MERGED_CONTRACT_ID = "merged-contract"

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def all_operations(contracts: Iterable[UnifiedContract]) -> list[UnifiedOperation]:
    return [op for contract in contracts for op in contract.operations]


# --- Search and filters ---


def search_operations(
    operations: Sequence[UnifiedOperation], term: str
) -> list[UnifiedOperation]:
    """Case-insensitive substring search over name, description, location, tags and action.

    A blank term returns every operation.
    """
    if not term.strip():
        return list(operations)
    needle = term.lower()

    def matches(op: UnifiedOperation) -> bool:
        return (
            needle in op.name.lower()
            or needle in (op.description or "").lower()
            or needle in op.location.lower()
            or any(needle in tag.lower() for tag in op.tags)
            or needle in op.action_type.value.lower()
        )

    return [op for op in operations if matches(op)]


def filter_by_action_type(
    operations: Sequence[UnifiedOperation], action_types: Iterable[ActionType]
) -> list[UnifiedOperation]:
    wanted = set(action_types)
    return [op for op in operations if op.action_type in wanted]


def filter_by_pattern(
    operations: Sequence[UnifiedOperation], pattern: CommunicationPattern
) -> list[UnifiedOperation]:
    return [op for op in operations if op.communication_pattern == pattern]


def filter_by_tag(operations: Sequence[UnifiedOperation], tag: str) -> list[UnifiedOperation]:
    return [op for op in operations if tag in op.tags]


def sort_by_name(operations: Sequence[UnifiedOperation]) -> list[UnifiedOperation]:
    return sorted(operations, key=lambda op: op.name.lower())


def sort_by_location(operations: Sequence[UnifiedOperation]) -> list[UnifiedOperation]:
    return sorted(operations, key=lambda op: op.location.lower())


# --- Grouping and counting ---


def group_by_tag(operations: Sequence[UnifiedOperation]) -> dict[str, list[UnifiedOperation]]:
    """Group operations under each of their tags; untagged ones go under ``"Other"``.

    An operation with several tags appears in several groups.
    """
    grouped: dict[str, list[UnifiedOperation]] = {}
    for op in operations:
        for tag in op.tags or [UNTAGGED_GROUP]:
            grouped.setdefault(tag, []).append(op)
    return grouped


def group_by_pattern(
    operations: Sequence[UnifiedOperation],
) -> dict[CommunicationPattern, list[UnifiedOperation]]:
    """Group by communication pattern; both patterns are always present."""
    grouped: dict[CommunicationPattern, list[UnifiedOperation]] = {
        pattern: [] for pattern in CommunicationPattern
    }
    for op in operations:
        grouped[op.communication_pattern].append(op)
    return grouped


def group_by_protocol(operations: Sequence[UnifiedOperation]) -> dict[str, list[UnifiedOperation]]:
    grouped: dict[str, list[UnifiedOperation]] = {}
    for op in operations:
        grouped.setdefault(op.protocol.value, []).append(op)
    return grouped


def unique_tags(operations: Sequence[UnifiedOperation]) -> list[str]:
    """Sorted tag names used by at least one operation."""
    return sorted({tag for op in operations for tag in op.tags})


def unique_action_types(operations: Sequence[UnifiedOperation]) -> list[ActionType]:
    """Action types in first-seen order."""
    seen: dict[ActionType, None] = {}
    for op in operations:
        seen.setdefault(op.action_type, None)
    return list(seen)


def count_by_action_type(operations: Sequence[UnifiedOperation]) -> dict[ActionType, int]:
    return dict(Counter(op.action_type for op in operations))


def count_by_tag(operations: Sequence[UnifiedOperation]) -> dict[str, int]:
    return dict(Counter(tag for op in operations for tag in op.tags))


# --- Lookup ---


def find_operation_by_id(
    operations: Sequence[UnifiedOperation], operation_id: str
) -> UnifiedOperation:
    """Return the operation with *operation_id*.

    Raises:
        NotFoundError: If no operation has that id.
    """
    for op in operations:
        if op.id == operation_id:
            return op
    raise NotFoundError(f"Operation '{operation_id}' not found")


def find_contract_operation(
    contracts: Iterable[UnifiedContract], operation_id: str
) -> tuple[UnifiedContract, UnifiedOperation]:
    """Find an operation across contracts and return it with its owning contract.

    Raises:
        NotFoundError: If no loaded contract declares *operation_id*.
    """
    for contract in contracts:
        for op in contract.operations:
            if op.id == operation_id:
                return contract, op
    raise NotFoundError(f"Operation '{operation_id}' not found in any loaded contract")


def find_contract(contracts: Iterable[UnifiedContract], contract_id: str) -> UnifiedContract:
    for contract in contracts:
        if contract.id == contract_id:
            return contract
    raise NotFoundError(f"Contract '{contract_id}' not found")


def operation_slug(operation: UnifiedOperation) -> str:
    """URL-safe slug built from the operation id and name, e.g. ``listproducts-list-products``."""
    return _NON_SLUG.sub("-", f"{operation.id}-{operation.name}".lower()).strip("-")


# --- Merging ---


def merge_contracts(contracts: Sequence[UnifiedContract]) -> UnifiedContract:
    """Combine several contracts into one browsable contract.

    Operations keep their order; an operation whose id is already taken is
    re-keyed as ``<contract id>:<operation id>``.  Tags are unique by name and
    servers unique by URL (first occurrence wins).  The first contract supplies
    the version, protocol and security schemes.

    Raises:
        InvalidUsageError: If *contracts* is empty.
    """
    if not contracts:
        raise InvalidUsageError("Cannot merge an empty list of contracts")
    if len(contracts) == 1:
        return contracts[0]

    operations: list[UnifiedOperation] = []
    seen_ids: set[str] = set()
    for contract in contracts:
        for op in contract.operations:
            if op.id in seen_ids:
                op = op.model_copy(update={"id": f"{contract.id}:{op.id}"})
            seen_ids.add(op.id)
            operations.append(op)

    tags: dict[str, ContractTag] = {}
    servers: dict[str, ServerInfo] = {}
    for contract in contracts:
        for tag in contract.tags:
            tags.setdefault(tag.name, tag)
        for server in contract.servers:
            servers.setdefault(server.url, server)

    first = contracts[0]
    originals = [c.metadata.original_spec for c in contracts if c.metadata.original_spec]
    original_spec: Optional[dict] = {"merged": originals} if originals else None

    return UnifiedContract(
        id=MERGED_CONTRACT_ID,
        name=" + ".join(c.name for c in contracts),
        description=f"Merged documentation from {len(contracts)} contracts",
        version=first.version,
        protocol=first.protocol,
        operations=operations,
        tags=list(tags.values()),
        servers=list(servers.values()),
        security_schemes=first.security_schemes,
        metadata=ContractMetadata(
            source_protocol=first.protocol,
            original_spec=original_spec,
        ),
    )
