"""Load contract documents and normalize them into unified contracts.

This is the glue between the parser and normalization layers:

1. :func:`~contractlens.parser.loader.load_document` reads the source.
2. :func:`~contractlens.parser.detector.detect_spec_type` classifies it and
   :func:`~contractlens.parser.detector.validate_spec_version` checks the
   version (warning only).
3. The protocol's parser dereferences it and the matching normalizer builds
   the :class:`~contractlens.models.UnifiedContract`.

Batch loading is partial-success: a document that fails is logged and
recorded in the :class:`LoadReport`, and its siblings are still loaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from contractlens.exceptions import ContractLensError
from contractlens.models import NormalizerOptions, Protocol, UnifiedContract
from contractlens.normalization.asyncapi import normalize_asyncapi_spec
from contractlens.normalization.openapi import normalize_openapi_spec
from contractlens.parser.asyncapi import parse_asyncapi_document
from contractlens.parser.detector import detect_spec_type, validate_spec_version
from contractlens.parser.loader import DOCUMENT_SUFFIXES, load_document
from contractlens.parser.openapi import parse_openapi_document

logger = logging.getLogger(__name__)

# Sub-directories of a specs directory, in load order
PROTOCOL_DIRECTORIES = ("openapi", "asyncapi")


@dataclass
class LoadReport:
    """Outcome of a batch load.

    Attributes:
        contracts: Successfully normalized contracts, in load order.
        failures: ``(source, error)`` pairs for documents that failed.
    """

    contracts: list[UnifiedContract] = field(default_factory=list)
    failures: list[tuple[str, ContractLensError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def extend(self, other: "LoadReport") -> None:
        self.contracts.extend(other.contracts)
        self.failures.extend(other.failures)


def normalize_document(
    raw: dict[str, Any],
    source: Optional[str] = None,
    options: Optional[NormalizerOptions] = None,
) -> UnifiedContract:
    """Detect, parse, and normalize an in-memory document.

    Args:
        raw: The document as decoded from JSON/YAML.
        source: Path or URL used for the ambiguous-document path hint and
            attached to errors.
        options: Normalizer options.

    Raises:
        ContractLensError: Any detection, dereferencing, or assembly
            failure, with ``source`` attached.
    """
    options = options or NormalizerOptions()
    try:
        protocol = detect_spec_type(raw, source)
        validate_spec_version(raw, protocol, source)
        if protocol == Protocol.OPENAPI:
            return normalize_openapi_spec(parse_openapi_document(raw), options)
        return normalize_asyncapi_spec(parse_asyncapi_document(raw, options), options)
    except ContractLensError as exc:
        if source:
            exc.with_source(source)
        raise


def load_contract(
    source: Union[str, Path],
    options: Optional[NormalizerOptions] = None,
) -> UnifiedContract:
    """Load one document (file path, URL, or ``-`` for stdin) as a contract."""
    source_str = str(source)
    raw = load_document(source_str)
    contract = normalize_document(raw, source_str, options)
    logger.debug(
        "Loaded %s contract '%s' with %d operations from %s",
        contract.protocol.value,
        contract.name,
        len(contract.operations),
        source_str,
    )
    return contract


def load_contracts_from_directory(
    directory: Union[str, Path],
    options: Optional[NormalizerOptions] = None,
) -> LoadReport:
    """Load every ``.json``/``.yaml``/``.yml`` document in *directory*, by file name.

    A missing directory yields an empty report.
    """
    report = LoadReport()
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Specs directory %s does not exist; skipping", directory)
        return report

    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix.lower() not in DOCUMENT_SUFFIXES:
            continue
        try:
            report.contracts.append(load_contract(path, options))
        except ContractLensError as exc:
            logger.warning("Error loading %s: %s", path, exc)
            report.failures.append((str(path), exc))
    return report


def load_all_contracts(
    base_dir: Union[str, Path],
    options: Optional[NormalizerOptions] = None,
) -> LoadReport:
    """Load ``<base_dir>/openapi`` then ``<base_dir>/asyncapi``."""
    base = Path(base_dir)
    report = LoadReport()
    for name in PROTOCOL_DIRECTORIES:
        report.extend(load_contracts_from_directory(base / name, options))
    logger.debug(
        "Loaded %d contracts from %s (%d failures)",
        len(report.contracts),
        base,
        len(report.failures),
    )
    return report
