"""Exception hierarchy for contractlens.

All exceptions inherit from :class:`ContractLensError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`contractlens.exit_codes`
and an optional ``source`` naming the document the error originated from.
The top-level error handler in :func:`contractlens.app.main` catches
``ContractLensError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    ContractLensError            (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- NotFoundError            (exit 4)
    +-- DocumentLoadFailure      (exit 6)
    +-- UnrecognizedSpecFormat   (exit 7)
    +-- MissingVersionField      (exit 7)
    +-- UnsupportedVersion       (exit 7, logged only, never raised by the core)
    +-- ContractAssemblyError    (exit 8)
    +-- SchemaExtractionFailure  (exit 8, recovered locally, never propagated)
    +-- ConfigError              (exit 1)
"""

from __future__ import annotations

from typing import Optional

from contractlens.exit_codes import (
    EXIT_DOCUMENT_LOAD_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NORMALIZATION_ERROR,
    EXIT_NOT_FOUND,
    EXIT_SPEC_FORMAT_ERROR,
)


class ContractLensError(Exception):
    """Base exception for all contractlens errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`contractlens.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
        source: Path or URL of the document the error relates to.  When
            set it is appended to ``str(exc)`` for diagnostics.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        source: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        if exit_code is not None:
            self.exit_code = exit_code

    def with_source(self, source: str) -> "ContractLensError":
        """Attach *source* unless one is already recorded, and return ``self``."""
        if self.source is None:
            self.source = source
        return self

    def __str__(self) -> str:
        if self.source:
            return f"{self.message} (source: {self.source})"
        return self.message


class InvalidUsageError(ContractLensError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(ContractLensError):
    """Raised when an operation or contract id is not present in any loaded contract."""

    exit_code = EXIT_NOT_FOUND


class DocumentLoadFailure(ContractLensError):
    """Raised when a document cannot be read, fetched, parsed, or dereferenced.

    Fatal for that one document only; batch loaders record it and move on
    to sibling documents.
    """

    exit_code = EXIT_DOCUMENT_LOAD_FAILURE


class UnrecognizedSpecFormat(ContractLensError):
    """Raised when a document has neither an ``openapi``/``swagger`` nor an ``asyncapi`` field."""

    exit_code = EXIT_SPEC_FORMAT_ERROR


class MissingVersionField(ContractLensError):
    """Raised when the protocol marker field is present but carries no version."""

    exit_code = EXIT_SPEC_FORMAT_ERROR


class UnsupportedVersion(ContractLensError):
    """Describes a version outside the supported major versions.

    The detector logs this as a warning and lets normalization continue on a
    best-effort basis; it is never raised by the normalization core.
    """

    exit_code = EXIT_SPEC_FORMAT_ERROR


class ContractAssemblyError(ContractLensError):
    """Raised when a recognised document cannot be assembled into a valid contract."""

    exit_code = EXIT_NORMALIZATION_ERROR


class SchemaExtractionFailure(ContractLensError):
    """A single schema, property, or header sub-tree could not be resolved.

    Created by :func:`~contractlens.normalization.access.resolve_or_default`
    to describe the failure in logs and in the returned
    :class:`~contractlens.normalization.access.Resolved` result.
    """

    exit_code = EXIT_NORMALIZATION_ERROR


class ConfigError(ContractLensError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
