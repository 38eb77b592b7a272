"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~contractlens.exceptions.ContractLensError` subclass.
Scripts that batch-load contracts can inspect the exit code to tell a
missing file from an unrecognised document without parsing stderr.

Example::

    $ contractlens operation getOrder
    $ echo $?
    4   # EXIT_NOT_FOUND -- no loaded contract declares that operation
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_NOT_FOUND = 4
"""The requested contract or operation id is not present in any loaded contract."""

EXIT_DOCUMENT_LOAD_FAILURE = 6
"""A contract document could not be read, fetched, or parsed as JSON/YAML."""

EXIT_SPEC_FORMAT_ERROR = 7
"""The document is not a recognised OpenAPI/AsyncAPI document or lacks a version."""

EXIT_NORMALIZATION_ERROR = 8
"""The document was recognised but could not be assembled into a unified contract."""
