"""contractlens -- One browsable model for OpenAPI and AsyncAPI contracts.

This package reads REST-style (OpenAPI/Swagger) and event-style (AsyncAPI)
contract documents and normalizes both into a single protocol-agnostic
*unified model*: contracts made of operations, each with an action, a
location, parameters, and input/output data schemas. Documentation front
ends, search, and code generators consume that model without caring which
format a contract was written in.

Typical workflow::

    from contractlens.catalog import load_contract

    contract = load_contract("specs/openapi/shop.yaml")
    for op in contract.operations:
        print(op.action_type.value, op.location)

Modules:
    models: Pydantic models for the unified model and configuration.
    parser: Document loading, ``$ref`` resolution, detection, source parsers.
    normalization: The two normalizers and the shared schema walker.
    catalog: Contract loader (detect, parse, normalize, batch loading).
    contracts: Read-only queries over loaded contracts.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
