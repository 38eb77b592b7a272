"""Inspect commands -- browse the contracts in a specs directory.

Read-only commands over the unified model: list contracts, list and filter
operations, show one operation, detect a document's protocol, and export
contracts as JSON.  Every command loads the specs directory resolved by
:func:`~contractlens.config.resolve_config` (``<specs_dir>/openapi`` and
``<specs_dir>/asyncapi``); documents that fail to load are reported as
warnings and the remaining contracts are still shown.
"""

from __future__ import annotations

from typing import Optional

import typer

from contractlens.catalog import LoadReport, load_all_contracts
from contractlens.contracts import (
    all_operations,
    filter_by_action_type,
    filter_by_pattern,
    filter_by_tag,
    find_contract,
    find_contract_operation,
    merge_contracts,
    search_operations,
)
from contractlens.exceptions import ContractLensError, InvalidUsageError
from contractlens.models import (
    ActionType,
    CommunicationPattern,
    GlobalConfig,
    UnifiedContract,
    UnifiedOperation,
)
from contractlens.output import OutputFormat, error, get_output, info, suggest, warning
from contractlens.parser.detector import detect_spec_type, validate_spec_version
from contractlens.parser.loader import load_document


def _config(ctx: typer.Context) -> GlobalConfig:
    obj = ctx.obj or {}
    config = obj.get("config")
    return config if config is not None else GlobalConfig()


def _load(ctx: typer.Context) -> LoadReport:
    config = _config(ctx)
    report = load_all_contracts(config.specs_dir, config.normalizer)
    for source, exc in report.failures:
        warning(f"Skipped {source}: {exc.message}")
    if not report.contracts and not report.failures:
        info(f"No contract documents found under {config.specs_dir}")
        suggest("Put documents in <specs-dir>/openapi and <specs-dir>/asyncapi")
    return report


def _fail(exc: ContractLensError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


def _operation_row(op: UnifiedOperation) -> list[str]:
    return [
        op.id,
        op.action_type.value,
        op.location,
        op.name,
        ", ".join(op.tags) or "-",
    ]


def list_contracts(ctx: typer.Context) -> None:
    """List every loaded contract.

    Example::

        contractlens contracts
        contractlens --json contracts
    """
    report = _load(ctx)
    rows = [
        [c.id, c.name, c.protocol.value, c.version, str(len(c.operations))]
        for c in report.contracts
    ]
    get_output().print_table(
        ["ID", "Name", "Protocol", "Version", "Operations"],
        rows,
        title=f"Contracts ({len(rows)})",
    )


def list_operations(
    ctx: typer.Context,
    contract: Optional[str] = typer.Option(
        None, "--contract", "-c", help="Only operations of this contract id."
    ),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Only operations with this tag."),
    pattern: Optional[CommunicationPattern] = typer.Option(
        None, "--pattern", help="request-response or publish-subscribe."
    ),
    action: Optional[list[str]] = typer.Option(
        None, "--action", "-a", help="Action type (GET, PUBLISH, ...). Repeatable."
    ),
    search: Optional[str] = typer.Option(
        None, "--search", "-s", help="Search name, description, location and tags."
    ),
) -> None:
    """List operations across all contracts, optionally filtered.

    Example::

        contractlens operations --tag orders --action PUBLISH
        contractlens operations --pattern request-response --search product
    """
    report = _load(ctx)
    try:
        contracts: list[UnifiedContract] = report.contracts
        if contract:
            contracts = [find_contract(contracts, contract)]
        operations = all_operations(contracts)
        if tag:
            operations = filter_by_tag(operations, tag)
        if pattern:
            operations = filter_by_pattern(operations, pattern)
        if action:
            operations = filter_by_action_type(operations, _parse_actions(action))
        if search:
            operations = search_operations(operations, search)
    except ContractLensError as exc:
        raise _fail(exc) from None

    rows = [_operation_row(op) for op in operations]
    get_output().print_table(
        ["ID", "Action", "Location", "Name", "Tags"],
        rows,
        title=f"Operations ({len(rows)})",
    )


def _parse_actions(values: list[str]) -> list[ActionType]:
    actions: list[ActionType] = []
    for value in values:
        try:
            actions.append(ActionType(value.upper()))
        except ValueError:
            valid = ", ".join(a.value for a in ActionType)
            raise InvalidUsageError(f"Unknown action '{value}' (valid: {valid})") from None
    return actions


def show_operation(
    ctx: typer.Context,
    operation_id: str = typer.Argument(..., help="Operation id, as listed by 'operations'."),
) -> None:
    """Show one operation: summary, parameters, input and output schemas.

    Example::

        contractlens operation listProducts
        contractlens --json operation orders-created
    """
    report = _load(ctx)
    try:
        contract, op = find_contract_operation(report.contracts, operation_id)
    except ContractLensError as exc:
        raise _fail(exc) from None

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.emit({"contract": contract.id, "operation": op.to_json_dict()})
        return

    summary = [
        ["Contract", contract.name],
        ["ID", op.id],
        ["Name", op.name],
        ["Action", op.action_type.value],
        ["Location", op.location],
        ["Pattern", op.communication_pattern.value],
        ["Tags", ", ".join(op.tags) or "-"],
    ]
    if op.description:
        summary.append(["Description", op.description])
    if op.security is not None:
        summary.append(["Security", ", ".join(op.security) or "none"])
    output.print_table(["Field", "Value"], summary, title=op.name)

    if op.parameters:
        output.print_table(
            ["Name", "In", "Type", "Required", "Description"],
            [
                [
                    p.name,
                    p.location.value,
                    p.type,
                    "yes" if p.required else "",
                    p.description or "-",
                ]
                for p in op.parameters
            ],
            title="Parameters",
        )

    if op.input is not None:
        output.print_schema("input", op.input)
    for schema in op.output:
        label = f"output {schema.status_code}" if schema.status_code else "output"
        output.print_schema(label, schema)


def detect_document(
    source: str = typer.Argument(..., help="File path, URL, or '-' for stdin."),
) -> None:
    """Report the protocol and version of a contract document.

    Example::

        contractlens detect specs/asyncapi/orders.yaml
    """
    try:
        raw = load_document(source)
        protocol = detect_spec_type(raw, source)
        version = validate_spec_version(raw, protocol, source)
    except ContractLensError as exc:
        raise _fail(exc) from None

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.emit({"source": source, "protocol": protocol.value, "version": version})
    else:
        output.print_data(f"{protocol.value}\t{version}")


def export_contracts(
    ctx: typer.Context,
    contract: Optional[str] = typer.Option(
        None, "--contract", "-c", help="Export only this contract id."
    ),
    merge: bool = typer.Option(
        False, "--merge", help="Merge all contracts into one before exporting."
    ),
) -> None:
    """Export normalized contracts as JSON (camelCase keys).

    Example::

        contractlens export -o contracts.json
        contractlens export --contract asyncapi-order-events
    """
    report = _load(ctx)
    try:
        contracts = report.contracts
        if contract:
            contracts = [find_contract(contracts, contract)]
        if merge:
            data = merge_contracts(contracts).to_json_dict()
        else:
            data = [c.to_json_dict() for c in contracts]
    except ContractLensError as exc:
        raise _fail(exc) from None
    get_output().emit(data, force_json=True)
