"""Statement inspection and control commands."""

from __future__ import annotations

import json
from typing import Annotated

import typer

from flink_results.cli.commands._shared import get_provider, load_statement
from flink_results.cli.output import resolve_format
from flink_results.core.loader import ResourceLoader

statement_app = typer.Typer(help="Statement inspection and control")


@statement_app.callback(invoke_without_command=True)
def statement_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@statement_app.command("show")
def statement_show(
    ctx: typer.Context,
    statement: Annotated[str, typer.Argument(help="Statement name")],
) -> None:
    """Show a statement's status and result schema."""
    with get_provider(ctx) as provider:
        metadata = load_statement(ResourceLoader(provider), provider.handle_for(statement))

    info = {
        "name": metadata.handle.name,
        "status": metadata.phase,
        "lifecycle": metadata.lifecycle.value,
        "startTime": metadata.created_at.isoformat() if metadata.created_at else None,
        "detail": metadata.detail,
        "appendOnly": metadata.append_only,
        "stoppable": metadata.stoppable,
        "columns": [
            {"name": col.name, "type": col.type_name} for col in metadata.columns
        ],
        "statement": metadata.sql_statement,
    }

    if resolve_format(ctx.obj.get("format")) == "json":
        indent = None if ctx.obj.get("compact") else 2
        typer.echo(json.dumps(info, indent=indent))
        return

    for key in ("name", "status", "lifecycle", "startTime", "detail", "appendOnly", "stoppable"):
        value = info[key]
        typer.echo(f"{key}: {'-' if value is None else value}")
    typer.echo("columns:")
    for col in info["columns"]:
        typer.echo(f"  {col['name']}: {col['type']}")
    if metadata.sql_statement:
        typer.echo("statement:")
        typer.echo(f"  {metadata.sql_statement}")


@statement_app.command("stop")
def statement_stop(
    ctx: typer.Context,
    statement: Annotated[str, typer.Argument(help="Statement name")],
) -> None:
    """Ask the service to stop a running statement."""
    with get_provider(ctx) as provider:
        loader = ResourceLoader(provider)
        handle = provider.handle_for(statement)
        metadata = load_statement(loader, handle)
        if not metadata.stoppable:
            typer.echo(
                f"Statement {statement} is not stoppable (status: {metadata.phase})",
                err=True,
            )
            return
        loader.stop_statement(handle)
    typer.echo(f"Stop requested for statement {statement}")
