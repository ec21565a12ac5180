"""``results watch``: follow a statement's results as they arrive."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

import sentry_sdk
import structlog
import typer

from flink_results.cli.commands._shared import get_provider, load_statement, output_view
from flink_results.core.exit_codes import ExitCode
from flink_results.core.loader import ResourceLoader
from flink_results.core.manager import HaltReason
from flink_results.core.models import ResultsView
from flink_results.core.session import ResultsSession
from flink_results.core.watch import ResultsWatcher

if TYPE_CHECKING:
    from flink_results.core.models import (
        NormalizedRow,
        StatementMetadata,
    )
    from flink_results.core.watch import WatchSummary

results_app = typer.Typer(help="Statement results commands")


@results_app.callback(invoke_without_command=True)
def results_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@results_app.command("watch")
def watch_command(
    ctx: typer.Context,
    statement: Annotated[str, typer.Argument(help="Statement name")],
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", help="Maximum number of rows to buffer"),
    ] = None,
    poll_ms: Annotated[
        int | None,
        typer.Option("--poll-ms", help="Result polling interval in milliseconds"),
    ] = None,
    refresh_ms: Annotated[
        int | None,
        typer.Option("--refresh-ms", help="Statement refresh interval in milliseconds"),
    ] = None,
    page_size: Annotated[
        int,
        typer.Option("--page-size", help="Rows requested per page", min=1),
    ] = 100,
    search: Annotated[
        str | None,
        typer.Option("--search", "-s", help="Only show rows containing this text"),
    ] = None,
) -> None:
    """Print a statement's results as they are fetched, until the stream completes."""
    log = structlog.get_logger()
    header_printed = False

    def emit(columns: list[str], rows: list[NormalizedRow]) -> None:
        nonlocal header_printed
        output_view(ctx, ResultsView(columns=columns, rows=rows), header=not header_printed)
        header_printed = True

    with get_provider(ctx, limit=limit, poll_ms=poll_ms, refresh_ms=refresh_ms) as provider:
        resolved = provider.config
        loader = ResourceLoader(provider)
        metadata = load_statement(loader, provider.handle_for(statement))
        print_banner(metadata, resolved.results_limit)

        session = ResultsSession(
            provider,
            results_limit=resolved.results_limit,
            polling_interval_ms=resolved.polling_interval_ms,
            refresh_interval_ms=resolved.refresh_interval_ms,
            loader=loader,
        )
        watcher = ResultsWatcher(session, emit, page_size=page_size, search=search)
        with session, sentry_sdk.start_span(op="results.watch", description=statement):
            try:
                summary = watcher.run(metadata)
            except KeyboardInterrupt:
                log.info("watch interrupted", statement=statement, rows=watcher.printed)
                typer.echo(f"\nInterrupted after {watcher.printed:,} rows", err=True)
                raise typer.Exit(ExitCode.SUCCESS) from None

    print_summary(summary)
    if summary.error:
        raise typer.Exit(ExitCode.API_ERROR)


def print_banner(metadata: StatementMetadata, limit: int) -> None:
    typer.echo(
        f"Watching statement {metadata.handle.name} "
        f"(status: {metadata.phase}, limit: {limit:,} rows)",
        err=True,
    )


def print_summary(summary: WatchSummary) -> None:
    typer.echo("\n--- Results Summary ---", err=True)
    typer.echo(f"Statement: {summary.statement}", err=True)
    typer.echo(f"Status: {summary.status}", err=True)
    typer.echo(f"Rows: {summary.rows_printed:,} shown, {summary.total_rows:,} buffered", err=True)
    if summary.halt_reason == HaltReason.TRUNCATED:
        typer.echo("Results limit reached; later rows were not fetched", err=True)
    if summary.error:
        typer.echo(f"Error: {summary.error}", err=True)
    typer.echo(f"Duration: {summary.elapsed_seconds:.1f}s", err=True)
