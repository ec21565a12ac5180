"""flink-results main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from flink_results.__about__ import __version__
from flink_results.cli.commands.config import config_app
from flink_results.cli.commands.results import results_app
from flink_results.cli.commands.statement import statement_app
from flink_results.cli.output import OutputFormat  # noqa: TC001
from flink_results.core.exceptions import FlinkResultsError
from flink_results.core.logging import setup_logging
from flink_results.core.monitoring import setup_sentry

app = typer.Typer(
    help="flink-results - follow Flink SQL statement results",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.add_typer(results_app, name="results")
app.add_typer(statement_app, name="statement")


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"flink-results {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    endpoint: Annotated[
        str | None,
        typer.Option("--endpoint", help="Flink SQL REST endpoint"),
    ] = None,
    org: Annotated[
        str | None,
        typer.Option("--org", help="Organization ID"),
    ] = None,
    env: Annotated[
        str | None,
        typer.Option("--env", help="Environment ID"),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="Flink API key"),
    ] = None,
    api_secret: Annotated[
        str | None,
        typer.Option("--api-secret", help="Flink API secret"),
    ] = None,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format: table|json|csv"),
    ] = None,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Compact JSON output (no indentation)"),
    ] = False,
    width: Annotated[
        int,
        typer.Option("--width", help="Column width for table format"),
    ] = 40,
    no_header: Annotated[
        bool,
        typer.Option("--no-header", help="Suppress header row in CSV output"),
    ] = False,
) -> None:
    """flink-results - follow Flink SQL statement results."""
    setup_logging(verbose)
    setup_sentry()

    transaction = sentry_sdk.start_transaction(
        op="cli", name=ctx.invoked_subcommand or "flink-results"
    )
    transaction.__enter__()

    def cleanup() -> None:
        transaction.__exit__(None, None, None)
        sentry_sdk.flush(timeout=2)

    atexit.register(cleanup)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["profile"] = profile
    ctx.obj["config_file"] = config_file
    ctx.obj["endpoint"] = endpoint
    ctx.obj["org"] = org
    ctx.obj["env"] = env
    ctx.obj["api_key"] = api_key
    ctx.obj["api_secret"] = api_secret

    ctx.obj["format"] = format.value if format else None
    ctx.obj["compact"] = compact
    ctx.obj["width"] = width
    ctx.obj["no_header"] = no_header


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except FlinkResultsError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
