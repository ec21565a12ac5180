"""Configuration management CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from flink_results.cli.commands._shared import get_resolved_config
from flink_results.core.config import DEFAULT_CONFIG_PATH, load_config

if TYPE_CHECKING:
    from pathlib import Path

config_app = typer.Typer(help="Configuration management commands")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _mask_secret(value: str | None) -> str:
    if value is None:
        return "not set"
    return "***"


def _or_not_set(value: object) -> str:
    return "not set" if value is None else str(value)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved configuration with source attribution."""
    resolved = get_resolved_config(ctx)
    config_path: Path | None = ctx.obj.get("config_file")
    sources = resolved.sources

    typer.echo("Connection Settings (resolved):")
    connection_fields = [
        ("rest_endpoint", _or_not_set(resolved.rest_endpoint)),
        ("organization_id", _or_not_set(resolved.organization_id)),
        ("environment_id", _or_not_set(resolved.environment_id)),
        ("compute_pool_id", _or_not_set(resolved.compute_pool_id)),
        ("api_key", _or_not_set(resolved.api_key)),
        ("api_secret", _mask_secret(resolved.api_secret)),
    ]
    for field_name, value in connection_fields:
        source = sources.get(field_name, "default")
        typer.echo(f"  {field_name}: {value} ({source})")

    typer.echo("")
    typer.echo("Results:")
    general_fields = [
        ("results_limit", str(resolved.results_limit)),
        ("polling_interval_ms", str(resolved.polling_interval_ms)),
        ("refresh_interval_ms", str(resolved.refresh_interval_ms)),
        ("request_timeout", f"{resolved.request_timeout}s"),
        ("default_format", resolved.default_format),
    ]
    for field_name, value in general_fields:
        source = sources.get(field_name, "default")
        typer.echo(f"  {field_name}: {value} ({source})")

    typer.echo("")
    if resolved.active_profile:
        typer.echo(f"Active Profile: {resolved.active_profile}")
    else:
        typer.echo("Active Profile: none")

    display_path = config_path or DEFAULT_CONFIG_PATH
    typer.echo(f"Config File: {display_path}")


@config_app.command("profiles")
def config_profiles(ctx: typer.Context) -> None:
    """List available connection profiles."""
    config_path: Path | None = ctx.obj.get("config_file")
    app_config = load_config(config_path)
    active_profile = ctx.obj.get("profile") or app_config.default_profile

    if not app_config.profiles:
        typer.echo("No profiles configured.")
        display_path = config_path or DEFAULT_CONFIG_PATH
        typer.echo(f"Add profiles to: {display_path}")
        return

    typer.echo("Available Profiles:")
    typer.echo("")
    for name, profile in sorted(app_config.profiles.items()):
        is_active = name == active_profile
        marker = "* " if is_active else "  "
        label = " (active)" if is_active else ""
        typer.echo(f"{marker}{name}{label}")

        display_fields = [
            ("rest_endpoint", _or_not_set(profile.rest_endpoint)),
            ("organization_id", _or_not_set(profile.organization_id)),
            ("environment_id", _or_not_set(profile.environment_id)),
        ]
        if profile.compute_pool_id:
            display_fields.append(("compute_pool_id", profile.compute_pool_id))
        if profile.api_key:
            display_fields.append(("api_key", profile.api_key))

        for field_name, value in display_fields:
            typer.echo(f"      {field_name}: {value}")
        typer.echo("")
