"""Shared CLI plumbing for command modules.

Config resolution, API provider creation, format-option handling and
output helpers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flink_results.cli.output import get_formatter, write_output
from flink_results.core.client import CCloudApiProvider
from flink_results.core.config import load_config, resolve_config
from flink_results.core.exceptions import ApiError

if TYPE_CHECKING:
    import typer

    from flink_results.core.config import ResolvedConfig
    from flink_results.core.loader import ResourceLoader
    from flink_results.core.models import (
        ResultsView,
        StatementHandle,
        StatementMetadata,
    )

_CONNECTION_KEYS = ("endpoint", "org", "env", "api_key", "api_secret")


def get_resolved_config(ctx: typer.Context, **overrides: Any) -> ResolvedConfig:
    """Resolve config from the file, environment and global CLI options.

    ``overrides`` are command-level flags (limit, poll_ms, ...); None values
    are ignored so they fall through to lower precedence layers.
    """
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in _CONNECTION_KEYS:
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    cli_overrides.update({k: v for k, v in overrides.items() if v is not None})

    return resolve_config(config, profile_name=obj.get("profile"), **cli_overrides)


def get_provider(ctx: typer.Context, **overrides: Any) -> CCloudApiProvider:
    return CCloudApiProvider(get_resolved_config(ctx, **overrides))


def format_options(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.ensure_object(dict)
    return {
        "format_flag": obj.get("format"),
        "compact": obj.get("compact", False),
        "width": obj.get("width", 40),
        "no_header": obj.get("no_header", False),
    }


def output_view(ctx: typer.Context, view: ResultsView, *, header: bool = True) -> None:
    opts = format_options(ctx)
    if not header:
        opts["no_header"] = True
    formatter = get_formatter(**opts)
    write_output(formatter, view)


def load_statement(loader: ResourceLoader, handle: StatementHandle) -> StatementMetadata:
    """Current metadata of the statement; ApiError 404 when it does not exist."""
    metadata = loader.refresh_statement(handle)
    if metadata is None:
        msg = f"Statement '{handle.name}' not found"
        raise ApiError(msg, status_code=404)
    return metadata
