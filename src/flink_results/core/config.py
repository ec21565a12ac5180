"""Configuration management for flink-results.

Handles TOML config files, environment variables, named profiles,
and configuration precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--endpoint, --org, etc.)
2. Environment variables (FLINK_REST_ENDPOINT, FLINK_API_KEY, ...)
3. Named profile (--profile or FLINK_PROFILE env var)
4. Config file defaults
5. Built-in defaults
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, computed_field, field_validator, model_validator

from flink_results.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "flink-results" / "config.toml"

DEFAULT_RESULTS_LIMIT = 10_000
DEFAULT_POLLING_INTERVAL_MS = 800
DEFAULT_REFRESH_INTERVAL_MS = 2000
DEFAULT_REQUEST_TIMEOUT = 30.0

_FLINK_ENV_VARS: dict[str, str] = {
    "FLINK_REST_ENDPOINT": "rest_endpoint",
    "FLINK_ORGANIZATION_ID": "organization_id",
    "FLINK_ENVIRONMENT_ID": "environment_id",
    "FLINK_COMPUTE_POOL_ID": "compute_pool_id",
    "FLINK_API_KEY": "api_key",
    "FLINK_API_SECRET": "api_secret",  # pragma: allowlist secret
}

_PROFILE_DEFAULTS: dict[str, Any] = {
    "rest_endpoint": None,
    "organization_id": None,
    "environment_id": None,
    "compute_pool_id": None,
    "api_key": None,
    "api_secret": None,  # pragma: allowlist secret
}

_GLOBAL_DEFAULTS: dict[str, Any] = {
    "request_timeout": DEFAULT_REQUEST_TIMEOUT,
    "default_format": "table",
    "results_limit": DEFAULT_RESULTS_LIMIT,
    "polling_interval_ms": DEFAULT_POLLING_INTERVAL_MS,
    "refresh_interval_ms": DEFAULT_REFRESH_INTERVAL_MS,
}


def endpoint_for_region(cloud: str, region: str) -> str:
    return f"https://flink.{region}.{cloud}.confluent.cloud"


def validate_endpoint(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        msg = f"Invalid REST endpoint: '{value}'. Expected an http(s) URL"
        raise ValueError(msg)
    return value.rstrip("/")


class FlinkProfile(BaseModel):
    rest_endpoint: str | None = None
    cloud: str | None = None
    region: str | None = None
    organization_id: str | None = None
    environment_id: str | None = None
    compute_pool_id: str | None = None
    api_key: str | None = None
    api_secret: str | None = None

    @model_validator(mode="before")
    @classmethod
    def derive_endpoint_from_region(cls, data: Any) -> Any:
        if (
            isinstance(data, dict)
            and not data.get("rest_endpoint")
            and data.get("cloud")
            and data.get("region")
        ):
            data["rest_endpoint"] = endpoint_for_region(data["cloud"], data["region"])
        return data

    @field_validator("rest_endpoint")
    @classmethod
    def check_endpoint(cls, v: str | None) -> str | None:
        return validate_endpoint(v) if v is not None else None


class AppConfig(BaseModel):
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    default_format: str = "table"
    default_profile: str | None = None
    results_limit: int = DEFAULT_RESULTS_LIMIT
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    profiles: dict[str, FlinkProfile] = {}

    @field_validator("results_limit", "polling_interval_ms", "refresh_interval_ms")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            msg = f"must be >= 1, got {v}"
            raise ValueError(msg)
        return v


class ResolvedConfig(BaseModel):
    rest_endpoint: str | None = None
    organization_id: str | None = None
    environment_id: str | None = None
    compute_pool_id: str | None = None
    api_key: str | None = None
    api_secret: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    default_format: str = "table"
    results_limit: int = DEFAULT_RESULTS_LIMIT
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    active_profile: str | None = None
    sources: dict[str, str] = {}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def statements_url(self) -> str | None:
        if not (self.rest_endpoint and self.organization_id and self.environment_id):
            return None
        return (
            f"{self.rest_endpoint}/sql/v1/organizations/{self.organization_id}"
            f"/environments/{self.environment_id}/statements"
        )

    def require_connection(self) -> None:
        """Raise ConfigError naming every missing connection setting."""
        missing = [
            name
            for name in ("rest_endpoint", "organization_id", "environment_id")
            if not getattr(self, name)
        ]
        if missing:
            msg = f"Missing connection settings: {', '.join(missing)}"
            raise ConfigError(msg)


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve configuration using precedence chain.

    CLI > env > profile > config defaults > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    resolved.update(_PROFILE_DEFAULTS)
    resolved.update(_GLOBAL_DEFAULTS)
    for key in resolved:
        sources[key] = "default"

    # Layer 2: Config file global defaults
    for key, default in _GLOBAL_DEFAULTS.items():
        value = getattr(config, key)
        if value != default:
            resolved[key] = value
            sources[key] = "config"

    # Layer 3: Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get("FLINK_PROFILE")
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            value = getattr(profile, key)
            if key in resolved and value is not None:
                resolved[key] = value
                sources[key] = f"profile: {effective_profile}"

    # Layer 4: Environment variables
    for env_var, field_name in _FLINK_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is not None:
            if field_name == "rest_endpoint":
                try:
                    value = validate_endpoint(value)
                except ValueError as e:
                    raise ConfigError(f"Invalid {env_var}: {e}") from None
            resolved[field_name] = value
            sources[field_name] = f"env: {env_var}"

    # Layer 5: CLI flags (highest priority)
    cli_to_field = {
        "endpoint": "rest_endpoint",
        "org": "organization_id",
        "env": "environment_id",
        "compute_pool": "compute_pool_id",
        "api_key": "api_key",
        "api_secret": "api_secret",  # pragma: allowlist secret
        "timeout": "request_timeout",
        "limit": "results_limit",
        "poll_ms": "polling_interval_ms",
        "refresh_ms": "refresh_interval_ms",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            if field_name == "rest_endpoint":
                try:
                    value = validate_endpoint(value)
                except ValueError as e:
                    raise ConfigError(str(e)) from None
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name.replace('_', '-')}"

    for key in ("results_limit", "polling_interval_ms", "refresh_interval_ms"):
        if resolved[key] < 1:
            msg = f"Invalid {key}: {resolved[key]}. Must be >= 1"
            raise ConfigError(msg)

    resolved["active_profile"] = effective_profile
    resolved["sources"] = sources
    return ResolvedConfig(**resolved)
