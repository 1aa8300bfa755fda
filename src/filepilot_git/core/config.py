"""Application configuration management.

Handles loading and validating configuration from multiple sources:
    - TOML/JSON config files
    - Environment variables (FILEPILOT_GIT_* prefix)
    - Default values

Key components:
    - AppConfig: Main configuration model
    - load_config(): Safe config loading with fallback
    - ConfigLoadResult: Metadata about config source
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from unittest.mock import patch

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_ENV_VAR = "FILEPILOT_GIT_CONFIG"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or validated."""


def _default_roots() -> list[Path]:
    home = Path.home()
    return [
        home / "Development",
        home / "Projects",
        home / "Documents" / "GitHub",
        home / "Documents" / "Projects",
    ]


# -----------------------------------------------------------------------------
# Sub-configuration Models
# -----------------------------------------------------------------------------


class DiscoveryConfig(BaseModel):
    """Where and how deep to look for repositories."""

    roots: list[Path] = Field(
        default_factory=_default_roots,
        description="Directories scanned for git repositories. Missing roots are skipped.",
    )
    max_depth: int = Field(
        default=2, ge=1, description="Nesting levels below each root that are inspected."
    )

    @field_validator("roots", mode="after")
    @classmethod
    def expand_roots(cls, v: list[Path]) -> list[Path]:
        return [root.expanduser() for root in v]


class GitConfig(BaseModel):
    """How the git executable is invoked."""

    binary: str = Field(default="git", description="git executable name or absolute path.")
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds before a git invocation is killed. None waits indefinitely.",
    )


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


class AppConfig(BaseSettings):
    """Application-wide configuration with nested sub-configs."""

    model_config = SettingsConfigDict(
        env_prefix="FILEPILOT_GIT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    log_level: str = Field(default="INFO", description="Log level for filepilot-git output.")
    telemetry_enabled: bool = Field(
        default=True, description="Emit analytics events to the telemetry sink."
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Ensure environment variables override config file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


def _resolve_config_path(config_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = (
        config_path
        or env_vars.get(CONFIG_ENV_VAR)
        or (Path.home() / ".config" / "filepilot-git" / "config.toml")
    )
    return Path(candidate).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping.")

    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    """Detect which fields are overridden by environment variables.

    Nested fields use the delimiter, e.g. FILEPILOT_GIT_DISCOVERY__MAX_DEPTH.
    """
    prefix = AppConfig.model_config.get("env_prefix", "")
    delimiter = AppConfig.model_config.get("env_nested_delimiter", "__")
    overrides: set[str] = set()

    nested_models: dict[str, type[BaseModel]] = {
        "discovery": DiscoveryConfig,
        "git": GitConfig,
    }

    for group_name, model_cls in nested_models.items():
        for field in model_cls.model_fields:
            env_key = f"{prefix}{group_name}{delimiter}{field}".upper()
            if env_key in env_vars:
                overrides.add(f"{group_name}.{field}")

    for field in ("log_level", "telemetry_enabled"):
        if f"{prefix}{field}".upper() in env_vars:
            overrides.add(field)

    return overrides


def _fallback_config(env_context: Any) -> AppConfig:
    """Defaults plus env overrides, or bare defaults when the env is invalid too."""
    try:
        with env_context:
            return AppConfig()
    except ValidationError:
        return AppConfig.model_construct()


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_config_path(config_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _read_config_file(resolved_path)
        file_loaded = resolved_path.exists()
    except ConfigError as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = AppConfig(**file_data)
    except ValidationError as exc:
        error = str(exc)
        config = _fallback_config(context_manager)

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result
