"""Configuration loading: TOML files, env var overrides, merge logic.

Discovery order (later overrides earlier):
    1. Built-in defaults (Pydantic model defaults)
    2. User config: ``~/.config/pollster/config.toml``
    3. Project-local config: ``./pollster.toml``
    4. ``$POLLSTER_CONFIG`` environment variable (explicit path)
    5. Programmatic overrides (passed to ``load_config``)

Backend credentials:
    ``backend.url_env`` and ``backend.anon_key_env`` name env vars.  If
    the env var is set *and* the value is not already provided, the
    loader resolves it automatically.  Missing credentials are not an
    error here; call ``check_startup`` once at process start.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pollster.core.errors import ConfigError

from .schema import PollsterConfig


@dataclass(frozen=True, slots=True)
class StartupCheck:
    """Result of validating required settings at process start."""

    missing: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing

    def describe(self) -> str:
        if self.ok:
            return "configuration ok"
        return "Missing required settings: " + ", ".join(self.missing)


def _user_config_path() -> Path:
    """Return XDG-compliant user config path."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "pollster" / "config.toml"


def _project_config_path() -> Path:
    """Return project-local config path."""
    return Path.cwd() / "pollster.toml"


def _discover_config_files() -> list[Path]:
    """Return config files in merge order (first = lowest priority)."""
    paths: list[Path] = []

    user = _user_config_path()
    if user.is_file():
        paths.append(user)

    project = _project_config_path()
    if project.is_file():
        paths.append(project)

    env_path = os.environ.get("POLLSTER_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.is_file():
            msg = f"POLLSTER_CONFIG points to non-existent file: {env_path}"
            raise ConfigError(msg)
        paths.append(p)

    return paths


def _read_toml(path: Path) -> dict[str, Any]:
    """Read and parse a TOML file."""
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override wins on conflicts."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_backend_env(config: PollsterConfig) -> None:
    """Resolve backend URL and anon key from environment variables (in-place)."""
    backend = config.backend
    if not backend.url and backend.url_env:
        backend.url = os.environ.get(backend.url_env) or None
    if not backend.anon_key and backend.anon_key_env:
        backend.anon_key = os.environ.get(backend.anon_key_env) or None


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> PollsterConfig:
    """Load and validate configuration.

    Args:
        path: Explicit config file path (highest file priority).
        overrides: Dict of overrides merged last (highest overall priority).

    Returns:
        Validated PollsterConfig instance.

    Raises:
        ConfigError: On invalid TOML, missing files, or validation failure.
    """
    merged: dict[str, Any] = {}

    files = _discover_config_files()

    if path is not None:
        p = Path(path)
        if not p.is_file():
            msg = f"Config file not found: {path}"
            raise ConfigError(msg)
        files.append(p)

    for config_file in files:
        data = _read_toml(config_file)
        merged = _deep_merge(merged, data)

    if overrides:
        merged = _deep_merge(merged, overrides)

    try:
        config = PollsterConfig.model_validate(merged)
    except Exception as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e

    _resolve_backend_env(config)

    return config


def check_startup(config: PollsterConfig) -> StartupCheck:
    """Validate the settings the service cannot run without.

    Missing values are reported by the env var that would supply them,
    falling back to the config key when no env var is configured.
    """
    missing: list[str] = []
    backend = config.backend
    if not backend.url:
        missing.append(backend.url_env or "backend.url")
    if not backend.anon_key:
        missing.append(backend.anon_key_env or "backend.anon_key")
    return StartupCheck(missing=missing)
