"""Configuration loading and validation."""

from pollster.config.loader import StartupCheck, check_startup, load_config
from pollster.config.schema import (
    APIConfig,
    BackendConfig,
    DatabaseConfig,
    LoggingConfig,
    PollsterConfig,
    SessionConfig,
)

__all__ = [
    "APIConfig",
    "BackendConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "PollsterConfig",
    "SessionConfig",
    "StartupCheck",
    "check_startup",
    "load_config",
]
