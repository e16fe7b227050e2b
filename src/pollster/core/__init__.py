"""Core types, errors, and shared utilities."""

from pollster.core.errors import (
    AuthenticationError,
    AuthorizationError,
    BackendError,
    ConfigError,
    ConflictError,
    NotFoundError,
    PollsterError,
    UniqueViolationError,
    ValidationError,
)

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "BackendError",
    "ConfigError",
    "ConflictError",
    "NotFoundError",
    "PollsterError",
    "UniqueViolationError",
    "ValidationError",
]
