"""Exception hierarchy for pollster.

Every module imports from here. The hierarchy is:

    PollsterError
    ├── ConfigError
    ├── AuthenticationError
    ├── AuthorizationError
    ├── ValidationError
    ├── NotFoundError
    ├── ConflictError
    └── BackendError(status_code, code)
        └── UniqueViolationError

Each class carries the HTTP status the API layer answers with.  The
message is always safe to show to the end user.
"""

from __future__ import annotations


class PollsterError(Exception):
    """Base exception for all pollster errors."""

    status_code: int = 500

    @property
    def message(self) -> str:
        return str(self)


# ─── Configuration ────────────────────────────────────────────


class ConfigError(PollsterError):
    """Invalid or incomplete configuration (e.g. backend credentials absent)."""


# ─── Caller Errors ────────────────────────────────────────────


class AuthenticationError(PollsterError):
    """No valid caller identity for an operation that needs one."""

    status_code = 401


class AuthorizationError(PollsterError):
    """Caller is authenticated but lacks the role or ownership required."""

    status_code = 403


class ValidationError(PollsterError):
    """Malformed input. The message is the first violated rule."""

    status_code = 400


class NotFoundError(PollsterError):
    """Requested row does not exist or is not visible to the caller."""

    status_code = 404


class ConflictError(PollsterError):
    """Duplicate vote or other uniqueness conflict."""

    status_code = 409


# ─── Backend Errors ───────────────────────────────────────────


class BackendError(PollsterError):
    """The hosted backend call itself failed."""

    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        self.backend_status = status_code
        self.code = code
        super().__init__(message)


class UniqueViolationError(BackendError):
    """The store rejected a write because of a unique constraint."""
