"""Request-time rules: input validation, passwords, authorization."""

from pollster.rules.access import (
    ROLE_ADMIN,
    ROLE_USER,
    RouteDecision,
    Verdict,
    admin_route_decision,
    can_create,
    can_modify,
    can_view_full,
    is_admin,
    project_poll,
)
from pollster.rules.passwords import validate_password_strength
from pollster.rules.validation import (
    ValidationResult,
    sanitize_text,
    validate_options,
    validate_question,
)

__all__ = [
    "ROLE_ADMIN",
    "ROLE_USER",
    "RouteDecision",
    "ValidationResult",
    "Verdict",
    "admin_route_decision",
    "can_create",
    "can_modify",
    "can_view_full",
    "is_admin",
    "project_poll",
    "sanitize_text",
    "validate_options",
    "validate_password_strength",
    "validate_question",
]
