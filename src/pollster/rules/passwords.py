"""Password strength rules applied before sign-up reaches the identity provider."""

from __future__ import annotations

import re

PASSWORD_MIN_LENGTH = 8

_SPECIAL = re.compile(r"""[!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?]""")

# (pattern, message) in the order they are checked.
_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (_SPECIAL, "Password must contain at least one special character"),
]


def validate_password_strength(password: str) -> str | None:
    """Return the first violated rule's message, or None if *password* is strong."""
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
    for pattern, message in _RULES:
        if not pattern.search(password):
            return message
    return None
