"""Request-level actions composed from rules and backend calls."""

from pollster.services.auth import (
    UserWithRole,
    get_current_user,
    get_current_user_with_role,
    get_user_role,
    is_admin,
    login,
    logout,
    register,
)
from pollster.services.polls import PollService, PollView
from pollster.services.revalidate import PathInvalidator

__all__ = [
    "PathInvalidator",
    "PollService",
    "PollView",
    "UserWithRole",
    "get_current_user",
    "get_current_user_with_role",
    "get_user_role",
    "is_admin",
    "login",
    "logout",
    "register",
]
