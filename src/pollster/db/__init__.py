"""Schema of the hosted store, for provisioning."""

from pollster.db.models import ROLES, Base, Poll, UserRole, Vote

__all__ = ["ROLES", "Base", "Poll", "UserRole", "Vote"]
