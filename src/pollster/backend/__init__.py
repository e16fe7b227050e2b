"""Access to the hosted backend (identity, polls, votes, roles)."""

from pollster.backend.base import (
    AuthSession,
    BackendClient,
    Identity,
    PollOption,
    PollRecord,
    VoteRecord,
)
from pollster.backend.rest import HostedBackend, create_http_client

__all__ = [
    "AuthSession",
    "BackendClient",
    "HostedBackend",
    "Identity",
    "PollOption",
    "PollRecord",
    "VoteRecord",
    "create_http_client",
]
