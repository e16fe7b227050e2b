"""Cache-invalidation signal for paths whose data changed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

POLLS_PATH = "/polls"


def poll_path(poll_id: str) -> str:
    return f"{POLLS_PATH}/{poll_id}"


class PathInvalidator:
    """Fan out "this path is stale" notifications to registered listeners.

    Listeners are registered once at startup (e.g. by a rendering layer
    or a CDN purger) and are called synchronously, in registration
    order, after a successful mutation.
    """

    def __init__(self) -> None:
        self._listeners: list[Callable[[str], None]] = []

    def subscribe(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def revalidate(self, path: str) -> None:
        logger.debug("Revalidating %s", path)
        for listener in self._listeners:
            listener(path)
