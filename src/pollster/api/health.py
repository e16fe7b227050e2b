"""Health check endpoints."""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])

_START_TIME = time.monotonic()


@router.get("/api/health")
async def health() -> dict[str, str]:
    """Basic health check -- always returns quickly."""
    return {"status": "ok"}


@router.get("/api/health/detailed")
async def health_detailed(request: Request) -> dict[str, Any]:
    """Health with version, uptime and whether the backend is configured."""
    from pollster import __version__

    configured = getattr(request.app.state, "backend_factory", None) is not None
    return {
        "status": "ok" if configured else "degraded",
        "version": __version__,
        "uptime_seconds": round(time.monotonic() - _START_TIME, 1),
        "components": {
            "backend": {"status": "configured" if configured else "unconfigured"},
        },
    }
