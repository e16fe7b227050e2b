"""Redirect targets for the login and unauthorized pages."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


async def login_page(request: Request) -> dict[str, Any]:
    return {
        "page": "login",
        "authenticated": getattr(request.state, "identity", None) is not None,
    }


async def unauthorized_page(request: Request) -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={"error": "You do not have permission to access this page."},
    )
