"""Helpers shared by the route handlers."""

from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from workshop_runner.cache.policy import RefreshPolicy
from workshop_runner.services import WorkshopServices


def get_services(request: Request) -> WorkshopServices:
    """Get the workshop services from app state."""
    return request.app.state.services


def refresh_policy(request: Request, key: str) -> RefreshPolicy:
    """Policy for ``key`` from the ``?fresh=`` query parameter."""
    return RefreshPolicy.from_override(request.query_params.get("fresh"), key)


def error_response(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


async def read_json_body(request: Request) -> dict[str, Any] | None:
    """Parse a JSON object body; None when the body is not a JSON object."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
