"""Playground route handlers.

Provides endpoints:
- /api/playground - Current playground, and replacing it from an app
- /api/playground/saved - Saved playgrounds, and restoring one
"""

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from workshop_runner.catalog.models import APP_ADAPTER

from ._common import error_response, get_services, read_json_body

logger = logging.getLogger(__name__)


async def get_playground(request: Request) -> JSONResponse:
    """GET /api/playground - The playground app, null when unset."""
    services = get_services(request)
    app = await services.catalog.get_playground_app()
    return JSONResponse({"playground": APP_ADAPTER.dump_python(app, mode="json") if app else None})


async def set_playground(request: Request) -> JSONResponse:
    """POST /api/playground - Replace the playground with a copy of an app.

    Body:
        {
            "app": "01.01.problem",
            "reset": false
        }

    Returns:
        200: The refreshed playground app.
        400: Missing or invalid body.
        404: Unknown app.

    """
    services = get_services(request)
    body = await read_json_body(request)
    if body is None:
        return error_response("Invalid JSON body", 400)
    name = body.get("app")
    if not name or not isinstance(name, str):
        return error_response("Missing 'app' field", 400)

    app = await services.catalog.require_app(name)
    playground = await services.playground.set_playground(app.full_path, reset=bool(body.get("reset")))
    return JSONResponse({
        "playground": APP_ADAPTER.dump_python(playground, mode="json") if playground else None,
    })


async def list_saved(request: Request) -> JSONResponse:
    """GET /api/playground/saved - Saved playgrounds, newest first."""
    services = get_services(request)
    saved = await services.playground.get_saved_playgrounds()
    return JSONResponse({"saved": [s.to_dict() for s in saved], "count": len(saved)})


async def restore_saved(request: Request) -> JSONResponse:
    """POST /api/playground/saved - Restore a saved playground.

    Body:
        {
            "id": "2024.01.31_09.15.00_01.01.problem"
        }

    """
    services = get_services(request)
    body = await read_json_body(request)
    if body is None or not isinstance(body.get("id"), str):
        return error_response("Missing 'id' field", 400)
    playground = await services.playground.set_playground_from_saved(body["id"], reset=bool(body.get("reset")))
    return JSONResponse({
        "playground": APP_ADAPTER.dump_python(playground, mode="json") if playground else None,
    })


routes = [
    Route("/api/playground", get_playground, methods=["GET"]),
    Route("/api/playground", set_playground, methods=["POST"]),
    Route("/api/playground/saved", list_saved, methods=["GET"]),
    Route("/api/playground/saved", restore_saved, methods=["POST"]),
]
