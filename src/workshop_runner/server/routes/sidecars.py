"""Sidecar process route handlers.

Provides endpoints:
- /api/sidecars - Configured sidecars with run state
- /api/sidecars/{name}/output - Buffered output
- /api/sidecars/{name}/restart - Restart keeping output
"""

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ._common import error_response, get_services

logger = logging.getLogger(__name__)


async def list_sidecars(request: Request) -> JSONResponse:
    """GET /api/sidecars - Every known sidecar."""
    services = get_services(request)
    return JSONResponse({"sidecars": services.sidecars.describe()})


async def get_sidecar_output(request: Request) -> JSONResponse:
    """GET /api/sidecars/{name}/output - Buffered output lines."""
    services = get_services(request)
    name = request.path_params["name"]
    if name not in services.sidecars.describe():
        return error_response(f"No sidecar named {name}", 404)
    return JSONResponse({"name": name, "output": [line.to_dict() for line in services.sidecars.get_output(name)]})


async def restart_sidecar(request: Request) -> JSONResponse:
    """POST /api/sidecars/{name}/restart - Stop and start a sidecar.

    Returns:
        200: Restarted.
        404: Unknown sidecar.
        403: Deployed mode.
        500: The command could not be spawned.

    """
    services = get_services(request)
    name = request.path_params["name"]
    try:
        record = await services.sidecars.restart(name)
    except KeyError:
        return error_response(f"No sidecar named {name}", 404)
    if record.pid is None:
        output = services.sidecars.get_output(name)
        return error_response(output[-1].content if output else "Failed to start", 500, name=name)
    return JSONResponse({"name": name, "pid": record.pid, "restarted": True})


routes = [
    Route("/api/sidecars", list_sidecars, methods=["GET"]),
    Route("/api/sidecars/{name}/output", get_sidecar_output, methods=["GET"]),
    Route("/api/sidecars/{name}/restart", restart_sidecar, methods=["POST"]),
]
