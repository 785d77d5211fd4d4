"""Cache management route handlers.

Provides endpoints:
- /api/cache - List cache keys, clear caches
- /api/cache/{name}/{key} - Delete one entry
"""

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ._common import error_response, get_services

logger = logging.getLogger(__name__)


async def list_caches(request: Request) -> JSONResponse:
    """GET /api/cache - Keys held by every cache."""
    services = get_services(request)
    return JSONResponse({"caches": await services.caches.list_caches()})


async def clear_caches(request: Request) -> JSONResponse:
    """DELETE /api/cache - Clear one cache (``?name=``) or all of them."""
    services = get_services(request)
    name = request.query_params.get("name")
    if name:
        try:
            await services.caches.clear(name)
        except KeyError:
            return error_response(f"Unknown cache: {name}", 404)
        return JSONResponse({"cleared": [name]})
    await services.caches.clear_all()
    return JSONResponse({"cleared": services.caches.names()})


async def delete_entry(request: Request) -> JSONResponse:
    """DELETE /api/cache/{name}/{key} - Remove one cache entry."""
    services = get_services(request)
    name = request.path_params["name"]
    key = request.path_params["key"]
    try:
        await services.caches.delete_entry(name, key)
    except KeyError:
        return error_response(f"Unknown cache: {name}", 404)
    return JSONResponse({"deleted": {"cache": name, "key": key}})


routes = [
    Route("/api/cache", list_caches, methods=["GET"]),
    Route("/api/cache", clear_caches, methods=["DELETE"]),
    Route("/api/cache/{name}/{key:path}", delete_entry, methods=["DELETE"]),
]
