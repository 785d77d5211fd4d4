"""HTTP API for a running workshop.

Provides:
- create_app: Starlette application exposing the catalog, processes,
  playground, diffs and caches of one WorkshopServices instance
"""

import contextlib
import logging
from collections.abc import AsyncIterator
from typing import cast

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse

from workshop_runner.core.exceptions import (
    AppNotFoundError,
    CatalogError,
    DeployedModeError,
    DiffError,
    DiffToolNotFoundError,
    HookError,
    WorkshopRunnerError,
)
from workshop_runner.services import WorkshopServices

from .routes import API_ROUTES

logger = logging.getLogger(__name__)


async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    missing = cast(AppNotFoundError, exc)
    return JSONResponse({"error": str(missing), "name": missing.name}, status_code=404)


async def _deployed(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=403)


async def _hook_failed(request: Request, exc: Exception) -> JSONResponse:
    failed = cast(HookError, exc)
    logger.error("Playground hook failed: %s", failed)
    return JSONResponse(
        {"error": str(failed), "script": failed.script, "exitCode": failed.exit_code},
        status_code=500,
    )


async def _diff_tool_missing(request: Request, exc: Exception) -> JSONResponse:
    tool = cast(DiffToolNotFoundError, exc)
    return JSONResponse({"error": str(tool), "command": tool.command}, status_code=503)


async def _bad_request(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=400)


async def _server_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=500)


def create_app(services: WorkshopServices, *, manage_lifecycle: bool = True) -> Starlette:
    """Build the Starlette app.

    Args:
        services: Workshop services the handlers operate on.
        manage_lifecycle: Start the services with the app and shut them
            down with it. Tests that drive the services themselves pass
            False.

    Returns:
        Configured Starlette application.

    """

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if manage_lifecycle:
            await services.start()
        try:
            yield
        finally:
            if manage_lifecycle:
                await services.shutdown()

    app = Starlette(
        routes=API_ROUTES,
        lifespan=lifespan,
        exception_handlers={
            AppNotFoundError: _not_found,
            DeployedModeError: _deployed,
            HookError: _hook_failed,
            DiffToolNotFoundError: _diff_tool_missing,
            DiffError: _server_error,
            CatalogError: _bad_request,
            WorkshopRunnerError: _server_error,
        },
    )
    app.state.services = services
    return app


__all__ = ["create_app"]
