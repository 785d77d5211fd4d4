"""App catalog and process route handlers.

Provides endpoints:
- /api/apps - List apps
- /api/exercises - List exercises with their steps
- /api/apps/{name} - App detail with run state and neighbours
- /api/apps/{name}/start, /api/apps/{name}/stop - Dev server control
- /api/apps/{name}/test - Start, inspect and clear test runs
"""

import logging
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from workshop_runner.catalog.models import APP_ADAPTER, App, is_exercise_step_app
from workshop_runner.catalog.service import APPS_CACHE_KEY, AppCatalog
from workshop_runner.processes.records import RunResult, RunStatus

from ._common import get_services, refresh_policy

logger = logging.getLogger(__name__)


def _app_summary(request: Request, app: App, all_apps: list[App]) -> dict[str, Any]:
    services = get_services(request)
    data = APP_ADAPTER.dump_python(app, mode="json")
    data["displayName"] = AppCatalog.get_app_display_name(app, all_apps)
    data["running"] = services.processes.is_app_running(app) if not services.config.deployed else False
    return data


async def list_apps(request: Request) -> JSONResponse:
    """GET /api/apps - All apps in display order.

    Query:
        fresh: Bypass the apps cache ("true").

    """
    services = get_services(request)
    apps = await services.catalog.get_apps(refresh_policy(request, APPS_CACHE_KEY))
    return JSONResponse({
        "apps": [_app_summary(request, app, apps) for app in apps],
        "count": len(apps),
    })


async def list_exercises(request: Request) -> JSONResponse:
    """GET /api/exercises - Exercises with their problem/solution steps."""
    services = get_services(request)
    exercises = await services.catalog.get_exercises(refresh_policy(request, APPS_CACHE_KEY))
    return JSONResponse({
        "exercises": [exercise.model_dump(mode="json") for exercise in exercises],
        "count": len(exercises),
    })


async def get_app(request: Request) -> JSONResponse:
    """GET /api/apps/{name} - One app with run state and neighbouring steps.

    Returns:
        200: App detail.
        404: Unknown app.

    """
    services = get_services(request)
    app = await services.catalog.require_app(request.path_params["name"])
    apps = await services.catalog.get_apps()
    data = _app_summary(request, app, apps)
    if is_exercise_step_app(app):
        next_app = await services.catalog.get_next_exercise_app(app)
        prev_app = await services.catalog.get_prev_exercise_app(app)
        data["next"] = next_app.name if next_app else None
        data["prev"] = prev_app.name if prev_app else None
    return JSONResponse(data)


async def start_app(request: Request) -> JSONResponse:
    """POST /api/apps/{name}/start - Start the app's dev server and wait for it.

    Returns:
        200: Started or already running, with the reachability result.
        409: Port held by another process.
        422: App has no dev server.
        403: Deployed mode.

    """
    services = get_services(request)
    app = await services.catalog.require_app(request.path_params["name"])
    result: RunResult = await services.processes.run_app_dev(app)
    data = result.to_dict()
    if result.status is RunStatus.PORT_UNAVAILABLE:
        return JSONResponse(data, status_code=409)
    if result.status is RunStatus.ERROR:
        return JSONResponse(data, status_code=422)
    if result.status is RunStatus.STARTED:
        waited = await services.processes.wait_on_app(app)
        if waited is not None:
            data["wait"] = {"status": waited.status, "error": waited.error}
    return JSONResponse(data)


async def stop_app(request: Request) -> JSONResponse:
    """POST /api/apps/{name}/stop - Stop the app's dev server."""
    services = get_services(request)
    name = request.path_params["name"]
    stopped = await services.processes.close_process(name)
    return JSONResponse({"name": name, "stopped": stopped})


async def start_tests(request: Request) -> JSONResponse:
    """POST /api/apps/{name}/test - Run the app's test script."""
    services = get_services(request)
    app = await services.catalog.require_app(request.path_params["name"])
    result = await services.processes.run_app_tests(app)
    if isinstance(result, RunResult):
        return JSONResponse(result.to_dict(), status_code=422)
    return JSONResponse(result.to_dict(), status_code=202)


async def get_tests(request: Request) -> JSONResponse:
    """GET /api/apps/{name}/test - Output and exit code of the last test run."""
    services = get_services(request)
    name = request.path_params["name"]
    entry = services.processes.get_test_process_entry(name)
    if entry is None:
        return JSONResponse({"error": f"No test run for {name}"}, status_code=404)
    return JSONResponse(entry.to_dict())


async def clear_tests(request: Request) -> JSONResponse:
    """DELETE /api/apps/{name}/test - Stop and forget the app's test run."""
    services = get_services(request)
    name = request.path_params["name"]
    cleared = await services.processes.clear_test_process_entry(name)
    return JSONResponse({"name": name, "cleared": cleared})


routes = [
    Route("/api/apps", list_apps, methods=["GET"]),
    Route("/api/exercises", list_exercises, methods=["GET"]),
    Route("/api/apps/{name}", get_app, methods=["GET"]),
    Route("/api/apps/{name}/start", start_app, methods=["POST"]),
    Route("/api/apps/{name}/stop", stop_app, methods=["POST"]),
    Route("/api/apps/{name}/test", start_tests, methods=["POST"]),
    Route("/api/apps/{name}/test", get_tests, methods=["GET"]),
    Route("/api/apps/{name}/test", clear_tests, methods=["DELETE"]),
]
