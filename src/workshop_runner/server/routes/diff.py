"""Diff route handler.

Provides endpoints:
- /api/diff?app1=&app2= - Changed files and the rendered diff document
"""

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from workshop_runner.diff.service import diff_cache_key

from ._common import error_response, get_services, refresh_policy

logger = logging.getLogger(__name__)


async def get_diff(request: Request) -> Response:
    """GET /api/diff - Compare two apps.

    Query:
        app1: Name of the "before" app.
        app2: Name of the "after" app.
        format: "json" (default) for files and document, "raw" for git's
            output with relative paths.
        fresh: Bypass cached diffs ("true").

    Returns:
        200: Diff result.
        400: Missing app names.
        404: Unknown app.

    """
    services = get_services(request)
    name1 = request.query_params.get("app1")
    name2 = request.query_params.get("app2")
    if not name1 or not name2:
        return error_response("Both 'app1' and 'app2' query parameters are required", 400)

    app1 = await services.catalog.require_app(name1)
    app2 = await services.catalog.require_app(name2)

    if request.query_params.get("format") == "raw":
        output = await services.diffs.get_diff_output_with_relative_paths(app1, app2)
        return PlainTextResponse(output)

    policy = refresh_policy(request, diff_cache_key(app1, app2))
    files = await services.diffs.get_diff_files(app1, app2, policy)
    code = await services.diffs.get_diff_code(app1, app2, policy)
    return JSONResponse({
        "app1": app1.name,
        "app2": app2.name,
        "files": [f.model_dump(mode="json") for f in files],
        "code": code,
    })


routes = [
    Route("/api/diff", get_diff, methods=["GET"]),
]
