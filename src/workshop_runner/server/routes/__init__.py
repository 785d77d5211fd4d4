"""HTTP API routes package.

Route handlers organized by domain:
- apps: catalog listing, dev server and test run control
- diff: comparing two apps
- playground: setting, saving and restoring the playground
- sidecars: sidecar process state and restarts
- cache: cache inspection and clearing
"""

from .apps import routes as apps_routes
from .cache import routes as cache_routes
from .diff import routes as diff_routes
from .playground import routes as playground_routes
from .sidecars import routes as sidecars_routes

# Aggregate all routes
API_ROUTES = apps_routes + diff_routes + playground_routes + sidecars_routes + cache_routes

__all__ = ["API_ROUTES"]
