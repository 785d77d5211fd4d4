"""App catalog.

Provides:
- AppCatalog: discovery, caching and lookups of workshop apps
- App models (ProblemApp, SolutionApp, ExampleApp, PlaygroundApp), Step,
  Exercise and the dev/test descriptors
- Naming helpers translating between directories, app names and ports
"""

from .models import (
    APP_ADAPTER,
    App,
    AppType,
    BrowserDevInfo,
    BrowserTestInfo,
    ExampleApp,
    Exercise,
    ExportDevInfo,
    NoDevInfo,
    NoTestInfo,
    PlaygroundApp,
    ProblemApp,
    ScriptDevInfo,
    ScriptTestInfo,
    SolutionApp,
    Step,
    is_exercise_step_app,
)
from .naming import (
    PLAYGROUND_APP_NAME,
    PLAYGROUND_PORT,
    app_name_from_path,
    exercise_app_port,
    full_path_from_app_name,
    parse_exercise_app_id,
)
from .service import AppCatalog

__all__ = [
    "APP_ADAPTER",
    "PLAYGROUND_APP_NAME",
    "PLAYGROUND_PORT",
    "App",
    "AppCatalog",
    "AppType",
    "BrowserDevInfo",
    "BrowserTestInfo",
    "ExampleApp",
    "Exercise",
    "ExportDevInfo",
    "NoDevInfo",
    "NoTestInfo",
    "PlaygroundApp",
    "ProblemApp",
    "ScriptDevInfo",
    "ScriptTestInfo",
    "SolutionApp",
    "Step",
    "app_name_from_path",
    "exercise_app_port",
    "full_path_from_app_name",
    "is_exercise_step_app",
    "parse_exercise_app_id",
]
