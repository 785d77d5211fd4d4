"""App catalog service.

Provides:
- AppCatalog: cached, sorted snapshot of every app in the workshop plus the
  lookups built on it (exercises, apps by name/number/file, neighbours)

Caching layers:
- "apps": the whole sorted catalog, 24h ttl, refreshed on any tracked change
- "<type>-app": one entry per app directory, refreshed when that directory
  (or a problem's solution directory) changes
- "directory-empty": emptiness probes of candidate directories
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from workshop_runner.cache import CacheRegistry, RefreshPolicy, RefreshPolicyResolver
from workshop_runner.core.config import WorkshopConfig
from workshop_runner.core.exceptions import AppNotFoundError, CatalogError
from workshop_runner.core.paths import WorkshopPaths
from workshop_runner.watch import ModifiedTimeService

from .models import (
    APP_ADAPTER,
    App,
    AppType,
    BaseApp,
    ExampleApp,
    Exercise,
    PlaygroundApp,
    ProblemApp,
    SolutionApp,
    Step,
    is_exercise_step_app,
)
from .naming import (
    EXAMPLE_NAME_PREFIX,
    SEPARATOR,
    example_relative_path,
    find_counterpart_dir,
    full_path_from_app_name,
    parse_app_dir_name,
    parse_exercise_dir_name,
)
from .scanner import AppBuilder, is_directory_empty, read_title
from .sorting import sort_apps

logger = logging.getLogger(__name__)

APPS_CACHE_KEY = "apps"
APPS_CACHE_TTL = 60 * 60 * 24
APP_CACHE_TTL = 60 * 5
APP_CACHE_SWR = 60 * 60 * 24 * 30
DIRECTORY_EMPTY_TTL = 60 * 5
DIRECTORY_EMPTY_SWR = 60 * 20


def _dump(app: BaseApp | None) -> dict[str, Any] | None:
    return None if app is None else app.model_dump(mode="json")


def _load_app(value: Any) -> App:
    return APP_ADAPTER.validate_python(value)


def _load_optional_playground(value: Any) -> PlaygroundApp | None:
    return None if value is None else PlaygroundApp.model_validate(value)


def _subdirs(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.is_dir())
    except FileNotFoundError:
        return []


class AppCatalog:
    """Discovers and serves the workshop's apps.

    Attributes:
        paths: Workshop layout.
        builder: Builds app records from directories.

    """

    def __init__(
        self,
        paths: WorkshopPaths,
        caches: CacheRegistry,
        resolver: RefreshPolicyResolver,
        mtimes: ModifiedTimeService,
        workshop_config: WorkshopConfig | None = None,
    ) -> None:
        """Initialize the catalog.

        Args:
            paths: Workshop layout.
            caches: Cache registry providing the catalog caches.
            resolver: Turns tracked directory changes into refresh policies.
            mtimes: Recursive directory mtime scans.
            workshop_config: Workshop-wide settings, loaded from the root
                package.json when None.

        """
        self.paths = paths
        self._caches = caches
        self._resolver = resolver
        self._mtimes = mtimes
        self.builder = AppBuilder(paths, workshop_config or WorkshopConfig.load(paths.root))

    # -- directory discovery -------------------------------------------------

    async def _is_directory_empty(self, directory: Path, policy: RefreshPolicy | None) -> bool:
        return await self._caches.cachified(
            self._caches.get("directory-empty"),
            str(directory),
            lambda: asyncio.to_thread(is_directory_empty, directory),
            ttl=DIRECTORY_EMPTY_TTL,
            swr=DIRECTORY_EMPTY_SWR,
            policy=policy,
            policy_for=lambda entry: self._resolver.for_dirs(entry, [directory]),
            check_value=bool,
        )

    def _candidate_app_dirs(self, app_type: AppType) -> list[Path]:
        marker = f".{app_type}"
        candidates: list[Path] = []
        for exercise_dir in _subdirs(self.paths.exercises_dir):
            for app_dir in _subdirs(exercise_dir):
                if marker not in app_dir.name:
                    continue
                if parse_app_dir_name(app_dir.name) is None:
                    logger.info("Skipping %s: name does not match <step>.%s[.<subtitle>]", app_dir, app_type)
                    continue
                candidates.append(app_dir)
        return candidates

    async def _app_dirs(self, app_type: AppType, policy: RefreshPolicy | None) -> list[Path]:
        candidates = await asyncio.to_thread(self._candidate_app_dirs, app_type)
        empty = await asyncio.gather(*(self._is_directory_empty(d, policy) for d in candidates))
        return [d for d, is_empty in zip(candidates, empty, strict=True) if not is_empty]

    # -- per-app builds ------------------------------------------------------

    async def _exercise_step_app(self, app_dir: Path, app_type: AppType, policy: RefreshPolicy | None) -> App | None:
        dependencies = [app_dir]
        if app_type is AppType.PROBLEM:
            counterpart = await asyncio.to_thread(find_counterpart_dir, app_dir)
            if counterpart is not None:
                dependencies.append(counterpart)
        try:
            return await self._caches.cachified(
                self._caches.get(f"{app_type}-app"),
                str(app_dir),
                lambda: asyncio.to_thread(self.builder.build_exercise_step_app, app_dir),
                ttl=APP_CACHE_TTL,
                swr=APP_CACHE_SWR,
                policy=policy,
                policy_for=lambda entry: self._resolver.for_dirs(entry, dependencies),
                check_value=_load_app,
                serialize=_dump,
            )
        except (CatalogError, ValueError, OSError) as e:
            logger.warning("Skipping app %s: %s", app_dir, e)
            return None

    async def _exercise_step_apps(self, app_type: AppType, policy: RefreshPolicy | None) -> list[App]:
        dirs = await self._app_dirs(app_type, policy)
        apps = await asyncio.gather(*(self._exercise_step_app(d, app_type, policy) for d in dirs))
        return [app for app in apps if app is not None]

    async def _example_apps(self, policy: RefreshPolicy | None) -> list[ExampleApp]:
        candidates = await asyncio.to_thread(_subdirs, self.paths.examples_dir)
        empty = await asyncio.gather(*(self._is_directory_empty(d, policy) for d in candidates))
        dirs = [d for d, is_empty in zip(candidates, empty, strict=True) if not is_empty]
        apps: list[ExampleApp] = []
        for index, app_dir in enumerate(dirs):
            try:
                apps.append(await asyncio.to_thread(self.builder.build_example_app, app_dir, index))
            except (ValueError, OSError) as e:
                logger.warning("Skipping example app %s: %s", app_dir, e)
        return apps

    # -- playground ----------------------------------------------------------

    def _read_playground_app_name(self) -> str | None:
        try:
            data = json.loads(self.paths.playground_info_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Cannot read playground info %s: %s", self.paths.playground_info_path, e)
            return None
        app_name = data.get("appName") if isinstance(data, dict) else None
        return app_name if isinstance(app_name, str) else None

    async def get_playground_app_name(self) -> str | None:
        """Name of the app the playground was last set from."""
        return await asyncio.to_thread(self._read_playground_app_name)

    async def get_full_path_from_app_name(self, name: str) -> Path | None:
        return await asyncio.to_thread(full_path_from_app_name, self.paths, name)

    async def get_playground_app(self, policy: RefreshPolicy | None = None) -> PlaygroundApp | None:
        """The playground app, None when there is no playground yet."""
        playground_dir = self.paths.playground_dir
        app_name = await self.get_playground_app_name()
        base_dir = await self.get_full_path_from_app_name(app_name) if app_name else None
        dependencies = [playground_dir] + ([base_dir] if base_dir else [])

        async def get_fresh_value() -> PlaygroundApp | None:
            if app_name is None or not playground_dir.is_dir():
                return None
            source_time = await self._mtimes.get_dir_modified_time(base_dir) if base_dir else -1.0
            playground_time = await self._mtimes.get_dir_modified_time(playground_dir)
            return await asyncio.to_thread(
                self.builder.build_playground_app, app_name, source_time <= playground_time, base_dir
            )

        try:
            return await self._caches.cachified(
                self._caches.get("playground-app"),
                f"playground-{app_name}",
                get_fresh_value,
                ttl=APP_CACHE_TTL,
                swr=APP_CACHE_SWR,
                policy=policy,
                policy_for=lambda entry: self._resolver.for_dirs(entry, dependencies),
                check_value=_load_optional_playground,
                serialize=_dump,
            )
        except (ValueError, OSError) as e:
            logger.warning("Cannot build playground app: %s", e)
            return None

    # -- catalog -------------------------------------------------------------

    async def _scan_apps(self, policy: RefreshPolicy | None) -> list[App]:
        playground, problems, solutions, examples = await asyncio.gather(
            self.get_playground_app(policy),
            self._exercise_step_apps(AppType.PROBLEM, policy),
            self._exercise_step_apps(AppType.SOLUTION, policy),
            self._example_apps(policy),
        )
        apps = sort_apps(playground, problems, solutions, examples)
        logger.debug("Scanned %d apps in %s", len(apps), self.paths.root)
        return apps

    async def get_apps(self, policy: RefreshPolicy | None = None) -> list[App]:
        """Every app in display order.

        Args:
            policy: Explicit refresh policy, e.g. from a request override.

        Returns:
            Exercise apps, then examples, then the playground.

        """
        return await self._caches.cachified(
            self._caches.get("apps"),
            APPS_CACHE_KEY,
            lambda: self._scan_apps(policy),
            ttl=APPS_CACHE_TTL,
            policy=policy,
            policy_for=self._resolver.for_any_change,
        )

    async def get_exercises(self, policy: RefreshPolicy | None = None) -> list[Exercise]:
        """Exercises in directory order, each with its ordered steps."""
        apps = await self.get_apps(policy)
        exercise_dirs = await asyncio.to_thread(_subdirs, self.paths.exercises_dir)
        exercises: list[Exercise] = []
        for exercise_dir in exercise_dirs:
            parsed = parse_exercise_dir_name(exercise_dir.name)
            if parsed is None or parsed[1] == 0:
                continue
            if await self._is_directory_empty(exercise_dir, policy):
                continue
            exercise_number = parsed[1]
            problems = [a for a in apps if isinstance(a, ProblemApp) and a.exercise_number == exercise_number]
            solutions = [a for a in apps if isinstance(a, SolutionApp) and a.exercise_number == exercise_number]

            by_step: dict[int, dict[str, Any]] = {}
            for app in [*problems, *solutions]:
                by_step.setdefault(app.step_number, {"step_number": app.step_number})[str(app.type)] = app
            steps = [Step(**by_step[number]) for number in sorted(by_step)]

            title = await asyncio.to_thread(read_title, exercise_dir)
            exercises.append(
                Exercise(
                    exercise_number=exercise_number,
                    dir_name=exercise_dir.name,
                    full_path=exercise_dir,
                    title=title or exercise_dir.name,
                    steps=steps,
                    problems=problems,
                    solutions=solutions,
                )
            )
        return exercises

    async def get_exercise(self, exercise_number: int) -> Exercise | None:
        for exercise in await self.get_exercises():
            if exercise.exercise_number == exercise_number:
                return exercise
        return None

    async def get_exercise_app(
        self, app_type: AppType | str, exercise_number: int, step_number: int
    ) -> ProblemApp | SolutionApp | None:
        """Find a problem or solution app by its coordinates."""
        try:
            app_type = AppType(app_type)
        except ValueError:
            return None
        if app_type not in (AppType.PROBLEM, AppType.SOLUTION):
            return None
        for app in await self.get_apps():
            if (
                isinstance(app, ProblemApp | SolutionApp)
                and app.type == app_type
                and app.exercise_number == exercise_number
                and app.step_number == step_number
            ):
                return app
        return None

    async def get_app_by_name(self, name: str) -> App | None:
        """Find an app by name, accepting legacy example prefixes."""
        apps = await self.get_apps()
        for app in apps:
            if app.name == name:
                return app
        relative = example_relative_path(name)
        if relative is not None:
            alternative = EXAMPLE_NAME_PREFIX + relative.replace("/", SEPARATOR)
            for app in apps:
                if app.name == alternative:
                    return app
        return None

    async def require_app(self, name: str) -> App:
        """Like get_app_by_name but raises AppNotFoundError."""
        app = await self.get_app_by_name(name)
        if app is None:
            raise AppNotFoundError(f"No app named {name}", name=name)
        return app

    async def _neighbour(self, app: BaseApp, offset: int) -> ProblemApp | SolutionApp | None:
        apps = [a for a in await self.get_apps() if is_exercise_step_app(a)]
        names = [a.name for a in apps]
        if app.name not in names:
            raise AppNotFoundError(f"Could not find app {app.name}", name=app.name)
        index = names.index(app.name) + offset
        return apps[index] if 0 <= index < len(apps) else None

    async def get_next_exercise_app(self, app: BaseApp) -> ProblemApp | SolutionApp | None:
        return await self._neighbour(app, 1)

    async def get_prev_exercise_app(self, app: BaseApp) -> ProblemApp | SolutionApp | None:
        return await self._neighbour(app, -1)

    async def get_app_from_file(self, file_path: Path) -> App | None:
        """App whose directory contains ``file_path``."""
        for app in await self.get_apps():
            if file_path == app.full_path or file_path.is_relative_to(app.full_path):
                return app
        return None

    @staticmethod
    def get_app_display_name(app: App, all_apps: list[App]) -> str:
        """Human readable label used in app pickers."""
        if isinstance(app, ProblemApp | SolutionApp):
            icon = "💪" if app.type is AppType.PROBLEM else "🏁"
            return f"{app.exercise_number}.{app.step_number} {app.title} ({icon} {app.type})"
        if isinstance(app, PlaygroundApp):
            basis = next((other for other in all_apps if other.name == app.app_name), None)
            if basis is not None:
                return f"🛝 {AppCatalog.get_app_display_name(basis, all_apps)}"
            return f"🛝 {app.app_name}"
        return f"📚 {app.title} (example)"
