"""Building app records from directories.

Everything here is synchronous filesystem work; the catalog service runs it
through asyncio.to_thread and caches the results.
"""

import logging
import os
import re
from pathlib import Path

from workshop_runner.core.config import AppConfig, WorkshopConfig
from workshop_runner.core.exceptions import CatalogError
from workshop_runner.core.gitignore import GitignoreParser
from workshop_runner.core.paths import WorkshopPaths

from .models import (
    AppType,
    BrowserDevInfo,
    BrowserTestInfo,
    DevInfo,
    ExampleApp,
    ExportDevInfo,
    NoDevInfo,
    NoTestInfo,
    PlaygroundApp,
    ProblemApp,
    ScriptDevInfo,
    ScriptTestInfo,
    SolutionApp,
    TestRunInfo,
)
from .naming import (
    PLAYGROUND_PORT,
    app_name_from_path,
    app_pathname,
    example_app_port,
    exercise_app_port,
    find_counterpart_dir,
    parse_app_dir_name,
    parse_exercise_dir_name,
)

logger = logging.getLogger(__name__)

README_NAMES = ("README.mdx", "README.md")
HEADING_PATTERN = re.compile(r"^#\s+(?P<title>.+?)\s*$", re.MULTILINE)
TEST_FILE_MARKER = ".test."
INDEX_FILE_PATTERN = re.compile(r"^index\.[A-Za-z0-9]+$")


def read_title(directory: Path) -> str | None:
    """First level-one heading of the directory's README, if any."""
    for readme in README_NAMES:
        try:
            content = (directory / readme).read_text(encoding="utf-8")
        except FileNotFoundError:
            continue
        match = HEADING_PATTERN.search(content)
        if match:
            return match.group("title").strip("`* ")
    return None


def is_directory_empty(directory: Path) -> bool:
    """True when a directory has no entries besides git-ignored ones.

    Unreadable or missing directories count as empty.
    """
    try:
        names = sorted(os.listdir(directory))
    except (FileNotFoundError, NotADirectoryError):
        return True
    except PermissionError as e:
        logger.warning("Cannot list %s, treating as empty: %s", directory, e)
        return True
    if not names:
        return True
    parser = GitignoreParser(directory, default_patterns=())
    return all(parser.is_ignored_relative(name, is_dir=(directory / name).is_dir()) for name in names)


def list_test_files(directory: Path) -> list[str]:
    try:
        return sorted(name for name in os.listdir(directory) if TEST_FILE_MARKER in name)
    except NotADirectoryError:
        logger.info("Skipping non-directory path when looking for tests: %s", directory)
        return []
    except FileNotFoundError:
        return []


def build_test_info(config: AppConfig, name: str, test_dir: Path) -> TestRunInfo:
    """Describe how an app is tested.

    Args:
        config: The app's settings.
        name: App name, used for the browser test pathname.
        test_dir: Directory holding the *.test.* files (the solution dir for
            problem apps).

    """
    if not config.test_tab_enabled:
        return NoTestInfo()
    if config.test_script:
        return ScriptTestInfo(script=config.test_script)
    test_files = list_test_files(test_dir)
    if test_files:
        return BrowserTestInfo(pathname=f"{app_pathname(name)}test/", test_files=test_files)
    return NoTestInfo()


def build_dev_info(config: AppConfig, name: str, port: int, app_dir: Path) -> DevInfo:
    """Describe how an app is run."""
    if config.dev_script:
        return ScriptDevInfo(port=port, initial_route=config.initial_route)
    if config.is_export_app:
        return ExportDevInfo(pathname=app_pathname(name))
    if not config.has_package_json or _has_index_file(app_dir):
        return BrowserDevInfo(pathname=app_pathname(name))
    return NoDevInfo()


def _has_index_file(app_dir: Path) -> bool:
    try:
        return any(INDEX_FILE_PATTERN.match(name) for name in os.listdir(app_dir))
    except OSError:
        return False


class AppBuilder:
    """Turns app directories into app records."""

    def __init__(self, paths: WorkshopPaths, workshop_config: WorkshopConfig) -> None:
        self.paths = paths
        self.workshop_config = workshop_config

    def _load_config(self, app_dir: Path) -> AppConfig:
        return AppConfig.load(app_dir, self.workshop_config)

    def build_exercise_step_app(self, app_dir: Path) -> ProblemApp | SolutionApp:
        """Build a problem or solution app.

        Raises:
            CatalogError: If the directory names do not follow the
                exercise/step convention.
            ValueError: If the app's package.json is invalid.

        """
        info = parse_app_dir_name(app_dir.name)
        if info is None or info.step_number == 0:
            raise CatalogError(f"Cannot identify step number of {app_dir}")
        exercise = parse_exercise_dir_name(app_dir.parent.name)
        if exercise is None or exercise[1] == 0:
            raise CatalogError(f"Cannot identify exercise number of {app_dir}")
        exercise_number = exercise[1]

        name = app_name_from_path(self.paths, app_dir)
        counterpart = find_counterpart_dir(app_dir)
        counterpart_name = app_name_from_path(self.paths, counterpart) if counterpart else None
        config = self._load_config(app_dir)
        port = exercise_app_port(info.type, exercise_number, info.step_number)

        # Problem apps are tested against the solution's test files
        test_dir = counterpart if info.type is AppType.PROBLEM and counterpart else app_dir
        common = {
            "name": name,
            "title": read_title(app_dir) or info.subtitle or name,
            "dir_name": app_dir.name,
            "full_path": app_dir,
            "relative_path": self.paths.relative(app_dir),
            "exercise_number": exercise_number,
            "step_number": info.step_number,
            "subtitle": info.subtitle,
            "test": build_test_info(config, name, test_dir),
            "dev": build_dev_info(config, name, port, app_dir),
        }
        if info.type is AppType.PROBLEM:
            return ProblemApp(solution_name=counterpart_name, **common)
        return SolutionApp(problem_name=counterpart_name, **common)

    def build_example_app(self, app_dir: Path, index: int) -> ExampleApp:
        name = app_name_from_path(self.paths, app_dir)
        config = self._load_config(app_dir)
        return ExampleApp(
            name=name,
            title=read_title(app_dir) or name,
            dir_name=app_dir.name,
            full_path=app_dir,
            relative_path=self.paths.relative(app_dir),
            index=index,
            test=build_test_info(config, name, app_dir),
            dev=build_dev_info(config, name, example_app_port(index), app_dir),
        )

    def build_playground_app(self, app_name: str, is_up_to_date: bool, base_dir: Path | None = None) -> PlaygroundApp:
        """Build the playground app.

        Args:
            app_name: Name of the app the playground mirrors.
            is_up_to_date: Whether the playground is newer than its source.
            base_dir: Source app directory; its solution provides the
                browser test files when the source is a problem app.

        """
        playground_dir = self.paths.playground_dir
        name = app_name_from_path(self.paths, playground_dir)
        config = self._load_config(playground_dir)
        test_dir = playground_dir
        if base_dir is not None:
            info = parse_app_dir_name(base_dir.name)
            counterpart = find_counterpart_dir(base_dir) if info and info.type is AppType.PROBLEM else None
            test_dir = counterpart or base_dir
        return PlaygroundApp(
            name=name,
            title=read_title(playground_dir) or name,
            dir_name=playground_dir.name,
            full_path=playground_dir,
            relative_path=self.paths.relative(playground_dir),
            app_name=app_name,
            is_up_to_date=is_up_to_date,
            test=build_test_info(config, name, test_dir),
            dev=build_dev_info(config, name, PLAYGROUND_PORT, playground_dir),
        )
