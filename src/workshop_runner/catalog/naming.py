"""App names, directory conventions and ports.

Directory layout::

    exercises/<NN>.<exercise title>/<NN>.problem[.<subtitle>]
    exercises/<NN>.<exercise title>/<NN>.solution[.<subtitle>]
    examples/<name>
    playground/

Names are derived from paths and decoded back by scanning the same layout:

- ``playground``
- ``example.<path below examples, "/" replaced by __sep__>``
- ``<exercise prefix>.<step prefix>.<problem|solution>``, e.g. ``02.01.problem``
- anything else: the path relative to the workshop root, joined by __sep__
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from workshop_runner.core.paths import WorkshopPaths

from .models import AppType

logger = logging.getLogger(__name__)

APP_DIR_PATTERN = re.compile(r"^(?P<step>\d+)\.(?P<type>problem|solution)(\.(?P<subtitle>.*))?$")
EXERCISE_DIR_PATTERN = re.compile(r"^(?P<number>\d+)\.")
EXERCISE_APP_NAME_PATTERN = re.compile(r"^(?P<exercise>\d+)\.(?P<step>\d+)\.(?P<type>problem|solution)$")

SEPARATOR = "__sep__"
PLAYGROUND_APP_NAME = "playground"
EXAMPLE_NAME_PREFIX = "example."
LEGACY_EXAMPLE_NAME_PREFIXES = ("extra.", "examples.")

PORT_BASES = {AppType.PROBLEM: 6000, AppType.SOLUTION: 7000}
EXAMPLE_PORT_BASE = 8000
PLAYGROUND_PORT = 4000
PORTS_PER_EXERCISE = 10


@dataclass(frozen=True)
class AppDirInfo:
    """Parsed ``<step>.<type>[.<subtitle>]`` directory name.

    Attributes:
        step_part: The raw step prefix, zero padding preserved.
        step_number: Integer step number.
        type: PROBLEM or SOLUTION.
        subtitle: Text after the type, if any.

    """

    step_part: str
    step_number: int
    type: AppType
    subtitle: str | None


@dataclass(frozen=True)
class ExerciseAppId:
    """Exercise/step/type triple encoded in an exercise app's name."""

    exercise_part: str
    step_part: str
    type: AppType

    @property
    def exercise_number(self) -> int:
        return int(self.exercise_part)

    @property
    def step_number(self) -> int:
        return int(self.step_part)


def parse_app_dir_name(dir_name: str) -> AppDirInfo | None:
    """Parse an exercise app directory name, None when it does not match."""
    match = APP_DIR_PATTERN.match(dir_name)
    if match is None:
        return None
    return AppDirInfo(
        step_part=match.group("step"),
        step_number=int(match.group("step")),
        type=AppType(match.group("type")),
        subtitle=match.group("subtitle"),
    )


def parse_exercise_dir_name(dir_name: str) -> tuple[str, int] | None:
    """Return (raw prefix, number) of an exercise directory name."""
    match = EXERCISE_DIR_PATTERN.match(dir_name)
    if match is None:
        return None
    return match.group("number"), int(match.group("number"))


def exercise_app_port(app_type: AppType, exercise_number: int, step_number: int) -> int:
    """Deterministic dev-server port of a problem or solution app.

    Examples:
        >>> exercise_app_port(AppType.PROBLEM, 2, 3)
        6013

    """
    return PORT_BASES[app_type] + (exercise_number - 1) * PORTS_PER_EXERCISE + step_number


def example_app_port(index: int) -> int:
    return EXAMPLE_PORT_BASE + index


def app_name_from_path(paths: WorkshopPaths, full_path: Path) -> str:
    """Derive the app name of a directory."""
    if full_path == paths.playground_dir:
        return PLAYGROUND_APP_NAME

    try:
        rel = full_path.relative_to(paths.examples_dir)
        return EXAMPLE_NAME_PREFIX + SEPARATOR.join(rel.parts)
    except ValueError:
        pass

    try:
        parts = full_path.relative_to(paths.exercises_dir).parts
    except ValueError:
        parts = ()
    if len(parts) == 2:
        exercise = parse_exercise_dir_name(parts[0])
        app_dir = parse_app_dir_name(parts[1])
        if exercise is not None and app_dir is not None:
            return f"{exercise[0]}.{app_dir.step_part}.{app_dir.type}"

    try:
        return SEPARATOR.join(full_path.relative_to(paths.root).parts)
    except ValueError:
        return SEPARATOR.join(full_path.parts[1:])


def parse_exercise_app_id(name_or_path: str, paths: WorkshopPaths | None = None) -> ExerciseAppId | None:
    """Extract exercise/step/type from an app name or an app directory path.

    Examples:
        >>> parse_exercise_app_id("02.01.problem")
        ExerciseAppId(exercise_part='02', step_part='01', type=<AppType.PROBLEM: 'problem'>)

    """
    if "/" in name_or_path or "\\" in name_or_path:
        path = Path(name_or_path)
        if paths is not None:
            try:
                path = path.relative_to(paths.exercises_dir)
            except ValueError:
                return None
        parts = path.parts[-2:]
        if len(parts) != 2:
            return None
        exercise = parse_exercise_dir_name(parts[0])
        app_dir = parse_app_dir_name(parts[1])
        if exercise is None or app_dir is None:
            return None
        return ExerciseAppId(exercise[0], app_dir.step_part, app_dir.type)

    match = EXERCISE_APP_NAME_PATTERN.match(name_or_path)
    if match is None:
        return None
    return ExerciseAppId(match.group("exercise"), match.group("step"), AppType(match.group("type")))


def example_relative_path(name: str) -> str | None:
    """Relative path below the examples dir encoded in an example app name."""
    for prefix in (EXAMPLE_NAME_PREFIX, *LEGACY_EXAMPLE_NAME_PREFIXES):
        if name.startswith(prefix):
            return name[len(prefix) :].replace(SEPARATOR, "/")
    return None


def full_path_from_app_name(paths: WorkshopPaths, name: str) -> Path | None:
    """Find the directory an app name was derived from.

    Returns:
        The app directory, or None when no directory matches.

    """
    if name == PLAYGROUND_APP_NAME:
        return paths.playground_dir

    example_rel = example_relative_path(name)
    if example_rel is not None:
        candidate = paths.examples_dir / example_rel
        return candidate if candidate.is_dir() else None

    app_id = parse_exercise_app_id(name)
    if app_id is not None:
        return _find_exercise_app_dir(paths, app_id)

    candidate = paths.root / name.replace(SEPARATOR, "/")
    return candidate if candidate.is_dir() else None


def _sorted_subdirs(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.is_dir())
    except FileNotFoundError:
        return []


def _find_exercise_app_dir(paths: WorkshopPaths, app_id: ExerciseAppId) -> Path | None:
    for exercise_dir in _sorted_subdirs(paths.exercises_dir):
        exercise = parse_exercise_dir_name(exercise_dir.name)
        if exercise is None or exercise[0] != app_id.exercise_part:
            continue
        for app_dir in _sorted_subdirs(exercise_dir):
            info = parse_app_dir_name(app_dir.name)
            if info is not None and info.step_part == app_id.step_part and info.type is app_id.type:
                return app_dir
    return None


def find_counterpart_dir(app_dir: Path) -> Path | None:
    """Sibling solution dir of a problem dir, or problem dir of a solution.

    The counterpart is the sibling of the other type with the same step
    number: ``01.problem.x`` pairs with ``01.solution.y``.
    """
    info = parse_app_dir_name(app_dir.name)
    if info is None:
        return None
    other = AppType.SOLUTION if info.type is AppType.PROBLEM else AppType.PROBLEM
    for sibling in _sorted_subdirs(app_dir.parent):
        sibling_info = parse_app_dir_name(sibling.name)
        if sibling_info is not None and sibling_info.type is other and sibling_info.step_number == info.step_number:
            return sibling
    return None


def app_pathname(name: str) -> str:
    """URL path an app is served under."""
    return f"/app/{name}/"
