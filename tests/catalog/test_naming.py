"""Tests for app naming, directory conventions and ports."""

from pathlib import Path

import pytest

from workshop_runner.catalog.models import AppType
from workshop_runner.catalog.naming import (
    app_name_from_path,
    app_pathname,
    example_relative_path,
    exercise_app_port,
    find_counterpart_dir,
    full_path_from_app_name,
    parse_app_dir_name,
    parse_exercise_app_id,
    parse_exercise_dir_name,
)
from workshop_runner.core.paths import WorkshopPaths


@pytest.fixture
def paths(workshop_root: Path, tmp_path: Path) -> WorkshopPaths:
    return WorkshopPaths(root=workshop_root, cache_dir=tmp_path / "cache", scratch_dir=tmp_path / "scratch")


class TestDirectoryNames:
    def test_app_dir_with_subtitle(self) -> None:
        info = parse_app_dir_name("01.problem.hello-world")
        assert info is not None
        assert info.step_part == "01"
        assert info.step_number == 1
        assert info.type is AppType.PROBLEM
        assert info.subtitle == "hello-world"

    def test_app_dir_without_subtitle(self) -> None:
        info = parse_app_dir_name("3.solution")
        assert info is not None
        assert info.type is AppType.SOLUTION
        assert info.subtitle is None

    @pytest.mark.parametrize("name", ["problem", "01.final", "README.mdx", "x1.problem"])
    def test_non_app_dirs(self, name: str) -> None:
        assert parse_app_dir_name(name) is None

    def test_exercise_dir(self) -> None:
        assert parse_exercise_dir_name("02.hooks") == ("02", 2)
        assert parse_exercise_dir_name("hooks") is None


class TestPorts:
    """Ports are fixed per exercise and step."""

    @pytest.mark.parametrize(
        ("app_type", "exercise", "step", "port"),
        [
            (AppType.PROBLEM, 1, 1, 6001),
            (AppType.SOLUTION, 1, 1, 7001),
            (AppType.PROBLEM, 2, 3, 6013),
            (AppType.SOLUTION, 10, 9, 7099),
        ],
    )
    def test_exercise_app_port(self, app_type: AppType, exercise: int, step: int, port: int) -> None:
        assert exercise_app_port(app_type, exercise, step) == port


class TestAppNames:
    def test_exercise_app_name(self, paths: WorkshopPaths) -> None:
        app_dir = paths.exercises_dir / "02.hooks" / "01.problem"
        assert app_name_from_path(paths, app_dir) == "02.01.problem"

    def test_example_app_name(self, paths: WorkshopPaths) -> None:
        assert app_name_from_path(paths, paths.examples_dir / "counter") == "example.counter"

    def test_nested_example_name_uses_separator(self, paths: WorkshopPaths) -> None:
        assert app_name_from_path(paths, paths.examples_dir / "forms" / "login") == "example.forms__sep__login"

    def test_playground_name(self, paths: WorkshopPaths) -> None:
        assert app_name_from_path(paths, paths.playground_dir) == "playground"

    def test_other_directory_name(self, paths: WorkshopPaths) -> None:
        assert app_name_from_path(paths, paths.root / "misc" / "demo") == "misc__sep__demo"

    def test_parse_name(self) -> None:
        app_id = parse_exercise_app_id("02.01.problem")
        assert app_id is not None
        assert (app_id.exercise_number, app_id.step_number, app_id.type) == (2, 1, AppType.PROBLEM)

    def test_parse_path(self, paths: WorkshopPaths) -> None:
        app_dir = paths.exercises_dir / "01.basics" / "02.solution.styles"
        app_id = parse_exercise_app_id(str(app_dir), paths)
        assert app_id is not None
        assert (app_id.exercise_part, app_id.step_part, app_id.type) == ("01", "02", AppType.SOLUTION)

    def test_parse_unrelated_name(self) -> None:
        assert parse_exercise_app_id("example.counter") is None

    def test_legacy_example_prefixes(self) -> None:
        assert example_relative_path("example.counter") == "counter"
        assert example_relative_path("extra.counter") == "counter"
        assert example_relative_path("examples.forms__sep__login") == "forms/login"
        assert example_relative_path("01.01.problem") is None

    def test_pathname(self) -> None:
        assert app_pathname("example.counter") == "/app/example.counter/"


class TestFullPathFromAppName:
    """Names decode back to the directories they came from."""

    def test_exercise_app(self, paths: WorkshopPaths) -> None:
        assert full_path_from_app_name(paths, "01.02.solution") == paths.exercises_dir / "01.basics" / "02.solution.styles"

    def test_example(self, paths: WorkshopPaths) -> None:
        assert full_path_from_app_name(paths, "example.counter") == paths.examples_dir / "counter"

    def test_playground(self, paths: WorkshopPaths) -> None:
        assert full_path_from_app_name(paths, "playground") == paths.playground_dir

    def test_unknown(self, paths: WorkshopPaths) -> None:
        assert full_path_from_app_name(paths, "09.01.problem") is None
        assert full_path_from_app_name(paths, "example.missing") is None


class TestCounterparts:
    def test_problem_to_solution(self, paths: WorkshopPaths) -> None:
        problem = paths.exercises_dir / "01.basics" / "01.problem.hello"
        assert find_counterpart_dir(problem) == paths.exercises_dir / "01.basics" / "01.solution.hello"

    def test_solution_to_problem(self, paths: WorkshopPaths) -> None:
        solution = paths.exercises_dir / "02.hooks" / "01.solution"
        assert find_counterpart_dir(solution) == paths.exercises_dir / "02.hooks" / "01.problem"

    def test_missing_counterpart(self, tmp_path: Path) -> None:
        lonely = tmp_path / "01.only" / "01.problem"
        lonely.mkdir(parents=True)
        assert find_counterpart_dir(lonely) is None
