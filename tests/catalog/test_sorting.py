"""Tests for catalog ordering."""

from pathlib import Path

from workshop_runner.catalog.models import ExampleApp, PlaygroundApp, ProblemApp, SolutionApp
from workshop_runner.catalog.sorting import compare_exercise_apps, sort_apps


def _problem(exercise: int, step: int) -> ProblemApp:
    name = f"{exercise:02d}.{step:02d}.problem"
    return ProblemApp(
        name=name,
        title=name,
        dir_name=f"{step:02d}.problem",
        full_path=Path("/ws") / name,
        relative_path=name,
        exercise_number=exercise,
        step_number=step,
    )


def _solution(exercise: int, step: int) -> SolutionApp:
    name = f"{exercise:02d}.{step:02d}.solution"
    return SolutionApp(
        name=name,
        title=name,
        dir_name=f"{step:02d}.solution",
        full_path=Path("/ws") / name,
        relative_path=name,
        exercise_number=exercise,
        step_number=step,
    )


def _example(name: str, index: int) -> ExampleApp:
    return ExampleApp(
        name=f"example.{name}",
        title=name,
        dir_name=name,
        full_path=Path("/ws/examples") / name,
        relative_path=f"examples/{name}",
        index=index,
    )


def _playground() -> PlaygroundApp:
    return PlaygroundApp(
        name="playground",
        title="playground",
        dir_name="playground",
        full_path=Path("/ws/playground"),
        relative_path="playground",
        app_name="01.01.problem",
    )


class TestCompareExerciseApps:
    def test_same_type_orders_by_exercise_then_step(self) -> None:
        assert compare_exercise_apps(_problem(1, 2), _problem(1, 1)) > 0
        assert compare_exercise_apps(_problem(1, 9), _problem(2, 1)) < 0
        assert compare_exercise_apps(_solution(2, 1), _solution(2, 1)) == 0

    def test_mixed_types_are_asymmetric(self) -> None:
        """A problem and a solution of the same step both compare greater."""
        problem, solution = _problem(1, 1), _solution(1, 1)
        assert compare_exercise_apps(problem, solution) == 1
        assert compare_exercise_apps(solution, problem) == 1

    def test_solution_before_later_problem(self) -> None:
        assert compare_exercise_apps(_solution(1, 1), _problem(1, 2)) == -1
        assert compare_exercise_apps(_solution(1, 3), _problem(2, 1)) == -1


class TestSortApps:
    """Exercise apps, then examples by name, then the playground."""

    def test_interleaves_problems_and_solutions(self) -> None:
        problems = [_problem(1, 1), _problem(1, 2), _problem(2, 1)]
        solutions = [_solution(1, 1), _solution(1, 2), _solution(2, 1)]
        names = [app.name for app in sort_apps(None, problems, solutions, [])]
        assert names == [
            "01.01.problem",
            "01.01.solution",
            "01.02.problem",
            "01.02.solution",
            "02.01.problem",
            "02.01.solution",
        ]

    def test_examples_and_playground_last(self) -> None:
        apps = sort_apps(
            _playground(),
            [_problem(1, 1)],
            [_solution(1, 1)],
            [_example("zebra", 0), _example("counter", 1)],
        )
        assert [app.name for app in apps] == [
            "01.01.problem",
            "01.01.solution",
            "example.counter",
            "example.zebra",
            "playground",
        ]

    def test_empty(self) -> None:
        assert sort_apps(None, [], [], []) == []
