"""Ordering of the app catalog.

Exercise apps come first, then examples by name, then the playground.
Exercise apps of the same type order by (exercise, step). Problem and
solution apps compare asymmetrically: ``compare_exercise_apps(p, s)`` and
``compare_exercise_apps(s, p)`` can both return 1 for the same pair. The
resulting order depends on the input order, so callers always pass
problems before solutions, each in scan order.
"""

from collections.abc import Iterable
from functools import cmp_to_key

from .models import App, ExampleApp, PlaygroundApp, ProblemApp, SolutionApp

ExerciseStepApp = ProblemApp | SolutionApp


def compare_exercise_apps(a: ExerciseStepApp, b: ExerciseStepApp) -> int:
    if a.type == b.type:
        if a.exercise_number == b.exercise_number:
            return a.step_number - b.step_number
        return a.exercise_number - b.exercise_number

    if isinstance(a, ProblemApp):
        if a.exercise_number == b.exercise_number:
            return 1 if a.step_number <= b.step_number else -1
        return 1 if a.exercise_number <= b.exercise_number else -1

    if a.exercise_number == b.exercise_number:
        return -1 if a.step_number < b.step_number else 1
    return -1 if a.exercise_number < b.exercise_number else 1


def sort_apps(
    playground: PlaygroundApp | None,
    problems: Iterable[ProblemApp],
    solutions: Iterable[SolutionApp],
    examples: Iterable[ExampleApp],
) -> list[App]:
    """Sort the catalog.

    Args:
        playground: The playground app, if one exists.
        problems: Problem apps in scan order.
        solutions: Solution apps in scan order.
        examples: Example apps.

    Returns:
        The catalog in display order.

    """
    exercise_apps: list[ExerciseStepApp] = [*problems, *solutions]
    ordered: list[App] = sorted(exercise_apps, key=cmp_to_key(compare_exercise_apps))
    ordered.extend(sorted(examples, key=lambda app: app.name))
    if playground is not None:
        ordered.append(playground)
    return ordered
