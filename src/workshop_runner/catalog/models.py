"""Typed records produced by the app catalog.

Provides:
- AppType: problem / solution / example / playground
- DevInfo variants: how an app is run (script, browser, export, none)
- TestRunInfo variants: how an app is tested (script, browser, none)
- ProblemApp / SolutionApp / ExampleApp / PlaygroundApp and the App union
- Step / Exercise: problem and solution apps grouped by exercise
"""

from enum import StrEnum
from pathlib import Path
from typing import Annotated, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class AppType(StrEnum):
    PROBLEM = "problem"
    SOLUTION = "solution"
    EXAMPLE = "example"
    PLAYGROUND = "playground"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ScriptDevInfo(_Frozen):
    """App started by its dev script on a fixed port."""

    type: Literal["script"] = "script"
    port: int
    initial_route: str = "/"


class BrowserDevInfo(_Frozen):
    """Static app served directly from its directory."""

    type: Literal["browser"] = "browser"
    pathname: str


class ExportDevInfo(_Frozen):
    type: Literal["export"] = "export"
    pathname: str


class NoDevInfo(_Frozen):
    type: Literal["none"] = "none"


DevInfo = Annotated[
    ScriptDevInfo | BrowserDevInfo | ExportDevInfo | NoDevInfo,
    Field(discriminator="type"),
]


class ScriptTestInfo(_Frozen):
    """Tests run with the app's test script."""

    type: Literal["script"] = "script"
    script: str


class BrowserTestInfo(_Frozen):
    """Tests run in the browser from the listed *.test.* files."""

    type: Literal["browser"] = "browser"
    pathname: str
    test_files: list[str] = Field(default_factory=list)


class NoTestInfo(_Frozen):
    type: Literal["none"] = "none"


TestRunInfo = Annotated[
    ScriptTestInfo | BrowserTestInfo | NoTestInfo,
    Field(discriminator="type"),
]


class BaseApp(_Frozen):
    """Fields shared by every app.

    Attributes:
        name: Unique name derived from the app's directory.
        title: Display title, from the README heading or the name.
        dir_name: Basename of the app directory.
        full_path: Absolute app directory.
        relative_path: App directory relative to the workshop root.
        dev: How the app is run.
        test: How the app is tested.

    """

    name: str
    title: str
    dir_name: str
    full_path: Path
    relative_path: str
    dev: DevInfo = Field(default_factory=NoDevInfo)
    test: TestRunInfo = Field(default_factory=NoTestInfo)

    @property
    def port(self) -> int | None:
        return self.dev.port if isinstance(self.dev, ScriptDevInfo) else None


class ExerciseStepApp(BaseApp):
    exercise_number: int
    step_number: int
    subtitle: str | None = None


class ProblemApp(ExerciseStepApp):
    type: Literal[AppType.PROBLEM] = AppType.PROBLEM
    solution_name: str | None = None


class SolutionApp(ExerciseStepApp):
    type: Literal[AppType.SOLUTION] = AppType.SOLUTION
    problem_name: str | None = None


class ExampleApp(BaseApp):
    type: Literal[AppType.EXAMPLE] = AppType.EXAMPLE
    index: int = 0


class PlaygroundApp(BaseApp):
    """The student-editable playground.

    Attributes:
        app_name: Name of the app the playground was last set from.
        is_up_to_date: False once the source app changed after the last sync.

    """

    type: Literal[AppType.PLAYGROUND] = AppType.PLAYGROUND
    app_name: str | None = None
    is_up_to_date: bool = True


App = Annotated[
    ProblemApp | SolutionApp | ExampleApp | PlaygroundApp,
    Field(discriminator="type"),
]

APP_ADAPTER: TypeAdapter[App] = TypeAdapter(App)
APP_LIST_ADAPTER: TypeAdapter[list[App]] = TypeAdapter(list[App])


def is_exercise_step_app(app: BaseApp) -> bool:
    return isinstance(app, ProblemApp | SolutionApp)


class Step(_Frozen):
    """One step of an exercise; has a problem, a solution, or both."""

    step_number: int
    problem: ProblemApp | None = None
    solution: SolutionApp | None = None

    @model_validator(mode="after")
    def require_problem_or_solution(self) -> Self:
        if self.problem is None and self.solution is None:
            raise ValueError(f"Step {self.step_number} has neither a problem nor a solution")
        return self


class Exercise(_Frozen):
    """Problem and solution apps sharing an exercise number.

    Attributes:
        exercise_number: Number parsed from the exercise directory.
        dir_name: Exercise directory basename.
        full_path: Absolute exercise directory.
        title: README heading or the directory name.
        steps: Steps ordered by step number, gaps dropped.
        problems: Problem apps of this exercise.
        solutions: Solution apps of this exercise.

    """

    exercise_number: int
    dir_name: str
    full_path: Path
    title: str
    steps: list[Step] = Field(default_factory=list)
    problems: list[ProblemApp] = Field(default_factory=list)
    solutions: list[SolutionApp] = Field(default_factory=list)
