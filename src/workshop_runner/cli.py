"""workshop-runner command line.

Commands:
- `workshop-runner apps`: list apps in display order
- `workshop-runner exercises`: list exercises and their steps
- `workshop-runner diff APP1 APP2`: changed files between two apps
- `workshop-runner playground APP`: set the playground from an app
- `workshop-runner cache-clear`: clear runner caches
- `workshop-runner serve`: run the HTTP API

Example:
    $ workshop-runner apps --workshop ~/workshops/react-fundamentals
    $ workshop-runner diff 01.01.problem 01.01.solution --raw
"""

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from rich.table import Table

from workshop_runner.cache.policy import RefreshPolicy
from workshop_runner.catalog import AppCatalog
from workshop_runner.cli_utils import (
    EXIT_ERROR,
    _error,
    _info,
    _load_config,
    _setup_logging,
    _success,
    console,
)
from workshop_runner.core.async_utils import run_async_with_timeout
from workshop_runner.core.exceptions import WorkshopRunnerError
from workshop_runner.services import WorkshopServices

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5639

app = typer.Typer(
    name="workshop-runner",
    help="Run coding workshops locally: apps, playground, diffs and dev servers",
    no_args_is_help=True,
)

WorkshopOption = typer.Option(
    Path("."),
    "--workshop",
    "-w",
    help="Workshop root directory (default: current directory)",
)
ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Runner config file (default: <workshop>/.workshop-runner.yaml)",
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


def _run_with_services(
    workshop: Path,
    config_path: Path | None,
    action: Callable[[WorkshopServices], Awaitable[T]],
) -> T:
    """Build services, run ``action`` and shut the services down."""
    config = _load_config(workshop, config_path)

    async def main() -> T:
        services = WorkshopServices.create(config)
        try:
            return await action(services)
        finally:
            await services.shutdown()

    try:
        return run_async_with_timeout(main())
    except WorkshopRunnerError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None


@app.command(name="apps")
def apps_command(
    workshop: Path = WorkshopOption,
    config: Path | None = ConfigOption,
    fresh: bool = typer.Option(False, "--fresh", help="Ignore cached app data"),
    verbose: bool = VerboseOption,
) -> None:
    """List every app in display order."""
    _setup_logging(verbose=verbose, quiet=not verbose)
    policy = RefreshPolicy.force_fresh() if fresh else None
    apps = _run_with_services(workshop, config, lambda s: s.catalog.get_apps(policy))

    table = Table(title="Apps")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Port", justify="right")
    table.add_column("Title")
    for item in apps:
        port = item.port
        table.add_row(
            item.name,
            str(item.type),
            str(port) if port is not None else "-",
            AppCatalog.get_app_display_name(item, apps),
        )
    console.print(table)


@app.command(name="exercises")
def exercises_command(
    workshop: Path = WorkshopOption,
    config: Path | None = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """List exercises with their problem and solution steps."""
    _setup_logging(verbose=verbose, quiet=not verbose)
    exercises = _run_with_services(workshop, config, lambda s: s.catalog.get_exercises())
    if not exercises:
        _info("No exercises found")
        return

    for exercise in exercises:
        console.print(f"[bold]{exercise.exercise_number:02d}. {exercise.title}[/bold]")
        for step in exercise.steps:
            problem = step.problem.name if step.problem else "-"
            solution = step.solution.name if step.solution else "-"
            console.print(f"  step {step.step_number}: {problem} → {solution}")


@app.command(name="diff")
def diff_command(
    app1: str = typer.Argument(..., help="Name of the 'before' app"),
    app2: str = typer.Argument(..., help="Name of the 'after' app"),
    raw: bool = typer.Option(False, "--raw", help="Print git's diff output"),
    workshop: Path = WorkshopOption,
    config: Path | None = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show what changed between two apps."""
    _setup_logging(verbose=verbose, quiet=not verbose)

    async def action(services: WorkshopServices) -> str | list:
        first = await services.catalog.require_app(app1)
        second = await services.catalog.require_app(app2)
        if raw:
            return await services.diffs.get_diff_output_with_relative_paths(first, second)
        return await services.diffs.get_diff_files(first, second)

    result = _run_with_services(workshop, config, action)
    if isinstance(result, str):
        console.out(result, highlight=False)
        return
    if not result:
        _info("No changes")
        return
    table = Table(title=f"{app1} → {app2}")
    table.add_column("Status")
    table.add_column("Path", style="cyan")
    table.add_column("Line", justify="right")
    for diff_file in result:
        table.add_row(str(diff_file.status), diff_file.path, str(diff_file.line))
    console.print(table)


@app.command(name="playground")
def playground_command(
    app_name: str = typer.Argument(..., metavar="APP", help="App to copy into the playground"),
    reset: bool = typer.Option(False, "--reset", help="Delete the playground before copying"),
    workshop: Path = WorkshopOption,
    config: Path | None = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Set the playground from an app."""
    _setup_logging(verbose=verbose)

    async def action(services: WorkshopServices) -> str | None:
        source = await services.catalog.require_app(app_name)
        playground = await services.playground.set_playground(source.full_path, reset=reset)
        return playground.app_name if playground else None

    based_on = _run_with_services(workshop, config, action)
    _success(f"Playground set from {based_on or app_name}")


@app.command(name="cache-clear")
def cache_clear_command(
    name: str | None = typer.Option(None, "--name", "-n", help="Only clear this cache"),
    workshop: Path = WorkshopOption,
    config: Path | None = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Clear runner caches for the workshop."""
    _setup_logging(verbose=verbose, quiet=not verbose)

    async def action(services: WorkshopServices) -> list[str]:
        if name:
            try:
                await services.caches.clear(name)
            except KeyError:
                _error(f"Unknown cache: {name}. Known caches: {', '.join(services.caches.names())}")
                raise typer.Exit(code=EXIT_ERROR) from None
            return [name]
        await services.caches.clear_all()
        return services.caches.names()

    cleared = _run_with_services(workshop, config, action)
    _success(f"Cleared {len(cleared)} cache(s): {', '.join(cleared)}")


@app.command(name="serve")
def serve_command(
    host: str = typer.Option(DEFAULT_HOST, "--host", help="Interface to bind"),
    port: int = typer.Option(DEFAULT_PORT, "--port", "-p", help="Port to listen on"),
    workshop: Path = WorkshopOption,
    config: Path | None = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Run the HTTP API until interrupted."""
    import uvicorn

    from workshop_runner.server import create_app

    _setup_logging(verbose=verbose)
    runner_config = _load_config(workshop, config)
    services = WorkshopServices.create(runner_config)
    services.install_shutdown_hook()

    _info(f"Serving {runner_config.workshop_root} on http://{host}:{port}")
    server = uvicorn.Server(
        uvicorn.Config(create_app(services), host=host, port=port, log_level="debug" if verbose else "warning")
    )
    try:
        server.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")


if __name__ == "__main__":
    app()
