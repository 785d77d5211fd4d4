"""Shared helpers for the workshop-runner CLI.

Provides exit codes, the shared rich console, message helpers and logging
setup used by every command.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from workshop_runner.core.config import RunnerConfig, load_runner_config
from workshop_runner.core.exceptions import ConfigError

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

console = Console()


def _error(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")


def _warning(message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {message}")


def _info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def _success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def _setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route logging through rich.

    Args:
        verbose: Show debug messages.
        quiet: Only show warnings and errors.

    """
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )


def _validate_workshop_path(path: Path) -> Path:
    """Resolve the workshop root or exit with an error."""
    workshop_root = path.expanduser().resolve()
    if not workshop_root.is_dir():
        _error(f"Workshop directory does not exist: {workshop_root}")
        raise typer.Exit(code=EXIT_ERROR)
    return workshop_root


def _load_config(workshop: Path, config: Path | None = None) -> RunnerConfig:
    """Load runner configuration or exit with the config error code."""
    workshop_root = _validate_workshop_path(workshop)
    try:
        return load_runner_config(workshop_root, config_path=config)
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
