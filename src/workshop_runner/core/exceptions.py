"""Exception hierarchy for workshop-runner.

Operational outcomes (port conflicts, "not running", "same app") are returned
as typed values by the services. Only infrastructural failures and programming
errors are raised, always as a subclass of WorkshopRunnerError.
"""

__all__ = [
    "AppNotFoundError",
    "CacheError",
    "CatalogError",
    "ConfigError",
    "DeployedModeError",
    "DiffError",
    "DiffParseError",
    "DiffToolNotFoundError",
    "HookError",
    "WorkshopRunnerError",
]


class WorkshopRunnerError(Exception):
    """Base class for all workshop-runner errors."""


class ConfigError(WorkshopRunnerError):
    """Runner or workshop configuration is missing or invalid."""


class CatalogError(WorkshopRunnerError):
    """App catalog could not be built or queried."""


class AppNotFoundError(CatalogError):
    """No app matches the requested name or path.

    Attributes:
        name: The app name (or path) that could not be resolved.

    """

    def __init__(self, message: str, *, name: str = "") -> None:
        super().__init__(message)
        self.name = name


class CacheError(WorkshopRunnerError):
    """Cache backend failed to read or write an entry.

    Attributes:
        cache_name: Name of the cache the failure happened in.
        key: Cache key being accessed.

    """

    def __init__(self, message: str, *, cache_name: str = "", key: str = "") -> None:
        super().__init__(message)
        self.cache_name = cache_name
        self.key = key


class HookError(WorkshopRunnerError):
    """A playground pre/post hook script exited unsuccessfully.

    Attributes:
        script: Path of the hook script that failed.
        exit_code: Exit code reported by the hook process.

    """

    def __init__(self, message: str, *, script: str = "", exit_code: int | None = None) -> None:
        super().__init__(message)
        self.script = script
        self.exit_code = exit_code


class DeployedModeError(WorkshopRunnerError):
    """Operation needs local processes but the runner is in deployed mode."""


class DiffError(WorkshopRunnerError):
    """Diff computation failed."""


class DiffToolNotFoundError(DiffError):
    """The git executable used for diffing could not be spawned.

    Attributes:
        command: The executable that was looked up.

    """

    def __init__(self, message: str, *, command: str = "git") -> None:
        super().__init__(message)
        self.command = command


class DiffParseError(DiffError):
    """Diff output is malformed or contains an unsupported change kind.

    Attributes:
        line: The offending diff line, if known.

    """

    def __init__(self, message: str, *, line: str = "") -> None:
        super().__init__(message)
        self.line = line
