"""Filesystem layout of a workshop.

Provides:
- WorkshopPaths: every directory and file location the runner touches,
  derived once from RunnerConfig and passed to the services that need it.
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path

from workshop_runner.core.config import CONFIG_NAMESPACE, RunnerConfig

EXERCISES_DIRNAME = "exercises"
PLAYGROUND_DIRNAME = "playground"
SAVED_PLAYGROUNDS_DIRNAME = "saved-playgrounds"
EXAMPLES_DIR_CANDIDATES = ("examples", "example", "extra")
PACKAGE_CACHE_NAME = "workshop-runner"


@dataclass(frozen=True)
class WorkshopPaths:
    """Resolved locations for one workshop checkout.

    Attributes:
        root: Workshop root directory.
        cache_dir: Instance specific directory for filesystem caches.
        scratch_dir: Base directory for temporary diff copies.

    """

    root: Path
    cache_dir: Path
    scratch_dir: Path

    @classmethod
    def from_config(cls, config: RunnerConfig) -> "WorkshopPaths":
        return cls(
            root=config.workshop_root,
            cache_dir=config.cache_dir / config.instance_id,
            scratch_dir=Path(tempfile.gettempdir()) / PACKAGE_CACHE_NAME,
        )

    @property
    def exercises_dir(self) -> Path:
        return self.root / EXERCISES_DIRNAME

    @property
    def examples_dir(self) -> Path:
        """First existing examples directory, "examples" when none exists."""
        for candidate in EXAMPLES_DIR_CANDIDATES:
            path = self.root / candidate
            if path.is_dir():
                return path
        return self.root / EXAMPLES_DIR_CANDIDATES[0]

    @property
    def playground_dir(self) -> Path:
        return self.root / PLAYGROUND_DIRNAME

    @property
    def saved_playgrounds_dir(self) -> Path:
        return self.root / SAVED_PLAYGROUNDS_DIRNAME

    @property
    def playground_info_path(self) -> Path:
        """Side file holding the playground's source identity."""
        return self.root / "node_modules" / ".cache" / PACKAGE_CACHE_NAME / "playground.json"

    @property
    def diff_dir(self) -> Path:
        return self.scratch_dir / "diff" / self.root.name

    def namespace_dir(self, directory: Path | None = None) -> Path:
        """Runner metadata directory inside an app, or the workshop root."""
        return (directory or self.root) / CONFIG_NAMESPACE

    def relative(self, path: Path) -> str:
        """Posix path relative to the workshop root, "." for the root itself."""
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()
