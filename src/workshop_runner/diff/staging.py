"""Scratch copies of two apps prepared for diffing.

Each diff copies both apps into ``<scratch>/diff/<workshop>/<app name>/<id>``
with a random id shared by the pair, so concurrent diffs never collide.
Files nobody wants in a diff are left out of the copies: a fixed default
list, the workshop's and each app's ``.gitignore`` and
``workshop/.diffignore``, and ``package.json`` when the two apps' manifests
differ only by name.
"""

import json
import logging
import os
import secrets
import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pathspec import GitIgnoreSpec

from workshop_runner.catalog.models import BaseApp
from workshop_runner.core.config import CONFIG_NAMESPACE
from workshop_runner.core.gitignore import read_ignore_file
from workshop_runner.core.paths import WorkshopPaths
from workshop_runner.core.walker import walk_tree

logger = logging.getLogger(__name__)

DIFFIGNORE_FILENAME = ".diffignore"

DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    "**/README.*",
    "**/package-lock.json",
    "**/.DS_Store",
    "**/.vscode",
    "**/.idea",
    "**/.git",
    "**/*.db",
    f"**/{CONFIG_NAMESPACE}/**",
)


@dataclass(frozen=True)
class StagedPair:
    """Scratch copies of two apps.

    Attributes:
        base_dir: Directory the copies live under, used as the diff cwd.
        app1_dir: Copy of the first app.
        app2_dir: Copy of the second app.

    """

    base_dir: Path
    app1_dir: Path
    app2_dir: Path

    @property
    def app1_rel(self) -> str:
        return self.app1_dir.relative_to(self.base_dir).as_posix()

    @property
    def app2_rel(self) -> str:
        return self.app2_dir.relative_to(self.base_dir).as_posix()

    def remove(self) -> None:
        for directory in (self.app1_dir, self.app2_dir):
            shutil.rmtree(directory, ignore_errors=True)


def _read_manifest(app_dir: Path) -> dict[str, Any]:
    try:
        data = json.loads((app_dir / "package.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def manifests_differ_only_by_name(app1_dir: Path, app2_dir: Path) -> bool:
    """True if the two package.json files are equal once ``name`` is dropped.

    Missing or unreadable manifests count as empty.
    """
    first = _read_manifest(app1_dir)
    second = _read_manifest(app2_dir)
    first.pop("name", None)
    second.pop("name", None)
    return first == second


def diff_ignore_patterns(paths: WorkshopPaths, app_dir: Path, extra: Iterable[str] = ()) -> list[str]:
    """Every ignore pattern applied when copying ``app_dir`` for a diff."""
    return [
        *DEFAULT_IGNORE_PATTERNS,
        *extra,
        *read_ignore_file(paths.root / ".gitignore"),
        *read_ignore_file(paths.namespace_dir() / DIFFIGNORE_FILENAME),
        *read_ignore_file(app_dir / ".gitignore"),
        *read_ignore_file(paths.namespace_dir(app_dir) / DIFFIGNORE_FILENAME),
    ]


def copy_unignored_files(src_dir: Path, dest_dir: Path, patterns: Iterable[str]) -> int:
    """Copy ``src_dir`` to ``dest_dir`` leaving out ignored entries.

    Args:
        src_dir: Directory to copy.
        dest_dir: Target, replaced if it exists.
        patterns: Gitignore-style patterns relative to ``src_dir``.

    Returns:
        Number of files copied.

    """
    spec = GitIgnoreSpec.from_lines(list(patterns))

    def skip(rel_path: str, is_dir: bool) -> bool:
        return spec.match_file(rel_path) or (is_dir and spec.match_file(rel_path + "/"))

    shutil.rmtree(dest_dir, ignore_errors=True)
    dest_dir.mkdir(parents=True)
    copied = 0
    for entry in walk_tree(src_dir, skip=skip):
        target = dest_dir / entry.rel_path
        if entry.is_dir:
            target.mkdir(exist_ok=True)
        elif entry.is_symlink:
            os.symlink(os.readlink(entry.path), target)
        else:
            shutil.copy2(entry.path, target)
            copied += 1
    return copied


def stage_apps(paths: WorkshopPaths, app1: BaseApp, app2: BaseApp, stage_id: str | None = None) -> StagedPair:
    """Copy two apps into fresh scratch directories.

    Args:
        paths: Workshop layout.
        app1: First app (the "before" side).
        app2: Second app (the "after" side).
        stage_id: Directory id shared by both copies, random when None.

    Returns:
        The staged pair.

    """
    stage_id = stage_id or secrets.token_hex(6)
    base_dir = paths.diff_dir
    pair = StagedPair(
        base_dir=base_dir,
        app1_dir=base_dir / app1.name / stage_id,
        app2_dir=base_dir / app2.name / stage_id,
    )
    extra = ["package.json"] if manifests_differ_only_by_name(app1.full_path, app2.full_path) else []
    try:
        copy_unignored_files(app1.full_path, pair.app1_dir, diff_ignore_patterns(paths, app1.full_path, extra))
        copy_unignored_files(app2.full_path, pair.app2_dir, diff_ignore_patterns(paths, app2.full_path, extra))
    except OSError:
        pair.remove()
        raise
    logger.debug("Staged %s and %s for diff under %s", app1.name, app2.name, base_dir)
    return pair


def staged_path_to_relative(path: str) -> str:
    """Strip the ``<app name>/<id>/`` staging prefix from a diff path."""
    parts = path.replace("\\", "/").split("/")
    return "/".join(parts[2:])
