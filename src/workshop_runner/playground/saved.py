"""Saved copies of previous playgrounds."""

import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from workshop_runner.core.paths import WorkshopPaths

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y.%m.%d_%H.%M.%S"
TIMESTAMP_PATTERN = re.compile(r"^\d{4}\.\d{2}\.\d{2}_\d{2}\.\d{2}\.\d{2}$")

SAVED_PLAYGROUNDS_README = """\
# Saved Playgrounds

This directory stores the playground directory each time it is replaced.
Turn off `persist_playground` in `.workshop-runner.yaml` to stop saving
copies.
"""


@dataclass(frozen=True)
class SavedPlayground:
    """A saved playground directory.

    Attributes:
        id: Directory name, ``<timestamp>_<app name>``.
        app_name: App the playground had been set from.
        created_at: When it was saved.
        full_path: Absolute path of the saved copy.

    """

    id: str
    app_name: str
    created_at: datetime
    full_path: Path

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "appName": self.app_name,
            "createdAt": self.created_at.isoformat(),
            "fullPath": str(self.full_path),
        }


def saved_playground_dir_name(app_name: str, now: datetime) -> str:
    return f"{now.strftime(TIMESTAMP_FORMAT)}_{app_name}"


def parse_saved_playground_dir_name(dir_name: str) -> tuple[str, datetime] | None:
    """Split ``2024.01.31_09.15.00_01.01.problem`` into app name and time.

    Returns:
        (app_name, created_at), or None if the name has no valid timestamp.

    """
    parts = dir_name.split("_")
    if len(parts) < 3:
        return None
    timestamp = f"{parts[0]}_{parts[1]}"
    if not TIMESTAMP_PATTERN.match(timestamp):
        return None
    try:
        created_at = datetime.strptime(timestamp, TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return "_".join(parts[2:]) or dir_name, created_at


def save_playground(paths: WorkshopPaths, app_name: str, now: datetime | None = None) -> Path:
    """Copy the current playground into the saved-playgrounds directory.

    Args:
        paths: Workshop layout.
        app_name: App the playground was set from.
        now: Timestamp for the saved directory name.

    Returns:
        Path of the saved copy.

    """
    saved_dir = paths.saved_playgrounds_dir
    saved_dir.mkdir(parents=True, exist_ok=True)
    readme = saved_dir / "README.md"
    if not readme.exists():
        readme.write_text(SAVED_PLAYGROUNDS_README, encoding="utf-8")

    target = saved_dir / saved_playground_dir_name(app_name, now or datetime.now())
    shutil.copytree(paths.playground_dir, target, symlinks=True, dirs_exist_ok=True)
    logger.info("Saved playground (%s) to %s", app_name, target)
    return target


def list_saved_playgrounds(paths: WorkshopPaths) -> list[SavedPlayground]:
    """Saved playgrounds, newest first.

    Directories without a parsable timestamp fall back to their mtime.
    """
    saved_dir = paths.saved_playgrounds_dir
    if not saved_dir.is_dir():
        return []

    saved: list[SavedPlayground] = []
    for entry in saved_dir.iterdir():
        if not entry.is_dir():
            continue
        parsed = parse_saved_playground_dir_name(entry.name)
        if parsed is not None:
            app_name, created_at = parsed
        else:
            app_name = entry.name
            try:
                created_at = datetime.fromtimestamp(entry.stat().st_mtime)
            except OSError:
                created_at = datetime.fromtimestamp(0)
        saved.append(SavedPlayground(entry.name, app_name, created_at, entry))

    saved.sort(key=lambda s: s.created_at, reverse=True)
    return saved


def resolve_saved_playground(paths: WorkshopPaths, saved_id: str) -> SavedPlayground | None:
    """Find a saved playground by id; ids naming anything but a direct child are rejected."""
    if not saved_id or "/" in saved_id or "\\" in saved_id or saved_id in (".", ".."):
        return None
    for saved in list_saved_playgrounds(paths):
        if saved.id == saved_id:
            return saved
    return None
