"""Playground sync engine and saved playgrounds."""

from workshop_runner.playground.copy import PlaygroundCopyFilter, SyncStats, mirror_directory
from workshop_runner.playground.saved import (
    SavedPlayground,
    list_saved_playgrounds,
    parse_saved_playground_dir_name,
    save_playground,
)
from workshop_runner.playground.sync import PlaygroundSync

__all__ = [
    "PlaygroundCopyFilter",
    "PlaygroundSync",
    "SavedPlayground",
    "SyncStats",
    "list_saved_playgrounds",
    "mirror_directory",
    "parse_saved_playground_dir_name",
    "save_playground",
]
