"""Filesystem change tracking.

Provides:
- ChangeEvent / ChangeEmitter: publish/subscribe of filesystem changes
- PollingWatcher: asyncio task turning directory polls into change events
- ModifiedTimeIndex: subscriber keeping the last change time per app dir
- ModifiedTimeService: recursive, gitignore-aware directory mtimes
"""

from .events import ChangeEmitter, ChangeEvent, ChangeKind
from .index import ModifiedTimeIndex, app_path_from_file_path
from .modified_time import ModifiedTimeService
from .watcher import TRACKED_FILES, PollingWatcher

__all__ = [
    "TRACKED_FILES",
    "ChangeEmitter",
    "ChangeEvent",
    "ChangeKind",
    "ModifiedTimeIndex",
    "ModifiedTimeService",
    "PollingWatcher",
    "app_path_from_file_path",
]
