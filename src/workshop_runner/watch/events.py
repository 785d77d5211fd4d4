"""Change events and their emitter."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

logger = logging.getLogger(__name__)


class ChangeKind(StrEnum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    """A single observed filesystem change.

    Attributes:
        path: Absolute path that changed.
        kind: What happened to it.
        is_dir: Whether the path is (or was) a directory.
        mtime: The path's mtime, None once removed.
        timestamp: When the change was observed.

    """

    path: Path
    kind: ChangeKind
    is_dir: bool = False
    mtime: float | None = None
    timestamp: float = field(default_factory=time.time)


Subscriber = Callable[[ChangeEvent], None]


class ChangeEmitter:
    """Synchronous fan-out of change events to subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber.

        Returns:
            Callable removing the subscription.

        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def emit(self, event: ChangeEvent) -> None:
        """Deliver an event to every subscriber.

        A failing subscriber is logged and does not stop delivery to the
        others.
        """
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception("Change subscriber %r failed for %s", subscriber, event.path)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
