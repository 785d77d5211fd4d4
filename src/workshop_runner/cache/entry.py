"""Cache entry types."""

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CacheMetadata:
    """Timing information stored with every cached value.

    Attributes:
        created_time: Epoch seconds when the value was computed.
        ttl: Seconds the value is fresh. None means forever.
        swr: Seconds after ttl during which the stale value may still be
            served while a refresh runs in the background.

    """

    created_time: float = field(default_factory=time.time)
    ttl: float | None = None
    swr: float = 0.0

    def is_fresh(self, now: float) -> bool:
        return self.ttl is None or now < self.created_time + self.ttl

    def is_expired(self, now: float) -> bool:
        """True once the entry is past both ttl and swr."""
        if self.ttl is None:
            return False
        return now >= self.created_time + self.ttl + self.swr


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its metadata."""

    value: Any
    metadata: CacheMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "metadata": {
                "createdTime": self.metadata.created_time,
                "ttl": self.metadata.ttl,
                "swr": self.metadata.swr,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        """Rebuild an entry from to_dict() output.

        Raises:
            KeyError: If required fields are missing.

        """
        meta = data["metadata"]
        return cls(
            value=data["value"],
            metadata=CacheMetadata(
                created_time=float(meta["createdTime"]),
                ttl=meta.get("ttl"),
                swr=float(meta.get("swr") or 0.0),
            ),
        )
