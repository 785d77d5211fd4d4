"""Color assignment for multiplexed child-process output."""

DEFAULT_PALETTE: tuple[str, ...] = (
    "red",
    "green",
    "yellow",
    "blue",
    "magenta",
    "cyan",
    "bright_red",
    "bright_green",
    "bright_yellow",
    "bright_blue",
)


class ColorAllocator:
    """Hands out distinct prefix colors across every process registry.

    Dev servers and sidecars share one allocator so two concurrently running
    processes never print with the same prefix color while the palette
    lasts. Once it is exhausted colors are reused round-robin.
    """

    def __init__(self, palette: tuple[str, ...] = DEFAULT_PALETTE) -> None:
        if not palette:
            raise ValueError("palette must not be empty")
        self._palette = palette
        self._held: dict[str, str] = {}

    def acquire(self, key: str) -> str:
        if key in self._held:
            return self._held[key]
        in_use = set(self._held.values())
        color = next(
            (c for c in self._palette if c not in in_use),
            self._palette[len(self._held) % len(self._palette)],
        )
        self._held[key] = color
        return color

    def release(self, key: str) -> None:
        self._held.pop(key, None)

    @property
    def in_use(self) -> dict[str, str]:
        return dict(self._held)
