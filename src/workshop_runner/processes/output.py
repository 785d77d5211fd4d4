"""Line-based forwarding of child-process output to a rich console."""

import asyncio
import logging
from collections.abc import Callable

from rich.console import Console
from rich.text import Text

from workshop_runner.processes.records import OutputLine, OutputStream

logger = logging.getLogger(__name__)

LineSink = Callable[[OutputLine], None]


def format_prefixed(prefix: str, color: str, content: str) -> Text:
    """Build ``[prefix] content`` with a colored prefix."""
    return Text.assemble((f"[{prefix}]", color), " ", content)


async def pump_stream(
    reader: asyncio.StreamReader | None,
    stream: OutputStream,
    *,
    sinks: list[LineSink],
) -> None:
    """Read ``reader`` line by line until EOF, feeding every sink.

    A line longer than the reader's buffer limit is delivered in pieces no
    longer than the buffered data at the time it overflowed.

    Args:
        reader: Child stdout or stderr; None is treated as an empty stream.
        stream: Which stream the lines came from.
        sinks: Callables receiving each decoded line.

    """
    if reader is None:
        return
    continued = False
    while True:
        split = False
        try:
            raw = await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            raw = e.partial
        except asyncio.LimitOverrunError as e:
            # the overflowing data stays buffered until read
            raw = await reader.read(e.consumed)
            split = True
        if not raw:
            break
        if continued and raw in (b"\n", b"\r\n"):
            continued = False
            continue
        continued = split
        _emit(OutputLine(type=stream, content=raw.decode("utf-8", errors="replace").rstrip("\r\n")), sinks)


def _emit(line: OutputLine, sinks: list[LineSink]) -> None:
    for sink in sinks:
        try:
            sink(line)
        except Exception:
            logger.exception("Output sink failed")


class ConsoleForwarder:
    """Prints child output with a colored ``[prefix]`` on a shared console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False, soft_wrap=True)

    def sink(self, prefix: str, color: str) -> LineSink:
        def _print(line: OutputLine) -> None:
            self.console.print(format_prefixed(prefix, color, line.content))

        return _print
