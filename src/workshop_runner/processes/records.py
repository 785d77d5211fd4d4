"""Process registry records and operation results.

Provides:
- ProcessState: lifecycle of one registered child process
- OutputLine: a captured line of child output
- DevProcessRecord / SidecarProcessRecord / TestProcessRecord
- RunStatus / RunResult: outcome of starting a dev server
- WaitResult: outcome of waiting for a dev server to answer
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Literal

from workshop_runner.core.platform_command import is_pid_alive


class ProcessState(StrEnum):
    """Lifecycle of a registered process.

    Transitions:
        STARTING -> RUNNING: subprocess spawned
        STARTING -> EXITED: spawn failed
        RUNNING -> EXITED: process exited or was closed

    A record in EXITED state is removed from its registry by the task that
    observed the exit.
    """

    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"


OutputStream = Literal["stdout", "stderr"]


@dataclass(frozen=True)
class OutputLine:
    """One line written by a child process."""

    type: OutputStream
    content: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, object]:
        return {"type": self.type, "content": self.content, "timestamp": self.timestamp}


@dataclass
class ManagedProcess:
    """Fields shared by every registry record.

    Attributes:
        name: Registry key (app name or sidecar name).
        color: rich style used for the output prefix.
        process: The spawned subprocess, None until spawned.
        state: Current lifecycle state.
        exit_code: Exit code once the process has exited.
        exited: Set when the process exits (or fails to spawn).
        owner_task: Task reading output and awaiting exit.

    """

    name: str
    color: str = "white"
    process: asyncio.subprocess.Process | None = None
    state: ProcessState = ProcessState.STARTING
    exit_code: int | None = None
    started_at: float = field(default_factory=time.time)
    exited: asyncio.Event = field(default_factory=asyncio.Event)
    owner_task: asyncio.Task[None] | None = None

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process is not None else None

    def attach(self, process: asyncio.subprocess.Process) -> None:
        self.process = process
        self.state = ProcessState.RUNNING

    def mark_exited(self, exit_code: int | None) -> None:
        self.state = ProcessState.EXITED
        self.exit_code = exit_code
        self.exited.set()

    def is_alive(self) -> bool:
        """Check the OS for a live process behind this record."""
        if self.state is ProcessState.STARTING:
            return True
        if self.state is ProcessState.EXITED:
            return False
        return is_pid_alive(self.pid)


@dataclass
class DevProcessRecord(ManagedProcess):
    port: int = 0
    app_dir: Path | None = None


@dataclass
class SidecarProcessRecord(ManagedProcess):
    """A long-running auxiliary command with a bounded output buffer."""

    command: str = ""
    output: deque[OutputLine] = field(default_factory=lambda: deque(maxlen=1000))

    @classmethod
    def create(
        cls,
        name: str,
        command: str,
        *,
        color: str,
        output_limit: int,
        prior_output: list[OutputLine] | None = None,
    ) -> "SidecarProcessRecord":
        """Create a record, optionally seeded with output from a previous run."""
        output: deque[OutputLine] = deque(prior_output or (), maxlen=output_limit)
        return cls(name=name, command=command, color=color, output=output)


@dataclass
class TestProcessRecord(ManagedProcess):
    """A test run; output is kept in full until the entry is cleared."""

    __test__ = False

    output: list[OutputLine] = field(default_factory=list)

    @property
    def running(self) -> bool:
        return self.state is not ProcessState.EXITED

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "running": self.running,
            "exitCode": self.exit_code,
            "output": [line.to_dict() for line in self.output],
        }


class RunStatus(StrEnum):
    STARTED = "process-started"
    RUNNING = "process-running"
    PORT_UNAVAILABLE = "port-unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class RunResult:
    """Outcome of ``run_app_dev``.

    Port conflicts and missing dev scripts are reported here rather than
    raised. ``owner`` names the registered app holding the port, or is None
    when the port is held by a process we did not start.
    """

    status: RunStatus
    running: bool
    port: int | None = None
    owner: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"status": self.status.value, "running": self.running}
        if self.port is not None:
            data["port"] = self.port
        if self.status is RunStatus.PORT_UNAVAILABLE:
            data["owner"] = self.owner
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class WaitResult:
    status: Literal["success", "error"]
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"
