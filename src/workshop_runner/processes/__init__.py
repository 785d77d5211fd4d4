"""Child-process management for dev servers, test runs and sidecars."""

from workshop_runner.processes.colors import DEFAULT_PALETTE, ColorAllocator
from workshop_runner.processes.orchestrator import ProcessOrchestrator, workshop_url
from workshop_runner.processes.output import ConsoleForwarder
from workshop_runner.processes.ports import is_port_available, stop_port
from workshop_runner.processes.records import (
    DevProcessRecord,
    OutputLine,
    ProcessState,
    RunResult,
    RunStatus,
    SidecarProcessRecord,
    TestProcessRecord,
    WaitResult,
)
from workshop_runner.processes.sidecars import SidecarManager

__all__ = [
    "DEFAULT_PALETTE",
    "ColorAllocator",
    "ConsoleForwarder",
    "DevProcessRecord",
    "OutputLine",
    "ProcessOrchestrator",
    "ProcessState",
    "RunResult",
    "RunStatus",
    "SidecarManager",
    "SidecarProcessRecord",
    "TestProcessRecord",
    "WaitResult",
    "is_port_available",
    "stop_port",
    "workshop_url",
]
