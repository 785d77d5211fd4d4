"""Sidecar processes: long-running commands not tied to an app."""

import asyncio
import logging
import os
import signal

from workshop_runner.core.config import RunnerConfig
from workshop_runner.core.exceptions import DeployedModeError
from workshop_runner.core.platform_command import kill_process_tree_sync
from workshop_runner.processes.colors import ColorAllocator
from workshop_runner.processes.orchestrator import spawn_shell, supervise, terminate_tree
from workshop_runner.processes.output import ConsoleForwarder, LineSink
from workshop_runner.processes.records import OutputLine, SidecarProcessRecord

logger = logging.getLogger(__name__)


class SidecarManager:
    """Registry of named sidecar processes.

    Output of each sidecar is printed with a colored prefix and kept in a
    bounded buffer (``RunnerConfig.sidecar_output_limit`` lines, oldest
    dropped first). Restarting a sidecar carries its buffered output over to
    the new process.
    """

    def __init__(
        self,
        config: RunnerConfig,
        *,
        colors: ColorAllocator | None = None,
        forwarder: ConsoleForwarder | None = None,
    ) -> None:
        self.config = config
        self.colors = colors or ColorAllocator()
        self.forwarder = forwarder or ConsoleForwarder()
        self._sidecars: dict[str, SidecarProcessRecord] = {}
        self._commands: dict[str, str] = {}
        self._latest: dict[str, SidecarProcessRecord] = {}

    def _ensure_local(self) -> None:
        if self.config.deployed:
            raise DeployedModeError("Sidecar processes are unavailable in deployed mode")

    async def start_all(self, commands: dict[str, str]) -> None:
        """Start every configured sidecar; a no-op in deployed mode."""
        if self.config.deployed:
            logger.info("Sidecar processes are not started in deployed mode")
            return
        for name, command in commands.items():
            await self.start(name, command)

    async def start(
        self,
        name: str,
        command: str,
        *,
        prior_output: list[OutputLine] | None = None,
    ) -> SidecarProcessRecord:
        """Start a sidecar unless one is already registered under ``name``.

        Args:
            name: Sidecar name, used as the output prefix.
            command: Shell command to run from the workshop root.
            prior_output: Output to seed the new buffer with.

        Returns:
            The registered record (the existing one if already running). When
            the command cannot be spawned the record is returned already
            exited, with the error as its last output line.

        Raises:
            DeployedModeError: If running in deployed mode.

        """
        self._ensure_local()
        existing = self._sidecars.get(name)
        if existing is not None:
            logger.info("Sidecar %s is already running", name)
            return existing

        record = SidecarProcessRecord.create(
            name,
            command,
            color=self.colors.acquire(f"sidecar:{name}"),
            output_limit=self.config.sidecar_output_limit,
            prior_output=prior_output,
        )
        self._sidecars[name] = record
        self._commands[name] = command
        self._latest[name] = record
        try:
            process = await spawn_shell(command, cwd=self.config.workshop_root, env=os.environ)
        except OSError as e:
            logger.error("Failed to start sidecar %s: %s", name, e)
            record.output.append(OutputLine(type="stderr", content=str(e)))
            record.mark_exited(None)
            self._forget(record)
            return record

        record.attach(process)
        logger.info("Started sidecar %s (pid %d): %s", name, process.pid, command)
        sinks: list[LineSink] = [record.output.append, self.forwarder.sink(name, record.color)]
        record.owner_task = asyncio.create_task(self._supervise(record, sinks), name=f"sidecar:{name}")
        return record

    async def _supervise(self, record: SidecarProcessRecord, sinks: list[LineSink]) -> None:
        try:
            await supervise(record, self._sidecars, sinks=sinks)
        finally:
            self.colors.release(f"sidecar:{record.name}")
        if record.exit_code:
            logger.warning("Sidecar %s exited with code %s", record.name, record.exit_code)

    def _forget(self, record: SidecarProcessRecord) -> None:
        if self._sidecars.get(record.name) is record:
            del self._sidecars[record.name]
        self.colors.release(f"sidecar:{record.name}")

    async def stop(self, name: str) -> bool:
        """Terminate a sidecar, force-killing it after the stop timeout.

        Returns:
            False if no sidecar was registered under ``name``.

        """
        record = self._sidecars.get(name)
        if record is None:
            return False
        await terminate_tree(record, signal.SIGTERM)
        try:
            await asyncio.wait_for(record.exited.wait(), timeout=self.config.sidecar_stop_timeout)
        except TimeoutError:
            logger.warning(
                "Sidecar %s did not stop within %.1fs, killing it",
                name,
                self.config.sidecar_stop_timeout,
            )
            await terminate_tree(record, getattr(signal, "SIGKILL", signal.SIGTERM))
            try:
                await asyncio.wait_for(record.exited.wait(), timeout=self.config.sidecar_stop_timeout)
            except TimeoutError:
                logger.error("Sidecar %s could not be killed", name)
        self._forget(record)
        logger.info("Stopped sidecar %s", name)
        return True

    async def restart(self, name: str) -> SidecarProcessRecord:
        """Stop and start a sidecar, keeping its buffered output.

        Raises:
            KeyError: If ``name`` was never started.

        """
        self._ensure_local()
        command = self._commands.get(name)
        if command is None:
            raise KeyError(name)
        record = self._latest.get(name)
        await self.stop(name)
        prior = list(record.output) if record is not None else []
        return await self.start(name, command, prior_output=prior)

    async def stop_all(self) -> None:
        names = list(self._sidecars)
        if names:
            logger.info("Stopping sidecars: %s", ", ".join(names))
        await asyncio.gather(*(self.stop(name) for name in names))

    def get_output(self, name: str) -> list[OutputLine]:
        """Buffered output of the current or most recent run of ``name``."""
        record = self._latest.get(name)
        return list(record.output) if record is not None else []

    def is_running(self, name: str) -> bool:
        record = self._sidecars.get(name)
        return record is not None and record.is_alive()

    def describe(self) -> dict[str, dict[str, object]]:
        """Describe every known sidecar for display."""
        return {
            name: {
                "command": command,
                "running": self.is_running(name),
                "pid": record.pid if (record := self._latest.get(name)) else None,
                "color": record.color if record else None,
                "exitCode": record.exit_code if record else None,
            }
            for name, command in self._commands.items()
        }

    def kill_all_sync(self) -> None:
        for record in self._sidecars.values():
            if record.pid is not None and not record.exited.is_set():
                kill_process_tree_sync(record.pid)
