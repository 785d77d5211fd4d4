"""Dev-server and test-run process orchestration.

Provides:
- ProcessOrchestrator: one registry of dev servers and one of test runs

Each registered process has exactly one owner task. The owner task reads the
child's output, awaits its exit and removes the record from the registry.
Registration happens synchronously before the first await of a start call,
so concurrent starts for the same app cannot both spawn.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from collections.abc import Mapping
from typing import TypeVar

import httpx

from workshop_runner.catalog.models import BaseApp, ScriptDevInfo, ScriptTestInfo
from workshop_runner.core.async_utils import poll_until
from workshop_runner.core.config import RunnerConfig
from workshop_runner.core.exceptions import DeployedModeError
from workshop_runner.core.platform_command import (
    IS_WINDOWS,
    build_kill_tree_command,
    kill_process_tree_sync,
    process_group_kwargs,
    signal_process_tree,
)
from workshop_runner.processes import ports
from workshop_runner.processes.colors import ColorAllocator
from workshop_runner.processes.output import ConsoleForwarder, LineSink, pump_stream
from workshop_runner.processes.records import (
    DevProcessRecord,
    ManagedProcess,
    OutputLine,
    RunResult,
    RunStatus,
    TestProcessRecord,
    WaitResult,
)

logger = logging.getLogger(__name__)

# Stream buffer limit per child pipe; longer lines are forwarded in pieces.
DEFAULT_STREAM_LIMIT = 1024 * 1024

R = TypeVar("R", bound=ManagedProcess)


def workshop_url(port: int) -> str:
    return f"http://localhost:{port}"


async def spawn_shell(
    command: str,
    *,
    cwd: os.PathLike[str] | str | None,
    env: Mapping[str, str],
) -> asyncio.subprocess.Process:
    """Start ``command`` through the shell as a process-group leader."""
    return await asyncio.create_subprocess_shell(
        command,
        cwd=cwd,
        env=dict(env),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        limit=DEFAULT_STREAM_LIMIT,
        **process_group_kwargs(),
    )


async def terminate_tree(record: ManagedProcess, sig: int = signal.SIGTERM) -> None:
    """Terminate a record's process tree the platform-appropriate way."""
    pid = record.pid
    if pid is None or record.exited.is_set():
        return
    if IS_WINDOWS:
        killer = await asyncio.create_subprocess_exec(
            *build_kill_tree_command(pid),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await killer.wait()
    else:
        signal_process_tree(pid, sig)


async def supervise(
    record: R,
    registry: dict[str, R],
    *,
    sinks: list[LineSink],
) -> None:
    """Owner task body: forward output, await exit, deregister."""
    process = record.process
    if process is None:
        raise ValueError(f"{record.name} has no process to supervise")
    try:
        try:
            await asyncio.gather(
                pump_stream(process.stdout, "stdout", sinks=sinks),
                pump_stream(process.stderr, "stderr", sinks=sinks),
            )
        except Exception:
            logger.exception("Reading output of %s failed", record.name)
        exit_code = await process.wait()
        logger.info("Process %s exited with code %s", record.name, exit_code)
    finally:
        record.mark_exited(process.returncode)
        if registry.get(record.name) is record:
            del registry[record.name]


class ProcessOrchestrator:
    """Starts, tracks and stops app dev servers and test runs.

    Attributes:
        config: Runner configuration (package manager, timeouts, deployed flag).
        colors: Prefix colors, shared with the sidecar manager.
        forwarder: Console that receives prefixed child output.

    """

    def __init__(
        self,
        config: RunnerConfig,
        *,
        colors: ColorAllocator | None = None,
        forwarder: ConsoleForwarder | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.colors = colors or ColorAllocator()
        self.forwarder = forwarder or ConsoleForwarder()
        self._http_transport = http_transport
        self._dev: dict[str, DevProcessRecord] = {}
        self._tests: dict[str, TestProcessRecord] = {}
        self._test_results: dict[str, TestProcessRecord] = {}

    # ------------------------------------------------------------------
    # Dev servers
    # ------------------------------------------------------------------

    def _ensure_local(self) -> None:
        if self.config.deployed:
            raise DeployedModeError("Process management is unavailable in deployed mode")

    def _child_env(self, app: BaseApp) -> dict[str, str]:
        env = dict(os.environ)
        env["NODE_ENV"] = "development"
        if isinstance(app.dev, ScriptDevInfo):
            env["PORT"] = str(app.dev.port)
            env["APP_SERVER_PORT"] = str(app.dev.port)
        return env

    def dev_command(self) -> str:
        return f"{self.config.package_manager} run dev --silent"

    def test_command(self) -> str:
        return f"{self.config.package_manager} run test --silent"

    def owner_of_port(self, port: int) -> str | None:
        for name, record in self._dev.items():
            if record.port == port:
                return name
        return None

    async def run_app_dev(self, app: BaseApp) -> RunResult:
        """Start an app's dev server unless it is already registered.

        Args:
            app: App to start.

        Returns:
            RunResult describing what happened. Port conflicts and apps
            without a dev script are reported, not raised.

        Raises:
            DeployedModeError: If running in deployed mode.

        """
        self._ensure_local()
        existing = self._dev.get(app.name)
        if existing is not None:
            return RunResult(RunStatus.RUNNING, running=True, port=existing.port)
        if not isinstance(app.dev, ScriptDevInfo):
            return RunResult(RunStatus.ERROR, running=False, error="no-server")

        port = app.dev.port
        if not ports.is_port_available(port):
            owner = self.owner_of_port(port)
            logger.warning("Port %d for %s is in use (owner: %s)", port, app.name, owner)
            return RunResult(RunStatus.PORT_UNAVAILABLE, running=False, port=port, owner=owner)

        record = DevProcessRecord(
            name=app.name,
            port=port,
            app_dir=app.full_path,
            color=self.colors.acquire(f"dev:{app.name}"),
        )
        self._dev[app.name] = record

        try:
            process = await spawn_shell(self.dev_command(), cwd=app.full_path, env=self._child_env(app))
        except OSError as e:
            logger.error("Failed to start dev server for %s: %s", app.name, e)
            record.mark_exited(None)
            self._forget_dev(record)
            return RunResult(RunStatus.ERROR, running=False, port=port, error=str(e))

        record.attach(process)
        if self._dev.get(app.name) is not record:
            logger.info("Start of %s was cancelled by a close, stopping it", app.name)
            kill_process_tree_sync(process.pid)
            await process.wait()
            record.mark_exited(process.returncode)
            self.colors.release(f"dev:{app.name}")
            return RunResult(RunStatus.ERROR, running=False, port=port, error="cancelled")
        logger.info("Started %s on port %d (pid %d)", app.name, port, process.pid)
        sink = self.forwarder.sink(f"{app.name}:{port}", record.color)
        record.owner_task = asyncio.create_task(
            self._supervise_dev(record, sink), name=f"dev:{app.name}"
        )
        return RunResult(RunStatus.STARTED, running=True, port=port)

    async def _supervise_dev(self, record: DevProcessRecord, sink: LineSink) -> None:
        try:
            await supervise(record, self._dev, sinks=[sink])
        finally:
            self.colors.release(f"dev:{record.name}")

    def _forget_dev(self, record: DevProcessRecord) -> None:
        if self._dev.get(record.name) is record:
            del self._dev[record.name]
        self.colors.release(f"dev:{record.name}")

    def is_app_running(self, app: BaseApp | str) -> bool:
        name = app if isinstance(app, str) else app.name
        record = self._dev.get(name)
        return record is not None and record.is_alive()

    def get_dev_process(self, name: str) -> DevProcessRecord | None:
        return self._dev.get(name)

    def list_dev_processes(self) -> list[DevProcessRecord]:
        return list(self._dev.values())

    async def wait_on_app(self, app: BaseApp) -> WaitResult | None:
        """Poll an app's URL until it answers.

        Any HTTP response counts as reachable. Returns None for apps that
        are not started with a dev script.
        """
        if not isinstance(app.dev, ScriptDevInfo):
            return None
        url = workshop_url(app.dev.port)
        last_error: Exception | None = None

        async with httpx.AsyncClient(
            transport=self._http_transport,
            timeout=httpx.Timeout(2.0),
            headers={"Accept": "*/*"},
        ) as client:

            async def _reachable() -> bool:
                nonlocal last_error
                try:
                    await client.head(url)
                    return True
                except httpx.HTTPError as e:
                    last_error = e
                    return False

            ok = await poll_until(
                _reachable,
                timeout=self.config.wait_on_app_timeout,
                interval=self.config.wait_on_app_interval,
            )

        if ok:
            return WaitResult("success")
        error = f"Unable to connect to app {app.name} at {url}: {last_error}"
        logger.warning(error)
        return WaitResult("error", error=error)

    async def close_process(self, name: str) -> bool:
        """Stop a registered dev server and free its port.

        Args:
            name: App name the process is registered under.

        Returns:
            False if nothing was registered under ``name``.

        """
        self._ensure_local()
        record = self._dev.get(name)
        if record is None:
            return False

        await terminate_tree(record)
        if record.process is not None:
            try:
                await asyncio.wait_for(record.exited.wait(), timeout=self.config.close_timeout)
            except TimeoutError:
                logger.warning(
                    "Process %s did not exit within %.1fs, freeing port %d",
                    name,
                    self.config.close_timeout,
                    record.port,
                )
        await self.stop_port(record.port)
        if record.process is not None and not record.exited.is_set():
            kill_process_tree_sync(record.process.pid)
        self._forget_dev(record)
        logger.info("Closed %s", name)
        return True

    async def stop_port(self, port: int) -> bool:
        return await ports.stop_port(port, timeout=self.config.port_release_timeout)

    def is_port_available(self, port: int) -> bool:
        return ports.is_port_available(port)

    # ------------------------------------------------------------------
    # Test runs
    # ------------------------------------------------------------------

    async def run_app_tests(self, app: BaseApp) -> TestProcessRecord | RunResult:
        """Start the app's test script, replacing any finished run's entry.

        Returns:
            The registered test record, the record of a run already in
            progress, or an error RunResult when the app has no test script.

        Raises:
            DeployedModeError: If running in deployed mode.

        """
        self._ensure_local()
        if not isinstance(app.test, ScriptTestInfo):
            return RunResult(RunStatus.ERROR, running=False, error="no-test")
        running = self._tests.get(app.name)
        if running is not None:
            return running

        record = TestProcessRecord(name=app.name)
        self._tests[app.name] = record
        self._test_results[app.name] = record
        try:
            process = await spawn_shell(self.test_command(), cwd=app.full_path, env=self._child_env(app))
        except OSError as e:
            logger.error("Failed to start tests for %s: %s", app.name, e)
            record.output.append(OutputLine(type="stderr", content=str(e)))
            record.mark_exited(None)
            self._tests.pop(app.name, None)
            return record

        record.attach(process)
        logger.info("Running tests for %s (pid %d)", app.name, process.pid)
        record.owner_task = asyncio.create_task(
            supervise(record, self._tests, sinks=[record.output.append]), name=f"test:{app.name}"
        )
        return record

    def is_test_running(self, name: str) -> bool:
        record = self._tests.get(name)
        return record is not None and record.running

    def get_test_process_entry(self, name: str) -> TestProcessRecord | None:
        return self._test_results.get(name)

    async def clear_test_process_entry(self, name: str) -> bool:
        """Stop a test run if it is still going and drop its recorded output."""
        record = self._test_results.pop(name, None)
        if record is None:
            return False
        if record.running:
            await terminate_tree(record)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(record.exited.wait(), timeout=self.config.close_timeout)
        self._tests.pop(name, None)
        return True

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Close every dev server and test run, then cancel owner tasks."""
        for name in list(self._dev):
            try:
                await self.close_process(name)
            except DeployedModeError:
                break
        for name in list(self._test_results):
            await self.clear_test_process_entry(name)

        tasks = [
            r.owner_task
            for r in [*self._dev.values(), *self._tests.values()]
            if r.owner_task is not None and not r.owner_task.done()
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def kill_all_sync(self) -> None:
        """Force-kill every child without an event loop (interpreter exit)."""
        for record in [*self._dev.values(), *self._tests.values()]:
            if record.pid is not None and not record.exited.is_set():
                kill_process_tree_sync(record.pid)
