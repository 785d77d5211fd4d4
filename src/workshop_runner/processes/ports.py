"""Port availability checks and forced port release."""

import asyncio
import contextlib
import logging
import socket

import psutil

from workshop_runner.core.async_utils import poll_until

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_RELEASE_TIMEOUT = 10.0
DEFAULT_RELEASE_INTERVAL = 0.1


def is_port_available(port: int, host: str = DEFAULT_HOST) -> bool:
    """Check whether a TCP port can be bound.

    Args:
        port: Port number to test.
        host: Interface to bind on.

    Returns:
        True if nothing is listening on the port.

    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_listening_pids(port: int) -> set[int]:
    """Find pids of processes listening on a TCP port.

    Falls back to per-process inspection when the system-wide connection
    table is not readable (macOS without root).
    """
    pids: set[int] = set()
    try:
        for conn in psutil.net_connections(kind="tcp"):
            if conn.status == psutil.CONN_LISTEN and conn.laddr and conn.laddr.port == port:
                if conn.pid is not None:
                    pids.add(conn.pid)
        return pids
    except psutil.AccessDenied:
        logger.debug("Connection table not readable, scanning processes for port %d", port)

    for proc in psutil.process_iter(["pid"]):
        with contextlib.suppress(psutil.Error):
            for conn in proc.net_connections(kind="tcp"):
                if conn.status == psutil.CONN_LISTEN and conn.laddr.port == port:
                    pids.add(proc.pid)
    return pids


def kill_port_listeners(port: int) -> list[int]:
    """Force-kill every process listening on ``port``.

    Returns:
        Pids that were signalled.

    """
    killed: list[int] = []
    for pid in find_listening_pids(port):
        try:
            psutil.Process(pid).kill()
            killed.append(pid)
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning("No permission to kill pid %d listening on port %d", pid, port)
    if killed:
        logger.info("Killed %s listening on port %d", killed, port)
    return killed


async def stop_port(
    port: int,
    *,
    timeout: float = DEFAULT_RELEASE_TIMEOUT,
    interval: float = DEFAULT_RELEASE_INTERVAL,
) -> bool:
    """Kill whatever listens on ``port`` and wait for the port to free up.

    Args:
        port: Port to release.
        timeout: Seconds to wait for the port to become bindable.
        interval: Seconds between availability checks.

    Returns:
        True if the port is available afterwards.

    """
    await asyncio.to_thread(kill_port_listeners, port)

    async def _available() -> bool:
        return is_port_available(port)

    released = await poll_until(_available, timeout=timeout, interval=interval)
    if not released:
        logger.warning("Port %d still in use after %.1fs", port, timeout)
    return released
