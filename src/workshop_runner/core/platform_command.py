"""Cross-platform process helpers.

Dev servers and sidecars are started through the shell, which means the pid
we hold belongs to the shell and the real server is a grandchild. Termination
therefore always targets the whole process tree:

- POSIX: children are started in a new session, the group is signalled.
- Windows: ``taskkill /pid <pid> /f /t`` walks the tree.
"""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import subprocess
import sys
from typing import Any, Literal

import psutil

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"
IS_POSIX = not IS_WINDOWS

PlatformType = Literal["windows", "posix", "unknown"]


def get_platform() -> PlatformType:
    """Get the current platform type.

    Returns:
        'windows' for Windows, 'posix' for Linux/macOS, 'unknown' otherwise.

    """
    if IS_WINDOWS:
        return "windows"
    elif IS_POSIX:
        return "posix"
    return "unknown"


def process_group_kwargs() -> dict[str, Any]:
    """Spawn keyword arguments that make the child a process-group leader.

    Returns:
        Keyword arguments for asyncio.create_subprocess_shell/exec.

    """
    if IS_WINDOWS:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def build_kill_tree_command(pid: int) -> list[str]:
    """Build the Windows command that force-kills a process tree.

    Examples:
        >>> build_kill_tree_command(1234)
        ['taskkill', '/pid', '1234', '/f', '/t']

    """
    return ["taskkill", "/pid", str(pid), "/f", "/t"]


def signal_process_tree(pid: int, sig: int = signal.SIGTERM) -> bool:
    """Send a signal to a process and everything it spawned (POSIX).

    Args:
        pid: Pid of the process-group leader.
        sig: Signal to deliver.

    Returns:
        True if the signal was delivered, False if the process was gone.

    """
    try:
        os.killpg(os.getpgid(pid), sig)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        logger.warning("No permission to signal process group of pid %d", pid)
        return False


def kill_process_tree_sync(pid: int) -> None:
    """Force-kill a process tree without an event loop.

    Used from interpreter-exit hooks where asyncio is no longer available.
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return
    with contextlib.suppress(psutil.Error):
        children = parent.children(recursive=True)
        for child in children:
            with contextlib.suppress(psutil.Error):
                child.kill()
        parent.kill()


def is_pid_alive(pid: int | None) -> bool:
    """Check whether a pid refers to a live, non-zombie process."""
    if pid is None:
        return False
    try:
        proc = psutil.Process(pid)
        return proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        return True
