"""Tests for workshop_runner.core.platform_command.

Covers:
- Platform detection (get_platform)
- Spawn keyword arguments for process groups
- Windows kill-tree command building
- Liveness checks and process tree signalling on POSIX
"""

from __future__ import annotations

import signal
import subprocess
import sys
import time

import pytest

from workshop_runner.core import platform_command as pc


class TestPlatformDetection:
    """Tests for platform detection."""

    def test_get_platform_matches_flags(self) -> None:
        """get_platform() agrees with IS_WINDOWS / IS_POSIX."""
        expected = "windows" if pc.IS_WINDOWS else "posix"
        assert pc.get_platform() == expected

    def test_flags_are_exclusive(self) -> None:
        assert pc.IS_WINDOWS is not pc.IS_POSIX


class TestProcessGroupKwargs:
    """Tests for process_group_kwargs()."""

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX only")
    def test_posix_starts_new_session(self) -> None:
        assert pc.process_group_kwargs() == {"start_new_session": True}

    @pytest.mark.skipif(sys.platform != "win32", reason="Windows only")
    def test_windows_new_process_group(self) -> None:
        assert pc.process_group_kwargs() == {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}


class TestKillTreeCommand:
    def test_taskkill_arguments(self) -> None:
        """Windows tree kill uses taskkill with /f /t."""
        assert pc.build_kill_tree_command(4321) == ["taskkill", "/pid", "4321", "/f", "/t"]


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")
class TestProcessTree:
    """Signalling and liveness against real child processes."""

    def _spawn_sleeper(self) -> subprocess.Popen[bytes]:
        return subprocess.Popen(
            [sys.executable, "-c", "import time; time.sleep(60)"],
            start_new_session=True,
        )

    def test_is_pid_alive_for_running_child(self) -> None:
        proc = self._spawn_sleeper()
        try:
            assert pc.is_pid_alive(proc.pid) is True
        finally:
            proc.kill()
            proc.wait()

    def test_is_pid_alive_none(self) -> None:
        """A missing pid is never alive."""
        assert pc.is_pid_alive(None) is False

    def test_signal_process_tree_terminates_group(self) -> None:
        proc = self._spawn_sleeper()
        assert pc.signal_process_tree(proc.pid, signal.SIGTERM) is True
        assert proc.wait(timeout=10) == -signal.SIGTERM

    def test_signal_process_tree_gone(self) -> None:
        """Signalling an exited process reports False."""
        proc = self._spawn_sleeper()
        proc.kill()
        proc.wait()
        assert pc.signal_process_tree(proc.pid) is False

    def test_kill_process_tree_sync(self) -> None:
        proc = self._spawn_sleeper()
        pc.kill_process_tree_sync(proc.pid)
        proc.wait(timeout=10)
        deadline = time.monotonic() + 5
        while pc.is_pid_alive(proc.pid) and time.monotonic() < deadline:
            time.sleep(0.05)
        assert pc.is_pid_alive(proc.pid) is False

    def test_kill_process_tree_sync_missing_pid(self) -> None:
        """Killing a pid that does not exist is a no-op."""
        proc = self._spawn_sleeper()
        proc.kill()
        proc.wait()
        pc.kill_process_tree_sync(proc.pid)
