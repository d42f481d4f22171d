"""Tests for the process supervisor readiness race"""

import gc
import os
import signal
import sys
import tempfile
import textwrap
import unittest
import warnings
from pathlib import Path

from devserve_cli.errors import (
    ExitedNonZero,
    PortConflictDuringStartup,
    ReadinessTimeout,
    SpawnFailed,
)
from devserve_cli.pidfile import PidStore
from devserve_cli.platform import IS_WINDOWS
from devserve_cli.supervisor import LaunchRequest, ServerSupervisor, StartOutcome


def python_request(script: str, tmp: Path, **kwargs) -> LaunchRequest:
    """Launch request for a simulated server written in Python"""
    return LaunchRequest(
        command=sys.executable,
        args=["-u", "-c", textwrap.dedent(script)],
        working_directory=tmp,
        port=kwargs.pop("port", 8787),
        **kwargs,
    )


def kill(pid: int) -> None:
    try:
        os.kill(pid, signal.SIGKILL if not IS_WINDOWS else signal.SIGTERM)
    except ProcessLookupError:
        return
    if not IS_WINDOWS:
        try:
            os.waitpid(pid, 0)
        except ChildProcessError:
            pass


SLEEPER = """
import time
time.sleep(30)
"""


class SupervisorTestCase(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmpdir.name)
        self.store = PidStore.for_project(self.tmp)
        self.spawned: list[int] = []

    def tearDown(self):
        for pid in self.spawned:
            kill(pid)
        self._tmpdir.cleanup()

    def supervisor(self, **kwargs) -> ServerSupervisor:
        kwargs.setdefault("ready_timeout", 10.0)
        kwargs.setdefault("graceful_timeout", 2.0)
        return ServerSupervisor(self.store, log_dir=self.tmp / ".devserve", **kwargs)

    def assertWatchersStopped(self, supervisor: ServerSupervisor):
        self.assertEqual(len(supervisor.watchers), 3)
        for watcher in supervisor.watchers:
            self.assertFalse(watcher.is_alive(), watcher.name)


class TestBackgroundStart(SupervisorTestCase):
    def test_ready_phrase_resolves_started(self):
        """Test a readiness phrase on stdout wins the race"""
        supervisor = self.supervisor()
        request = python_request(
            """
            import time
            print("Ready on http://localhost:8787")
            time.sleep(30)
            """,
            self.tmp,
        )

        result = supervisor.start(request)
        self.spawned.append(result.pid)

        self.assertEqual(result.outcome, StartOutcome.STARTED)
        self.assertEqual(result.port, 8787)
        self.assertEqual(self.store.read(), result.pid)
        self.assertTrue(PidStore.is_alive(result.pid))
        self.assertIn("Ready on", supervisor.log_file.read_text())
        self.assertWatchersStopped(supervisor)

    def test_started_server_handle_is_kept(self):
        """Test collecting the supervisor does not report the running server as leaked"""
        supervisor = self.supervisor()
        request = python_request(
            """
            import time
            print("Listening on 8787")
            time.sleep(30)
            """,
            self.tmp,
        )

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", ResourceWarning)
            result = supervisor.start(request)
            self.spawned.append(result.pid)
            del supervisor
            gc.collect()

        leaked = [w for w in caught if issubclass(w.category, ResourceWarning) and "still running" in str(w.message)]
        self.assertEqual(leaked, [])
        self.assertTrue(PidStore.is_alive(result.pid))

    def test_custom_ready_pattern(self):
        supervisor = self.supervisor(ready_patterns=("server booted",))
        request = python_request(
            """
            import time
            print("server booted")
            time.sleep(30)
            """,
            self.tmp,
        )

        result = supervisor.start(request)
        self.spawned.append(result.pid)
        self.assertEqual(result.outcome, StartOutcome.STARTED)

    def test_non_zero_exit_raises_and_clears_record(self):
        """Test an early exit with code 1 surfaces stderr and removes the record"""
        supervisor = self.supervisor()
        request = python_request(
            """
            import sys
            sys.stderr.write("wrangler.toml is invalid\\n")
            sys.exit(1)
            """,
            self.tmp,
        )

        with self.assertRaises(ExitedNonZero) as ctx:
            supervisor.start(request)

        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("wrangler.toml is invalid", ctx.exception.stderr)
        self.assertIsNone(self.store.read())
        self.assertFalse(self.store.pid_file.exists())
        self.assertWatchersStopped(supervisor)

    def test_silence_resolves_started_after_timeout(self):
        """Test the optimistic default when nothing is printed"""
        supervisor = self.supervisor(ready_timeout=0.5)

        result = supervisor.start(python_request(SLEEPER, self.tmp))
        self.spawned.append(result.pid)

        self.assertEqual(result.outcome, StartOutcome.STARTED)
        self.assertEqual(self.store.read(), result.pid)
        self.assertWatchersStopped(supervisor)

    def test_silence_without_optimistic_default_raises(self):
        """Test the timeout can be configured to count as a failure"""
        supervisor = self.supervisor(ready_timeout=0.5, assume_ready_on_timeout=False)

        with self.assertRaises(ReadinessTimeout) as ctx:
            supervisor.start(python_request(SLEEPER, self.tmp))

        self.assertEqual(ctx.exception.timeout, 0.5)
        self.assertIsNone(self.store.read())
        self.assertWatchersStopped(supervisor)

    def test_port_conflict_on_stderr(self):
        """Test an address-in-use message resolves as a port conflict"""
        supervisor = self.supervisor()
        request = python_request(
            """
            import sys, time
            sys.stderr.write("Error: listen EADDRINUSE: Address already in use 0.0.0.0:9999\\n")
            sys.stderr.flush()
            time.sleep(30)
            """,
            self.tmp,
            port=9999,
        )

        with self.assertRaises(PortConflictDuringStartup) as ctx:
            supervisor.start(request)

        self.assertEqual(ctx.exception.port, 9999)
        self.assertIn("Address already in use", ctx.exception.stderr)
        self.assertIsNone(self.store.read())
        self.assertWatchersStopped(supervisor)

    def test_missing_binary_raises_spawn_failed(self):
        """Test no record is written when the process cannot be created"""
        supervisor = self.supervisor()
        request = LaunchRequest(
            command=str(self.tmp / "no-such-binary"),
            args=["dev"],
            working_directory=self.tmp,
            port=8787,
        )

        with self.assertRaises(SpawnFailed) as ctx:
            supervisor.start(request)

        self.assertIn("no-such-binary", ctx.exception.command)
        self.assertFalse(self.store.pid_file.exists())

    def test_clean_exit_is_left_to_timeout(self):
        """Test exit code 0 does not fail the start"""
        supervisor = self.supervisor(ready_timeout=0.5)

        result = supervisor.start(python_request("pass", self.tmp))

        self.assertEqual(result.outcome, StartOutcome.STARTED)

    def test_environment_is_passed(self):
        supervisor = self.supervisor()
        request = python_request(
            """
            import os, time
            print("Ready on", os.environ["DEVSERVE_TEST_VALUE"])
            time.sleep(30)
            """,
            self.tmp,
            env={"DEVSERVE_TEST_VALUE": "hello"},
        )

        result = supervisor.start(request)
        self.spawned.append(result.pid)

        self.assertIn("Ready on hello", supervisor.log_file.read_text())

    @unittest.skipIf(IS_WINDOWS, "sessions are POSIX only")
    def test_child_runs_in_new_session(self):
        """Test the child is detached from our process group"""
        supervisor = self.supervisor()
        request = python_request(
            """
            import time
            print("Ready on")
            time.sleep(30)
            """,
            self.tmp,
        )

        result = supervisor.start(request)
        self.spawned.append(result.pid)

        self.assertEqual(os.getsid(result.pid), result.pid)
        self.assertNotEqual(os.getpgid(result.pid), os.getpgid(0))


class TestForegroundStart(SupervisorTestCase):
    def test_foreground_returns_exit_code_without_record(self):
        """Test foreground runs block until exit and never touch the record"""
        supervisor = self.supervisor()
        request = python_request("import sys; sys.exit(3)", self.tmp, foreground=True)

        result = supervisor.start(request)

        self.assertEqual(result.outcome, StartOutcome.EXITED)
        self.assertEqual(result.exit_code, 3)
        self.assertFalse(self.store.pid_file.exists())
        self.assertEqual(supervisor.watchers, [])

    def test_foreground_missing_binary(self):
        supervisor = self.supervisor()
        request = LaunchRequest(command=str(self.tmp / "missing"), working_directory=self.tmp, foreground=True)

        with self.assertRaises(SpawnFailed):
            supervisor.start(request)


if __name__ == "__main__":
    unittest.main()
