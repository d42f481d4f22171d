"""Development server lifecycle: start, stop, restart and status"""

import logging
import os
import signal
import time
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import ProjectConfig
from .errors import AlreadyRunning, ConfigError, StopFailed
from .pidfile import PID_FILE_NAME, PidStore
from .platform import IS_WINDOWS, is_dev_container
from .ports import MAX_PORT, find_available_port
from .subprocess_timeouts import POLL_STOP, TIMEOUT_FORCE_STOP
from .supervisor import LaunchRequest, ServerSupervisor, StartResult

logger = logging.getLogger(__name__)

CONTAINER_HOST = "0.0.0.0"


class StopOutcome(str, Enum):
    NOT_RUNNING = "not_running"
    STALE = "stale"
    STOPPED = "stopped"
    KILLED = "killed"


@dataclass
class StopResult:
    outcome: StopOutcome
    pid: int | None = None


@dataclass
class ServerStatus:
    running: bool
    pid: int | None
    pid_file: Path
    log_file: Path

    def to_dict(self) -> dict:
        return {
            "running": self.running,
            "pid": self.pid,
            "pid_file": str(self.pid_file),
            "log_file": str(self.log_file),
        }


def _reap(pid: int) -> None:
    """Collect the exit status if pid happens to be our own child"""
    if IS_WINDOWS:
        return
    try:
        os.waitpid(pid, os.WNOHANG)
    except ChildProcessError:
        pass


class ServerManager:
    """Manages the development server process for one project"""

    def __init__(self, config: ProjectConfig | None = None):
        self.config = config or ProjectConfig()
        self.pid_store = PidStore(self.config.pid_dir / PID_FILE_NAME)
        self.supervisor = ServerSupervisor(
            self.pid_store,
            log_dir=self.config.pid_dir,
            ready_patterns=self.config.ready_patterns,
            port_conflict_patterns=self.config.port_conflict_patterns,
            ready_timeout=self.config.ready_timeout,
            assume_ready_on_timeout=self.config.assume_ready_on_timeout,
            graceful_timeout=self.config.graceful_timeout,
        )

    def resolve_host(self, host: str | None = None, auto_host: bool = True) -> str | None:
        """Explicit host first, then 0.0.0.0 inside dev containers"""
        if host:
            return host
        if self.config.host:
            return self.config.host
        if auto_host and self.config.auto_host and is_dev_container():
            return CONTAINER_HOST
        return None

    def build_request(
        self,
        port: int,
        host: str | None,
        foreground: bool = False,
        persist_to: str | None = None,
        extra_args: Sequence[str] = (),
    ) -> LaunchRequest:
        """Build the server command line: <command> [--host H] --port P [--persist-to D] [extra]"""
        command, *args = self.config.command
        if host:
            args.extend([self.config.host_flag, host])
        args.extend([self.config.port_flag, str(port)])
        persist_to = persist_to or self.config.persist_to
        if persist_to:
            args.extend(["--persist-to", persist_to])
        args.extend(extra_args)
        return LaunchRequest(
            command=command,
            args=args,
            working_directory=self.config.project_dir,
            host=host,
            port=port,
            foreground=foreground,
        )

    def start(
        self,
        port: int | None = None,
        host: str | None = None,
        foreground: bool = False,
        auto_host: bool = True,
        persist_to: str | None = None,
        extra_args: Sequence[str] = (),
    ) -> StartResult:
        """
        Start the server.

        Raises:
            ConfigError: the requested port is outside 1-65535
            AlreadyRunning: a live process holds the PID record
            PortExhausted: no free port near the requested one
            SpawnFailed, PortConflictDuringStartup, ExitedNonZero, ReadinessTimeout:
                raised by the supervisor
        """
        existing = self.pid_store.running_pid()
        if existing is not None:
            raise AlreadyRunning(existing)

        requested = port or self.config.port
        if not 1 <= requested <= MAX_PORT:
            raise ConfigError(f"Invalid port number: {requested}")
        resolved_port = find_available_port(requested, self.config.max_port_attempts)
        resolved_host = self.resolve_host(host, auto_host)

        request = self.build_request(resolved_port, resolved_host, foreground, persist_to, extra_args)
        return self.supervisor.start(request)

    def _wait_for_exit(self, pid: int, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while True:
            _reap(pid)
            if not self.pid_store.is_alive(pid):
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(POLL_STOP)

    def _signal(self, pid: int, sig: int) -> None:
        try:
            os.kill(pid, sig)
        except ProcessLookupError:
            pass
        except OSError as e:
            raise StopFailed(pid, e.strerror or str(e)) from e

    def stop(self, force: bool = False) -> StopResult:
        """Stop the recorded server, SIGTERM first unless force, then SIGKILL"""
        pid = self.pid_store.read()
        if pid is None:
            return StopResult(StopOutcome.NOT_RUNNING)

        if not self.pid_store.is_alive(pid):
            self.pid_store.clear()
            return StopResult(StopOutcome.STALE, pid)

        kill_signal = signal.SIGTERM if IS_WINDOWS else signal.SIGKILL
        if not force:
            logger.info("Sending SIGTERM to %d", pid)
            self._signal(pid, signal.SIGTERM)
            if self._wait_for_exit(pid, self.config.graceful_timeout):
                self.pid_store.clear()
                return StopResult(StopOutcome.STOPPED, pid)
            logger.warning("Server %d did not stop gracefully, force killing", pid)

        self._signal(pid, kill_signal)
        if not self._wait_for_exit(pid, TIMEOUT_FORCE_STOP):
            raise StopFailed(pid, "process still running after SIGKILL")
        self.pid_store.clear()
        return StopResult(StopOutcome.KILLED, pid)

    def restart(self, **start_options) -> tuple[StopResult, StartResult]:
        stopped = self.stop()
        return stopped, self.start(**start_options)

    def status(self) -> ServerStatus:
        pid = self.pid_store.running_pid()
        return ServerStatus(
            running=pid is not None,
            pid=pid,
            pid_file=self.pid_store.pid_file,
            log_file=self.supervisor.log_file,
        )
