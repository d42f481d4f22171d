"""
Development server process supervisor.

Launches the server either attached to the terminal (foreground) or as a
detached background process. In background mode the supervisor decides when
the start has succeeded by racing several event sources:

- the server's stdout shows a readiness phrase
- the server's stderr shows a "port already in use" phrase
- the child handle reports a launch-level error
- the server exits with a non-zero code
- the readiness timeout elapses

The first event wins. Every watcher is stopped and joined before start()
returns, so nothing fires after the outcome is decided.
"""

import logging
import os
import queue
import subprocess
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO

from .errors import (
    ExitedNonZero,
    PortConflictDuringStartup,
    ReadinessTimeout,
    SpawnFailed,
)
from .pidfile import PidStore
from .platform import detach_kwargs
from .subprocess_timeouts import POLL_WATCH, TIMEOUT_GRACEFUL_STOP, TIMEOUT_READY

logger = logging.getLogger(__name__)

READY_PATTERNS = ("Ready on", "Listening on")
PORT_CONFLICT_PATTERNS = ("Address already in use", "EADDRINUSE")

LOG_FILE_NAME = "server.log"
ERR_FILE_NAME = "server.err.log"

# Popen handles of servers still running in the background. A running Popen
# that is garbage-collected reports itself as leaked.
_detached: list[subprocess.Popen] = []


def _release(process: subprocess.Popen) -> None:
    """Hand a running server over to the OS, pruning handles that have exited"""
    _detached[:] = [p for p in _detached if p.poll() is None]
    _detached.append(process)


# Bytes of recent output kept for phrase matching across read boundaries
_SCAN_WINDOW = 8192


class StartOutcome(str, Enum):
    STARTED = "started"
    PORT_CONFLICT = "port_conflict"
    SPAWN_FAILED = "spawn_failed"
    EXITED_NON_ZERO = "exited_non_zero"
    EXITED = "exited"


class RaceEvent(str, Enum):
    """Event sources armed during the readiness race"""

    READY = "ready"
    PORT_CONFLICT = "port_conflict"
    ERROR = "error"
    EXIT = "exit"
    TIMEOUT = "timeout"


@dataclass
class LaunchRequest:
    command: str
    args: list[str] = field(default_factory=list)
    working_directory: Path = field(default_factory=Path.cwd)
    host: str | None = None
    port: int = 8787
    foreground: bool = False
    env: dict[str, str] | None = None

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]

    @property
    def display(self) -> str:
        return " ".join(self.argv)


@dataclass
class StartResult:
    pid: int
    host: str | None
    port: int
    outcome: StartOutcome = StartOutcome.STARTED
    exit_code: int | None = None
    log_file: Path | None = None
    err_file: Path | None = None

    @property
    def url(self) -> str:
        return f"http://{self.host or 'localhost'}:{self.port}"


class _OutputWatcher(threading.Thread):
    """Tails a captured output file and reports the first matching phrase"""

    def __init__(
        self,
        stream: IO[str],
        patterns: tuple[str, ...],
        event: RaceEvent,
        events: queue.Queue,
        stop: threading.Event,
        poll_interval: float,
    ):
        super().__init__(name=f"devserve-{event.value}-watcher", daemon=True)
        self.stream = stream
        self.patterns = patterns
        self.event = event
        self.events = events
        self.stop = stop
        self.poll_interval = poll_interval

    def run(self):
        window = ""
        while not self.stop.is_set():
            chunk = self.stream.read()
            if not chunk:
                self.stop.wait(self.poll_interval)
                continue
            window = (window + chunk)[-_SCAN_WINDOW:]
            if any(pattern in window for pattern in self.patterns):
                self.events.put((self.event, window))
                return


class _ExitWatcher(threading.Thread):
    """Reports a non-zero exit or a child handle error"""

    def __init__(
        self,
        process: subprocess.Popen,
        events: queue.Queue,
        stop: threading.Event,
        poll_interval: float,
    ):
        super().__init__(name="devserve-exit-watcher", daemon=True)
        self.process = process
        self.events = events
        self.stop = stop
        self.poll_interval = poll_interval

    def run(self):
        while not self.stop.is_set():
            try:
                code = self.process.poll()
            except OSError as e:
                self.events.put((RaceEvent.ERROR, str(e)))
                return
            if code is not None:
                # A clean exit is left to the other sources
                if code != 0:
                    self.events.put((RaceEvent.EXIT, code))
                return
            self.stop.wait(self.poll_interval)


class ServerSupervisor:
    """
    Starts one development server and reports how the start went.

    Single-shot: failures are raised, never retried. The PID record is
    written as soon as the child exists and removed again before any failure
    is raised.

    Usage:
        supervisor = ServerSupervisor(PidStore.for_project(project), log_dir=project / ".devserve")
        result = supervisor.start(LaunchRequest("npx", ["wrangler", "dev", "--port", "8787"], port=8787))
    """

    def __init__(
        self,
        pid_store: PidStore,
        log_dir: Path,
        ready_patterns: tuple[str, ...] = READY_PATTERNS,
        port_conflict_patterns: tuple[str, ...] = PORT_CONFLICT_PATTERNS,
        ready_timeout: float = TIMEOUT_READY,
        assume_ready_on_timeout: bool = True,
        poll_interval: float = POLL_WATCH,
        graceful_timeout: float = TIMEOUT_GRACEFUL_STOP,
    ):
        self.pid_store = pid_store
        self.log_dir = Path(log_dir)
        self.ready_patterns = tuple(ready_patterns)
        self.port_conflict_patterns = tuple(port_conflict_patterns)
        self.ready_timeout = ready_timeout
        self.assume_ready_on_timeout = assume_ready_on_timeout
        self.poll_interval = poll_interval
        self.graceful_timeout = graceful_timeout
        self.watchers: list[threading.Thread] = []

    @property
    def log_file(self) -> Path:
        return self.log_dir / LOG_FILE_NAME

    @property
    def err_file(self) -> Path:
        return self.log_dir / ERR_FILE_NAME

    def start(self, request: LaunchRequest) -> StartResult:
        """Start the server described by request"""
        if request.foreground:
            return self._run_foreground(request)
        return self._start_background(request)

    def _environment(self, request: LaunchRequest) -> dict[str, str] | None:
        if not request.env:
            return None
        return {**os.environ, **request.env}

    def _spawn(self, request: LaunchRequest, **kwargs) -> subprocess.Popen:
        try:
            process = subprocess.Popen(
                request.argv,
                cwd=str(request.working_directory),
                env=self._environment(request),
                **kwargs,
            )
        except OSError as e:
            logger.info("Spawn of %s failed: %s", request.command, e)
            raise SpawnFailed(request.command, e.strerror or str(e)) from e
        if not process.pid:
            raise SpawnFailed(request.command, "no process id was assigned")
        return process

    def _run_foreground(self, request: LaunchRequest) -> StartResult:
        """Run attached to the terminal until the server exits or the user interrupts"""
        logger.info("Running %s in foreground", request.display)
        process = self._spawn(request)
        try:
            code = process.wait()
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping pid %d", process.pid)
            code = self._terminate(process)

        return StartResult(
            pid=process.pid,
            host=request.host,
            port=request.port,
            outcome=StartOutcome.EXITED,
            exit_code=code,
        )

    def _start_background(self, request: LaunchRequest) -> StartResult:
        self.log_dir.mkdir(parents=True, exist_ok=True)

        with open(self.log_file, "w", encoding="utf-8") as out, open(self.err_file, "w", encoding="utf-8") as err:
            process = self._spawn(
                request,
                stdin=subprocess.DEVNULL,
                stdout=out,
                stderr=err,
                **detach_kwargs(),
            )

        self.pid_store.write(process.pid)
        logger.info("Spawned %s", request.display, extra={"pid": process.pid, "port": request.port})

        event, detail = self._race(process)
        logger.info("Readiness race won by %s", event.value, extra={"pid": process.pid, "outcome": event.value})

        if event == RaceEvent.READY or (event == RaceEvent.TIMEOUT and self.assume_ready_on_timeout):
            _release(process)
            return StartResult(
                pid=process.pid,
                host=request.host,
                port=request.port,
                outcome=StartOutcome.STARTED,
                log_file=self.log_file,
                err_file=self.err_file,
            )

        self.pid_store.clear()
        if process.poll() is None:
            self._terminate(process)

        if event == RaceEvent.PORT_CONFLICT:
            raise PortConflictDuringStartup(request.port, self._captured_stderr())
        if event == RaceEvent.ERROR:
            raise SpawnFailed(request.command, str(detail))
        if event == RaceEvent.EXIT:
            raise ExitedNonZero(int(detail), self._captured_stderr())
        raise ReadinessTimeout(self.ready_timeout)

    def _race(self, process: subprocess.Popen) -> tuple[RaceEvent, object]:
        """Arm every event source and return the first event to fire"""
        events: queue.Queue = queue.Queue()
        stop = threading.Event()

        with open(self.log_file, encoding="utf-8", errors="replace") as out, open(
            self.err_file, encoding="utf-8", errors="replace"
        ) as err:
            self.watchers = [
                _OutputWatcher(out, self.ready_patterns, RaceEvent.READY, events, stop, self.poll_interval),
                _OutputWatcher(
                    err, self.port_conflict_patterns, RaceEvent.PORT_CONFLICT, events, stop, self.poll_interval
                ),
                _ExitWatcher(process, events, stop, self.poll_interval),
            ]
            for watcher in self.watchers:
                watcher.start()

            try:
                return events.get(timeout=self.ready_timeout)
            except queue.Empty:
                return (RaceEvent.TIMEOUT, None)
            finally:
                stop.set()
                for watcher in self.watchers:
                    watcher.join()

    def _captured_stderr(self) -> str:
        try:
            return self.err_file.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return ""

    def _terminate(self, process: subprocess.Popen) -> int:
        process.terminate()
        try:
            return process.wait(timeout=self.graceful_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("pid %d ignored SIGTERM, killing", process.pid)
            process.kill()
            return process.wait()
