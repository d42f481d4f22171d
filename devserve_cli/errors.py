"""Typed failures raised by the port allocator, PID store and supervisor.

The core never prints. Every failure is raised as one of these and the CLI
layer decides how to present it.
"""


class DevserveError(Exception):
    """Base class for all devserve failures"""


class ConfigError(DevserveError):
    """Invalid devserve.yml value or environment override"""


class PortExhausted(DevserveError):
    """No free port in the attempted range"""

    def __init__(self, start: int, end: int):
        self.start = start
        self.end = end
        super().__init__(f"Could not find an available port (tried {start}-{end})")


class AlreadyRunning(DevserveError):
    """A live process already owns the PID record"""

    def __init__(self, pid: int):
        self.pid = pid
        super().__init__(f"Server already running (PID: {pid})")


class SpawnFailed(DevserveError):
    """The OS could not create the child process"""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to start server process '{command}': {reason}")


class PortConflictDuringStartup(DevserveError):
    """The allocated port was taken before the child could bind it"""

    def __init__(self, port: int, stderr: str = ""):
        self.port = port
        self.stderr = stderr
        super().__init__(f"Port {port} became unavailable")


class ExitedNonZero(DevserveError):
    """The child exited before signalling readiness"""

    def __init__(self, code: int, stderr: str = ""):
        self.code = code
        self.stderr = stderr
        message = f"Server exited with code {code}"
        if stderr.strip():
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)


class ReadinessTimeout(DevserveError):
    """No readiness signal within the timeout and optimistic start is disabled"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Server did not report readiness within {timeout:g}s")


class StopFailed(DevserveError):
    """The recorded process could not be signalled"""

    def __init__(self, pid: int, reason: str):
        self.pid = pid
        self.reason = reason
        super().__init__(f"Failed to stop server (PID: {pid}): {reason}")
