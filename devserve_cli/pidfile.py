"""PID record for the background development server"""

import errno
import logging
import os
from pathlib import Path

from .platform import IS_WINDOWS, windows_process_exists

logger = logging.getLogger(__name__)

PID_DIR = ".devserve"
PID_FILE_NAME = "server.pid"


class PidStore:
    """
    Persists a single process id at a well-known path.

    The file is a plain decimal integer. Its presence says nothing about
    whether the process is still alive; callers must check is_alive() before
    trusting it. The file is not locked: two concurrent writers race and the
    last one wins.
    """

    def __init__(self, pid_file: Path):
        self.pid_file = Path(pid_file)

    @classmethod
    def for_project(cls, project_dir: Path, pid_dir: str = PID_DIR) -> "PidStore":
        return cls(Path(project_dir) / pid_dir / PID_FILE_NAME)

    def read(self) -> int | None:
        """Return the stored pid, or None if missing or unparseable"""
        try:
            content = self.pid_file.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            return None

        try:
            pid = int(content, 10)
        except ValueError:
            return None
        return pid if pid > 0 else None

    def write(self, pid: int) -> None:
        """Overwrite the record with pid, creating the directory if needed"""
        if pid <= 0:
            raise ValueError(f"Invalid pid: {pid}")
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(str(pid), encoding="utf-8")
        logger.debug("Wrote pid %d to %s", pid, self.pid_file)

    def clear(self) -> None:
        """Remove the record. Safe to call when it does not exist."""
        self.pid_file.unlink(missing_ok=True)

    @staticmethod
    def is_alive(pid: int) -> bool:
        """Check if a process exists without delivering a signal to it"""
        if pid <= 0:
            return False
        if IS_WINDOWS:
            return windows_process_exists(pid)
        try:
            os.kill(pid, 0)  # Signal 0 just checks if process exists
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists, owned by another user
            return True
        except OSError as e:
            if e.errno == errno.ESRCH:
                return False
            raise
        return True

    def running_pid(self) -> int | None:
        """Return the recorded pid if that process is alive, clearing a stale record"""
        pid = self.read()
        if pid is None:
            return None
        if self.is_alive(pid):
            return pid
        logger.info("Removing stale PID record for %d", pid)
        self.clear()
        return None
