"""Show captured output of the background server."""

import sys
import time
from pathlib import Path

from .utils import msg_error, msg_info, msg_success, msg_warning


def tail_lines(path: Path, lines: int) -> tuple[list[str], int]:
    """Return the last `lines` lines of path and the total line count"""
    all_lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    if lines > 0 and len(all_lines) > lines:
        return all_lines[-lines:], len(all_lines)
    return all_lines, len(all_lines)


def cmd_logs(log_path: Path, follow: bool = False, lines: int = 50, clear: bool = False) -> bool:
    """Tail server logs.

    Args:
        log_path: Captured stdout or stderr file
        follow: If True, continuously follow log output (like tail -f)
        lines: Number of lines to show initially
        clear: If True, clear the log file instead of reading it

    Returns:
        True if successful, False otherwise
    """
    if clear:
        if not log_path.exists():
            msg_info(f"Log file does not exist: {log_path}")
            return True
        try:
            log_path.write_text("")
        except OSError as e:
            msg_error(f"Failed to clear log: {e}")
            return False
        msg_success(f"Cleared log file: {log_path}")
        return True

    if not log_path.exists():
        msg_warning(f"Log file not found: {log_path}")
        msg_info("Output is only captured for servers started in the background.")
        return True

    try:
        display_lines, total = tail_lines(log_path, lines)
        if len(display_lines) < total:
            print(f"... (showing last {lines} of {total} lines)")
        for line in display_lines:
            print(line)

        if not follow:
            return True

        msg_info(f"Following {log_path} (Ctrl+C to stop)...")
        last_size = log_path.stat().st_size

        try:
            while True:
                time.sleep(0.5)

                if not log_path.exists():
                    msg_warning("Log file was deleted. Waiting for recreation...")
                    while not log_path.exists():
                        time.sleep(1)
                    last_size = 0
                    msg_info("Log file recreated. Resuming...")

                current_size = log_path.stat().st_size

                if current_size > last_size:
                    with log_path.open("r", encoding="utf-8", errors="replace") as f:
                        f.seek(last_size)
                        sys.stdout.write(f.read())
                        sys.stdout.flush()
                    last_size = current_size
                elif current_size < last_size:
                    # Truncated by a restart or --clear
                    msg_info("(Log file was cleared)")
                    last_size = current_size

        except KeyboardInterrupt:
            print()
            return True

    except OSError as e:
        msg_error(f"Failed to read log: {e}")
        return False
