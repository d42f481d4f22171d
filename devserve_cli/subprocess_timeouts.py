"""
Timeouts for supervising the development server process.

All waits performed by the supervisor and the stop logic should use these
constants instead of hard-coded values.
"""

# Timeout constants (in seconds)

# Readiness window after a background spawn
TIMEOUT_READY = 3.0
"""Silence for this long after spawning is treated as a successful start."""

# Graceful shutdown window
TIMEOUT_GRACEFUL_STOP = 5.0
"""How long SIGTERM gets before escalating to SIGKILL."""

# Wait after SIGKILL
TIMEOUT_FORCE_STOP = 1.0
"""How long to wait for the process table to drop a killed process."""

# Polling intervals
POLL_STOP = 0.1
"""Liveness polling interval while waiting for a process to exit."""

POLL_WATCH = 0.05
"""Polling interval of the readiness watchers (log tails and exit watcher)."""

# Interactive operations (no timeout)
TIMEOUT_NONE = None
"""Foreground runs: the terminal owns the lifetime."""


# Operation-specific timeouts
TIMEOUTS = {
    "ready": TIMEOUT_READY,
    "graceful_stop": TIMEOUT_GRACEFUL_STOP,
    "force_stop": TIMEOUT_FORCE_STOP,
    "stop_poll": POLL_STOP,
    "watch_poll": POLL_WATCH,
    "foreground": TIMEOUT_NONE,
}


def get_timeout(operation: str, default: float | None = TIMEOUT_GRACEFUL_STOP) -> float | None:
    """
    Get the recommended timeout for a specific operation.

    Args:
        operation: Operation name (e.g., "ready", "graceful_stop")
        default: Default timeout if operation not found

    Returns:
        Timeout in seconds, or None for interactive operations

    Examples:
        >>> get_timeout("ready")
        3.0
        >>> get_timeout("foreground") is None
        True
        >>> get_timeout("unknown_operation")
        5.0
    """
    return TIMEOUTS.get(operation, default)
