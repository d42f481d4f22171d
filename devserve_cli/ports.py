"""Port probing and allocation for the development server"""

import logging
import socket
from collections.abc import Callable

from .errors import PortExhausted

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8787
MAX_PORT_ATTEMPTS = 10
DEFAULT_PROBE_HOST = "0.0.0.0"
MAX_PORT = 65535


def is_port_available(port: int, host: str = DEFAULT_PROBE_HOST) -> bool:
    """Check if a port is free by binding to it and releasing it immediately.

    The answer is a point-in-time signal: another process may take the port
    right after this returns.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((host, port))
            s.listen(1)
            return True
    except (OSError, OverflowError):
        return False


def find_available_port(
    start_port: int,
    max_attempts: int = MAX_PORT_ATTEMPTS,
    host: str = DEFAULT_PROBE_HOST,
    probe: Callable[[int, str], bool] = is_port_available,
) -> int:
    """
    Find the first free port at or after start_port.

    Candidates are probed one at a time in ascending order, so repeated runs
    against the same environment pick the same port.

    Args:
        start_port: First port to probe
        max_attempts: Total number of candidates, start_port included
        host: Bind address used by the probe
        probe: Callable (port, host) -> bool, replaceable in tests

    Raises:
        PortExhausted: None of the attempted ports were free
    """
    if not 1 <= start_port <= MAX_PORT:
        raise ValueError(f"Port must be between 1 and {MAX_PORT}, got {start_port}")
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    end_port = min(start_port + max_attempts - 1, MAX_PORT)
    for port in range(start_port, end_port + 1):
        if probe(port, host):
            if port != start_port:
                logger.info("Port %d is in use, using %d instead", start_port, port)
            return port
        logger.debug("Port %d is in use", port)

    raise PortExhausted(start_port, end_port)
