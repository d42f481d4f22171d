"""
devserve CLI - Local development server supervisor
Starts, tracks and stops a background development server for a project
"""

__version__ = "1.0.0"

from .config import ProjectConfig
from .errors import (
    AlreadyRunning,
    ConfigError,
    DevserveError,
    ExitedNonZero,
    PortConflictDuringStartup,
    PortExhausted,
    ReadinessTimeout,
    SpawnFailed,
    StopFailed,
)
from .pidfile import PidStore
from .ports import find_available_port, is_port_available
from .server_manager import ServerManager, ServerStatus, StopOutcome, StopResult
from .supervisor import LaunchRequest, ServerSupervisor, StartOutcome, StartResult

__all__ = [
    "ProjectConfig",
    "PidStore",
    "ServerManager",
    "ServerStatus",
    "ServerSupervisor",
    "LaunchRequest",
    "StartResult",
    "StartOutcome",
    "StopOutcome",
    "StopResult",
    "find_available_port",
    "is_port_available",
    "DevserveError",
    "ConfigError",
    "PortExhausted",
    "AlreadyRunning",
    "SpawnFailed",
    "PortConflictDuringStartup",
    "ExitedNonZero",
    "ReadinessTimeout",
    "StopFailed",
    "__version__",
]
