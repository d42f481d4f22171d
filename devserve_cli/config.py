"""Configuration management for devserve.yml and environment overrides"""

import os
import shlex
from pathlib import Path

import yaml

from .errors import ConfigError
from .pidfile import PID_DIR
from .ports import DEFAULT_PORT, MAX_PORT, MAX_PORT_ATTEMPTS
from .subprocess_timeouts import TIMEOUT_GRACEFUL_STOP, TIMEOUT_READY
from .supervisor import PORT_CONFLICT_PATTERNS, READY_PATTERNS

CONFIG_FILE_NAMES = ("devserve.yml", "devserve.yaml")

# Files that mark a directory as a servable project
PROJECT_MARKERS = ("conductor.config.ts", "conductor.config.js", "wrangler.toml", *CONFIG_FILE_NAMES)

LOCAL_WRANGLER = Path("node_modules") / ".bin" / "wrangler"


class ProjectConfig:
    """
    Manages per-project devserve.yml configuration.

    Schema:
        command: str | list          # Server command (default: wrangler dev)
        port: int                    # Requested port (default: 8787)
        host: str                    # Bind host passed to the server (default: none)
        auto_host: bool              # Bind 0.0.0.0 inside dev containers (default: true)
        max_port_attempts: int       # Ports tried before giving up (default: 10)
        ready_timeout: float         # Seconds to wait for readiness (default: 3)
        assume_ready_on_timeout: bool  # Silence counts as started (default: true)
        ready_patterns: list         # stdout phrases that mean "ready"
        port_conflict_patterns: list # stderr phrases that mean "port taken"
        pid_dir: str                 # Directory for server.pid and logs (default: .devserve)
        graceful_timeout: float      # SIGTERM grace period on stop (default: 5)
        persist_to: str              # Passed as --persist-to (default: none)
        host_flag: str               # Flag used to pass the host (default: --host)
        port_flag: str               # Flag used to pass the port (default: --port)

    Environment overrides: DEVSERVE_PORT, DEVSERVE_HOST, DEVSERVE_READY_TIMEOUT.
    """

    DEFAULT_CONFIG = {
        "command": None,  # Auto-detected wrangler
        "port": DEFAULT_PORT,
        "host": None,
        "auto_host": True,
        "max_port_attempts": MAX_PORT_ATTEMPTS,
        "ready_timeout": TIMEOUT_READY,
        "assume_ready_on_timeout": True,
        "ready_patterns": list(READY_PATTERNS),
        "port_conflict_patterns": list(PORT_CONFLICT_PATTERNS),
        "pid_dir": PID_DIR,
        "graceful_timeout": TIMEOUT_GRACEFUL_STOP,
        "persist_to": None,
        "host_flag": "--host",
        "port_flag": "--port",
    }

    def __init__(self, start_path: Path | None = None):
        self.start_path = Path(start_path or os.getcwd()).resolve()
        self.config_file: Path | None = None
        self.config: dict = {}
        self._find_and_load()
        self._apply_env()

    def _find_and_load(self):
        """Search for devserve.yml in current and parent directories"""
        current = self.start_path

        # Search up to 10 levels
        for _ in range(10):
            for filename in CONFIG_FILE_NAMES:
                config_path = current / filename
                if config_path.exists():
                    self.config_file = config_path
                    self._load_yaml()
                    return

            parent = current.parent
            if parent == current:
                break
            current = parent

        self.config = self.DEFAULT_CONFIG.copy()

    def _load_yaml(self):
        """Load config from YAML file"""
        try:
            with open(self.config_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load {self.config_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{self.config_file} must contain a mapping")

        unknown = sorted(set(data) - set(self.DEFAULT_CONFIG))
        if unknown:
            raise ConfigError(f"Unknown keys in {self.config_file}: {', '.join(unknown)}")

        self.config = {**self.DEFAULT_CONFIG, **data}

    def _apply_env(self):
        """Environment variables win over the file"""
        port = os.environ.get("DEVSERVE_PORT", "").strip()
        if port:
            self.config["port"] = port
        host = os.environ.get("DEVSERVE_HOST", "").strip()
        if host:
            self.config["host"] = host
        timeout = os.environ.get("DEVSERVE_READY_TIMEOUT", "").strip()
        if timeout:
            self.config["ready_timeout"] = timeout

    def save(self, path: Path | None = None) -> Path:
        """Save config to YAML file"""
        save_path = path or self.config_file or (self.start_path / CONFIG_FILE_NAMES[0])
        with open(save_path, "w", encoding="utf-8") as f:
            yaml.dump(self.config, f, default_flow_style=False, sort_keys=False)
        self.config_file = save_path
        return save_path

    def exists(self) -> bool:
        """Check if a project config file was found"""
        return self.config_file is not None

    @property
    def project_dir(self) -> Path:
        """Directory the server runs in: where devserve.yml lives, else the start path"""
        if self.config_file is not None:
            return self.config_file.parent
        return self.start_path

    def is_project(self) -> bool:
        return any((self.project_dir / marker).exists() for marker in PROJECT_MARKERS)

    def _int(self, key: str, minimum: int = 1, maximum: int | None = None) -> int:
        value = self.config.get(key)
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None
        if number < minimum or (maximum is not None and number > maximum):
            raise ConfigError(f"{key} out of range: {number}")
        return number

    def _float(self, key: str) -> float:
        value = self.config.get(key)
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be a number, got {value!r}") from None
        if number <= 0:
            raise ConfigError(f"{key} must be positive, got {number}")
        return number

    def _patterns(self, key: str) -> tuple[str, ...]:
        value = self.config.get(key)
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(p, str) and p for p in value):
            raise ConfigError(f"{key} must be a list of non-empty strings")
        return tuple(value)

    @property
    def command(self) -> list[str]:
        """Server command split into argv form"""
        value = self.config.get("command")
        if not value:
            local = self.project_dir / LOCAL_WRANGLER
            if local.exists():
                return [str(local), "dev"]
            return ["npx", "wrangler", "dev"]
        if isinstance(value, str):
            parts = shlex.split(value)
        elif isinstance(value, list):
            parts = [str(p) for p in value]
        else:
            raise ConfigError(f"command must be a string or list, got {value!r}")
        if not parts:
            raise ConfigError("command cannot be empty")
        return parts

    @property
    def port(self) -> int:
        return self._int("port", 1, MAX_PORT)

    @property
    def host(self) -> str | None:
        return self.config.get("host") or None

    @property
    def auto_host(self) -> bool:
        return bool(self.config.get("auto_host", True))

    @property
    def max_port_attempts(self) -> int:
        return self._int("max_port_attempts")

    @property
    def ready_timeout(self) -> float:
        return self._float("ready_timeout")

    @property
    def assume_ready_on_timeout(self) -> bool:
        return bool(self.config.get("assume_ready_on_timeout", True))

    @property
    def ready_patterns(self) -> tuple[str, ...]:
        return self._patterns("ready_patterns")

    @property
    def port_conflict_patterns(self) -> tuple[str, ...]:
        return self._patterns("port_conflict_patterns")

    @property
    def pid_dir(self) -> Path:
        return self.project_dir / (self.config.get("pid_dir") or PID_DIR)

    @property
    def graceful_timeout(self) -> float:
        return self._float("graceful_timeout")

    @property
    def persist_to(self) -> str | None:
        return self.config.get("persist_to") or None

    @property
    def host_flag(self) -> str:
        return self.config.get("host_flag") or "--host"

    @property
    def port_flag(self) -> str:
        return self.config.get("port_flag") or "--port"
