"""CLI command implementations"""

import json
from collections.abc import Sequence
from pathlib import Path

from .config import ProjectConfig
from .errors import (
    AlreadyRunning,
    DevserveError,
    ExitedNonZero,
    PortConflictDuringStartup,
    PortExhausted,
    StopFailed,
)
from .logs import cmd_logs
from .output import print_start_banner, print_started, print_status
from .ports import MAX_PORT, is_port_available
from .server_manager import ServerManager, StopOutcome
from .supervisor import StartOutcome
from .utils import msg_dim, msg_error, msg_info, msg_success, msg_warning


class DevserveCLI:
    """Main CLI interface"""

    def __init__(self, project_dir: Path | None = None):
        self.config = ProjectConfig(project_dir)
        self.manager = ServerManager(self.config)

    def start(
        self,
        port: int | None = None,
        host: str | None = None,
        foreground: bool = False,
        auto_host: bool = True,
        persist_to: str | None = None,
        extra_args: Sequence[str] = (),
    ) -> bool:
        """Start the development server"""
        if not self.config.is_project():
            msg_error("Not a project directory (no conductor.config.ts, wrangler.toml or devserve.yml found)")
            msg_dim("Run devserve from your project root or pass --project DIR")
            return False

        requested = port or self.config.port
        if not 1 <= requested <= MAX_PORT:
            msg_error(f"Invalid port number: {requested}")
            return False
        if not is_port_available(requested):
            msg_warning(f"Port {requested} is in use, finding alternative...")

        resolved_host = self.manager.resolve_host(host, auto_host)
        if resolved_host and not host and not self.config.host:
            msg_info(f"Detected dev container - binding to {resolved_host}")

        try:
            if foreground:
                print_start_banner(f"{' '.join(self.config.command)} (foreground)")
            result = self.manager.start(
                port=port,
                host=host,
                foreground=foreground,
                auto_host=auto_host,
                persist_to=persist_to,
                extra_args=extra_args,
            )
        except AlreadyRunning as e:
            msg_warning(str(e))
            msg_dim("Run `devserve stop` to stop the server")
            msg_dim("Or `devserve restart` to restart it")
            return False
        except PortExhausted as e:
            msg_error(str(e))
            msg_dim("Pass a different --port or stop the processes holding these ports")
            return False
        except PortConflictDuringStartup as e:
            msg_error(str(e))
            msg_dim("Another process grabbed the port during startup. Run `devserve start` again.")
            return False
        except ExitedNonZero as e:
            msg_error(f"Server exited with code {e.code}")
            if e.stderr.strip():
                print(e.stderr.rstrip())
            return False
        except DevserveError as e:
            msg_error(str(e))
            return False

        if result.outcome == StartOutcome.EXITED:
            return True

        if result.port != requested:
            msg_info(f"Using port {result.port} instead")
        msg_success("Server started")
        print_started(result)
        return True

    def stop(self, force: bool = False) -> bool:
        """Stop the development server"""
        try:
            result = self.manager.stop(force=force)
        except StopFailed as e:
            msg_error(str(e))
            msg_dim(f"Try manually: kill -9 {e.pid}")
            return False

        if result.outcome == StopOutcome.NOT_RUNNING:
            msg_warning("No server PID file found")
            msg_dim("The server may not have been started with `devserve start`")
            msg_dim("Or it may have already been stopped")
        elif result.outcome == StopOutcome.STALE:
            msg_warning(f"Server process (PID: {result.pid}) is not running")
            msg_dim("Cleaned up stale PID file")
        elif result.outcome == StopOutcome.KILLED:
            msg_success(f"Server force stopped (PID: {result.pid})")
        else:
            msg_success(f"Server stopped (PID: {result.pid})")
        return True

    def restart(self, **start_options) -> bool:
        """Stop, then start with the given options"""
        if not self.stop():
            return False
        return self.start(**start_options)

    def status(self, json_output: bool = False) -> bool:
        """Show server status"""
        status = self.manager.status()
        if json_output:
            print(json.dumps(status.to_dict()))
        else:
            print_status(status)
        return status.running

    def logs(self, follow: bool = False, lines: int = 50, clear: bool = False, stderr: bool = False) -> bool:
        """Show captured server output"""
        supervisor = self.manager.supervisor
        return cmd_logs(supervisor.err_file if stderr else supervisor.log_file, follow, lines, clear)
