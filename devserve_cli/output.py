"""
Rich-powered console output for devserve.

Provides the start banner and the status panel.
"""

import sys

from rich.panel import Panel
from rich.text import Text

from .server_manager import ServerStatus
from .supervisor import StartResult
from .utils import console

# ASCII-safe characters for non-TTY output
_USE_ASCII = not sys.stdout.isatty()

STATUS_STYLES = {
    "ok": ("+" if _USE_ASCII else "✓", "green"),
    "error": ("x" if _USE_ASCII else "✗", "red"),
    "running": ("+" if _USE_ASCII else "●", "green"),
    "stopped": ("-" if _USE_ASCII else "○", "dim"),
}


def status_icon(status: str) -> Text:
    """Create a styled status icon"""
    icon, style = STATUS_STYLES.get(status, ("?", "dim"))
    return Text(icon, style=style)


def start_banner(command: str) -> Panel:
    """Panel shown before the server is launched"""
    content = Text.assemble(("Starting development server", "bold"), "\n", (command, "dim"))
    return Panel(content, border_style="cyan", expand=False)


def started_panel(result: StartResult) -> Panel:
    """Panel shown after a successful background start"""
    lines = [
        Text.assemble(status_icon("ok"), " Server running at ", (result.url, "cyan")),
        Text(f"PID: {result.pid}", style="dim"),
    ]
    if result.log_file:
        lines.append(Text(f"Logs: {result.log_file}", style="dim"))
    lines.append(Text(""))
    lines.append(Text("Commands:", style="dim"))
    lines.append(Text("  devserve stop     Stop the server", style="dim"))
    lines.append(Text("  devserve status   Check server status", style="dim"))
    lines.append(Text("  devserve logs -f  Follow server output", style="dim"))
    return Panel(Text("\n").join(lines), title="devserve", border_style="green")


def status_panel(status: ServerStatus) -> Panel:
    """Create a status panel for the recorded server"""
    if status.running:
        state = Text.assemble(status_icon("running"), " Running")
        state.append(f" (PID: {status.pid})", style="dim")
    else:
        state = Text.assemble(status_icon("stopped"), " Not running")

    lines = [
        Text.assemble("Server: ", state),
        Text(f"PID file: {status.pid_file}", style="dim"),
        Text(f"Log file: {status.log_file}", style="dim"),
    ]
    return Panel(Text("\n").join(lines), title="Server Status", border_style="cyan")


def print_start_banner(command: str):
    console.print(start_banner(command))


def print_started(result: StartResult):
    console.print(started_panel(result))


def print_status(status: ServerStatus):
    console.print(status_panel(status))
