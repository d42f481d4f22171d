"""One-line status messages printed through rich.

Errors go to stderr, everything else to stdout. Rich drops styling on its own
when the stream is not a terminal or NO_COLOR is set.
"""

from rich.console import Console
from rich.text import Text

console = Console(highlight=False, legacy_windows=True)
err_console = Console(stderr=True, highlight=False)

MESSAGE_STYLES = {
    "success": ("[ok]", "green"),
    "error": ("[x]", "red"),
    "warning": ("[!]", "yellow"),
    "info": (">", "blue"),
}


def _message(kind: str, text: str) -> Text:
    icon, style = MESSAGE_STYLES[kind]
    return Text.assemble((icon, style), " ", text)


def msg_success(text: str):
    console.print(_message("success", text), soft_wrap=True)


def msg_error(text: str):
    err_console.print(_message("error", text), soft_wrap=True)


def msg_warning(text: str):
    console.print(_message("warning", text), soft_wrap=True)


def msg_info(text: str):
    console.print(_message("info", text), soft_wrap=True)


def msg_dim(text: str):
    """Print an indented hint under the previous message"""
    console.print(Text(f"  {text}", style="dim"), soft_wrap=True)
