"""Tests for the console message helpers"""

from devserve_cli.utils import msg_dim, msg_error, msg_info, msg_success, msg_warning


def test_messages_go_to_stdout(capsys):
    msg_success("Server started")
    msg_warning("Port 8787 is in use, finding alternative...")
    msg_info("Using port 8788 instead")
    msg_dim("Run `devserve stop` to stop the server")

    captured = capsys.readouterr()
    assert captured.err == ""
    assert captured.out.splitlines() == [
        "[ok] Server started",
        "[!] Port 8787 is in use, finding alternative...",
        "> Using port 8788 instead",
        "  Run `devserve stop` to stop the server",
    ]


def test_error_goes_to_stderr(capsys):
    msg_error("Could not find an available port (tried 8787-8796)")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.strip() == "[x] Could not find an available port (tried 8787-8796)"


def test_long_message_and_markup_are_printed_verbatim(capsys):
    path = "/very/long/project/path/" + "nested/" * 20 + "[server].log"
    msg_info(f"Following {path} (Ctrl+C to stop)...")

    assert capsys.readouterr().out == f"> Following {path} (Ctrl+C to stop)...\n"
