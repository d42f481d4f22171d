"""Main entry point for devserve CLI"""

import argparse
import sys
from pathlib import Path

from . import __version__
from .cli import DevserveCLI
from .errors import ConfigError
from .ports import MAX_PORT
from .structured_logging import setup_logging
from .utils import msg_error


def port_number(value: str) -> int:
    """argparse type for a TCP port in 1-65535"""
    try:
        port = int(value)
    except ValueError:
        port = 0
    if not 1 <= port <= MAX_PORT:
        raise argparse.ArgumentTypeError(f"Invalid port number: {value}")
    return port


def _add_start_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--port", "-p", type=port_number, help="Port to run on (default: 8787 or devserve.yml)")
    parser.add_argument("--host", help="Host for the server to bind")
    parser.add_argument("--foreground", "-f", action="store_true", help="Run attached to this terminal")
    parser.add_argument(
        "--no-auto-host",
        action="store_false",
        dest="auto_host",
        help="Do not bind 0.0.0.0 automatically inside dev containers",
    )
    parser.add_argument("--persist-to", help="Directory passed to the server as --persist-to")
    parser.add_argument("extra", nargs=argparse.REMAINDER, help="Extra server arguments after --")


def _start_options(args: argparse.Namespace) -> dict:
    extra = list(args.extra)
    if extra and extra[0] == "--":
        extra = extra[1:]
    return {
        "port": args.port,
        "host": args.host,
        "foreground": args.foreground,
        "auto_host": args.auto_host,
        "persist_to": args.persist_to,
        "extra_args": extra,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devserve",
        description="devserve - start, stop and track a local development server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--version", action="version", version=f"devserve {__version__}")
    parser.add_argument("--project", "-C", type=Path, help="Project directory (default: current directory)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    start_parser = subparsers.add_parser("start", help="Start the development server")
    _add_start_arguments(start_parser)

    stop_parser = subparsers.add_parser("stop", help="Stop the development server")
    stop_parser.add_argument("--force", "-f", action="store_true", help="Send SIGKILL immediately")

    restart_parser = subparsers.add_parser("restart", help="Stop, then start the development server")
    _add_start_arguments(restart_parser)

    status_parser = subparsers.add_parser("status", help="Show whether the server is running")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    logs_parser = subparsers.add_parser("logs", help="Show captured server output")
    logs_parser.add_argument("--follow", "-f", action="store_true", help="Follow log output")
    logs_parser.add_argument("--lines", "-n", type=int, default=50, help="Number of lines to show (default: 50)")
    logs_parser.add_argument("--clear", action="store_true", help="Clear the log file")
    logs_parser.add_argument("--stderr", action="store_true", help="Show captured stderr instead of stdout")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging()

    try:
        cli = DevserveCLI(args.project)

        if args.command == "start":
            success = cli.start(**_start_options(args))
        elif args.command == "stop":
            success = cli.stop(force=args.force)
        elif args.command == "restart":
            success = cli.restart(**_start_options(args))
        elif args.command == "status":
            success = cli.status(json_output=args.json)
        elif args.command == "logs":
            success = cli.logs(follow=args.follow, lines=args.lines, clear=args.clear, stderr=args.stderr)
        else:
            parser.print_help()
            return 1

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except ConfigError as e:
        msg_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
