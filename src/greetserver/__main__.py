"""
=============================================================================
GREETING SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:8010)
    python -m greetserver

    # Custom port, localhost only
    python -m greetserver --host 127.0.0.1 --port 9000

    # Different greeting, CRLF line ending
    python -m greetserver --message "Welcome!" --crlf

GREET_* environment variables provide the defaults; flags override them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, LOG_LEVELS
from .core import BindError
from .server import GreetingServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="greetserver",
        description="Sequential TCP server that greets each client with one line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m greetserver                          # Listen on 0.0.0.0:8010
  python -m greetserver --port 9000              # Custom port
  python -m greetserver --message "Hi" --crlf    # Custom greeting, CRLF
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=defaults.accept_timeout,
        help=f"Idle accept timeout in seconds (default: {defaults.accept_timeout:g})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # GREETING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--message", "-m",
        default=defaults.greeting,
        help=f"Greeting line sent to each client (default: {defaults.greeting!r})"
    )

    parser.add_argument(
        "--crlf",
        action="store_true",
        help="Terminate the greeting with CRLF instead of LF"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"greetserver {__version__}"
    )

    return parser


def main(argv=None):
    """Parse arguments, build the server and run it until stopped."""
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid GREET_* environment variable: {e}", file=sys.stderr)
        return 2

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        accept_timeout=args.timeout,
        greeting=args.message,
        line_terminator="\r\n" if args.crlf else "\n",
        log_level=args.log_level,
    )

    try:
        server = GreetingServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except BindError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
