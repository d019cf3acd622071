"""
=============================================================================
PAGESERVER CLI ENTRY POINT
=============================================================================

    # Defaults: 127.0.0.1:7878, serving ./pages
    python -m pageserver

    # Another directory and port
    python -m pageserver --base-dir ./site --port 8080

    # host:port in one go
    python -m pageserver --address 0.0.0.0:8080

    # JSON access log, debug output
    python -m pageserver --log-format json --log-level DEBUG

Environment variables (PAGESERVER_*, see ServerConfig.from_env) provide the
defaults; command-line flags override them.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig, parse_address
from .server import PageServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser, with defaults taken from the environment."""
    parser = argparse.ArgumentParser(
        prog="pageserver",
        description="Serve directory-routed HTML pages from a base directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m pageserver                          # 127.0.0.1:7878, ./pages
  python -m pageserver --base-dir ./site        # Another directory
  python -m pageserver --address 0.0.0.0:8080   # Listen on all interfaces
  python -m pageserver --log-format json        # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--address", "-a",
        default=None,
        help="host:port to bind to (overrides --host and --port)"
    )

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
        "--timeout",
        type=float,
        default=defaults.timeout,
        help=f"Per-connection socket timeout in seconds (default: {defaults.timeout})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--base-dir", "-d",
        default=defaults.base_dir,
        help=f"Directory to serve pages from (default: {defaults.base_dir})"
    )

    parser.add_argument(
        "--no-bad-request",
        action="store_true",
        help="Close the connection on malformed request lines instead of answering 400"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"pageserver {__version__}"
    )

    return parser


def config_from_args(argv: Optional[List[str]] = None) -> ServerConfig:
    """
    Build a ServerConfig from environment defaults and CLI arguments.

    Exits with status 2 (argparse convention) on invalid input.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid PAGESERVER_* environment: {e}", file=sys.stderr)
        sys.exit(2)

    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    host, port = args.host, args.port
    if args.address:
        try:
            host, port = parse_address(args.address)
        except ValueError as e:
            parser.error(str(e))

    config = ServerConfig(
        host=host,
        port=port,
        timeout=args.timeout,
        base_dir=args.base_dir,
        bad_request_response=not args.no_bad_request,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    return config


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    config = config_from_args(argv)
    server = PageServer(config)

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
