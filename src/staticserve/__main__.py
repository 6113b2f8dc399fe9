"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

    python -m staticserve [--port N] [--home DIR] [--listdir] ...
    staticserve          [--port N] [--home DIR] [--listdir] ...

Environment variables (see ServerConfig.from_env) provide the defaults;
flags given on the command line win.

=============================================================================
"""

import argparse
import os
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserve",
        description="Serve a directory over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staticserve                            # Serve . on 127.0.0.1:8080
  staticserve --home ./public -p 3000    # Custom root and port
  staticserve --listdir                  # Index pages for directories
  staticserve --host 0.0.0.0             # Listen on all interfaces
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port number to bind (default: 8080)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--home",
        default=None,
        help="Web server home directory (default: .)"
    )

    parser.add_argument(
        "--listdir",
        action="store_true",
        default=None,
        help="Enable directory listing"
    )

    # ─────────────────────────────────────────────────────────────────────
    # RUNTIME ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: 16)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"staticserve {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment defaults overridden by the flags that were given."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.home is not None:
        config.root_dir = args.home
    if args.listdir:
        config.list_directories = True
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Process exit code: 0 after a clean shutdown, 1 on bad arguments
        or when the server cannot start.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"invalid environment setting: {e}", file=sys.stderr)
        return 1

    if not 0 < config.port < 65536:
        print(f"invalid port number: {config.port}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    if not os.path.isdir(config.root_dir):
        print(f"unable to serve from {config.root_dir}: not a directory", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    try:
        server = HTTPServer(config)
    except ValueError as e:
        print(f"invalid configuration: {e}", file=sys.stderr)
        return 1

    print(f"* Serving on port {config.port} from {config.root_dir}", flush=True)

    try:
        server.run()
    except OSError as e:
        print(f"unable to start server: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
