"""
=============================================================================
HTTPKIT CLI ENTRY POINT
=============================================================================

Serves the demo users API (see httpkit.demo).

=============================================================================
USAGE
=============================================================================

    # Run with defaults (127.0.0.1:6969, 4 workers)
    python -m httpkit

    # Listen on all interfaces
    python -m httpkit --bind 0.0.0.0:8080

    # More worker threads, chattier logs
    python -m httpkit --workers 8 --log-level DEBUG

    # One connection at a time on the bare listener loop
    python -m httpkit --sequential

Defaults come from HTTPKIT_* environment variables (see ServerConfig.from_env),
and command-line flags override them.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, parse_address
from .core import Listener
from .demo import serve_sequential, users_app
from .errors import BindError
from .http import RequestParser
from .server import HTTPServer, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpkit",
        description="Minimal HTTP/1.1 server serving a demo users API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httpkit                          # Run with defaults
  python -m httpkit --bind 0.0.0.0:8080      # Listen on all interfaces
  python -m httpkit --workers 8              # 8 worker threads
  python -m httpkit --sequential             # No worker pool
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--bind", "-b",
        default=None,
        metavar="HOST:PORT",
        help="Address to bind (default: $HTTPKIT_BIND or 127.0.0.1:6969)",
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Per-connection socket timeout in seconds (default: 30)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: 4)",
    )

    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Handle one connection at a time without a worker pool",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"httpkit {__version__}",
    )

    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then command-line overrides."""
    config = ServerConfig.from_env()

    if args.bind is not None:
        config.host, config.port = parse_address(args.bind)
    if args.workers is not None:
        config.workers = args.workers
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.log_level is not None:
        config.log_level = args.log_level

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the demo server.

    Returns:
        Process exit status: 0 after a clean shutdown, 1 when the
        configuration is invalid or the address cannot be bound, 2 for
        usage errors (argparse exits with 2 itself).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ValueError as e:
        print(f"httpkit: invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        if args.sequential:
            setup_logging(config.log_level)
            listener = Listener(
                (config.host, config.port),
                backlog=config.backlog,
                timeout=config.timeout,
                poll_interval=config.poll_interval,
            )
            request_parser = RequestParser(
                max_line_size=config.max_line_size,
                max_headers=config.max_headers,
                max_body_size=config.max_body_size,
            )
            serve_sequential(listener=listener, parser=request_parser)
        else:
            HTTPServer(users_app, config).serve_forever()
    except BindError as e:
        print(f"httpkit: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
