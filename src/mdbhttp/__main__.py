"""
=============================================================================
MDBHTTP CLI ENTRY POINT
=============================================================================

    python -m mdbhttp <server_port> <web_root> <mdb_lookup_host> <mdb_lookup_port>

    # Example
    python -m mdbhttp 8888 ./www localhost 9999

    # Bind to localhost only, verbose logs
    python -m mdbhttp 8888 ./www localhost 9999 --host 127.0.0.1 -l DEBUG

Exit status:
    0   Stopped by SIGINT/SIGTERM
    1   Startup failed (bad config, backend unreachable, port in use)
    2   Bad command-line arguments

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .server import HTTPServer
from .config import ServerConfig
from .core.backend import BackendConnectionError


logger = logging.getLogger("mdbhttp")


def build_parser() -> argparse.ArgumentParser:
    """Command-line arguments, positional ones in the classic order."""
    parser = argparse.ArgumentParser(
        prog="mdb-http-server",
        description="HTTP server for static files and mdb-lookup queries",
    )

    parser.add_argument("server_port", type=int, help="Port to listen on")
    parser.add_argument("web_root", help="Directory to serve static files from")
    parser.add_argument("mdb_lookup_host", help="Host running mdb-lookup-server")
    parser.add_argument("mdb_lookup_port", type=int, help="Port of mdb-lookup-server")

    parser.add_argument(
        "--host", "-H",
        default="0.0.0.0",
        help="Address to bind to (default: 0.0.0.0)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"mdbhttp {__version__}",
    )

    return parser


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.server_port,
        web_root=args.web_root,
        mdb_host=args.mdb_lookup_host,
        mdb_port=args.mdb_lookup_port,
        log_level=args.log_level,
    )

    try:
        server = HTTPServer(config)
        server.run()
    except (ValueError, BackendConnectionError, OSError) as e:
        # Logging may not be configured yet if config validation failed
        if not logging.getLogger().handlers:
            logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
        logger.error(f"Startup failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
