"""
=============================================================================
HTTP SERVER - CONNECTION DISPATCHER
=============================================================================

Ties everything together: startup, the per-connection pipeline, and
shutdown.

=============================================================================
STARTUP (all-or-nothing)
=============================================================================

    1. Connect to the mdb-lookup backend    BackendConnectionError
    2. Bind and listen (backlog 5)          OSError
    3. Accept loop

Any failure in 1 or 2 propagates out of run(); there is no retry and no
partially started server.

=============================================================================
PER-CONNECTION PIPELINE
=============================================================================

    accept()
       │
       ▼
    RequestParser.read_request()
       │
       ├── HTTPParseError ──► send 400/501 (unless client is gone) ──┐
       │                                                             │
       ▼                                                             │
    target starts with "/mdb-lookup"?                                │
       │ yes                         │ no                            │
       ▼                             ▼                               │
    LookupHandler              StaticFileHandler                     │
       │                             │                               │
       └──────────────┬──────────────┘                               │
                      ▼                                              │
               access log line ◄─────────────────────────────────────┘
                      │
                      ▼
                close() - always, whatever the HTTP version

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, MdbClient
from .handlers import StaticFileHandler, LookupHandler, LOOKUP_PREFIX
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPStatus, reason_phrase, status_response,
)


logger = logging.getLogger(__name__)

# Namespaced so operators can route access lines separately
access_logger = logging.getLogger("mdbhttp.access")


class HTTPServer:
    """
    Static file and mdb-lookup HTTP server.

    Usage:
        server = HTTPServer(ServerConfig(
            port=8888,
            web_root="./www",
            mdb_host="localhost",
            mdb_port=9999,
        ))
        server.run()    # Blocks until SIGINT/SIGTERM
    """

    def __init__(self, config: Optional[ServerConfig] = None,
                 client: Optional[MdbClient] = None):
        """
        Args:
            config: Server configuration. Validated immediately.
            client: Already connected backend client. When omitted, run()
                    connects to config.mdb_host:config.mdb_port.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_line_size=self.config.max_line_size)
        self._static = StaticFileHandler(
            self.config.web_root,
            chunk_size=self.config.buffer_size,
        )

        self._client = client
        self._lookup: Optional[LookupHandler] = None

        self._running = False

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (ip, port) once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            BackendConnectionError: The backend could not be reached.
            OSError: The listening socket could not be set up.
        """
        self._setup_logging()

        if self._client is None:
            self._client = MdbClient.connect(
                self.config.mdb_host,
                self.config.mdb_port,
                max_line_size=self.config.max_line_size,
            )
        self._lookup = LookupHandler(self._client)

        try:
            self._socket_server.bind()
            self._running = True
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask the accept loop to stop after the current connection."""
        self._socket_server.shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """True once the accept loop is running (used by tests)."""
        return self._socket_server.wait_until_listening(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("mdbhttp").setLevel(level)

    def _shutdown(self):
        """Release the backend connection. The listening socket is already closed."""
        logger.info("Shutting down server...")
        self._running = False

        if self._client is not None:
            self._client.close()

        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Serve exactly one request on conn, then close it.

        Called by SocketServer for each accepted client; returns only
        when the client has been fully served.
        """
        with conn:
            request_line = ""
            try:
                request = self._parser.read_request(conn.reader, conn.address)
            except HTTPParseError as e:
                logger.debug(f"[{conn.id}] Rejected request: {e}")
                if e.respond:
                    conn.send(status_response(e.status_code))
                status = e.status_code
                request_line = e.request_line
            else:
                request_line = request.request_line
                try:
                    status = self.dispatch(request, conn)
                except Exception as e:
                    logger.exception(f"[{conn.id}] Handler error: {e}")
                    status = HTTPStatus.INTERNAL_SERVER_ERROR
                    # A status line can only go out if nothing was sent yet
                    if conn.bytes_sent == 0:
                        conn.send(status_response(status))

            self._log_access(conn, request_line, status)

    def dispatch(self, request: HTTPRequest, conn: Connection) -> int:
        """
        Route a validated request by target prefix.

        Returns:
            The status code the chosen handler sent.
        """
        if request.target.startswith(LOOKUP_PREFIX):
            return self._lookup.handle(request, conn)
        return self._static.handle(request, conn)

    def _log_access(self, conn: Connection, request_line: str, status: int):
        """One line per connection: ip "request line" code reason."""
        access_logger.info(
            f'{conn.client_ip} "{request_line}" {int(status)} {reason_phrase(status)}'
        )
