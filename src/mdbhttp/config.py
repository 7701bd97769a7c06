"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All runtime settings in one dataclass. The CLI fills it from arguments,
`from_env()` fills it from environment variables, and tests construct it
directly.

    config = ServerConfig(
        port=8888,
        web_root="./www",
        mdb_host="localhost",
        mdb_port=9999,
    )
    config.validate()   # Fail fast before any socket is opened

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server and its mdb-lookup backend.
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind to. All interfaces by default."""

    port: int = 8080
    """Port to listen on."""

    backlog: int = 5
    """Maximum number of pending connections queued by the kernel."""

    timeout: Optional[float] = None
    """
    Client socket timeout in seconds.
    None = fully blocking reads and writes (a stalled client stalls the
    server until it goes away).
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    web_root: str = "."
    """Directory static files are served from."""

    buffer_size: int = 4096
    """Chunk size used when streaming a file to the client."""

    max_line_size: int = 8192
    """Longest single line read from a client or from the backend."""

    # ─────────────────────────────────────────────────────────────────────
    # MDB-LOOKUP BACKEND
    # ─────────────────────────────────────────────────────────────────────

    mdb_host: str = "localhost"
    """Host running the mdb-lookup server."""

    mdb_port: int = 9999
    """Port of the mdb-lookup server."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        MDBHTTP_HOST        Bind address (default: 0.0.0.0)
        MDBHTTP_PORT        Listen port (default: 8080)
        MDBHTTP_WEB_ROOT    Static file root (default: .)
        MDBHTTP_MDB_HOST    mdb-lookup host (default: localhost)
        MDBHTTP_MDB_PORT    mdb-lookup port (default: 9999)
        MDBHTTP_TIMEOUT     Client socket timeout, unset = blocking
        MDBHTTP_LOG_LEVEL   Logging level (default: INFO)
        """
        timeout = os.getenv("MDBHTTP_TIMEOUT")
        return cls(
            host=os.getenv("MDBHTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("MDBHTTP_PORT", "8080")),
            web_root=os.getenv("MDBHTTP_WEB_ROOT", "."),
            mdb_host=os.getenv("MDBHTTP_MDB_HOST", "localhost"),
            mdb_port=int(os.getenv("MDBHTTP_MDB_PORT", "9999")),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("MDBHTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        # Port 0 lets the OS pick, which tests rely on
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not 0 < self.mdb_port < 65536:
            raise ValueError(f"Invalid mdb-lookup port: {self.mdb_port}. Must be 1-65535.")

        if not os.path.isdir(self.web_root):
            raise ValueError(f"Web root is not a directory: {self.web_root}")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.max_line_size < 2:
            raise ValueError("max_line_size must be >= 2")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
