"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the request pipeline
needs: read a line, send bytes, close exactly once.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does not preserve message boundaries. A request line may arrive in
three recv() calls, or together with all the headers in one:

    recv() → "GET /inde"
    recv() → "x.html HTTP/1.0\\r\\nHost: a\\r\\n\\r\\n"

Our protocol is line-oriented, so instead of managing a buffer by hand
we let the socket module do it: `socket.makefile("rb")` returns a
buffered binary reader whose readline() keeps calling recv() until it
sees "\\n" (or the peer closes).

=============================================================================
LIFECYCLE
=============================================================================

    NEW ──► READING ──► WRITING ──► CLOSING ──► CLOSED
                │                      ▲
                └──────────────────────┘
              (bad request, client gone)

Exactly one request is served per connection. Whatever happens, the
connection is closed afterwards; `with conn:` guarantees that, on every
exit path, including exceptions.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional
import uuid


logger = logging.getLogger(__name__)

# Bounds on reading leftover client input during close()
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Where a connection is in its single request/response cycle."""
    NEW = "new"              # Just accepted
    READING = "reading"      # Reading request line and headers
    WRITING = "writing"      # Sending the response
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier used in log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_sent: Total bytes successfully written to the client.
        timeout: Socket timeout in seconds, None for fully blocking I/O.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    timeout: Optional[float] = None

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # settimeout(None) puts the socket in blocking mode
        self.socket.settimeout(self.timeout)
        self._reader = self.socket.makefile("rb")

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    @property
    def reader(self) -> BinaryIO:
        """
        Buffered binary reader over the socket.

        Reading through it moves the connection into READING state.
        """
        self.state = ConnectionState.READING
        return self._reader

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Uses sendall() so a partial write never goes unnoticed.

        Args:
            data: Bytes to send.

        Returns:
            True if everything was sent, False if the client is gone.
            Never raises for socket errors; the failure is logged.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            # BrokenPipeError, ConnectionResetError, timeouts
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once.

        1. shutdown(SHUT_WR) sends FIN so the client sees end of body.
        2. Drain what the client still sends, at most DRAIN_LIMIT bytes
           within DRAIN_TIMEOUT seconds, so the kernel does not answer
           our close() with a RST that could discard the tail of the
           response.
        3. Release the reader and the socket.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                data = self.socket.recv(4096)
                if not data:
                    break
                drained += len(data)
        except OSError:
            pass  # Includes socket.timeout

        try:
            self._reader.close()
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Always close; never suppress the exception."""
        self.close()
        return False
