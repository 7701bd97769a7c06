"""
=============================================================================
MDB-LOOKUP BACKEND CLIENT
=============================================================================

Client side of the line protocol spoken by the mdb-lookup server. One TCP
connection is opened at startup and reused for every lookup for the life
of the process.

=============================================================================
WIRE PROTOCOL
=============================================================================

    HTTP SERVER                               MDB-LOOKUP SERVER
    ───────────                               ─────────────────
    alice\\n                     ──────►       (one key per line)

                                ◄──────       alice,30\\n
                                ◄──────       alice b,41\\n
                                ◄──────       \\n          (end of results)

There is no length prefix and no request id. The only framing is the
bare "\\n" that closes each result set, so requests and replies pair up
purely by order on the stream:

    - A lookup must read its results all the way to the terminator,
      or the next lookup reads the leftovers of this one.
    - Two lookups must never interleave on the stream.

The server handles one client at a time, which already guarantees the
second rule. The lock below keeps it true even if this client is driven
from several threads.

=============================================================================
FAILURES
=============================================================================

    connect()     fails  → BackendConnectionError (fatal at startup)
    send_key()    fails  → BackendError
    read_results()
      stream closed      → BackendError("connection terminated")
      socket error       → BackendError
      overlong line      → truncated to max_line_size, framing kept

Nothing here reconnects. A dead backend stays dead; every later lookup
fails fast with BackendError and the HTTP side keeps serving files.

=============================================================================
"""

import socket
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional


logger = logging.getLogger(__name__)


RESULT_TERMINATOR = b"\n"


class BackendError(Exception):
    """The backend connection failed while sending or reading."""


class BackendConnectionError(BackendError):
    """The backend could not be reached at startup."""


class MdbClient:
    """
    Persistent connection to an mdb-lookup server.

    Usage:
        client = MdbClient.connect("localhost", 9999)

        with client.session():
            client.send_key(b"alice")
            for line in client.read_results():
                print(line)        # b"alice,30\\n"
    """

    def __init__(self, sock: socket.socket, max_line_size: int = 8192):
        """
        Wrap an already connected socket.

        Args:
            sock: Connected stream socket to the backend.
            max_line_size: Longest single result read; longer lines arrive
                           in pieces and are forwarded as they come.
        """
        self._socket = sock
        self._reader = sock.makefile("rb")
        self._lock = threading.Lock()
        self.max_line_size = max_line_size
        self._closed = False

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        max_line_size: int = 8192,
    ) -> "MdbClient":
        """
        Resolve host and open the backend connection.

        Raises:
            BackendConnectionError: Name resolution or connect failed.
        """
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise BackendConnectionError(
                f"Cannot connect to mdb-lookup server at {host}:{port}: {e}"
            ) from e

        logger.info(f"Connected to mdb-lookup server at {host}:{port}")
        return cls(sock, max_line_size=max_line_size)

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def session(self):
        """Hold exclusive use of the stream for one key/results exchange."""
        with self._lock:
            yield self

    def send_key(self, key: bytes) -> None:
        """
        Send one lookup key, terminated by a newline.

        The key is sent byte for byte; no decoding or escaping.
        """
        try:
            self._socket.sendall(key + b"\n")
        except OSError as e:
            raise BackendError(f"mdb-lookup-server send failed: {e}") from e

    def read_results(self) -> Iterator[bytes]:
        """
        Yield result lines until the blank terminator line.

        Each yielded line keeps its trailing "\\n". The terminator itself
        is consumed but not yielded. A line longer than max_line_size is
        cut to its first max_line_size bytes and the rest of it is
        discarded; a "\\n" only ends the result set at the start of a line.

        Raises:
            BackendError: The stream ended or failed before the terminator.
        """
        at_line_start = True
        while True:
            try:
                piece = self._reader.readline(self.max_line_size)
            except OSError as e:
                raise BackendError(f"mdb-lookup-server connection failed: {e}") from e

            if not piece:
                raise BackendError("mdb-lookup-server connection terminated")

            if at_line_start:
                if piece == RESULT_TERMINATOR:
                    return
                if not piece.endswith(b"\n"):
                    logger.warning(
                        f"Result line longer than {self.max_line_size} bytes truncated"
                    )
                yield piece

            at_line_start = piece.endswith(b"\n")

    def close(self) -> None:
        """Release the reader and socket. Called only at shutdown."""
        if self._closed:
            return
        self._closed = True
        try:
            self._reader.close()
            self._socket.close()
        except OSError:
            pass
        logger.info("Closed mdb-lookup server connection")
