"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files from the web root, byte for byte.

=============================================================================
FLOW
=============================================================================

    Request: GET /docs/ HTTP/1.0            web_root = "/srv/www"

    1. Path    = web_root + target         "/srv/www/docs/"
    2. Ends in "/"? append index.html      "/srv/www/docs/index.html"
    3. Directory?          → 403 Forbidden
    4. Can't open to read? → 404 Not Found
    5. Otherwise           → 200 OK, then the file in fixed-size chunks

The target is appended as-is: no percent-decoding and no query-string
stripping, so "/a.html?v=2" looks for a file literally named "a.html?v=2".
The only traversal protection is the textual filter in the request parser.

No Content-Type, no Content-Length, no caching headers. The client knows
the body is complete when the connection closes.

=============================================================================
PARTIAL TRANSFERS
=============================================================================

Once "200 OK" is on the wire it cannot be taken back. If the client goes
away mid-file, or the file read fails, we log it and stop; the response
just ends early.

=============================================================================
"""

import os
import logging

from ..core.connection import Connection
from ..http.request import HTTPRequest
from ..http.status_codes import HTTPStatus, status_response


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Handler for serving static files.

    Usage:
        static = StaticFileHandler("/srv/www")
        status = static.handle(request, conn)
    """

    def __init__(
        self,
        root_dir: str,
        index_file: str = "index.html",
        chunk_size: int = 4096,
    ):
        """
        Args:
            root_dir: Directory prefix prepended to every target.
            index_file: Default document for targets ending in "/".
            chunk_size: Bytes read from disk and sent per write.
        """
        self.root_dir = root_dir
        self.index_file = index_file
        self.chunk_size = chunk_size

    def resolve(self, target: bytes) -> bytes:
        """
        Map a raw request target to a filesystem path.

        Works on bytes end to end so that no byte of the target is
        reinterpreted by a text encoding on its way to the filesystem.
        """
        path = os.fsencode(self.root_dir) + target
        if path.endswith(b"/"):
            path += os.fsencode(self.index_file)
        return path

    def handle(self, request: HTTPRequest, conn: Connection) -> int:
        """
        Serve the file named by request.target.

        Returns:
            The status code that was sent to the client.
        """
        path = self.resolve(request.target_bytes)

        if os.path.isdir(path):
            conn.send(status_response(HTTPStatus.FORBIDDEN))
            return HTTPStatus.FORBIDDEN

        try:
            file = open(path, "rb")
        except (OSError, ValueError):
            # ValueError: the target held a NUL byte
            conn.send(status_response(HTTPStatus.NOT_FOUND))
            return HTTPStatus.NOT_FOUND

        with file:
            if conn.send(status_response(HTTPStatus.OK)):
                self._stream(file, path, conn)

        return HTTPStatus.OK

    def _stream(self, file, path: bytes, conn: Connection) -> None:
        """Copy the file to the client until EOF or the first failure."""
        while True:
            try:
                chunk = file.read(self.chunk_size)
            except OSError as e:
                logger.error(f"[{conn.id}] Read failed for {os.fsdecode(path)}: {e}")
                return

            if not chunk:
                return

            if not conn.send(chunk):
                logger.warning(
                    f"[{conn.id}] Transfer of {os.fsdecode(path)} aborted "
                    f"after {conn.bytes_sent} bytes"
                )
                return
