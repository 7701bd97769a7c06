"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads the request line and header block from a client connection and
decides whether the request is one this server is willing to serve.

=============================================================================
WHAT WE READ
=============================================================================

    GET /mdb-lookup?key=alice HTTP/1.0\r\n       <- request line (parsed)
    Host: localhost:8888\r\n                     <- header (discarded)
    User-Agent: curl/8.0\r\n                     <- header (discarded)
    \r\n                                         <- end of request

Only the request line matters. Headers are read and thrown away, just
far enough to know the client finished sending. A GET has no body, so
after the blank line there is nothing left to read.

=============================================================================
VALIDATION ORDER
=============================================================================

Checks run in a fixed order and the FIRST failure decides the status:

    ┌────┬──────────────────────────────────────────────┬────────┬─────────┐
    │ #  │ Check                                        │ Status │ Replied │
    ├────┼──────────────────────────────────────────────┼────────┼─────────┤
    │ 1  │ A request line could be read at all          │  400   │   no    │
    │ 2  │ Exactly three tokens: METHOD TARGET VERSION  │  501   │   yes   │
    │ 3  │ METHOD is exactly "GET"                      │  501   │   yes   │
    │ 4  │ VERSION is "HTTP/1.0" or "HTTP/1.1"          │  501   │   yes   │
    │ 5  │ TARGET starts with "/"                       │  400   │   yes   │
    │ 6  │ TARGET has no "/../" and no trailing "/.."   │  400   │   yes   │
    │ 7  │ Header block ends with a blank line          │  400   │   no    │
    └────┴──────────────────────────────────────────────┴────────┴─────────┘

When the client hung up (rows 1 and 7) there is nobody to answer, so no
status is sent and the connection is simply closed.

=============================================================================
PATH TRAVERSAL
=============================================================================

Row 6 is a purely textual filter:

    /a/../b       rejected (contains "/../")
    /a/..         rejected (ends with "/..")
    /..           rejected
    /a/..b        allowed  (".." is not a whole segment)
    /%2e%2e/etc   allowed  (no decoding happens here)

It does not decode percent-escapes and knows nothing about symlinks,
so it is a minimum bar and not a full sandbox.

=============================================================================
"""

from dataclasses import dataclass
from typing import BinaryIO, Tuple
import re

from .status_codes import HTTPStatus


# Request-line bytes are decoded as ISO-8859-1: every byte maps to exactly
# one code point, so the target survives untouched for later byte-level use.
REQUEST_ENCODING = "iso-8859-1"


class HTTPParseError(Exception):
    """
    Raised when a request cannot be served.

    Carries the HTTP status to report and whether a reply should be sent
    at all. `respond` is False when the client stream ended or failed,
    since there is nobody left to read a response.
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST,
                 respond: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.respond = respond
        # Filled in by the parser once a request line was read, for logging
        self.request_line = ""


@dataclass
class HTTPRequest:
    """
    A validated request line.

    Attributes:
        method:         Always "GET" once validated.
        target:         Request target as sent, query string included.
                        Starts with "/" and passed the traversal filter.
        version:        "HTTP/1.0" or "HTTP/1.1".
        client_address: (ip, port) of the client, for logging.
        request_line:   The request line without its line terminator.
    """

    method: str
    target: str
    version: str
    client_address: Tuple[str, int] = ("", 0)
    request_line: str = ""

    @property
    def target_bytes(self) -> bytes:
        """The target exactly as it arrived on the wire."""
        return self.target.encode(REQUEST_ENCODING)


class RequestParser:
    """
    Reads and validates one request from a binary line reader.

    The reader is anything with a `readline(limit)` method returning bytes,
    typically `socket.makefile("rb")`. Tests hand in `io.BytesIO`.

    Usage:
        parser = RequestParser()
        try:
            request = parser.read_request(conn.reader, conn.address)
        except HTTPParseError as e:
            if e.respond:
                conn.send(status_response(e.status_code))
    """

    # Same separators the request line is tokenized on: tab, space, CR, LF
    TOKEN_DELIMITERS = re.compile(rb"[\t \r\n]+")

    SUPPORTED_METHODS = ("GET",)
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_line_size: int = 8192):
        """
        Args:
            max_line_size: Longest single read. A longer line is consumed
                           in pieces of this size.
        """
        self.max_line_size = max_line_size

    def read_request(
        self,
        reader: BinaryIO,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Read, validate and return the next request on the stream.

        Consumes the request line and every header line up to and
        including the blank line that ends the request.

        Raises:
            HTTPParseError: With the status to report (see module table).
        """
        raw_line = self._read_line(reader)
        if not raw_line:
            raise HTTPParseError(
                "Connection closed before request line",
                status_code=HTTPStatus.BAD_REQUEST,
                respond=False,
            )

        try:
            request = self.parse_request_line(raw_line, client_address)
            self.skip_headers(reader, at_line_start=raw_line.endswith(b"\n"))
        except HTTPParseError as e:
            e.request_line = decode_line(raw_line)
            raise
        return request

    def parse_request_line(
        self,
        raw_line: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Validate a raw request line (rows 2-6 of the module table).

        Args:
            raw_line: The line as read, terminator included or not.
            client_address: Client's (ip, port).

        Returns:
            HTTPRequest for a line that passed every check.
        """
        tokens = [t for t in self.TOKEN_DELIMITERS.split(raw_line) if t]
        if len(tokens) != 3:
            raise HTTPParseError(
                f"Expected 3 request line tokens, got {len(tokens)}",
                status_code=HTTPStatus.NOT_IMPLEMENTED,
            )

        method, target, version = (t.decode(REQUEST_ENCODING) for t in tokens)

        if method not in self.SUPPORTED_METHODS:
            raise HTTPParseError(
                f"Unsupported method: {method}",
                status_code=HTTPStatus.NOT_IMPLEMENTED,
            )

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.NOT_IMPLEMENTED,
            )

        if not target.startswith("/"):
            raise HTTPParseError(f"Target must start with '/': {target}")

        if is_traversal(target):
            raise HTTPParseError(f"Invalid path: {target}")

        return HTTPRequest(
            method=method,
            target=target,
            version=version,
            client_address=client_address,
            request_line=decode_line(raw_line),
        )

    def skip_headers(self, reader: BinaryIO, at_line_start: bool = True) -> None:
        """
        Discard header lines through the blank line ending the request.

        Both "\\r\\n" and a bare "\\n" count as the blank line, but only
        at the start of a line: the tail of a line longer than
        max_line_size is not a blank line.

        Args:
            reader: Stream positioned after the request line.
            at_line_start: False if the request line was cut short and
                           its remainder is still unread.
        """
        while True:
            piece = self._read_line(reader)
            if not piece:
                raise HTTPParseError(
                    "Connection closed before end of headers",
                    status_code=HTTPStatus.BAD_REQUEST,
                    respond=False,
                )
            if at_line_start and piece in (b"\r\n", b"\n"):
                return
            at_line_start = piece.endswith(b"\n")

    def _read_line(self, reader: BinaryIO) -> bytes:
        """Read one line, turning socket errors into a silent 400."""
        try:
            return reader.readline(self.max_line_size)
        except OSError as e:
            raise HTTPParseError(
                f"Read failed: {e}",
                status_code=HTTPStatus.BAD_REQUEST,
                respond=False,
            ) from e


def decode_line(raw_line: bytes) -> str:
    """Decode a raw line byte-for-byte and drop its terminator."""
    return raw_line.decode(REQUEST_ENCODING).rstrip("\r\n")


def is_traversal(target: str) -> bool:
    """True if target contains a "/../" segment or ends with "/.."."""
    return target.endswith("/..") or "/../" in target
