"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

Request parsing and response framing for the subset of HTTP this server
speaks:

    CLIENT                                    SERVER
    ──────                                    ──────
    GET /index.html HTTP/1.1\\r\\n    ───►      request.py reads and validates
    Host: ...\\r\\n                             the request line, then drops
    \\r\\n                                       the headers

                                   ◄───       status_codes.py frames the
    HTTP/1.0 200 OK\\r\\n                        status line; handlers stream
    \\r\\n                                       the body
    <file bytes or HTML>

No response headers are ever sent, and the connection is closed after
every response, so the end of the body is simply the end of the stream.

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, is_traversal
from .status_codes import (
    HTTPStatus,
    reason_phrase,
    status_line,
    status_response,
)

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "is_traversal",
    # Status framing
    "HTTPStatus",
    "reason_phrase",
    "status_line",
    "status_response",
]
