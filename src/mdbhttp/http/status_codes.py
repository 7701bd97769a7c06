"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server knows about, with their reason phrases, and
the one function that turns a code into bytes on the wire.

=============================================================================
RESPONSE FRAMING
=============================================================================

Every response starts with exactly one status line followed by a blank
line. We never send headers:

    HTTP/1.0 404 Not Found\r\n
    \r\n
    <html><body>
    <h1>404 Not Found</h1>
    </body></html>

    ─────┬─── ─┬─ ────┬────
         │     │      │
     Version  Code  Reason phrase

For 200 OK nothing follows the blank line here; the handler streams its
own body (file bytes or generated HTML). For any other code a tiny HTML
page repeating the status is appended so a browser has something to show.

The version is always HTTP/1.0, even when the client asked with HTTP/1.1.
We never keep connections open and never send Content-Length, which is
HTTP/1.0 behavior, so that is the protocol level we advertise.

=============================================================================
UNKNOWN CODES
=============================================================================

Looking up a code that is not in the table is not an error. It yields the
reason "Unknown Status Code", so building a response can never fail.

=============================================================================
"""

from enum import IntEnum


UNKNOWN_REASON = "Unknown Status Code"

RESPONSE_VERSION = "HTTP/1.0"


class HTTPStatus(IntEnum):
    """
    HTTP/1.0 status codes understood by the server.

    Inherits from IntEnum so members compare equal to plain ints:

        HTTPStatus.NOT_FOUND == 404   # True
    """

    # 2xx Success
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204

    # 3xx Redirection
    MOVED_PERMANENTLY = 301
    MOVED_TEMPORARILY = 302
    NOT_MODIFIED = 304

    # 4xx Client errors
    BAD_REQUEST = 400                   # Malformed or unsafe target
    UNAUTHORIZED = 401
    FORBIDDEN = 403                     # Target is a directory
    NOT_FOUND = 404                     # File missing or unreadable

    # 5xx Server errors
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501               # Bad request line, method or version
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """Reason phrase for this status code."""
        return _STATUS_PHRASES[self]


# =============================================================================
# REASON PHRASES
# =============================================================================

_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.ACCEPTED: "Accepted",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.MOVED_TEMPORARILY: "Moved Temporarily",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.BAD_GATEWAY: "Bad Gateway",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}


def reason_phrase(code: int) -> str:
    """
    Get the reason phrase for any integer status code.

    Args:
        code: Numeric status code (known or not).

    Returns:
        The reason phrase, or "Unknown Status Code" for codes not in the table.
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return UNKNOWN_REASON


def status_line(code: int) -> str:
    """Status line plus the blank line that ends the (empty) header block."""
    return f"{RESPONSE_VERSION} {code} {reason_phrase(code)}\r\n\r\n"


def error_body(code: int) -> str:
    """Minimal HTML page describing a non-200 status."""
    return (
        "<html><body>\n"
        f"<h1>{code} {reason_phrase(code)}</h1>\n"
        "</body></html>\n"
    )


def status_response(code: int) -> bytes:
    """
    Build the bytes sent at the start of every response.

    Args:
        code: Status code to report.

    Returns:
        The status line and blank line, followed by the HTML error body
        when code is anything other than 200.

    Example:
        status_response(200)
        # b"HTTP/1.0 200 OK\\r\\n\\r\\n"
    """
    text = status_line(code)
    if code != HTTPStatus.OK:
        text += error_body(code)
    return text.encode("ascii")
