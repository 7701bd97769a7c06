"""
=============================================================================
MDB-LOOKUP HANDLER
=============================================================================

Renders the lookup form and, when a key is given, relays it to the
mdb-lookup backend and streams the results back as an HTML table.

=============================================================================
PAGE LAYOUT
=============================================================================

    GET /mdb-lookup                  → form only
    GET /mdb-lookup?key=alice        → form + results table

    HTTP/1.0 200 OK
    <html><body>
    <h1>mdb-lookup</h1>
    <p>
    <form method=GET action=/mdb-lookup>
    lookup: <input type=text name=key>
    <input type=submit>
    </form>
    <p>
    <p><table border>                        ┐
    <tr><td>alice,30                         │ only with ?key=
    <tr><td bgcolor=yellow>alice b,41        │ rows alternate,
    <tr><td>alice c,27                       │ odd rows plain
    </table>                                 ┘
    </body></html>

Result lines are forwarded exactly as the backend sent them, trailing
newline included, and so is the key: everything after "?key=" goes to
the backend untouched. A browser will have percent-encoded spaces and
punctuation, and those escapes reach the backend as-is.

=============================================================================
ERROR HANDLING
=============================================================================

The status is always 200: it is sent before the backend is contacted.

    client went away      → stop writing, but keep reading this lookup's
                            results to the terminator so the backend
                            stream stays aligned for the next request
    backend send/read     → BackendError, logged, response ends early

=============================================================================
"""

import logging

from ..core.backend import MdbClient, BackendError
from ..core.connection import Connection
from ..http.request import HTTPRequest, REQUEST_ENCODING
from ..http.status_codes import HTTPStatus, status_response


logger = logging.getLogger(__name__)


LOOKUP_PREFIX = "/mdb-lookup"
KEY_PREFIX = "/mdb-lookup?key="

FORM_HTML = (
    b"<html><body>\n"
    b"<h1>mdb-lookup</h1>\n"
    b"<p>\n"
    b"<form method=GET action=/mdb-lookup>\n"
    b"lookup: <input type=text name=key>\n"
    b"<input type=submit>\n"
    b"</form>\n"
    b"<p>\n"
)

TABLE_START = b"<p><table border>"
TABLE_END = b"\n</table>\n"
PAGE_END = b"</body></html>\n"

ROW_PLAIN = b"\n<tr><td>"
ROW_SHADED = b"\n<tr><td bgcolor=yellow>"


def row_open(row: int) -> bytes:
    """Opening markup for a 1-indexed result row (odd plain, even shaded)."""
    return ROW_PLAIN if row % 2 else ROW_SHADED


def extract_key(target: str):
    """
    Raw lookup key from a target, or None when the target has no key.

    Example:
        extract_key("/mdb-lookup?key=al%20ice")   # b"al%20ice"
        extract_key("/mdb-lookup")                # None
    """
    if not target.startswith(KEY_PREFIX):
        return None
    return target[len(KEY_PREFIX):].encode(REQUEST_ENCODING)


class LookupHandler:
    """
    Handler for /mdb-lookup requests.

    Usage:
        lookup = LookupHandler(MdbClient.connect("localhost", 9999))
        status = lookup.handle(request, conn)
    """

    def __init__(self, client: MdbClient):
        self.client = client

    def handle(self, request: HTTPRequest, conn: Connection) -> int:
        """
        Send the form, plus results when a key is present.

        Returns:
            Always 200, the status sent before anything else.
        """
        if not (conn.send(status_response(HTTPStatus.OK)) and conn.send(FORM_HTML)):
            return HTTPStatus.OK

        key = extract_key(request.target)
        if key is not None:
            logger.info(f"[{conn.id}] Looking up [{key.decode(REQUEST_ENCODING)}]")
            try:
                if not self._send_results(key, conn):
                    return HTTPStatus.OK
            except BackendError as e:
                logger.error(f"[{conn.id}] {e}")
                return HTTPStatus.OK

        conn.send(PAGE_END)
        return HTTPStatus.OK

    def _send_results(self, key: bytes, conn: Connection) -> bool:
        """
        Relay one key and stream its results as table rows.

        Returns:
            False if the client stopped accepting data along the way.

        Raises:
            BackendError: The backend failed; output stops where it was.
        """
        with self.client.session():
            self.client.send_key(key)

            client_ok = conn.send(TABLE_START)
            rows = 0
            for rows, line in enumerate(self.client.read_results(), start=1):
                if client_ok:
                    client_ok = conn.send(row_open(rows)) and conn.send(line)

            logger.debug(f"[{conn.id}] {rows} result line(s)")

        return client_ok and conn.send(TABLE_END)
