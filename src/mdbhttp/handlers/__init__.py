"""
=============================================================================
REQUEST HANDLERS
=============================================================================

A handler writes one complete response (status line and body) to a
Connection and returns the status code it sent:

    def handle(request: HTTPRequest, conn: Connection) -> int

Responses are streamed as they are produced instead of being built in
memory first, since a file or a result set can be arbitrarily large.

    static.py   StaticFileHandler - files under the web root
    lookup.py   LookupHandler     - /mdb-lookup form and results

=============================================================================
"""

from .static import StaticFileHandler
from .lookup import LookupHandler, LOOKUP_PREFIX, KEY_PREFIX

__all__ = [
    "StaticFileHandler",
    "LookupHandler",
    "LOOKUP_PREFIX",
    "KEY_PREFIX",
]
