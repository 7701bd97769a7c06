"""
=============================================================================
MDBHTTP - Static File and mdb-lookup HTTP Server
=============================================================================

A small HTTP/1.0 server built directly on sockets. It serves two kinds
of content from one listening port:

    GET /anything/else          → file under the web root
    GET /mdb-lookup[?key=...]   → HTML form + results from an mdb-lookup
                                  backend, relayed over one persistent
                                  TCP connection

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    mdbhttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m mdbhttp)
    ├── server.py            # HTTPServer: startup, dispatch, shutdown
    ├── config.py            # ServerConfig dataclass
    ├── core/
    │   ├── socket_server.py # Listening socket, sequential accept loop
    │   ├── connection.py    # One client connection
    │   └── backend.py       # mdb-lookup line-protocol client
    ├── http/
    │   ├── request.py       # Request line parsing and validation
    │   └── status_codes.py  # Status codes and response framing
    └── handlers/
        ├── static.py        # Static file serving
        └── lookup.py        # /mdb-lookup form and results

=============================================================================
QUICK START
=============================================================================

    from mdbhttp import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(
        port=8888,
        web_root="./www",
        mdb_host="localhost",
        mdb_port=9999,
    ))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
