"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

    ┌──────────────────────────────────────────────────────────────────┐
    │  socket_server.py   listening socket, sequential accept loop     │
    │  connection.py      one client: line reader, send, close         │
    │  backend.py         persistent line-protocol client to mdb-lookup│
    └──────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .backend import MdbClient, BackendError, BackendConnectionError

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "MdbClient",
    "BackendError",
    "BackendConnectionError",
]
