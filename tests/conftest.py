"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Dict, Generator, List

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mdbhttp import HTTPServer, ServerConfig
from mdbhttp.core import Connection, MdbClient


INDEX_HTML = b"<html><body><h1>home</h1></body></html>\n"
SUBDIR_INDEX_HTML = b"<html><body><h1>subdir</h1></body></html>\n"
HELLO_TXT = b"hello, world\n"
BINARY_DATA = bytes(range(256)) * 40


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """
    A small web root:

        www/
        ├── index.html
        ├── hello.txt
        ├── data.bin
        ├── subdir/index.html
        └── emptydir/

    plus tmp_path/secret.txt just outside it.
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "hello.txt").write_bytes(HELLO_TXT)
    (root / "data.bin").write_bytes(BINARY_DATA)
    (root / "subdir").mkdir()
    (root / "subdir" / "index.html").write_bytes(SUBDIR_INDEX_HTML)
    (root / "emptydir").mkdir()
    (tmp_path / "secret.txt").write_bytes(b"top secret\n")
    return root


@pytest.fixture
def free_port() -> int:
    """Get a port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def read_all(sock: socket.socket, timeout: float = 5.0) -> bytes:
    """Read from sock until the peer closes."""
    sock.settimeout(timeout)
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class ConnectionPair:
    """A server-side Connection wired to a plain client socket."""

    def __init__(self):
        server_sock, self.client = socket.socketpair()
        self.conn = Connection(socket=server_sock, address=("127.0.0.1", 54321))

    def response(self) -> bytes:
        """Close the server side and return everything it sent."""
        self.client.shutdown(socket.SHUT_WR)
        self.conn.close()
        return read_all(self.client)

    def close(self):
        self.conn.close()
        self.client.close()


@pytest.fixture
def conn_pair() -> Generator[ConnectionPair, None, None]:
    """Server-side Connection plus the client end of a socket pair."""
    pair = ConnectionPair()
    yield pair
    pair.close()


class BackendPair:
    """An MdbClient whose backend is the `peer` socket, scripted by the test."""

    def __init__(self):
        client_sock, self.peer = socket.socketpair()
        self.client = MdbClient(client_sock)

    def respond(self, *lines: bytes):
        """Queue result lines plus the blank terminator."""
        self.peer.sendall(b"".join(line + b"\n" for line in lines) + b"\n")

    def received(self) -> bytes:
        """Everything the client has sent so far."""
        self.peer.setblocking(False)
        try:
            return self.peer.recv(65536)
        except BlockingIOError:
            return b""
        finally:
            self.peer.setblocking(True)

    def close(self):
        self.client.close()
        self.peer.close()


@pytest.fixture
def backend() -> Generator[BackendPair, None, None]:
    """MdbClient connected to a socket the test controls."""
    pair = BackendPair()
    yield pair
    pair.close()


class FakeMdbServer:
    """
    Minimal in-process mdb-lookup server.

    Answers each key line with the configured result lines for that key,
    then a blank line. Unknown keys get an empty result set.
    """

    def __init__(self, records: Dict[bytes, List[bytes]]):
        self.records = records
        self.keys: List[bytes] = []
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(1)
        self.port = self._sock.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "FakeMdbServer":
        self._thread.start()
        return self

    def _serve(self):
        conn, _ = self._sock.accept()
        with conn, conn.makefile("rb") as reader:
            for line in reader:
                key = line.rstrip(b"\n")
                self.keys.append(key)
                for result in self.records.get(key, []):
                    conn.sendall(result + b"\n")
                conn.sendall(b"\n")

    def stop(self):
        self._sock.close()
        self._thread.join(timeout=5.0)


MDB_RECORDS = {
    b"alice": [b"alice,30"],
    b"bob": [b"bob,41", b"bobby,22", b"bob b,19"],
}


@pytest.fixture
def mdb_server() -> Generator[FakeMdbServer, None, None]:
    """A running fake mdb-lookup server."""
    server = FakeMdbServer(MDB_RECORDS).start()
    yield server
    server.stop()


class TestServer:
    """Test server helper that runs HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread = threading.Thread(target=self.server.run, daemon=True)

    @property
    def address(self):
        return self.server.address

    def start(self):
        self._thread.start()
        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        self._thread.join(timeout=5.0)

    def request(self, raw: bytes, close_write: bool = False) -> bytes:
        """Send raw request bytes and return the full response."""
        with socket.create_connection(self.address, timeout=5.0) as sock:
            sock.sendall(raw)
            if close_write:
                sock.shutdown(socket.SHUT_WR)
            return read_all(sock)

    def get(self, target: str, version: str = "HTTP/1.0") -> bytes:
        """Send a plain GET with one header."""
        raw = f"GET {target} {version}\r\nHost: localhost\r\n\r\n".encode("latin-1")
        return self.request(raw)


@pytest.fixture
def test_server(web_root: Path, mdb_server: FakeMdbServer) -> Generator[TestServer, None, None]:
    """
    An HTTPServer on a free port, backed by the fake mdb-lookup server.

    The backend client is connected here and handed to the server, which
    closes it on shutdown.
    """
    client = MdbClient.connect("127.0.0.1", mdb_server.port, timeout=5.0)
    server = HTTPServer(
        ServerConfig(
            host="127.0.0.1",
            port=0,
            web_root=str(web_root),
            mdb_host="127.0.0.1",
            mdb_port=mdb_server.port,
            log_level="DEBUG",
        ),
        client=client,
    )

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
