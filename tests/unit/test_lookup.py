"""
Unit tests for the mdb-lookup handler.
"""

import logging
import socket

import pytest

from mdbhttp.handlers.lookup import (
    LookupHandler,
    FORM_HTML,
    TABLE_START,
    TABLE_END,
    PAGE_END,
    ROW_PLAIN,
    ROW_SHADED,
    extract_key,
    row_open,
)
from mdbhttp.http.request import HTTPRequest


OK = b"HTTP/1.0 200 OK\r\n\r\n"


def get(target: str) -> HTTPRequest:
    return HTTPRequest(method="GET", target=target, version="HTTP/1.0")


class FlakyConnection:
    """Records sends and starts failing from the nth send on."""

    id = "flaky"

    def __init__(self, fail_from: int):
        self.fail_from = fail_from
        self.sent = []

    def send(self, data: bytes) -> bool:
        if len(self.sent) + 1 >= self.fail_from:
            return False
        self.sent.append(data)
        return True


@pytest.fixture
def lookup(backend) -> LookupHandler:
    return LookupHandler(backend.client)


class TestHelpers:
    """Tests for extract_key() and row_open()."""

    def test_extract_key(self):
        assert extract_key("/mdb-lookup?key=alice") == b"alice"
        assert extract_key("/mdb-lookup?key=") == b""
        assert extract_key("/mdb-lookup?key=a%20b&x=1") == b"a%20b&x=1"

    def test_no_key(self):
        assert extract_key("/mdb-lookup") is None
        assert extract_key("/mdb-lookup?q=alice") is None
        assert extract_key("/mdb-lookupkey=alice") is None

    def test_rows_alternate_starting_plain(self):
        assert [row_open(n) for n in (1, 2, 3, 4)] == [
            ROW_PLAIN, ROW_SHADED, ROW_PLAIN, ROW_SHADED,
        ]


class TestLookupHandler:
    """Tests for LookupHandler.handle()."""

    def test_form_only_without_key(self, lookup, backend, conn_pair):
        status = lookup.handle(get("/mdb-lookup"), conn_pair.conn)
        body = conn_pair.response()

        assert status == 200
        assert body == OK + FORM_HTML + PAGE_END
        assert b"<table" not in body
        assert backend.received() == b""

    def test_single_result(self, lookup, backend, conn_pair):
        backend.respond(b"alice,30")

        status = lookup.handle(get("/mdb-lookup?key=alice"), conn_pair.conn)

        assert status == 200
        assert backend.received() == b"alice\n"
        assert conn_pair.response() == (
            OK + FORM_HTML
            + TABLE_START
            + b"\n<tr><td>alice,30\n"
            + TABLE_END
            + PAGE_END
        )

    def test_rows_alternate_shading(self, lookup, backend, conn_pair):
        backend.respond(b"one", b"two", b"three")

        lookup.handle(get("/mdb-lookup?key=o"), conn_pair.conn)
        body = conn_pair.response()

        assert (
            b"\n<tr><td>one\n"
            b"\n<tr><td bgcolor=yellow>two\n"
            b"\n<tr><td>three\n"
        ) in body

    def test_empty_result_set_renders_empty_table(self, lookup, backend, conn_pair):
        backend.respond()

        lookup.handle(get("/mdb-lookup?key=nobody"), conn_pair.conn)

        assert conn_pair.response() == OK + FORM_HTML + TABLE_START + TABLE_END + PAGE_END

    def test_empty_key_is_still_sent(self, lookup, backend, conn_pair):
        backend.respond()

        lookup.handle(get("/mdb-lookup?key="), conn_pair.conn)

        assert backend.received() == b"\n"
        assert TABLE_START in conn_pair.response()

    def test_key_forwarded_without_decoding(self, lookup, backend, conn_pair):
        backend.respond()

        lookup.handle(get("/mdb-lookup?key=al%20ice+b"), conn_pair.conn)

        assert backend.received() == b"al%20ice+b\n"

    def test_key_is_logged(self, lookup, backend, conn_pair, caplog):
        backend.respond()

        with caplog.at_level(logging.INFO):
            lookup.handle(get("/mdb-lookup?key=alice"), conn_pair.conn)

        assert "Looking up [alice]" in caplog.text

    def test_backend_terminated_truncates_page(self, lookup, backend, conn_pair, caplog):
        backend.peer.sendall(b"alice,30\n")
        backend.peer.shutdown(socket.SHUT_WR)

        with caplog.at_level(logging.ERROR):
            status = lookup.handle(get("/mdb-lookup?key=alice"), conn_pair.conn)

        body = conn_pair.response()
        assert status == 200
        assert body.endswith(b"\n<tr><td>alice,30\n")
        assert TABLE_END not in body
        assert PAGE_END not in body
        assert "terminated" in caplog.text

    def test_client_gone_drains_backend(self, lookup, backend):
        """The rest of the result set is consumed so the next lookup is aligned."""
        backend.respond(b"a", b"b", b"c")
        backend.respond(b"next")

        # status, form, table start, row 1 open succeed; row 1 text fails
        conn = FlakyConnection(fail_from=5)
        status = lookup.handle(get("/mdb-lookup?key=x"), conn)

        assert status == 200
        assert conn.sent[-1] == ROW_PLAIN
        assert list(backend.client.read_results()) == [b"next\n"]

    def test_client_gone_before_form_skips_backend(self, lookup, backend):
        conn = FlakyConnection(fail_from=1)

        assert lookup.handle(get("/mdb-lookup?key=alice"), conn) == 200
        assert backend.received() == b""
