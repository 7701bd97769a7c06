"""
Unit tests for the command-line entry point.
"""

import logging
import socket

import pytest

from mdbhttp import __version__
from mdbhttp.__main__ import build_parser, main


class TestArguments:
    """Tests for argument parsing."""

    def test_positional_arguments(self):
        args = build_parser().parse_args(["8888", "./www", "localhost", "9999"])

        assert args.server_port == 8888
        assert args.web_root == "./www"
        assert args.mdb_lookup_host == "localhost"
        assert args.mdb_lookup_port == 9999
        assert args.host == "0.0.0.0"
        assert args.log_level == "INFO"

    def test_missing_arguments_exit_2(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["8888", "./www"])

        assert exc_info.value.code == 2
        assert "usage" in capsys.readouterr().err

    def test_non_numeric_port_exit_2(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["http", "./www", "localhost", "9999"])

        assert exc_info.value.code == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            main(["--version"])

        assert __version__ in capsys.readouterr().out


class TestStartupFailures:
    """Fatal startup errors end the process with status 1."""

    def test_missing_web_root(self, tmp_path, free_port, caplog):
        with caplog.at_level(logging.ERROR):
            status = main(["0", str(tmp_path / "missing"), "127.0.0.1", str(free_port)])

        assert status == 1
        assert "Web root" in caplog.text

    def test_backend_unreachable(self, web_root, free_port, caplog):
        with caplog.at_level(logging.ERROR):
            status = main([
                "0", str(web_root), "127.0.0.1", str(free_port), "--host", "127.0.0.1",
            ])

        assert status == 1
        assert "mdb-lookup" in caplog.text

    def test_port_in_use(self, web_root, caplog):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy, \
                socket.socket(socket.AF_INET, socket.SOCK_STREAM) as backend:
            busy.bind(("127.0.0.1", 0))
            busy.listen(1)
            backend.bind(("127.0.0.1", 0))
            backend.listen(1)

            with caplog.at_level(logging.ERROR):
                status = main([
                    str(busy.getsockname()[1]), str(web_root),
                    "127.0.0.1", str(backend.getsockname()[1]),
                    "--host", "127.0.0.1",
                ])

        assert status == 1
        assert "Startup failed" in caplog.text
