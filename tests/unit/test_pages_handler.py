"""
Unit tests for the page handler.

Each test drives one cycle over a socket pair, so the handler sees a real
Connection without a listening server.
"""

import json
import logging
from pathlib import Path

import pytest

from pageserver.access_log import AccessLogger
from pageserver.config import ServerConfig
from pageserver.handlers import CycleState, PageHandler, serve_pages
from pageserver.http.response import BAD_REQUEST_BODY, FallbackPageMissing
from pageserver.http.status_codes import HTTPStatus


@pytest.fixture
def bodies(pages_dir: Path) -> dict:
    """Bytes of the pages served for /, /docs and any missing route."""
    return {
        "index": (pages_dir / "index.html").read_bytes(),
        "docs": (pages_dir / "docs" / "index.html").read_bytes(),
        "404": (pages_dir / "error404.html").read_bytes(),
    }


@pytest.fixture
def handler(pages_dir: Path) -> PageHandler:
    return PageHandler(ServerConfig(base_dir=str(pages_dir)))


class TestServePages:
    """Tests for successful and not-found cycles."""

    def test_root(self, handler, socket_pair, bodies):
        socket_pair.send(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

        result = handler.handle(socket_pair.conn)
        response = socket_pair.receive()

        assert response.status_line == "HTTP/1.1 200 Ok"
        assert response.headers["Content-Length"] == str(len(bodies["index"]))
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.body == bodies["index"]

        assert result.state is CycleState.DONE
        assert result.status is HTTPStatus.OK
        assert result.content_length == len(bodies["index"])
        assert result.error is None

    def test_header_order(self, handler, socket_pair):
        socket_pair.send(b"GET / HTTP/1.1\r\n\r\n")

        handler.handle(socket_pair.conn)
        response = socket_pair.receive()

        assert list(response.headers) == ["Content-Length", "Content-Type"]

    def test_directory_route(self, handler, socket_pair, bodies):
        socket_pair.send(b"GET /docs/ HTTP/1.1\r\n\r\n")

        handler.handle(socket_pair.conn)

        assert socket_pair.receive().body == bodies["docs"]

    def test_query_and_fragment(self, handler, socket_pair, bodies):
        socket_pair.send(b"GET /docs?lang=en#top HTTP/1.1\r\n\r\n")

        handler.handle(socket_pair.conn)

        assert socket_pair.receive().body == bodies["docs"]

    def test_not_found(self, handler, socket_pair, bodies):
        socket_pair.send(b"GET /nope HTTP/1.1\r\n\r\n")

        result = handler.handle(socket_pair.conn)
        response = socket_pair.receive()

        assert response.status_line == "HTTP/1.1 404 NOT FOUND"
        assert response.body == bodies["404"]
        assert response.headers["Content-Length"] == str(len(bodies["404"]))
        assert result.status is HTTPStatus.NOT_FOUND
        assert result.state is CycleState.DONE

    def test_traversal_is_not_found(self, handler, socket_pair, outside_dir):
        socket_pair.send(b"GET /../outside HTTP/1.1\r\n\r\n")

        handler.handle(socket_pair.conn)
        response = socket_pair.receive()

        assert response.status_line == "HTTP/1.1 404 NOT FOUND"
        assert b"secret" not in response.raw

    def test_line_without_crlf(self, handler, socket_pair, bodies):
        """Test that a request line ended by EOF is still served."""
        socket_pair.send(b"GET / HTTP/1.1")

        handler.handle(socket_pair.conn)

        assert socket_pair.receive().body == bodies["index"]

    def test_serve_pages_factory(self, pages_dir, socket_pair, bodies):
        handler = serve_pages(str(pages_dir), bad_request_response=False)
        socket_pair.send(b"GET /docs HTTP/1.1\r\n\r\n")

        handler.handle(socket_pair.conn)

        assert socket_pair.receive().body == bodies["docs"]
        assert handler.config.bad_request_response is False


class TestRejectedRequests:
    """Tests for empty and malformed request lines."""

    def test_empty_request_gets_nothing(self, handler, socket_pair):
        socket_pair.send(b"")

        result = handler.handle(socket_pair.conn)

        assert socket_pair.receive().raw == b""
        assert result.state is CycleState.EMPTY_REQUEST
        assert result.status is None

    @pytest.mark.parametrize("line, state", [
        (b"POST / HTTP/1.1\r\n", CycleState.INVALID_HEADER),
        (b"GET / HTTP/1.0\r\n", CycleState.INVALID_HEADER),
        (b"GET /\r\n", CycleState.INVALID_LENGTH),
        (b"\r\n", CycleState.INVALID_LENGTH),
    ])
    def test_bad_request(self, handler, socket_pair, line, state):
        socket_pair.send(line)

        result = handler.handle(socket_pair.conn)
        response = socket_pair.receive()

        assert response.status_line == "HTTP/1.1 400 BAD REQUEST"
        assert response.body == BAD_REQUEST_BODY
        assert result.state is state
        assert result.status is HTTPStatus.BAD_REQUEST
        assert result.status is result.error.status_code

    def test_over_long_line(self, pages_dir, socket_pair):
        handler = PageHandler(ServerConfig(base_dir=str(pages_dir), max_request_line=64))
        socket_pair.send(b"GET /" + b"a" * 200 + b" HTTP/1.1\r\n")

        result = handler.handle(socket_pair.conn)

        assert socket_pair.receive().status_line == "HTTP/1.1 400 BAD REQUEST"
        assert result.state is CycleState.INVALID_LENGTH

    def test_bad_request_disabled(self, pages_dir, socket_pair):
        handler = PageHandler(ServerConfig(base_dir=str(pages_dir), bad_request_response=False))
        socket_pair.send(b"DELETE / HTTP/1.1\r\n")

        result = handler.handle(socket_pair.conn)

        assert socket_pair.receive().raw == b""
        assert result.state is CycleState.INVALID_HEADER
        assert result.status is None


class TestFailures:
    """Tests for cycles that end without a complete response."""

    def test_missing_fallback_page(self, pages_dir, socket_pair, caplog):
        (pages_dir / "error404.html").unlink()
        handler = PageHandler(ServerConfig(base_dir=str(pages_dir)))
        socket_pair.send(b"GET /nope HTTP/1.1\r\n\r\n")

        with caplog.at_level(logging.ERROR, logger="pageserver.handlers.pages"):
            result = handler.handle(socket_pair.conn)

        assert socket_pair.receive().raw == b""
        assert isinstance(result.error, FallbackPageMissing)
        assert result.state is CycleState.RESOLVED_NOT_FOUND
        assert result.aborted
        assert "404 page not available" in caplog.text

    def test_missing_base_dir(self, tmp_path, socket_pair):
        """Test that an unusable base directory closes without a response."""
        handler = PageHandler(ServerConfig(base_dir=str(tmp_path / "missing")))
        socket_pair.send(b"GET / HTTP/1.1\r\n\r\n")

        result = handler.handle(socket_pair.conn)

        assert socket_pair.receive().raw == b""
        assert isinstance(result.error, FallbackPageMissing)

    def test_connection_closed_after_cycle(self, handler, socket_pair):
        socket_pair.send(b"GET / HTTP/1.1\r\n\r\n")

        handler.handle(socket_pair.conn)

        assert socket_pair.conn.closed


class TestAccessLog:
    """Tests for the access-log record of each cycle."""

    def test_text_record(self, handler, socket_pair, caplog):
        socket_pair.send(b"GET /docs HTTP/1.1\r\n\r\n")

        with caplog.at_level(logging.INFO, logger="pageserver.access"):
            handler.handle(socket_pair.conn)

        records = [r for r in caplog.records if r.name == "pageserver.access"]
        assert len(records) == 1
        assert '"GET /docs HTTP/1.1" 200 14' in records[0].getMessage()
        assert records[0].getMessage().endswith(" done")

    def test_json_record(self, pages_dir, socket_pair, caplog):
        handler = PageHandler(
            ServerConfig(base_dir=str(pages_dir)),
            access_logger=AccessLogger(log_format="json"),
        )
        socket_pair.send(b"GET /nope HTTP/1.1\r\n\r\n")

        with caplog.at_level(logging.INFO, logger="pageserver.access"):
            handler.handle(socket_pair.conn)

        records = [r for r in caplog.records if r.name == "pageserver.access"]
        entry = json.loads(records[0].getMessage())
        assert entry["status_code"] == 404
        assert entry["request_line"] == "GET /nope HTTP/1.1"
        assert entry["outcome"] == "done"
        assert entry["client_ip"] == "127.0.0.1"

    def test_bad_request_record(self, handler, socket_pair, caplog):
        socket_pair.send(b"BREW /pot HTTP/1.1\r\n")

        with caplog.at_level(logging.INFO, logger="pageserver.access"):
            handler.handle(socket_pair.conn)

        records = [r for r in caplog.records if r.name == "pageserver.access"]
        assert '"BREW /pot HTTP/1.1" 400' in records[0].getMessage()

    def test_empty_request_not_logged(self, handler, socket_pair, caplog):
        socket_pair.send(b"")

        with caplog.at_level(logging.INFO, logger="pageserver.access"):
            handler.handle(socket_pair.conn)

        assert not [r for r in caplog.records if r.name == "pageserver.access"]

    def test_aborted_cycle_logged_as_warning(self, pages_dir, socket_pair, caplog):
        (pages_dir / "error404.html").unlink()
        handler = PageHandler(ServerConfig(base_dir=str(pages_dir)))
        socket_pair.send(b"GET /nope HTTP/1.1\r\n\r\n")

        with caplog.at_level(logging.INFO, logger="pageserver.access"):
            handler.handle(socket_pair.conn)

        records = [r for r in caplog.records if r.name == "pageserver.access"]
        assert records[0].levelno == logging.WARNING
