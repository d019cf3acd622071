"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pageserver import PageServer, ServerConfig
from pageserver.core.connection import Connection


INDEX_BODY = b"<h1>home</h1>\n"
DOCS_BODY = b"<h1>docs</h1>\n"
INTRO_BODY = b"<h1>intro</h1>\n"
NOT_FOUND_BODY = b"<h1>404</h1>\n"


@dataclass
class RawResponse:
    """A response as received on the wire."""

    raw: bytes
    status_line: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def parse(cls, raw: bytes) -> "RawResponse":
        if not raw:
            return cls(raw=raw)
        head, _, body = raw.partition(b"\r\n\r\n")
        lines = head.decode("ascii").split("\r\n")
        headers = dict(line.split(": ", 1) for line in lines[1:])
        return cls(raw=raw, status_line=lines[0], headers=headers, body=body)


def _send_and_half_close(sock: socket.socket, data: bytes) -> None:
    if data:
        sock.sendall(data)
    sock.shutdown(socket.SHUT_WR)


def _read_until_closed(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class SocketPair:
    """
    A server-side Connection and the client socket talking to it.

    Built on socket.socketpair(), so handlers run in the test thread
    without a listening socket:

        pair.send(b"GET / HTTP/1.1\\r\\n\\r\\n")
        handler.handle(pair.conn)
        response = pair.receive()
    """

    def __init__(self):
        server_sock, self.client = socket.socketpair()
        self.client.settimeout(5.0)
        self.conn = Connection(socket=server_sock, address=("127.0.0.1", 50000), timeout=5.0)

    def send(self, data: bytes) -> None:
        """Send data and half-close, like a client that is done talking."""
        _send_and_half_close(self.client, data)

    def receive(self) -> RawResponse:
        """Read until the server side closes."""
        return RawResponse.parse(_read_until_closed(self.client))

    def close(self):
        self.conn.close()
        self.client.close()


class RunningServer:
    """A PageServer running in a background thread."""

    def __init__(self, server: PageServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"setup_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, data: bytes) -> RawResponse:
        """Open a connection, send raw bytes, return everything received."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            _send_and_half_close(sock, data)
            return RawResponse.parse(_read_until_closed(sock))


@pytest.fixture
def pages_dir(tmp_path: Path) -> Path:
    """
    A base directory with the standard layout:

        pages/
        ├── index.html
        ├── error404.html
        ├── empty/             (no index.html)
        └── docs/
            ├── index.html
            └── intro/
                └── index.html
    """
    base = tmp_path / "pages"
    (base / "docs" / "intro").mkdir(parents=True)
    (base / "empty").mkdir()

    (base / "index.html").write_bytes(INDEX_BODY)
    (base / "error404.html").write_bytes(NOT_FOUND_BODY)
    (base / "docs" / "index.html").write_bytes(DOCS_BODY)
    (base / "docs" / "intro" / "index.html").write_bytes(INTRO_BODY)
    return base


@pytest.fixture
def outside_dir(tmp_path: Path) -> Path:
    """A directory next to the base directory, holding a secret page."""
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "index.html").write_bytes(b"secret")
    return outside


@pytest.fixture
def socket_pair() -> Generator[SocketPair, None, None]:
    """A connected server Connection / client socket pair."""
    pair = SocketPair()
    yield pair
    pair.close()


@pytest.fixture
def running_server(pages_dir: Path) -> Generator[RunningServer, None, None]:
    """A server on an OS-assigned port serving pages_dir."""
    server = PageServer(ServerConfig(
        host="127.0.0.1",
        port=0,
        base_dir=str(pages_dir),
        timeout=5.0,
        log_level="WARNING",
    ))

    running = RunningServer(server)
    running.start()

    yield running

    running.stop()
