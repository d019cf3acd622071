"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an accepted client socket with buffered file objects, and reads the
request line off it.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

    Client sends:
        "GET /docs HTTP/1.1\r\nHost: localhost\r\n\r\n"

    Server might receive:
        First recv():  "GET /do"
        Second recv(): "cs HTTP/1.1\r\nHost: loc"
        Third recv():  "alhost\r\n\r\n"

The request line is complete only once a line terminator arrives. A
buffered reader (socket.makefile("rb")) keeps receiving until it sees
"\n", and hands back exactly that one line. Whatever the client sent after
it (headers, a body, a second request) stays in the buffer and is never
looked at. The page server needs the request line and nothing else.

=============================================================================
LINE READER OUTCOMES
=============================================================================

    ┌────────────────────────────────────┬─────────────────────────────────┐
    │  Stream contents                   │  read_line()                     │
    ├────────────────────────────────────┼─────────────────────────────────┤
    │  "GET / HTTP/1.1\r\n..."           │  "GET / HTTP/1.1"                │
    │  "GET / HTTP/1.1" then EOF         │  "GET / HTTP/1.1"                │
    │  "\r\n"                            │  ""   (parser: InvalidLength)    │
    │  EOF immediately                   │  EmptyRequest                    │
    │  > max_length bytes, no "\n"       │  InvalidLength                   │
    │  recv() fails / times out          │  RequestIOError                  │
    └────────────────────────────────────┴─────────────────────────────────┘

An I/O failure is never mistaken for end-of-stream: the client closing
cleanly and the socket breaking are different outcomes.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Tuple

from ..http.request import (
    EmptyRequest,
    InvalidLength,
    Request,
    RequestIOError,
    parse_request_line,
)


logger = logging.getLogger(__name__)

DEFAULT_MAX_LINE = 8192

# Bounds on draining unread input at close, across all recv() calls.
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


def read_line(stream: BinaryIO, max_length: int = DEFAULT_MAX_LINE) -> str:
    """
    Read the first line from a binary stream.

    Consumes the line and its terminator ("\\n" or "\\r\\n") and nothing
    more.

    Args:
        stream: Any binary stream with readline(limit).
        max_length: Longest accepted line in bytes, terminator excluded.

    Returns:
        The line without its terminator, decoded as UTF-8 (undecodable
        bytes replaced).

    Raises:
        EmptyRequest: If the stream is at EOF.
        InvalidLength: If no terminator appears within max_length bytes.
        RequestIOError: If reading fails.
    """
    try:
        raw = stream.readline(max_length + 2)
    except OSError as e:
        raise RequestIOError(f"Failed to read request line: {e}") from e

    if not raw:
        raise EmptyRequest()

    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]

    if len(raw) > max_length:
        raise InvalidLength(f"Request line exceeds {max_length} bytes")

    # Invalid UTF-8 is replaced, not an I/O error. Method and version are
    # ASCII, so a replaced byte never yields a valid request.
    return raw.decode("utf-8", errors="replace")


def read_request(stream: BinaryIO, max_length: int = DEFAULT_MAX_LINE) -> Request:
    """
    Read and parse the request line from a stream.

    Raises:
        EmptyRequest, InvalidLength, InvalidHeader, RequestIOError
    """
    return parse_request_line(read_line(stream, max_length))


@dataclass
class Connection:
    """
    Wrapper around one accepted client socket.

    =========================================================================
    LIFECYCLE
    =========================================================================

        accept() ──► Connection(socket, address)
                          │
                          ├──► read_line(rfile)    the request line only
                          ├──► wfile.write(...)    via the response writer
                          └──► close()             FIN, drain, close

    Usable as a context manager:

        with Connection(sock, addr, timeout=30.0) as conn:
            request = read_request(conn.rfile)
            write_page(conn.wfile, HTTPStatus.OK, target)

    =========================================================================
    """

    socket: socket.socket
    address: Tuple[str, int]
    timeout: Optional[float] = 30.0

    # Short random id to correlate log lines of one connection
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    rfile: BinaryIO = field(init=False, repr=False)
    wfile: BinaryIO = field(init=False, repr=False)
    closed: bool = field(default=False, init=False)

    def __post_init__(self):
        """Apply the timeout and open the buffered file objects."""
        self.socket.settimeout(self.timeout)
        self.rfile = self.socket.makefile("rb")
        self.wfile = self.socket.makefile("wb")

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0] if self.address else "-"

    def close(self):
        """
        Close the connection gracefully.

        1. Flush anything still buffered in wfile.
        2. shutdown(SHUT_WR): send FIN so the client sees end of response.
        3. Drain unread input (headers we ignored). Closing a socket with
           unread data makes the kernel send RST, which can destroy the
           response before the client reads it. Draining stops after
           DRAIN_TIMEOUT seconds or DRAIN_LIMIT bytes, whichever comes
           first, counted over all reads.
        4. close() the file objects and the socket.
        """
        if self.closed:
            return
        self.closed = True

        try:
            self.wfile.flush()
        except OSError:
            pass

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass

        for stream in (self.rfile, self.wfile):
            try:
                stream.close()
            except OSError:
                pass

        try:
            self.socket.close()
        except OSError:
            pass

        logger.debug(f"[{self.id}] Connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# read_line()     the line reader: one line, no more, distinct EOF vs I/O
# read_request()  read_line() + parse_request_line()
# Connection      socket + rfile/wfile + timeout + graceful close
# =============================================================================
