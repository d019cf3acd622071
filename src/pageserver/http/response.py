"""
=============================================================================
RESPONSE WRITER
=============================================================================

Frames a file as an HTTP/1.1 response and streams it onto the connection.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 Ok\r\n                         ← status line           │
    │  Content-Length: 1234\r\n                    ← os.fstat() size       │
    │  Content-Type: text/html; charset=utf-8\r\n  ← fixed                 │
    │  \r\n                                        ← end of head           │
    │  <!DOCTYPE html>...                          ← raw file bytes        │
    └─────────────────────────────────────────────────────────────────────┘

Only three headers are ever written, in this order. Content-Length is the
size of the file in BYTES as reported by the open file descriptor, never
the length of decoded text, so files in any encoding (or none) are framed
exactly.

=============================================================================
WRITE ORDER
=============================================================================

    open_page() ──► write_head() ──► write_body() ──► (closed)
        │                │                 │
        │ OSError        │ OSError         │ OSError
        ▼                ▼                 ▼
    nothing written   RequestIOError   RequestIOError
    (FallbackPageMissing  (cycle aborted, connection closed)
     / RequestIOError)

The file is opened BEFORE a single byte goes out, so a missing page never
produces a half-written response. Once the head is written there is no way
back: a failure while copying the body simply ends the cycle.

=============================================================================
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

from .request import RequestIOError
from .status_codes import HTTPStatus


CONTENT_TYPE = "text/html; charset=utf-8"

DEFAULT_CHUNK_SIZE = 64 * 1024

BAD_REQUEST_BODY = (
    b"<!DOCTYPE html>\n"
    b"<html><head><title>400 Bad Request</title></head>\n"
    b"<body><h1>400 Bad Request</h1></body></html>\n"
)


class FallbackPageMissing(RequestIOError):
    """The 404 page is missing from the base directory."""


@dataclass(frozen=True)
class ResponseHead:
    """
    Status line and headers of a response.

    Serializes to:

        HTTP/1.1 <code> <phrase>\\r\\n
        Content-Length: <n>\\r\\n
        Content-Type: text/html; charset=utf-8\\r\\n
        \\r\\n
    """

    status: HTTPStatus
    content_length: int
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 404 NOT FOUND"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self) -> bytes:
        lines = [
            self.status_line,
            f"Content-Length: {self.content_length}",
            f"Content-Type: {CONTENT_TYPE}",
            "",
            "",
        ]
        return "\r\n".join(lines).encode("ascii")


class PageResponse:
    """
    An opened page, ready to be written as one response.

    Use as a context manager so the file is closed whatever happens:

        with open_page(HTTPStatus.OK, target) as page:
            page.write_head(wfile)
            page.write_body(wfile)
    """

    def __init__(self, status: HTTPStatus, path: Union[str, Path], body: BinaryIO):
        self.status = status
        self.path = path
        self._body = body
        # Size of the descriptor we stream from, so the announced length
        # matches what is read unless the file changes under us.
        self.head = ResponseHead(status=status, content_length=os.fstat(body.fileno()).st_size)

    @property
    def content_length(self) -> int:
        return self.head.content_length

    def write_head(self, wfile: BinaryIO) -> None:
        """Write status line, headers and the blank line."""
        try:
            wfile.write(self.head.to_bytes())
        except OSError as e:
            raise RequestIOError(f"Failed to send headers for {self.path}: {e}") from e

    def write_body(self, wfile: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """
        Stream the file onto wfile and flush.

        Returns:
            The announced Content-Length.
        """
        try:
            shutil.copyfileobj(self._body, wfile, chunk_size)
            wfile.flush()
        except OSError as e:
            raise RequestIOError(f"Failed to send {self.path}: {e}") from e
        return self.content_length

    def close(self) -> None:
        self._body.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def open_page(status: HTTPStatus, path: Union[str, Path]) -> PageResponse:
    """
    Open a page for sending.

    A missing 200 page is an ordinary I/O failure (the file vanished after
    resolution). A missing 404 page is an operator error: the base
    directory is not laid out correctly.

    Raises:
        FallbackPageMissing: If status is 404 and the page cannot be opened.
        RequestIOError: If any other page cannot be opened.
    """
    try:
        body = open(path, "rb")
    except OSError as e:
        if status == HTTPStatus.NOT_FOUND:
            raise FallbackPageMissing(f"404 page not available at {path}: {e}") from e
        raise RequestIOError(f"Cannot open {path}: {e}") from e

    try:
        return PageResponse(status, path, body)
    except OSError as e:
        body.close()
        raise RequestIOError(f"Cannot stat {path}: {e}") from e


def write_page(
    wfile: BinaryIO,
    status: HTTPStatus,
    path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """
    Write a complete response whose body is the content of a file.

    Args:
        wfile: Writable binary stream (socket file, BytesIO in tests).
        status: Status to put on the status line.
        path: File to send.
        chunk_size: Size of each read/write while streaming the body.

    Returns:
        Number of body bytes announced in Content-Length.

    Raises:
        FallbackPageMissing: If status is 404 and the page is missing.
        RequestIOError: If the page cannot be opened or the connection
                        fails while writing.
    """
    with open_page(status, path) as page:
        page.write_head(wfile)
        return page.write_body(wfile, chunk_size)


def write_bad_request(wfile: BinaryIO) -> int:
    """Write the built-in 400 page."""
    head = ResponseHead(status=HTTPStatus.BAD_REQUEST, content_length=len(BAD_REQUEST_BODY))
    try:
        wfile.write(head.to_bytes() + BAD_REQUEST_BODY)
        wfile.flush()
    except OSError as e:
        raise RequestIOError(f"Failed to send 400 response: {e}") from e
    return len(BAD_REQUEST_BODY)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# ResponseHead        status line + Content-Length + Content-Type
# open_page()         open + fstat, before anything is written
# PageResponse        write_head() then write_body() (streamed, flushed)
# write_page()        the three steps in one call
# write_bad_request() fixed in-memory 400 page
#
# Bodies are never read fully into memory; shutil.copyfileobj moves them
# in chunk_size pieces.
# =============================================================================
