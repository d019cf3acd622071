"""
=============================================================================
REQUEST LINE PARSER
=============================================================================

Turns the first line of an HTTP request into an immutable Request value.

The page server only ever looks at the request line. Headers and any body
the client sends are left unread on the socket and discarded when the
connection closes.

=============================================================================
ACCEPTED GRAMMAR
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /docs/intro?x=1#top HTTP/1.1\r\n                              │
    │    ─┬─ ─────────┬───────── ────┬───                                  │
    │     │           │              │                                     │
    │   Method      Path          Version                                  │
    │   "GET"     any token      "HTTP/1.1"                                │
    │   exactly   kept raw       exactly                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The grammar is closed: anything that is not exactly three ASCII-whitespace
separated tokens with the literal method "GET" and the literal version
"HTTP/1.1" is rejected. There is no method or version negotiation, and the
path token is not decoded, validated or split here. Routing is the path
resolver's job.

=============================================================================
ERROR TAXONOMY
=============================================================================

    RequestError
    ├── EmptyRequest      client closed without sending a line
    ├── InvalidLength     token count != 3 (or the line is over-long)
    ├── InvalidHeader     method != "GET" or version != "HTTP/1.1"
    └── RequestIOError    read/write failure on the connection or disk
        └── FallbackPageMissing   (pageserver.http.response)

Each error carries the status code the server may answer with. Grammar
violations carry 400; an empty request or an I/O failure carries None,
meaning nothing can usefully be written back.

=============================================================================
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from .status_codes import HTTPStatus


ACCEPTED_METHOD = "GET"
ACCEPTED_VERSION = "HTTP/1.1"

# ASCII whitespace as HTTP tokenizers see it: SP, HT, LF, FF, CR.
_ASCII_WHITESPACE = re.compile(r"[ \t\n\x0c\r]+")


class RequestError(Exception):
    """
    Base class for everything that can end a request/response cycle early.

    Attributes:
        status_code: Status the server may answer with, or None when no
                     response should be attempted.
    """

    status_code: Optional[HTTPStatus] = None

    def __init__(self, message: str = ""):
        super().__init__(message or self.__doc__.strip().splitlines()[0])


class EmptyRequest(RequestError):
    """Request was empty."""


class InvalidLength(RequestError):
    """Invalid length in request line."""

    status_code = HTTPStatus.BAD_REQUEST


class InvalidHeader(RequestError):
    """The request is not a valid request."""

    status_code = HTTPStatus.BAD_REQUEST


class RequestIOError(RequestError):
    """I/O failure on the connection or the filesystem."""


@dataclass(frozen=True)
class Request:
    """
    A parsed request line.

    Frozen: built once per connection and never mutated afterwards.

        method:  always "GET" for a constructed Request
        path:    the raw path token, undecoded, query and fragment included
        version: always "HTTP/1.1" for a constructed Request
    """

    method: str
    path: str
    version: str

    def __str__(self) -> str:
        return f"{self.method} {self.path} {self.version}"


def split_tokens(line: str) -> List[str]:
    """Split a request line on ASCII whitespace, dropping empty tokens."""
    return [token for token in _ASCII_WHITESPACE.split(line) if token]


def parse_request_line(line: str) -> Request:
    """
    Validate a request line and build a Request from it.

    Args:
        line: The request line without its terminator.

    Returns:
        The parsed Request.

    Raises:
        InvalidLength: If the line does not have exactly three tokens.
        InvalidHeader: If the method or version is not accepted.
    """
    tokens = split_tokens(line)

    if len(tokens) != 3:
        raise InvalidLength(f"Expected 3 tokens in request line, got {len(tokens)}")

    method, path, version = tokens
    if method != ACCEPTED_METHOD or version != ACCEPTED_VERSION:
        raise InvalidHeader(f"Unsupported request line: {method} ... {version}")

    return Request(method=method, path=path, version=version)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# parse_request_line() is the only way a Request comes into existence, so
# every Request in the program satisfies the grammar above. Reading the
# line off the socket lives in pageserver.core.connection (read_line and
# read_request).
# =============================================================================
