"""
=============================================================================
HTTP PROTOCOL MODULE
=============================================================================

The protocol side of the page server: what a request line may look like,
where it routes on disk, and how the answer is framed.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ "GET /docs?x=1 HTTP/1.1"  →  Request(method, path, version)         │
    │ plus the RequestError taxonomy                                      │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESOLVER (resolver.py)                                              │
    │ ─────────────────────────────────────────────────────────────────── │
    │ "/docs?x=1"  →  /abs/pages/docs/index.html  or  None                │
    │ directory routing + canonicalization + confinement check           │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE (response.py)                                              │
    │ ─────────────────────────────────────────────────────────────────── │
    │ status + file  →  "HTTP/1.1 200 Ok\\r\\n..." + streamed body          │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES (status_codes.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ 200 Ok, 400 BAD REQUEST, 404 NOT FOUND                              │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    Request,
    RequestError,
    EmptyRequest,
    InvalidLength,
    InvalidHeader,
    RequestIOError,
    parse_request_line,
)
from .resolver import (
    PathResolver,
    BaseDirectoryError,
    normalize_path,
    resolve_path,
)
from .response import (
    ResponseHead,
    FallbackPageMissing,
    PageResponse,
    open_page,
    write_page,
    write_bad_request,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request line
    "Request",
    "RequestError",
    "EmptyRequest",
    "InvalidLength",
    "InvalidHeader",
    "RequestIOError",
    "parse_request_line",

    # Path resolution
    "PathResolver",
    "BaseDirectoryError",
    "normalize_path",
    "resolve_path",

    # Responses
    "ResponseHead",
    "FallbackPageMissing",
    "PageResponse",
    "open_page",
    "write_page",
    "write_bad_request",

    # Status codes
    "HTTPStatus",
]
