"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The page server answers with a deliberately tiny set of status codes.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  Code  │ When                                                      │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  200   │ The route resolved to an index.html inside the base dir   │
    │  400   │ The request line is not `GET <path> HTTP/1.1`             │
    │        │ (only when ServerConfig.bad_request_response is on)       │
    │  404   │ Missing file, directory without index.html, or a path    │
    │        │ that escapes the base directory (indistinguishable)      │
    └────────┴───────────────────────────────────────────────────────────┘

Reason phrases follow what the server has always put on the wire
("200 Ok", "404 NOT FOUND") rather than the RFC 7231 spelling. Clients
ignore the reason phrase, but tests and logs compare it literally.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes produced by the page server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'NOT FOUND'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 NOT FOUND
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "Ok",
    HTTPStatus.BAD_REQUEST: "BAD REQUEST",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
}
