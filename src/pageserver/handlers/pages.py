"""
=============================================================================
PAGE HANDLER
=============================================================================

Runs one request/response cycle on an accepted connection: read the request
line, parse it, resolve the route, write the page.

=============================================================================
CYCLE STATE MACHINE
=============================================================================

    START
      │ read_line()
      ├──────────────► EMPTY_REQUEST              (no write)
      ▼
    LINE_READ
      │ parse_request_line()
      ├──────────────► INVALID_LENGTH ┐
      ├──────────────► INVALID_HEADER ┴─► 400 page, or nothing
      ▼
    PARSED
      │ PathResolver.resolve()
      ├──► RESOLVED_OK         (200, the route's index.html)
      └──► RESOLVED_NOT_FOUND  (404, error404.html)
              │ open_page() + write_head()
              ▼
          HEADERS_WRITTEN
              │ write_body()
              ▼
          BODY_STREAMED
              │
              ▼
            DONE

Any RequestIOError ends the cycle where it happens; the state reached is
kept on the CycleResult and reported in the access log. Nothing is ever
retried.

=============================================================================
WHO SEES WHAT
=============================================================================

    ┌──────────────────────────────┬──────────────────┬───────────────────┐
    │  Condition                   │  Client gets     │  Operator log     │
    ├──────────────────────────────┼──────────────────┼───────────────────┤
    │  route exists                │  200 + page      │  access INFO      │
    │  missing / not a file        │  404 page        │  access INFO      │
    │  escapes base directory      │  404 page        │  WARNING          │
    │  malformed request line      │  400 (optional)  │  INFO             │
    │  empty connection            │  nothing         │  DEBUG            │
    │  socket / disk I/O failure   │  (closed)        │  WARNING          │
    │  base dir unusable           │  (closed)        │  ERROR            │
    │  error404.html missing       │  (closed)        │  ERROR            │
    └──────────────────────────────┴──────────────────┴───────────────────┘

=============================================================================
"""

import time
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..access_log import AccessLogger
from ..config import ServerConfig
from ..core.connection import Connection, read_line
from ..http.request import (
    EmptyRequest,
    InvalidLength,
    InvalidHeader,
    Request,
    RequestError,
    RequestIOError,
    parse_request_line,
)
from ..http.resolver import PathResolver
from ..http.response import FallbackPageMissing, open_page, write_bad_request
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class CycleState(Enum):
    """States of one request/response cycle."""

    START = "start"
    LINE_READ = "line_read"
    EMPTY_REQUEST = "empty_request"
    INVALID_LENGTH = "invalid_length"
    INVALID_HEADER = "invalid_header"
    PARSED = "parsed"
    RESOLVED_OK = "resolved_ok"
    RESOLVED_NOT_FOUND = "resolved_not_found"
    HEADERS_WRITTEN = "headers_written"
    BODY_STREAMED = "body_streamed"
    DONE = "done"


@dataclass
class CycleResult:
    """What happened on one connection."""

    state: CycleState = CycleState.START
    line: str = ""
    request: Optional[Request] = None
    status: Optional[HTTPStatus] = None
    content_length: int = 0
    error: Optional[Exception] = None

    @property
    def aborted(self) -> bool:
        """True if an I/O failure ended the cycle."""
        return isinstance(self.error, RequestIOError)


class PageHandler:
    """
    Serves directory-routed HTML pages from one base directory.

    Usage:
        handler = PageHandler(ServerConfig(base_dir="pages"))
        socket_server.start(handler.handle)
    """

    def __init__(self, config: ServerConfig, access_logger: Optional[AccessLogger] = None):
        self.config = config
        self.resolver = PathResolver(config.base_dir, error_page=config.error_page)
        self.access_logger = access_logger or AccessLogger(log_format=config.log_format)

    def handle(self, conn: Connection) -> CycleResult:
        """
        Serve one connection and close it.

        Returns:
            The CycleResult, also written to the access log.
        """
        result = CycleResult()
        start_time = time.time()

        with conn:
            try:
                self._serve(conn, result)
            except FallbackPageMissing as e:
                result.error = e
                logger.error(f"[{conn.id}] Cannot answer {result.line!r}: {e}")
            except RequestIOError as e:
                result.error = e
                logger.warning(f"[{conn.id}] Cycle aborted in state {result.state.value}: {e}")

        duration_ms = (time.time() - start_time) * 1000

        if result.state is not CycleState.EMPTY_REQUEST or result.error is not None:
            self.access_logger.record(
                connection_id=conn.id,
                client_ip=conn.client_ip,
                request_line=result.line,
                status_code=result.status,
                content_length=result.content_length,
                outcome=result.state.value,
                duration_ms=duration_ms,
                aborted=result.aborted,
            )

        return result

    def _serve(self, conn: Connection, result: CycleResult) -> None:
        # ─────────────────────────────────────────────────────────────────
        # READ AND PARSE THE REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        try:
            result.line = read_line(conn.rfile, self.config.max_request_line)
        except EmptyRequest:
            result.state = CycleState.EMPTY_REQUEST
            logger.debug(f"[{conn.id}] Empty request from {conn.client_ip}")
            return
        except InvalidLength as e:
            self._reject(conn, result, CycleState.INVALID_LENGTH, e)
            return

        result.state = CycleState.LINE_READ

        try:
            request = parse_request_line(result.line)
        except InvalidLength as e:
            self._reject(conn, result, CycleState.INVALID_LENGTH, e)
            return
        except InvalidHeader as e:
            self._reject(conn, result, CycleState.INVALID_HEADER, e)
            return

        result.state = CycleState.PARSED
        result.request = request
        logger.debug(f"[{conn.id}] The request is: {request}")

        # ─────────────────────────────────────────────────────────────────
        # RESOLVE THE ROUTE
        # ─────────────────────────────────────────────────────────────────
        target = self.resolver.resolve(request.path)
        if target is not None:
            result.state = CycleState.RESOLVED_OK
            result.status = HTTPStatus.OK
        else:
            result.state = CycleState.RESOLVED_NOT_FOUND
            result.status = HTTPStatus.NOT_FOUND
            target = self.resolver.fallback_page()

        # ─────────────────────────────────────────────────────────────────
        # WRITE HEAD, THEN STREAM BODY
        # ─────────────────────────────────────────────────────────────────
        with open_page(result.status, target) as page:
            page.write_head(conn.wfile)
            result.state = CycleState.HEADERS_WRITTEN
            result.content_length = page.write_body(conn.wfile, self.config.chunk_size)
            result.state = CycleState.BODY_STREAMED

        result.state = CycleState.DONE

    def _reject(
        self,
        conn: Connection,
        result: CycleResult,
        state: CycleState,
        error: RequestError,
    ) -> None:
        """Handle a request line outside the accepted grammar."""
        result.state = state
        result.error = error
        logger.info(f"[{conn.id}] Rejected request line from {conn.client_ip}: {error}")

        if self.config.bad_request_response:
            result.status = error.status_code
            result.content_length = write_bad_request(conn.wfile)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# PageHandler.handle() is the connection handler: the only place where the
# line reader, parser, resolver and response writer meet. Each step either
# succeeds once or ends the cycle.
# =============================================================================
