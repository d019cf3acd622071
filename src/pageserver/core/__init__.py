"""
=============================================================================
CORE NETWORKING MODULE
=============================================================================

Low-level plumbing between the operating system and the page handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SOCKET SERVER (socket_server.py)                                    │
    │ ─────────────────────────────────────────────────────────────────── │
    │ bind / listen / accept, one connection at a time, graceful stop     │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ CONNECTION (connection.py)                                          │
    │ ─────────────────────────────────────────────────────────────────── │
    │ socket + buffered rfile/wfile + timeout + graceful close            │
    │ read_line(): the request line, and nothing after it                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, read_line, read_request

__all__ = [
    "SocketServer",     # Accept loop
    "Connection",       # Wrapper for one client socket
    "read_line",        # Line reader
    "read_request",     # Line reader + request line parser
]
