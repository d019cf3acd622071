"""
=============================================================================
CONNECTION HANDLERS
=============================================================================

A handler takes an accepted Connection, runs one request/response cycle
on it and closes it.

    PageHandler / serve_pages()
      - Reads only the request line
      - Directory routing: /docs → docs/index.html
      - Canonicalization + confinement to the base directory
      - 404 page for anything not servable, optional 400 page for
        malformed request lines
      - One access-log record per cycle

=============================================================================
USAGE
=============================================================================

    from pageserver.handlers import serve_pages

    handler = serve_pages("pages")
    socket_server.start(handler.handle)

=============================================================================
"""

from .pages import PageHandler, CycleResult, CycleState
from ..config import ServerConfig


def serve_pages(base_dir: str, **kwargs) -> PageHandler:
    """
    Create a page handler for a base directory.

    Args:
        base_dir: Root of servable content.
        **kwargs: Other ServerConfig fields.
    """
    return PageHandler(ServerConfig(base_dir=base_dir, **kwargs))


__all__ = ["PageHandler", "CycleResult", "CycleState", "serve_pages"]
