"""
=============================================================================
PAGESERVER - Minimal HTTP/1.1 Static Page Server
=============================================================================

Serves HTML pages from one base directory over raw sockets, one connection
at a time.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    PAGESERVER ARCHITECTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   raw bytes                                                          │
    │      │                                                               │
    │      ▼                                                               │
    │   Line Reader        core/connection.py   first line only            │
    │      │                                                               │
    │      ▼                                                               │
    │   Request Parser     http/request.py      GET <path> HTTP/1.1        │
    │      │                                                               │
    │      ▼                                                               │
    │   Path Resolver      http/resolver.py     /docs → docs/index.html    │
    │      │                                    confined to base dir       │
    │      ▼                                                               │
    │   Response Writer    http/response.py     200 Ok / 404 NOT FOUND     │
    │      │                                                               │
    │      ▼                                                               │
    │   bytes out                                                          │
    │                                                                      │
    │   Orchestrated by handlers/pages.py, fed by core/socket_server.py   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    pageserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m pageserver)
    ├── server.py            # PageServer: wiring and lifecycle
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # One record per connection cycle
    ├── core/
    │   ├── socket_server.py # Accept loop
    │   └── connection.py    # Socket wrapper + line reader
    ├── http/
    │   ├── request.py       # Request line parser + error taxonomy
    │   ├── resolver.py      # Directory routing + confinement
    │   ├── response.py      # Response framing + streaming
    │   └── status_codes.py  # 200 / 400 / 404
    └── handlers/
        └── pages.py         # One request/response cycle

=============================================================================
QUICK START
=============================================================================

    pages/
    ├── index.html           # served for /
    ├── error404.html        # served for anything not found
    └── docs/
        └── index.html       # served for /docs and /docs/

    $ python -m pageserver --base-dir pages
    $ curl -i http://127.0.0.1:7878/docs

    from pageserver import PageServer, ServerConfig

    PageServer(ServerConfig(base_dir="pages")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import PageServer, create_server
from .config import ServerConfig

__all__ = ["PageServer", "ServerConfig", "create_server", "__version__"]
