"""
=============================================================================
PAGE SERVER
=============================================================================

Wires the pieces together:

    ServerConfig ──► PageServer
                        │
                        ├──► logging.basicConfig(level, format)
                        ├──► PathResolver check      (warn early if the
                        │                             base dir is unusable)
                        ├──► PageHandler(config)
                        └──► SocketServer(config).start(handler.handle)

=============================================================================
REQUEST FLOW
=============================================================================

    1. ACCEPT           SocketServer accepts one TCP connection
    2. READ             Line reader takes the request line, nothing more
    3. PARSE            "GET <path> HTTP/1.1" or a RequestError
    4. RESOLVE          path → canonical file inside base_dir, or None
    5. RESPOND          200 + page, or 404 + error404.html
    6. CLOSE            FIN, drain unread input, close
    7. REPEAT           back to 1 for the next connection

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import SocketServer
from .handlers import PageHandler
from .http.resolver import BaseDirectoryError


logger = logging.getLogger(__name__)


class PageServer:
    """
    Single-threaded static page server.

    Usage:
        server = PageServer(ServerConfig(base_dir="pages"))
        server.run()              # Blocks until Ctrl+C / SIGTERM

        # From another thread (tests):
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults to 127.0.0.1:7878
                    serving ./pages.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = PageHandler(self.config)
        self._socket_server = SocketServer(self.config)

    @property
    def address(self):
        """The bound (host, port) once running, else the configured one."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def run(self, setup_logging: bool = True):
        """
        Start serving (blocking).

        Args:
            setup_logging: Configure the root logger from config. Pass
                           False when the application configures logging.

        Raises:
            OSError: If the address cannot be bound.
        """
        if setup_logging:
            self._setup_logging()

        self._check_base_dir()
        logger.info(f"Starting {self.config.server_name} on {self.config.address}, serving {self.config.base_dir!r}")

        try:
            self._socket_server.start(self.handler.handle)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections. Safe from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. Returns False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _check_base_dir(self):
        """
        Report layout problems at startup.

        Not fatal: the directory is canonicalized again on every request,
        so an operator can create it after the server started.
        """
        try:
            base = self.handler.resolver.check_base_dir()
        except BaseDirectoryError as e:
            logger.error(f"{e}; every request will be closed without a response")
            return

        if not (base / self.config.error_page).is_file():
            logger.error(f"Missing {self.config.error_page} in {base}; 404 responses cannot be sent")

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("pageserver").setLevel(level)


def create_server(config: Optional[ServerConfig] = None) -> PageServer:
    """
    Create a page server.

        server = create_server(ServerConfig.from_address("0.0.0.0:8080"))
        server.run()
    """
    return PageServer(config)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# PageServer ties config, logging, handler and accept loop together.
# Startup checks only warn; the per-request path stays fail-closed.
# =============================================================================
