"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every knob of the page server lives in one dataclass, passed explicitly
to the components that need it. Nothing reads a process-wide global, so
tests can run servers on different base directories side by side.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m pageserver --port 3000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── PAGESERVER_PORT=3000 python -m pageserver                 │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │      └── 127.0.0.1:7878, base directory "pages"                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


DEFAULT_ADDRESS = "127.0.0.1:7878"
DEFAULT_BASE_DIR = "pages"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" string.

    The port is taken after the LAST colon so bracketed IPv6 hosts work:

        >>> parse_address("127.0.0.1:7878")
        ('127.0.0.1', 7878)
        >>> parse_address("[::1]:8080")
        ('::1', 8080)

    Raises:
        ValueError: If there is no port or it is not a number.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"Invalid address: {address!r}. Expected host:port.")
    return host.strip("[]"), int(port)


@dataclass
class ServerConfig:
    """
    Configuration for the page server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, timeout

    CONTENT
    - base_dir, error_page

    REQUEST HANDLING
    - max_request_line, chunk_size, bad_request_response

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """IP address to bind to. "0.0.0.0" for all interfaces."""

    port: int = 7878
    """Port to listen on. 0 lets the OS pick one (tests)."""

    backlog: int = 128
    """Maximum number of queued connections waiting for accept()."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds for each read and write on a connection.
    A client that stalls longer gets its cycle aborted as an I/O failure.
    Draining at close has its own bound (core.connection.DRAIN_TIMEOUT).
    None = block forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    base_dir: str = DEFAULT_BASE_DIR
    """
    Root of servable content. Relative paths are taken relative to the
    working directory at request time. Must contain error404.html.
    """

    error_page: str = "error404.html"
    """File at the root of base_dir served with every 404."""

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST HANDLING
    # ─────────────────────────────────────────────────────────────────────

    max_request_line: int = 8192
    """Longest request line accepted, in bytes."""

    chunk_size: int = 64 * 1024
    """Read/write size when streaming a page body."""

    bad_request_response: bool = True
    """
    Answer malformed request lines with 400 BAD REQUEST.
    False = just close the connection.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (one line) or 'json' (one object)."""

    server_name: str = "pageserver/1.0"
    """Shown in the startup log line. Never sent to clients."""

    @property
    def address(self) -> str:
        """The bind address as "host:port"."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_address(cls, address: str, **kwargs) -> "ServerConfig":
        """
        Create a configuration from a "host:port" string.

            config = ServerConfig.from_address("127.0.0.1:7878", base_dir="site")
        """
        host, port = parse_address(address)
        return cls(host=host, port=port, **kwargs)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        PAGESERVER_ADDRESS     host:port (default: 127.0.0.1:7878)
        PAGESERVER_HOST        Overrides the host part of the address
        PAGESERVER_PORT        Overrides the port part of the address
        PAGESERVER_BASE_DIR    Base directory (default: pages)
        PAGESERVER_TIMEOUT     Connection timeout in seconds (default: 30)
        PAGESERVER_LOG_LEVEL   Logging level (default: INFO)
        PAGESERVER_LOG_FORMAT  text or json (default: text)

        =====================================================================
        """
        host, port = parse_address(os.getenv("PAGESERVER_ADDRESS", DEFAULT_ADDRESS))
        return cls(
            host=os.getenv("PAGESERVER_HOST", host),
            port=int(os.getenv("PAGESERVER_PORT", str(port))),
            base_dir=os.getenv("PAGESERVER_BASE_DIR", DEFAULT_BASE_DIR),
            timeout=float(os.getenv("PAGESERVER_TIMEOUT", "30")),
            log_level=os.getenv("PAGESERVER_LOG_LEVEL", "INFO"),
            log_format=os.getenv("PAGESERVER_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by PageServer at construction, before any socket is opened.

        Raises:
            ValueError: On the first invalid value.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_line < 16:
            raise ValueError("max_request_line must be >= 16")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.error_page in ("", ".", "..") or "/" in self.error_page:
            raise ValueError(f"error_page must be a bare file name: {self.error_page!r}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Use 'text' or 'json'.")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# ServerConfig               typed defaults (127.0.0.1:7878, "pages")
# ServerConfig.from_env      PAGESERVER_* environment variables
# ServerConfig.from_address  "host:port" strings
# ServerConfig.validate      fail-fast checks at startup
# =============================================================================
