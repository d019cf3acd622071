"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop. Connections are served one
at a time, in the thread that called start(): the next accept() happens
only after the previous connection's handler has returned.

=============================================================================
SERVER LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    start(handler)                                                    │
    │        │                                                             │
    │        ├──► _create_socket()   socket(), SO_REUSEADDR, 1s timeout    │
    │        ├──► bind() / listen()                                        │
    │        ├──► _setup_signals()   SIGINT/SIGTERM → shutdown()           │
    │        │                       (main thread only)                    │
    │        └──► _accept_loop()                                           │
    │                 │                                                    │
    │                 └──► while running:                                  │
    │                         accept()            (1s timeout, re-check)   │
    │                         Connection(...)                              │
    │                         handler(conn)       (blocks until done)      │
    │                                                                      │
    │    shutdown()          running = False; loop exits within ~1s        │
    │                                                                      │
    │    _cleanup()          restore signal handlers, close socket         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A single bad connection never stops the loop: anything the handler raises
is logged with its traceback and the loop moves on to the next client.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Blocking, single-threaded TCP accept loop.

    Usage:
        def handle(conn: Connection):
            with conn:
                ...

        server = SocketServer(config)
        server.start(handle)   # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Provides host, port, backlog and the per-connection
                    timeout.

        The socket is created lazily in start().
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening; tests wait on it.
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound, (host, port).

        With port 0 in the config this reports the port the OS picked.
        Before start() it reports the configured address.
        """
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        # Restart without waiting for TIME_WAIT to expire.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # accept() wakes up every second so shutdown() is noticed.
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """
        Route SIGTERM and SIGINT to shutdown().

        signal.signal() only works in the main thread. When the server runs
        in a background thread (tests, embedding) the caller owns shutdown.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown().

        Args:
            connection_handler: Called with each accepted Connection. It
                                owns the connection and must close it.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.address}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept and serve connections, one at a time.

        The handler runs to completion before the next accept().
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Socket closed under us, usually during shutdown
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address[:2],
                    timeout=self.config.timeout,
                )
            except OSError as e:
                logger.warning(f"Could not set up connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            try:
                connection_handler(conn)
            except Exception as e:
                logger.exception(f"[{conn.id}] Unhandled error: {e}")
            finally:
                conn.close()

    def shutdown(self):
        """
        Stop the accept loop.

        Safe to call from a signal handler or another thread, and more
        than once. The connection being served (if any) is finished first.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Clean up resources on shutdown."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# SocketServer.start()     bind, listen, accept loop (blocking)
# SocketServer.shutdown()  stop accepting, from any thread or a signal
#
# One connection at a time. Concurrency, keep-alive and pipelining are
# out of scope for the page server.
# =============================================================================
