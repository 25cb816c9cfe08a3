"""
=============================================================================
SEQUENTIAL TCP LISTENER
=============================================================================

The Listener owns the bound server socket and runs the accept loop. It
serves exactly one client at a time: the next accept() is not issued
until the previous Connection is fully closed.

=============================================================================
STATE MACHINE
=============================================================================

                 start()
                    │
                    ▼
    ┌────────────────────────────┐   accept()    ┌────────────────────────────┐
    │         LISTENING          │ ────────────► │  HANDLING_ONE_CONNECTION   │
    │                            │ ◄──────────── │                            │
    └─────────────┬──────────────┘  conn closed  └────────────────────────────┘
                  │
                  │ stop() / listening socket lost
                  ▼
    ┌────────────────────────────┐
    │          STOPPED           │
    └────────────────────────────┘

=============================================================================
IDLE TIMEOUT
=============================================================================

accept() is bounded by the idle timeout (5 seconds by default). When it
expires with no client, control returns to the loop head, the running
flag is checked, and we go back to waiting:

    while running:
        try:
            accept()          # Blocks for at most accept_timeout
        except timeout:
            continue          # Nothing to do, wait again

This is what lets stop() (from a signal handler or another thread) end
the loop without closing the socket out from under accept().

=============================================================================
FAILURE ISOLATION
=============================================================================

A failure while greeting one client (reset, broken pipe, write timeout)
is logged and that Connection is discarded. The listening socket is
untouched, so the next client is served normally. Only a bind failure
(BindError) or losing the listening socket itself ends the loop.

=============================================================================
"""

import os
import socket
import logging
import threading
from enum import Enum
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ConnectionHandler = Callable[[Connection], None]


class BindError(OSError):
    """The listening socket could not be bound to the requested address."""

    def __init__(self, host: str, port: int, cause: OSError):
        super().__init__(cause.errno, f"Cannot bind {host}:{port}: {cause.strerror or cause}")
        self.host = host
        self.port = port


class ListenerState(Enum):
    """Accept loop states."""
    LISTENING = "listening"
    HANDLING_ONE_CONNECTION = "handling_one_connection"
    STOPPED = "stopped"


class Listener:
    """
    Sequential TCP listener.

    Usage:
        def greet(conn: Connection):
            conn.send_line("Hello from the server!")

        listener = Listener(config)
        listener.start(greet)  # Blocks until stop()

    The handler only writes; the Listener opens and closes every
    Connection around it.
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self.state = ListenerState.STOPPED

        # Set by stop(); survives until the loop it was aimed at has exited,
        # so a stop() that lands before start() is not lost
        self._stop_requested = threading.Event()
        # Set once the socket is bound and listening
        self._listening_event = threading.Event()
        # Set once the loop has exited and the socket is closed
        self._stopped_event = threading.Event()

        self.connections_served = 0
        self.connections_failed = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port), or the configured one before start()."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    @property
    def port(self) -> int:
        return self.address[1]

    def _create_socket(self) -> socket.socket:
        """Create the TCP server socket with the idle timeout applied."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # SO_REUSEADDR lets a restarted server bind while old connections
        # sit in TIME_WAIT. It does NOT let a second live listener share
        # the port on POSIX. On Windows it would, so it is left off there.
        if os.name != "nt":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.settimeout(self.config.accept_timeout)
        return sock

    def bind(self) -> None:
        """
        Bind and listen on the configured address.

        Raises:
            BindError: Port already in use, permission denied, bad host.
        """
        sock = self._create_socket()
        try:
            # Common errors:
            # - Address already in use: another process has this port
            # - Permission denied: ports < 1024 require root
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise BindError(self.config.host, self.config.port, e) from e

        self._socket = sock
        host, port = self.address
        logger.info(f"Server is listening on {host}:{port}")

    def start(self, connection_handler: ConnectionHandler):
        """
        Bind the port and serve connections one at a time.

        This method BLOCKS until stop() is called.

        Args:
            connection_handler: Called with each accepted Connection. It
                                must not close the Connection itself.

        Raises:
            BindError: If the port cannot be bound.
        """
        if self._socket is None:
            self.bind()

        self._running = not self._stop_requested.is_set()
        self._stopped_event.clear()
        self.state = ListenerState.LISTENING
        self._listening_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: ConnectionHandler):
        while self._running and not self._stop_requested.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                # Idle timeout: no client within accept_timeout
                logger.debug(f"No connection in {self.config.accept_timeout}s, still listening")
                continue
            except OSError as e:
                if not self._running or self._socket is None or self._socket.fileno() == -1:
                    break  # Listening socket closed under us, shutting down
                # ECONNABORTED, EMFILE and friends: this client is lost,
                # the listening socket is fine.
                logger.warning(f"Accept error: {e}")
                continue

            self.state = ListenerState.HANDLING_ONE_CONNECTION
            try:
                self._serve_one(client_socket, client_address, connection_handler)
            finally:
                self.state = ListenerState.LISTENING

    def _serve_one(self, client_socket: socket.socket, client_address, connection_handler: ConnectionHandler):
        """Handle exactly one client, isolating any failure to it."""
        try:
            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                write_timeout=self.config.write_timeout,
                line_terminator=self.config.line_terminator,
                encoding=self.config.encoding,
            )
        except OSError as e:
            client_socket.close()
            self.connections_failed += 1
            logger.warning(f"Could not set up connection from {client_address[0]}:{client_address[1]}: {e}")
            return

        logger.info(f"[{conn.id}] Connection accepted from client {conn.peer}")

        try:
            with conn:
                connection_handler(conn)
        except Exception as e:
            self.connections_failed += 1
            logger.warning(f"[{conn.id}] Connection from {conn.peer} failed: {e}", exc_info=True)
        else:
            self.connections_served += 1

    def stop(self):
        """
        Ask the accept loop to exit.

        Safe from a signal handler or another thread, and safe to call
        more than once. The loop notices within one idle timeout. A
        stop() issued before start() makes the next start() return as
        soon as the port is bound.
        """
        if self._running:
            logger.info("Stopping listener...")
        self._stop_requested.set()
        self._running = False

    def _cleanup(self):
        self._running = False
        self._stop_requested.clear()
        self.state = ListenerState.STOPPED
        self._listening_event.clear()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._stopped_event.set()
        logger.info(
            f"Listener stopped after {self.connections_served} connections "
            f"({self.connections_failed} failed)"
        )

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for start() to bind the socket.

        Returns:
            True if the listener is accepting connections, False on timeout.
        """
        return self._listening_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the accept loop to exit.

        Returns:
            True if the listener stopped, False on timeout.
        """
        return self._stopped_event.wait(timeout)
