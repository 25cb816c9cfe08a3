"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket. The greeting exchange is
write-only: we send one line and hang up, never reading what the client
sends.

=============================================================================
TWO STREAMS, ONE SOCKET
=============================================================================

A TCP socket is full duplex. Each direction can be shut down on its own:

    ┌─────────────────────────────────────────────────────────────────┐
    │                    Connection Teardown                           │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   Server                              Client                     │
    │      │                                   │                       │
    │      │   "Hello from the server!\\n" ──► │                       │
    │      │                                   │                       │
    │      │   FIN ──────────────────────────► │  1. close output     │
    │      │                                   │     (SHUT_WR)        │
    │      │                                   │                       │
    │      │   (stop receiving)                │  2. close input      │
    │      │                                   │     (SHUT_RD)        │
    │      │                                   │                       │
    │   close() fd                             │  3. close socket     │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

The client sees the greeting followed by end-of-stream (recv() == b"").

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    OPEN ──────► WRITING ──────► OPEN ──────► CLOSING ──────► CLOSED
     │                                           ▲
     └───────────────────────────────────────────┘

Once CLOSED, a Connection is never written to again.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field


logger = logging.getLogger(__name__)


class ConnectionClosedError(ConnectionError):
    """Raised when writing to a Connection that has already been closed."""


class ConnectionState(Enum):
    """Connection lifecycle states."""
    OPEN = "open"            # Just accepted
    WRITING = "writing"      # Sending the greeting
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents one accepted client socket.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
        bytes_sent: Total bytes written to the client.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.OPEN
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    write_timeout: float = 5.0
    line_terminator: str = "\n"
    encoding: str = "utf-8"

    def __post_init__(self):
        # Accepted sockets inherit the listener's timeout on some
        # platforms; reset to our own write timeout.
        self.socket.setblocking(True)
        if self.write_timeout:
            self.socket.settimeout(self.write_timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def peer(self) -> str:
        """The client address as "ip:port", for log lines."""
        return f"{self.client_ip}:{self.client_port}"

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> None:
        """
        Send raw bytes to the client.

        Uses sendall() so a short write never leaves part of the line
        behind.

        Raises:
            ConnectionClosedError: If the connection was already closed.
            OSError: If the client went away or the write timed out.
        """
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            raise ConnectionClosedError(f"[{self.id}] Connection is closed")

        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        finally:
            if self.state == ConnectionState.WRITING:
                self.state = ConnectionState.OPEN
        self.bytes_sent += len(data)

    def send_line(self, text: str) -> None:
        """Send text followed by the configured line terminator."""
        self.send((text + self.line_terminator).encode(self.encoding))

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close output, then input, then the socket.

        Errors from a peer that is already gone are ignored; the socket
        is released either way. Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        # STEP 1: Close the output stream (sends FIN)
        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already disconnected

        # STEP 2: Close the input stream without reading from it
        try:
            self.socket.shutdown(socket.SHUT_RD)
        except OSError:
            pass

        # STEP 3: Release the file descriptor
        try:
            self.socket.close()
        finally:
            self.state = ConnectionState.CLOSED
            logger.debug(f"[{self.id}] Connection to {self.peer} closed, {self.bytes_sent} bytes sent")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows scoped handling of one client:

            with conn:
                conn.send_line("Hello from the server!")
            # Connection closed here, even if send_line() raised
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
