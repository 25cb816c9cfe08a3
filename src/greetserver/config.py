"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the greeting server.

Every tunable lives in one dataclass so the listener, the connection
wrapper and the CLI all read the same values:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m greetserver --port 9000                         │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── GREET_PORT=9000 python -m greetserver                     │
    │                                                                      │
    │   3. Defaults below                                                 │
    │      └── port 8010, "Hello from the server!"                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import os
from dataclasses import dataclass


DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8010
DEFAULT_GREETING = "Hello from the server!"

LINE_TERMINATORS = ("\n", "\r\n")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the greeting server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, accept_timeout, write_timeout

    GREETING
    - greeting, line_terminator, encoding

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = DEFAULT_HOST
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = DEFAULT_PORT
    """
    The TCP port to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 50
    """
    Maximum number of completed handshakes the OS queues while we are
    busy with the current connection.
    """

    accept_timeout: float = 5.0
    """
    Idle timeout in seconds. accept() returns control to the loop after
    this long without a client, which is when the stop flag is checked.
    """

    write_timeout: float = 5.0
    """
    Per-connection send timeout in seconds. A client that never drains
    its receive window cannot hold the listener forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # GREETING
    # ─────────────────────────────────────────────────────────────────────

    greeting: str = DEFAULT_GREETING
    """The single line written to every client."""

    line_terminator: str = "\n"
    """Either "\\n" or "\\r\\n"."""

    encoding: str = "utf-8"
    """Encoding used to turn the greeting into bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG also reports every idle timeout and every close.
    """

    server_name: str = "GreetServer/1.0"

    @property
    def greeting_bytes(self) -> bytes:
        """The exact bytes sent to each client."""
        return (self.greeting + self.line_terminator).encode(self.encoding)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        GREET_HOST       Bind address (default: 0.0.0.0)
        GREET_PORT       Listening port (default: 8010)
        GREET_TIMEOUT    Idle accept timeout in seconds (default: 5)
        GREET_MESSAGE    Greeting line (default: Hello from the server!)
        GREET_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("GREET_HOST", DEFAULT_HOST),
            port=int(os.getenv("GREET_PORT", str(DEFAULT_PORT))),
            accept_timeout=float(os.getenv("GREET_TIMEOUT", "5")),
            greeting=os.getenv("GREET_MESSAGE", DEFAULT_GREETING),
            log_level=os.getenv("GREET_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before the port is
        bound, not on the first client.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.accept_timeout <= 0:
            raise ValueError("accept_timeout must be > 0")

        if self.write_timeout <= 0:
            raise ValueError("write_timeout must be > 0")

        if self.line_terminator not in LINE_TERMINATORS:
            raise ValueError(f"line_terminator must be one of {LINE_TERMINATORS!r}")

        if "\n" in self.greeting or "\r" in self.greeting:
            raise ValueError("greeting must be a single line")

        try:
            self.greeting.encode(self.encoding)
        except LookupError:
            raise ValueError(f"Unknown encoding: {self.encoding}")
        except UnicodeEncodeError:
            raise ValueError(f"greeting cannot be encoded as {self.encoding}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

    @property
    def logging_level(self) -> int:
        """The numeric logging level for log_level."""
        return getattr(logging, self.log_level.upper(), logging.INFO)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with dataclass
# 2. Environment variable support (GREET_*)
# 3. Validation at startup (fail-fast)
# 4. Defaults match the classic greeting service: port 8010, 5s idle timeout
# =============================================================================
