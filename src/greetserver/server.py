"""
=============================================================================
GREETING SERVER
=============================================================================

Ties the Listener to the one thing this server does: write a greeting
line to every client and hang up.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   client ──connect──► Listener ──Connection──► _greet()             │
    │                                                    │                 │
    │   client ◄──── "Hello from the server!\\n" ────────┘                 │
    │   client ◄──── FIN (end-of-stream)                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    1. GreetingServer(config)   Validate config, build Listener
    2. run()                    Configure logging, install signal handlers,
                                bind, accept loop (blocks)
    3. SIGINT / SIGTERM / stop()
                                Loop exits within one idle timeout
    4. Cleanup                  Restore signal handlers, close socket

=============================================================================
"""

import sys
import signal
import logging
import threading
from typing import Optional

from .config import ServerConfig, DEFAULT_PORT
from .core import Listener, Connection


logger = logging.getLogger(__name__)


class GreetingServer:
    """
    Serves a fixed greeting line to each TCP client, one at a time.

    Example:
        server = GreetingServer(ServerConfig(port=8010))
        server.run()  # Blocks until Ctrl+C
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._listener = Listener(self.config)
        self._original_handlers: dict = {}

    @property
    def listener(self) -> Listener:
        return self._listener

    @property
    def greeting_bytes(self) -> bytes:
        """The exact bytes each client receives."""
        return self.config.greeting_bytes

    @property
    def address(self):
        return self._listener.address

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            BindError: If the port is in use or not permitted.
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")

        self._setup_signals()
        try:
            self._listener.start(self._greet)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._restore_signals()

    def stop(self):
        """Stop accepting clients. Safe from any thread."""
        self._listener.stop()

    def _greet(self, conn: Connection):
        conn.send_line(self.config.greeting)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = self.config.logging_level

        # Status lines go to stdout
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            stream=sys.stdout,
        )

        logging.getLogger("greetserver").setLevel(level)

    def _setup_signals(self):
        """
        Install SIGINT/SIGTERM handlers that stop the listener.

        Python only allows this on the main thread; a server run from a
        background thread (tests, embedding) is stopped with stop().
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.stop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()


def start(port: int = DEFAULT_PORT):
    """
    Serve the greeting on port until the process is stopped.

    Raises:
        BindError: If the port is in use or not permitted.
    """
    GreetingServer(ServerConfig(port=port)).run()


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. GreetingServer: config validation, logging setup, signal handling
# 2. _greet(): the only per-connection behavior, one write
# 3. start(port): one-call entry point with the default configuration
# =============================================================================
