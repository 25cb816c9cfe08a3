"""
=============================================================================
GREETSERVER - Sequential TCP Greeting Server
=============================================================================

Accepts TCP connections one at a time, writes a single greeting line to
each client, and closes the connection. Nothing the client sends is read.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    greetserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m greetserver)
    ├── server.py            # GreetingServer and start()
    ├── config.py            # ServerConfig dataclass
    └── core/                # Low-level components
        ├── listener.py      # Bound socket and accept loop
        └── connection.py    # Accepted client socket wrapper

=============================================================================
QUICK START
=============================================================================

    from greetserver import GreetingServer, ServerConfig

    server = GreetingServer(ServerConfig(port=8010))
    server.run()

    # Then, from another shell:
    #   $ nc localhost 8010
    #   Hello from the server!

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .core import BindError, ConnectionClosedError
from .server import GreetingServer, start

__all__ = [
    "GreetingServer",
    "ServerConfig",
    "BindError",
    "ConnectionClosedError",
    "start",
    "__version__",
]
