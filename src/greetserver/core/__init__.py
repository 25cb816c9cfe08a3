"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

Low-level networking for the greeting server:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           LISTENER                                   │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Creates and binds the TCP listening socket                       │
    │  • Runs the accept() loop, one client at a time                     │
    │  • Bounded by the idle timeout so stop() is noticed                 │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Wraps each accepted socket
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Writes the greeting line                                         │
    │  • Closes output, input and socket, in that order                   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .listener import Listener, ListenerState, BindError
from .connection import Connection, ConnectionState, ConnectionClosedError

__all__ = [
    "Listener",               # Sequential TCP accept loop
    "ListenerState",          # LISTENING / HANDLING_ONE_CONNECTION / STOPPED
    "BindError",              # Port in use or not permitted
    "Connection",             # One accepted client socket
    "ConnectionState",        # Connection lifecycle states
    "ConnectionClosedError",  # Write after close
]
