"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the protocol layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           LISTENER                                   │
    │  • Binds IP:PORT at construction (BindError right away)             │
    │  • Yields Connection / AcceptError items lazily                     │
    │  • Stops cooperatively via request_shutdown()                       │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one Connection per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Buffered reader for the parser, sendall() for the response       │
    │  • Per-connection timeout, graceful close                           │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ optional: handed to a worker
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  • Fixed worker threads, bounded queue                              │
    │  • submit() says no when the queue is full                          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState
from .listener import Listener
from .thread_pool import ThreadPool

__all__ = [
    "Listener",         # Bound TCP socket yielding connections
    "Connection",       # Wrapper for one client socket
    "ConnectionState",  # Connection lifecycle states
    "ThreadPool",       # Bounded worker threads
]
