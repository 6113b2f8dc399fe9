"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the static file handlers:

    SocketServer   accept loop, signal handling, shutdown
    Connection     buffered request reads, sends, graceful close
    ThreadPool     one worker thread per connection
    ObjectPool     reusable objects checked out by one response at a time

=============================================================================
"""

from .connection import Connection, ConnectionState, RequestTooLarge
from .pool import ObjectPool, PoolError
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
    "ObjectPool",
    "PoolError",
]
