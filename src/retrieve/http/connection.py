"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Owns the mapping from (host, port) to a live PushBackStream, and decides
when sockets are opened, reused and closed.

=============================================================================
PRIVATE VS PERSISTENT POOLS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHO OWNS THE CONNECTIONS?                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   retrieve.open(uri)                                                │
    │      └── private pool: every socket opened for this call            │
    │          (including redirect hops) is closed when it returns        │
    │                                                                      │
    │   pool = ConnectionPool()                                           │
    │   retrieve.open(uri, connections=pool)                              │
    │      └── persistent pool: sockets stay open in `pool` for the next  │
    │          call to the same host and port; the caller closes them     │
    │          with pool.close_all()                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    acquire(host, port)
         │
         ├── entry open     → reuse it
         ├── entry closed   → open a new socket, replace the entry
         └── no entry       → open a new socket, register it

=============================================================================
THREAD SAFETY
=============================================================================

A pool is a plain mapping read and written WITHOUT locks. Each Resource
owns its stream exclusively, so separate Resources on separate threads are
fine. Sharing ONE pool between threads is the caller's responsibility.

=============================================================================
"""

import logging
import socket
from typing import MutableMapping, Optional, Tuple

from .stream import PushBackStream


logger = logging.getLogger(__name__)

PoolKey = Tuple[str, int]


def open_socket(host: str, port: int, timeout: Optional[float]) -> socket.socket:
    """
    Open a TCP connection to host:port.

    socket.create_connection tries every address getaddrinfo returns
    (IPv6 and IPv4) until one accepts. The timeout applies to the connect
    and to every later recv()/sendall() on the socket.
    """
    return socket.create_connection((host, port), timeout=timeout)


class ConnectionPool(dict):
    """
    A caller-owned pool of kept-alive connections.

    Keys are (host, port) tuples, values are PushBackStreams. Pass it as
    the `connections` option to reuse sockets across independent calls.
    """

    def close_all(self) -> None:
        """Close and forget every pooled connection."""
        for key, stream in list(self.items()):
            logger.debug(f"Closing connection to {key[0]} port {key[1]}")
            stream.close()
            del self[key]


class ConnectionManager:
    """
    Opens, reuses and releases the connections used by one HTTP call.

    Attributes:
        pool: The (host, port) → PushBackStream mapping in use.
        persistent: True if the pool was supplied by the caller.
        timeout: Socket timeout in seconds for new connections.
    """

    def __init__(
        self,
        pool: Optional[MutableMapping[PoolKey, PushBackStream]] = None,
        timeout: Optional[float] = 20.0,
    ):
        self.persistent = pool is not None
        self.pool = pool if pool is not None else {}
        self.timeout = timeout

    def acquire(self, host: str, port: int) -> PushBackStream:
        """
        Return a live stream to host:port, opening one if needed.

        Raises:
            OSError: The TCP connection could not be established.
        """
        key = (host, port)
        stream = self.pool.get(key)

        if stream is not None and not stream.closed:
            logger.debug(f"Using open connection to {host} port {port}")
            return stream

        if stream is not None:
            logger.debug(f"Socket to {host} port {port} was closed. Reopening.")
        else:
            logger.debug(f"About to connect to {host} port {port}")

        stream = PushBackStream(open_socket(host, port, self.timeout))
        self.pool[key] = stream
        logger.debug(f"Connected to {host} port {port}")
        return stream

    def discard(self, host: str, port: int) -> None:
        """Close the connection to host:port and evict it from the pool."""
        stream = self.pool.pop((host, port), None)
        if stream is not None:
            logger.debug(f"Closing connection to {host} port {port}")
            stream.close()

    def release(self) -> None:
        """
        End of a top-level request.

        A private pool is emptied and every socket closed. A caller pool
        is left alone; its connections must be closed by the caller.
        """
        if self.persistent:
            logger.debug("No connections closed. Connections must be closed manually.")
            return
        for host, port in list(self.pool):
            self.discard(host, port)
