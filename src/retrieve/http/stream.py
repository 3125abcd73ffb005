"""
=============================================================================
PUSH-BACK STREAM
=============================================================================

Wraps a connected socket with a small "push-back" buffer so the response
parser can read tokens without knowing where the transport split the bytes.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

The server may send

    HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nHello

and recv() may hand it to us as

    recv() → "HTTP/1.1 200 OK\r\nConte"
    recv() → "nt-Length: 5\r\n\r\nHel"
    recv() → "lo"

The parser therefore reads a slab of bytes, takes what it understands
(one status line, one header line, one chunk-size line...) and PUSHES THE
REST BACK. The next read replays the pushed-back bytes before touching the
socket again:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     read(n) FLOW                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌──────────────────────┐                                          │
    │   │ take ≤ n from buffer │   ← bytes pushed back earlier            │
    │   └──────────┬───────────┘                                          │
    │              │ still short?                                          │
    │   ┌──────────▼───────────┐                                          │
    │   │ recv() the remainder │   ← once (partial) or until n (exact)    │
    │   └──────────┬───────────┘                                          │
    │              │ recv() == b""?                                        │
    │   ┌──────────▼───────────┐                                          │
    │   │ mark exhausted,      │                                          │
    │   │ close the socket     │                                          │
    │   └──────────┬───────────┘                                          │
    │              │ nothing at all to return?                             │
    │   ┌──────────▼───────────┐                                          │
    │   │ HTTPConnectionError  │   ← broken connection, not clean EOF     │
    │   └──────────────────────┘                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Once the stream has seen end-of-file, further reads return only what is
still buffered (possibly b""). That is the "clean EOF" case.

=============================================================================
"""

import logging
import select
import socket
from typing import Any, Optional

from .errors import HTTPConnectionError, HTTPTimeoutError


logger = logging.getLogger(__name__)


class PushBackStream:
    """
    Buffered reader/writer over a socket-like object.

    The secondary object must provide recv(), sendall() and close().
    fileno() is optional; without it wait_readable() cannot wait and
    reports the stream as ready.

    Attributes:
        secondary: The wrapped socket.
    """

    REQUIRED_METHODS = ("recv", "sendall", "close")

    def __init__(self, secondary: Any):
        for name in self.REQUIRED_METHODS:
            if not callable(getattr(secondary, name, None)):
                raise TypeError(
                    f"Expected a socket-like object, got {type(secondary).__name__}."
                )
        self.secondary = secondary
        self._buffer = b""
        self._closed = False

    # =========================================================================
    # BUFFER MANAGEMENT
    # =========================================================================

    @property
    def buffered(self) -> int:
        """Number of pushed-back bytes waiting to be replayed."""
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    def has_line(self) -> bool:
        """True if a complete CRLF-terminated line is already buffered."""
        return b"\r\n" in self._buffer

    def push(self, data: bytes) -> None:
        """
        Return unconsumed bytes to the stream.

        They are placed in FRONT of anything already buffered, so the next
        read() sees them first.
        """
        if data:
            self._buffer = bytes(data) + self._buffer

    def _pop(self, n: int) -> bytes:
        data, self._buffer = self._buffer[:n], self._buffer[n:]
        return data

    # =========================================================================
    # READING
    # =========================================================================

    def read(self, n: int, partial: bool = True) -> bytes:
        """
        Read up to n bytes, buffer first.

        Args:
            n: Number of bytes wanted.
            partial: If True, at most one recv() is made and fewer than n
                     bytes may be returned. If False, keep reading until n
                     bytes arrive or the stream ends.

        Returns:
            The bytes read. b"" only when both the buffer and the stream
            are exhausted.

        Raises:
            HTTPConnectionError: The socket hit end-of-file during this call
                                 and there was nothing to return.
            HTTPTimeoutError: The socket timed out.
        """
        data = self._pop(n)
        needed = n - len(data)

        if needed > 0 and not self._closed:
            received = self._recv(needed) if partial else self._recv_exactly(needed)
            data += received

            if not data:
                raise HTTPConnectionError("Server returned empty response.")

        return data

    def _recv(self, size: int) -> bytes:
        """Single recv() with socket errors mapped onto client errors."""
        try:
            chunk = self.secondary.recv(size)
        except socket.timeout as e:
            raise HTTPTimeoutError("Timed out reading from the server.") from e
        except (ConnectionResetError, BrokenPipeError) as e:
            # Peer went away; treat like end-of-file.
            logger.debug(f"Connection reset while reading: {e}")
            chunk = b""

        if not chunk:
            self.close()
        return chunk

    def _recv_exactly(self, size: int) -> bytes:
        parts = []
        remaining = size
        while remaining > 0 and not self._closed:
            chunk = self._recv(remaining)
            parts.append(chunk)
            remaining -= len(chunk)
        return b"".join(parts)

    def wait_readable(self, timeout: Optional[float]) -> bool:
        """
        Wait until data can be read without blocking.

        Returns True immediately when bytes are already buffered or when
        the secondary object has no usable file descriptor (test doubles,
        in-memory streams).

        Args:
            timeout: Seconds to wait; None waits forever.

        Returns:
            False if the timeout expired with nothing to read.
        """
        if self._buffer or self._closed:
            return True
        try:
            fileno = self.secondary.fileno()
        except (AttributeError, OSError, ValueError):
            return True
        if fileno < 0:
            return True
        readable, _, _ = select.select([fileno], [], [], timeout)
        return bool(readable)

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes) -> None:
        """Send all of data on the secondary stream."""
        self._protect()
        try:
            self.secondary.sendall(data)
        except socket.timeout as e:
            raise HTTPTimeoutError("Timed out sending the request.") from e
        except (ConnectionResetError, BrokenPipeError) as e:
            self.close()
            raise HTTPConnectionError(f"Connection lost while sending: {e}") from e

    def flush(self) -> None:
        """Flush the secondary stream if it buffers writes (sockets don't)."""
        self._protect()
        flush = getattr(self.secondary, "flush", None)
        if callable(flush):
            flush()

    def _protect(self) -> None:
        if self._closed:
            raise HTTPConnectionError("Socket closed.")

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """Close the secondary stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self.secondary.close()
        except OSError:
            pass

    def __enter__(self) -> "PushBackStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<PushBackStream {state} buffered={self.buffered}>"
