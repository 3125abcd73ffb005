"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from retrieve.client import Client
from retrieve.http.stream import PushBackStream


class MemoryClient(Client):
    """Toy client that serves a fixed payload."""

    scheme = "memory"

    def open(self, **options):
        self.resource.metadata["opened"] = True
        return self.resource

    def read(self, n=None):
        return b"payload"

    def close(self):
        pass


class WritableMemoryClient(MemoryClient):
    scheme = "memory-rw"

    def write(self, data):
        return len(data)


OK_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Length: 17\r\n"
    b"\r\n"
    b"Example response.\r\n"
    b"\r\n"
)


class FakeSocket:
    """
    In-memory stand-in for a connected socket.

    Bytes in `incoming` are handed out by recv(); an empty buffer reads as
    end-of-file. With keep_open=True an empty buffer instead times out,
    like an idle kept-alive connection whose server has nothing more to say.
    When attached to a FakeNetwork, every sendall() queues the network's
    next canned response, like a server answering a request.
    """

    def __init__(
        self,
        incoming: bytes = b"",
        network: Optional["FakeNetwork"] = None,
        chunk_size: Optional[int] = None,
        keep_open: bool = False,
    ):
        self._incoming = bytearray(incoming)
        self.network = network
        self.chunk_size = chunk_size
        self.keep_open = keep_open
        self.requests: List[bytes] = []
        self.closed = False

    def recv(self, n: int) -> bytes:
        if self.closed:
            raise OSError("recv on closed socket")
        if not self._incoming and self.keep_open:
            raise socket.timeout("timed out")
        size = n if self.chunk_size is None else min(n, self.chunk_size)
        data = bytes(self._incoming[:size])
        del self._incoming[:size]
        return data

    def sendall(self, data: bytes) -> None:
        if self.closed:
            raise OSError("sendall on closed socket")
        self.requests.append(bytes(data))
        if self.network is not None and self.network.responses:
            self._incoming += self.network.responses.pop(0)

    def close(self) -> None:
        self.closed = True


class FakeNetwork:
    """Replaces open_socket(); records connections and serves canned responses."""

    def __init__(self):
        self.responses: List[bytes] = []
        self.sockets: List[FakeSocket] = []
        self.connects: List[tuple] = []
        self.chunk_size: Optional[int] = None
        self.keep_open = False

    def respond(self, *responses: bytes) -> None:
        self.responses.extend(responses)

    def open_socket(self, host: str, port: int, timeout: Optional[float]) -> FakeSocket:
        self.connects.append((host, port))
        sock = FakeSocket(network=self, chunk_size=self.chunk_size, keep_open=self.keep_open)
        self.sockets.append(sock)
        return sock

    @property
    def requests(self) -> List[bytes]:
        return [request for sock in self.sockets for request in sock.requests]

    @property
    def last_request(self) -> bytes:
        return self.requests[-1]


@pytest.fixture
def fake_network(monkeypatch) -> FakeNetwork:
    """Route every connection the HTTP client makes to a FakeNetwork."""
    network = FakeNetwork()
    monkeypatch.setattr("retrieve.http.connection.open_socket", network.open_socket)
    return network


@pytest.fixture
def make_stream() -> Callable[..., PushBackStream]:
    """Build a PushBackStream over canned bytes."""
    def factory(
        data: bytes, chunk_size: Optional[int] = None, keep_open: bool = False
    ) -> PushBackStream:
        return PushBackStream(FakeSocket(data, chunk_size=chunk_size, keep_open=keep_open))
    return factory


class LocalServer:
    """
    Tiny HTTP server on a background thread for real-socket tests.

    `handler` receives each raw request and returns the raw response bytes,
    or None to stay silent (for timeout tests). The connection stays open
    between replies unless a reply says "Connection: close" or
    close_after_reply is set.
    """

    def __init__(
        self,
        handler: Callable[[bytes], Optional[bytes]],
        close_after_reply: bool = False,
    ):
        self.handler = handler
        self.close_after_reply = close_after_reply
        self.connections = 0
        self.requests: List[bytes] = []
        self._running = False
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(8)
        self._sock.settimeout(0.1)
        self.port = self._sock.getsockname()[1]

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self):
        """Start accepting connections in a background thread."""
        self._running = True
        threading.Thread(target=self._serve, daemon=True).start()

    def stop(self):
        self._running = False
        self._sock.close()

    def _serve(self):
        while self._running:
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            self.connections += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket):
        conn.settimeout(5.0)
        buffer = b""
        with conn:
            while self._running:
                try:
                    while b"\r\n\r\n" not in buffer:
                        chunk = conn.recv(4096)
                        if not chunk:
                            return
                        buffer += chunk

                    head, _, buffer = buffer.partition(b"\r\n\r\n")
                    length = 0
                    for line in head.split(b"\r\n")[1:]:
                        name, _, value = line.partition(b":")
                        if name.strip().lower() == b"content-length":
                            length = int(value.strip())
                    while len(buffer) < length:
                        chunk = conn.recv(4096)
                        if not chunk:
                            return
                        buffer += chunk
                    body, buffer = buffer[:length], buffer[length:]
                except OSError:
                    return

                request = head + b"\r\n\r\n" + body
                self.requests.append(request)
                reply = self.handler(request)

                if reply is None:
                    # Say nothing; wait for the client to give up.
                    try:
                        while conn.recv(4096):
                            pass
                    except OSError:
                        pass
                    return

                conn.sendall(reply)
                if self.close_after_reply or b"connection: close" in reply.lower():
                    return


@pytest.fixture
def local_server() -> Generator[Callable[..., LocalServer], None, None]:
    """Factory fixture: local_server(handler) starts a LocalServer."""
    servers: List[LocalServer] = []

    def factory(
        handler: Callable[[bytes], Optional[bytes]], close_after_reply: bool = False
    ) -> LocalServer:
        server = LocalServer(handler, close_after_reply=close_after_reply)
        server.start()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.stop()
