"""
=============================================================================
HTTP CLIENT
=============================================================================

Handles http:// URIs by speaking HTTP/1.1 directly over a TCP socket.

    res = retrieve.open("http://example.com/", method="GET")
    res.read()          # b"This is an example."
    res.close()

=============================================================================
open() FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   validate options                                                  │
    │        │                                                             │
    │   ┌────▼──────────────────────┐                                     │
    │   │ acquire stream            │ ← ConnectionManager (pool or not)   │
    │   │ write request bytes       │ ← build_request()                   │
    │   │ wait for first byte       │ ← timeout                           │
    │   │ parse response            │ ← ResponseParser                    │
    │   │ record metadata           │                                     │
    │   │ "Connection: close"?      │ → close + evict the stream          │
    │   └────┬──────────────────────┘                                     │
    │        │                                                             │
    │        ├── 2xx → resolve permanent URI                              │
    │        ├── 3xx → follow? update URI, go round again (bounded)       │
    │        └── else → done                                              │
    │                                                                      │
    │   release connections (private pool only)                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The body is read completely during open(); read() serves it from memory.

=============================================================================
"""

import io
import logging
from typing import Any, Mapping, Optional, Union

from ..client import Client, ResourceStateError
from ..config import ClientConfig
from ..http.connection import ConnectionManager
from ..http.errors import HTTPTimeoutError, TooManyRedirects
from ..http.redirects import RedirectAction, RedirectChain, RedirectPolicy, redirect_action
from ..http.request import build_request
from ..http.response import HTTPResponse, ResponseParser, wire_logger
from ..uri import URI


logger = logging.getLogger(__name__)


class HTTPClient(Client):
    """
    Client for the http scheme.

    Attributes:
        config: Defaults for timeout, read size, redirect limit and
                User-Agent.
    """

    scheme = "http"

    def __init__(self, resource, config: Optional[ClientConfig] = None):
        super().__init__(resource)
        if not resource.uri.authority:
            raise ValueError(f"Resource cannot be handled by client: '{resource.uri}'")
        self.config = config or ClientConfig.from_env()
        self.config.validate()
        self._response: Optional[HTTPResponse] = None
        self._body = io.BytesIO()
        self._redirects = RedirectChain()
        self._manager: Optional[ConnectionManager] = None
        self.cookie_store: Mapping[str, Any] = {}

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @property
    def response(self) -> Optional[HTTPResponse]:
        """The final response of the last open(), or None once closed."""
        return self._response

    @property
    def redirects(self) -> RedirectChain:
        """Redirects seen during the last open()."""
        return self._redirects

    def open(
        self,
        method: str = "GET",
        headers: Optional[Mapping[str, Any]] = None,
        cookies: Optional[Mapping[str, Any]] = None,
        cookie_store: Optional[Mapping[str, Any]] = None,
        redirect: Any = True,
        connections: Optional[Any] = None,
        timeout: Optional[float] = None,
        body: Union[bytes, bytearray, str, None] = None,
        log: Optional[logging.Logger] = None,
        max_redirects: Optional[int] = None,
    ):
        """
        Send the request and read the complete response.

        Args:
            method: HTTP method (default GET).
            headers: Extra request headers.
            cookies: name → value or name → list of values.
            cookie_store: Accepted and kept, not yet consulted.
            redirect: True to follow redirects, False to stop at the
                      first response, or a callable that receives the
                      HTTPResponse and returns whether to follow it.
            connections: A pool mapping to keep connections in between
                         calls. Without one, every connection opened is
                         closed before open() returns.
            timeout: Seconds to wait for the server (default from config).
            body: Request entity; str is UTF-8 encoded.
            log: Logger for the wire trace (default "retrieve.wire").
            max_redirects: Redirect limit (default from config).

        Returns:
            The client's resource, with metadata filled in.

        Raises:
            TypeError: An option has the wrong type.
            HTTPClientError: Protocol, connection or timeout failure.
            OSError: The connection could not be established.
        """
        if not isinstance(method, str):
            raise TypeError(f"Expected method to be str, got {type(method).__name__}.")
        if log is not None and not isinstance(log, logging.Logger):
            raise TypeError(f"Expected log to be a logging.Logger, got {type(log).__name__}.")
        if headers is not None and not isinstance(headers, Mapping):
            raise TypeError(f"Expected headers to be a mapping, got {type(headers).__name__}.")
        if cookies is not None and not isinstance(cookies, Mapping):
            raise TypeError(f"Expected cookies to be a mapping, got {type(cookies).__name__}.")
        if isinstance(body, str):
            body = body.encode("utf-8")
        elif body is not None and not isinstance(body, (bytes, bytearray)):
            raise TypeError(f"Expected body to be bytes, got {type(body).__name__}.")
        policy = RedirectPolicy(redirect)

        self.cookie_store = cookie_store if cookie_store is not None else {}
        self._response = None
        self._redirects = RedirectChain()
        self._manager = ConnectionManager(
            pool=connections,
            timeout=timeout if timeout is not None else self.config.timeout,
        )
        limit = max_redirects if max_redirects is not None else self.config.max_redirects

        try:
            self._response = self._send_request(
                method.upper(),
                headers=headers,
                cookies=cookies,
                body=body,
                policy=policy,
                limit=limit,
                log=log or wire_logger,
            )
        finally:
            self._manager.release()

        self._body = io.BytesIO(self._response.body)
        return self.resource

    def read(self, n: Optional[int] = None) -> bytes:
        """Read up to n bytes of the body (all remaining if n is None)."""
        if self._response is None:
            raise ResourceStateError("No response available.")
        return self._body.read(n)

    def close(self) -> None:
        """
        Forget the response.

        Connections from a caller-supplied pool stay open in that pool.
        """
        if self._response is None:
            raise ResourceStateError("No stream to close.")
        self._response = None
        self._body = io.BytesIO()
        if self._manager is not None:
            self._manager.release()
            self._manager = None

    # =========================================================================
    # REQUEST / RESPONSE CYCLE
    # =========================================================================

    def _send_request(
        self,
        method: str,
        headers: Optional[Mapping[str, Any]],
        cookies: Optional[Mapping[str, Any]],
        body: Optional[bytes],
        policy: RedirectPolicy,
        limit: int,
        log: logging.Logger,
    ) -> HTTPResponse:
        """
        Send one request per hop until a response is not followed.

        Each followed redirect re-issues the request against the new URI.
        """
        while True:
            response = self._exchange(method, headers, cookies, body, log)
            self._process_metadata(response)

            if response.is_success:
                self.resource.permanent_uri = self._redirects.permanent_uri(
                    self.resource.permanent_uri
                )
                return response

            if not response.is_redirect:
                return response

            self._redirects.append(self.resource.uri, response)
            action = redirect_action(response.status)
            if action is None or not response.location or not policy.should_follow(response):
                return response

            if len(self._redirects) > limit:
                raise TooManyRedirects(
                    f"Exceeded {limit} redirects for {self.resource.uri}", limit
                )

            self.resource.uri = self.resource.uri.join(response.location)
            logger.debug(f"Following {response.status} redirect to {self.resource.uri}")
            if action is RedirectAction.SEE_OTHER:
                method, body = "GET", None

    def _exchange(
        self,
        method: str,
        headers: Optional[Mapping[str, Any]],
        cookies: Optional[Mapping[str, Any]],
        body: Optional[bytes],
        log: logging.Logger,
    ) -> HTTPResponse:
        """One request/response round trip on the current URI."""
        uri: URI = self.resource.uri
        host, port = uri.host, uri.inferred_port
        stream = self._manager.acquire(host, port)

        request = build_request(
            method,
            uri,
            headers=headers,
            cookies=cookies,
            body=body,
            keep_alive=self._manager.persistent,
            user_agent=self.config.user_agent,
        )
        for line in request.split(b"\r\n\r\n", 1)[0].split(b"\r\n"):
            log.debug(f"> {line.decode('utf-8', errors='replace')}")

        try:
            stream.write(request)
            stream.flush()

            if not stream.wait_readable(self._manager.timeout):
                raise HTTPTimeoutError("Timeout waiting for the server to respond.")

            parser = ResponseParser(stream, method=method, read_size=self.config.read_size, log=log)
            response = parser.parse()
        except Exception:
            # Whatever is left on this connection can't be trusted.
            self._manager.discard(host, port)
            raise

        # A private connection was sent "Connection: close", so it is done
        # after one exchange even if the server didn't say so.
        if response.closes_connection or not self._manager.persistent:
            self._manager.discard(host, port)
        return response

    def _process_metadata(self, response: HTTPResponse) -> None:
        """Load the response's status line and headers into the resource."""
        self.resource.metadata["http_version"] = response.http_version
        self.resource.metadata["status"] = response.status
        self.resource.metadata["reason"] = response.reason
        self.resource.metadata["headers"] = response.headers
