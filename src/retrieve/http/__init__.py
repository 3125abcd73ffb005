"""
=============================================================================
HTTP/1.1 WIRE PROTOCOL
=============================================================================

The protocol engine behind the http client, written directly against a
socket:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py     → request line, headers, cookies → bytes             │
    │ stream.py      → push-back buffer over the socket                   │
    │ response.py    → status line / headers / body state machine         │
    │ headers.py     → case-insensitive header multimap                   │
    │ connection.py  → (host, port) → stream pool, open/reuse/close       │
    │ redirects.py   → redirect policy and permanent-URI resolution       │
    │ errors.py      → HTTPClientError and friends                        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
HTTP MESSAGE FORMAT (RFC 7230)
=============================================================================

    REQUEST:                          RESPONSE:
    ─────────                         ──────────
    GET /path HTTP/1.1\r\n            HTTP/1.1 200 OK\r\n
    Host: example.com\r\n             Content-Length: 5\r\n
    Content-Length: 0\r\n             \r\n
    \r\n                              Hello

=============================================================================
"""

from .errors import (
    HTTPClientError,
    HTTPParserError,
    HTTPConnectionError,
    HTTPTimeoutError,
    TooManyRedirects,
)
from .headers import Headers
from .stream import PushBackStream
from .request import build_request, build_headers, encode_headers, escape
from .response import HTTPResponse, ResponseParser, ParseStatus, parse_response
from .connection import ConnectionManager, ConnectionPool
from .redirects import RedirectAction, RedirectChain, RedirectPolicy, redirect_action

__all__ = [
    # Errors
    "HTTPClientError",
    "HTTPParserError",
    "HTTPConnectionError",
    "HTTPTimeoutError",
    "TooManyRedirects",

    # Messages
    "Headers",
    "HTTPResponse",
    "build_request",
    "build_headers",
    "encode_headers",
    "escape",

    # Parsing
    "PushBackStream",
    "ResponseParser",
    "ParseStatus",
    "parse_response",

    # Connections
    "ConnectionManager",
    "ConnectionPool",

    # Redirects
    "RedirectAction",
    "RedirectChain",
    "RedirectPolicy",
    "redirect_action",
]
