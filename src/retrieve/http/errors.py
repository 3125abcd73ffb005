"""
=============================================================================
HTTP CLIENT ERRORS
=============================================================================

Every failure raised by the HTTP engine derives from HTTPClientError, so a
caller can catch the whole family with a single except clause:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ERROR HIERARCHY                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPClientError                                                   │
    │   ├── HTTPParserError       bad start line, header or chunk framing │
    │   ├── HTTPConnectionError   socket closed / response cut short      │
    │   ├── HTTPTimeoutError      server never answered in time           │
    │   └── TooManyRedirects      redirect chain exceeded the limit       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

None of these are retried automatically. A parse error means the bytes on
the wire are not HTTP as we understand it; sending the same request again
to the same server is unlikely to help.

=============================================================================
"""


class HTTPClientError(Exception):
    """Base class for all errors raised while talking HTTP to a server."""


class HTTPParserError(HTTPClientError):
    """
    The response bytes do not follow the HTTP/1.1 message grammar.

    Raised for a missing or misplaced status line, a malformed header line,
    an unreadable chunk-size line or a chunk without its trailing CRLF.
    """


class HTTPConnectionError(HTTPClientError):
    """
    The connection ended where the protocol required more bytes.

    This is how "broken connection" is told apart from a clean end of
    stream: a zero-length read in the middle of a response is an error.
    """


class HTTPTimeoutError(HTTPClientError):
    """The server did not send anything within the allowed time."""


class TooManyRedirects(HTTPClientError):
    """
    More redirects were followed than the configured maximum.

    Attributes:
        limit: The maximum number of redirects that was configured.
    """

    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit
