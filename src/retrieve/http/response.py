"""
=============================================================================
HTTP RESPONSE PARSER
=============================================================================

Parses an HTTP/1.1 response incrementally from a PushBackStream.
Implements the message grammar of RFC 7230 as far as a client needs it.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    HTTP/1.1 200 OK\r\n                ← status line
    Content-Type: text/plain\r\n       ┐
    Transfer-Encoding: chunked\r\n     ┘ headers
    \r\n                               ← end of headers
    A\r\n                              ┐
    This is a \r\n                     │ body (here: chunked)
    11\r\n                             │
    chunked response.\r\n              │
    0\r\n                              │
    \r\n                               ┘

=============================================================================
THE PARSER STATE MACHINE
=============================================================================

Bytes arrive in arbitrary pieces, so each state may need to run several
times before it has enough input. Every state returns a ParseStatus:

    NEED_MORE  → call the same state again
    DONE       → move on to the next state
    ERROR      → stop; parser.error says why

    ┌───────────────┐   DONE   ┌───────────────┐   DONE   ┌───────────────┐
    │  STATUS LINE  │ ───────► │    HEADERS    │ ───────► │     BODY      │
    └──────┬────────┘          └──────┬────────┘          └──────┬────────┘
           │ NEED_MORE                │ NEED_MORE                │ NEED_MORE
           └──► (again)               └──► (again)               └──► (again)

"Not enough bytes yet" is the normal case while parsing a stream, so it is
a return value, not an exception. Only real protocol violations become
HTTPParserError, and only parse() raises it.

=============================================================================
BODY FRAMING
=============================================================================

How does a client know where the body ends? First match wins:

    1. HEAD request, 1xx / 204 / 304 status → there is no body
    2. Transfer-Encoding: chunked           → size-prefixed chunks, 0 ends
    3. Content-Length: N                    → exactly N bytes
    4. neither                              → read until the server closes

Case 4 is the only place where "connection closed" is a normal way for a
response to end.

=============================================================================
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .errors import HTTPConnectionError, HTTPParserError
from .headers import Headers
from .stream import PushBackStream


logger = logging.getLogger(__name__)

# Namespaced logger for the bytes on the wire. Enable it on its own with:
#   logging.getLogger("retrieve.wire").setLevel(logging.DEBUG)
wire_logger = logging.getLogger("retrieve.wire")


CHUNK_SIZE = 16 * 1024

HTTP_START_LINE = re.compile(rb"^HTTP/([0-9]\.[0-9]) ([0-9]{3}) (.+?)\r\n", re.MULTILINE)
HTTP_TOKEN = rb"[^()<>@,;:\\\"/\[\]?={}\t \r\n]"
HTTP_HEADER = re.compile(rb"(" + HTTP_TOKEN + rb"+):[ \t]*([^\r\n]*)\r\n")
HTTP_CHUNK_SIZE = re.compile(rb"([0-9a-fA-F]+)[ \t]*\r\n")

BODYLESS_STATUS = re.compile(r"^(1[0-9][0-9]|204|304)$")


class ParseStatus(Enum):
    """Outcome of one invocation of a parser state."""

    NEED_MORE = "need_more"
    DONE = "done"
    ERROR = "error"


@dataclass
class HTTPResponse:
    """
    A response as received from the server.

    The status code is kept as the literal 3-character string from the
    status line ("200", "301"...). Callers compare it against strings and
    prefixes, never numeric ranges.
    """

    http_version: Optional[str] = None
    status: Optional[str] = None
    reason: Optional[str] = None
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""

    @property
    def is_success(self) -> bool:
        return bool(self.status) and self.status.startswith("2")

    @property
    def is_redirect(self) -> bool:
        return bool(self.status) and self.status.startswith("3")

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("Location")

    @property
    def closes_connection(self) -> bool:
        """True if the server said "Connection: close"."""
        return str(self.headers.get("Connection", "")).strip().lower() == "close"


class ResponseParser:
    """
    Incremental HTTP/1.1 response parser.

    Usage:
        parser = ResponseParser(stream, method="GET")
        response = parser.parse()     # raises HTTPParserError on bad input

    The parser owns no socket. It only reads from and pushes back into the
    PushBackStream it was given, so bytes after the end of this response
    stay in the stream for the next response on a kept-alive connection.

    Attributes:
        response: The HTTPResponse being filled in.
        error: The HTTPParserError that stopped parsing, if any.
    """

    def __init__(
        self,
        stream: PushBackStream,
        method: str = "GET",
        read_size: int = CHUNK_SIZE,
        log: Optional[logging.Logger] = None,
    ):
        self.stream = stream
        self.method = method.upper()
        self.read_size = read_size
        self.log = log or wire_logger
        self.response = HTTPResponse()
        self.error: Optional[HTTPParserError] = None
        self._body: List[bytes] = []
        self._remaining = 0
        self._body_state: Optional[Callable[[], ParseStatus]] = None

    # =========================================================================
    # DRIVER
    # =========================================================================

    def parse(self) -> HTTPResponse:
        """
        Run every state to completion and return the response.

        Raises:
            HTTPParserError: The response violates the message grammar.
            HTTPConnectionError: The connection ended mid-response.
        """
        for state in (self.read_status_line, self.read_headers, self.read_body):
            status = state()
            while status is ParseStatus.NEED_MORE:
                status = state()
            if status is ParseStatus.ERROR:
                raise self.error

        if self.response.body:
            self.log.debug("* Response body omitted from log.")
        else:
            self.log.debug("* No response body.")
        return self.response

    def _fail(self, message: str) -> ParseStatus:
        self.log.debug(f"* {message}")
        self.error = HTTPParserError(message)
        return ParseStatus.ERROR

    def _read_line_candidate(self) -> bytes:
        # A complete line in the buffer must not wait on the socket: on a
        # kept-alive connection the server sends nothing more.
        if self.stream.has_line():
            return self.stream.read(self.stream.buffered)
        # Otherwise ask for everything buffered plus a fresh slab so a long
        # line always makes progress.
        return self.stream.read(self.stream.buffered + self.read_size)

    # =========================================================================
    # STATE 1: STATUS LINE
    # =========================================================================

    def read_status_line(self) -> ParseStatus:
        """
        Parse "HTTP/x.y CODE REASON\\r\\n".

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE CRLF
        Example: "HTTP/1.1 404 Not Found"
        """
        data = self._read_line_candidate()
        match = HTTP_START_LINE.search(data)

        if not match:
            if b"\r\n" not in data and not self.stream.closed:
                self.stream.push(data)
                return ParseStatus.NEED_MORE
            return self._fail("Response missing HTTP start line.")

        if match.start() != 0:
            return self._fail("HTTP start line was in the wrong position.")

        self.stream.push(data[match.end():])
        version, status, reason = (part.decode("latin-1") for part in match.groups())
        self.response.http_version = version
        self.response.status = status
        self.response.reason = reason
        self.log.debug(f"< HTTP/{version} {status} {reason}")
        return ParseStatus.DONE

    # =========================================================================
    # STATE 2: HEADERS
    # =========================================================================

    def read_headers(self) -> ParseStatus:
        """
        Parse one header line, or the blank line that ends the section.

        Format: field-name ":" OWS field-value CRLF

        Header continuation lines (leading whitespace) are not supported
        and are reported as errors.
        """
        data = self._read_line_candidate()
        match = HTTP_HEADER.match(data)

        if match:
            self.stream.push(data[match.end():])
            key, value = (part.decode("latin-1") for part in match.groups())
            value = value.rstrip(" \t")
            self.response.headers.add(key, value)
            self.log.debug(f"< {key}: {value}")
            return ParseStatus.NEED_MORE

        if b"\r\n" not in data:
            if self.stream.closed:
                return self._fail("Response ended inside the header section.")
            self.stream.push(data)
            return ParseStatus.NEED_MORE

        if data.startswith(b"\r\n"):
            self.stream.push(data[2:])
            return ParseStatus.DONE

        line = data.split(b"\r\n", 1)[0]
        self.log.debug(f"< {line.decode('latin-1')}")
        return self._fail(f"Expected HTTP header, got something else: {line!r}")

    # =========================================================================
    # STATE 3: BODY
    # =========================================================================

    def read_body(self) -> ParseStatus:
        """Pick a framing strategy once, then run it until DONE or ERROR."""
        if self._body_state is None:
            self._body_state = self._choose_body_strategy()

        status = self._body_state()
        if status is ParseStatus.DONE:
            self.response.body = b"".join(self._body)
        return status

    def _choose_body_strategy(self) -> Callable[[], ParseStatus]:
        headers = self.response.headers

        if self.method == "HEAD" or BODYLESS_STATUS.match(self.response.status or ""):
            return lambda: ParseStatus.DONE

        if "chunked" in str(headers.get("Transfer-Encoding", "")).lower():
            return self._read_chunk

        if "Content-Length" in headers:
            try:
                self._remaining = int(str(headers["Content-Length"]).strip())
            except ValueError:
                return lambda: self._fail(
                    f"Invalid Content-Length: {headers['Content-Length']!r}"
                )
            if self._remaining < 0:
                return lambda: self._fail(
                    f"Invalid Content-Length: {headers['Content-Length']!r}"
                )
            return self._read_fixed_length

        return self._read_until_close

    def _read_chunk(self) -> ParseStatus:
        """
        Read one chunk of a chunked body.

        Chunk format:
            <hex size> [OWS] CRLF
            <size bytes of data> CRLF
        A chunk of size 0 ends the body.
        """
        data = self._read_line_candidate()
        match = HTTP_CHUNK_SIZE.match(data)

        if not match:
            if b"\r\n" not in data and not self.stream.closed:
                self.stream.push(data)
                return ParseStatus.NEED_MORE
            return self._fail("Could not determine chunk size.")

        self.stream.push(data[match.end():])
        chunk_size = int(match.group(1), 16)

        chunk = self._read_exactly(chunk_size)
        crlf = self.stream.read(2, partial=False)
        if crlf != b"\r\n":
            return self._fail(
                f"Expected CRLF after chunk (size: {chunk_size}), got: {crlf!r}"
            )

        if chunk_size == 0:
            return ParseStatus.DONE
        self._body.append(chunk)
        return ParseStatus.NEED_MORE

    def _read_fixed_length(self) -> ParseStatus:
        """Read the next slab of a Content-Length body."""
        if self._remaining == 0:
            return ParseStatus.DONE
        data = self.stream.read(min(self._remaining, self.read_size))
        if not data:
            raise HTTPConnectionError("Unexpected end of response.")
        self._body.append(data)
        self._remaining -= len(data)
        return ParseStatus.DONE if self._remaining == 0 else ParseStatus.NEED_MORE

    def _read_until_close(self) -> ParseStatus:
        """
        Read with no length indicator: everything until the server closes.

        We can't know how far to read, so the connection closing is the
        only end marker. HTTPConnectionError here means "the body is over".
        """
        if self.stream.buffered:
            self._body.append(self.stream.read(self.stream.buffered))
            return ParseStatus.NEED_MORE
        try:
            data = self.stream.read(self.read_size)
        except HTTPConnectionError:
            return ParseStatus.DONE
        if not data:
            return ParseStatus.DONE
        self._body.append(data)
        return ParseStatus.NEED_MORE

    def _read_exactly(self, size: int) -> bytes:
        if size == 0:
            return b""
        data = self.stream.read(size, partial=False)
        if len(data) != size:
            raise HTTPConnectionError("Unexpected end of response.")
        return data


def parse_response(
    stream: PushBackStream,
    method: str = "GET",
    read_size: int = CHUNK_SIZE,
    log: Optional[logging.Logger] = None,
) -> HTTPResponse:
    """
    Convenience function to parse one response from a stream.

    Use ResponseParser directly to inspect the parser's state afterwards.
    """
    return ResponseParser(stream, method=method, read_size=read_size, log=log).parse()
