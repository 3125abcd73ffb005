"""
=============================================================================
HTTP REQUEST SERIALIZATION
=============================================================================

Turns a method, a URI and a few options into the exact bytes written to the
socket.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    GET /search?q=python HTTP/1.1\r\n          ← request line
    Host: example.com\r\n                      ┐
    Content-Length: 0\r\n                      │ defaults
    User-Agent: retrieve/1.0.0 (linux)\r\n     │
    Connection: close\r\n                      ┘
    Accept: text/html\r\n                      ← caller headers
    Cookie: session=abc%2F123\r\n              ┐ cookie lines, one per
    Cookie: theme=dark\r\n                     ┘ name/value pair
    \r\n                                       ← end of head
    [body]

The request target is the URI without scheme, authority and fragment. The
fragment never goes on the wire; it only means something to the client.

=============================================================================
COOKIES
=============================================================================

Each cookie pair gets its own Cookie line. That is legal per the header
grammar, and keeps multi-valued cookies simple:

    cookies={"foo": ["bar", "baz"], "one": "two"}

    Cookie: foo=bar\r\n
    Cookie: foo=baz\r\n
    Cookie: one=two\r\n

Names and values are percent-escaped, with spaces written as "+".

=============================================================================
"""

from typing import Any, Mapping, Optional, Union
from urllib.parse import quote_plus

from ..uri import URI
from .headers import Headers


CRLF = b"\r\n"

# Computed from the request itself; caller headers never replace them.
COMPUTED_HEADERS = frozenset({"host", "content-length"})


def escape(value: Any) -> str:
    """
    Percent-escape a cookie name or value.

    Everything except letters, digits, "_.-~" and space is escaped as %XX
    (uppercase hex); spaces then become "+".

    Example:
        escape("a b/c")  # "a+b%2Fc"
    """
    if isinstance(value, bytes):
        return quote_plus(value, safe="")
    return quote_plus(str(value), safe="")


def encode_headers(headers: Headers) -> bytes:
    """
    Encode headers as "Name: value\\r\\n" lines.

    A header with several values (see Headers.add) is written once per
    value. None values are skipped. A list value is written once per item.
    """
    lines = []
    for name, value in headers.multi_items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            lines.append(f"{name}: {item}\r\n")
    return "".join(lines).encode("utf-8")


def build_headers(
    uri: URI,
    headers: Optional[Mapping[str, Any]] = None,
    cookies: Optional[Mapping[str, Any]] = None,
    body: bytes = b"",
    keep_alive: bool = False,
    user_agent: Optional[str] = None,
) -> Headers:
    """
    Assemble the request header block.

    Order: defaults, then caller headers, then cookie lines.

    Args:
        uri: Target URI (supplies Host).
        headers: Caller headers, merged case-insensitively over the
                 defaults. Host and Content-Length cannot be overridden.
        cookies: name → value or name → list of values.
        body: Request body (supplies Content-Length).
        keep_alive: Ask the server to keep the connection open.
        user_agent: User-Agent value; omitted if None.

    Returns:
        The Headers container, ready for encode_headers().
    """
    result = Headers()
    result["Host"] = uri.normalized_authority
    result["Content-Length"] = str(len(body))
    if user_agent:
        result["User-Agent"] = user_agent
    result["Connection"] = "Keep-Alive" if keep_alive else "close"

    cookie_lines = []
    for name, value in (headers or {}).items():
        normalized = name.lower()
        if normalized in COMPUTED_HEADERS:
            continue
        if normalized == "cookie":
            if isinstance(value, (list, tuple)):
                cookie_lines.extend(value)
            elif value is not None:
                cookie_lines.append(value)
            continue
        result[name] = value

    for name, value in (cookies or {}).items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            cookie_lines.append(f"{escape(name)}={escape(item)}")

    for line in cookie_lines:
        result.add("Cookie", line)

    return result


def build_request(
    method: str,
    uri: URI,
    headers: Optional[Mapping[str, Any]] = None,
    cookies: Optional[Mapping[str, Any]] = None,
    body: Union[bytes, bytearray, None] = None,
    keep_alive: bool = False,
    user_agent: Optional[str] = None,
) -> bytes:
    """
    Serialize a complete HTTP/1.1 request.

    Args:
        method: HTTP method; upper-cased on the wire.
        uri: Target URI.
        headers: Extra request headers.
        cookies: Cookies to send as Cookie lines.
        body: Request entity; None means no body (Content-Length: 0).
        keep_alive: Send "Connection: Keep-Alive" instead of "close".
        user_agent: User-Agent header value.

    Returns:
        Request bytes ready for the socket.
    """
    body = bytes(body or b"")
    head = build_headers(
        uri,
        headers=headers,
        cookies=cookies,
        body=body,
        keep_alive=keep_alive,
        user_agent=user_agent,
    )
    request_line = f"{method.upper()} {uri.request_target} HTTP/1.1\r\n".encode("utf-8")
    return request_line + encode_headers(head) + CRLF + body
