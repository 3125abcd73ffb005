"""
=============================================================================
URI COMPONENT
=============================================================================

A small immutable URI value built on urllib.parse. Clients only need a
handful of things from a URI:

    http://Example.COM:8080/path/to?q=1#frag
    ──┬─   ─────────┬──────  ───┬──── ─┬─ ─┬─
      │             │           │      │   │
    scheme      authority      path  query fragment
               (host, port)

    request_target       → "/path/to?q=1"   (what goes on the request line)
    normalized_authority → "example.com:8080"
    inferred_port        → 8080 (or the scheme default, 80 for http)

=============================================================================
"""

import re
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit


DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "ftp": 21,
}

SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
WHITESPACE_PATTERN = re.compile(r"[\s\x00-\x1f\x7f]")


class InvalidURIError(ValueError):
    """The string could not be parsed as an absolute URI."""


@dataclass(frozen=True)
class URI:
    """
    Parsed absolute URI.

    Create instances with URI.parse(); the constructor does no validation.
    """

    scheme: str
    authority: str
    path: str
    query: str
    fragment: str

    @classmethod
    def parse(cls, value: Union[str, "URI"]) -> "URI":
        """
        Parse a string into a URI.

        Raises:
            TypeError: value is neither a str nor a URI.
            InvalidURIError: value is not an absolute URI.
        """
        if isinstance(value, URI):
            return value
        if not isinstance(value, str):
            raise TypeError(f"Can't convert {type(value).__name__} into URI.")
        if WHITESPACE_PATTERN.search(value):
            raise InvalidURIError(f"Invalid URI: {value!r}")

        try:
            parts = urlsplit(value)
            # Touch port so malformed ports are reported here, not later.
            parts.port
        except ValueError as e:
            raise InvalidURIError(f"Invalid URI: {value!r} ({e})") from e

        if not parts.scheme or not SCHEME_PATTERN.match(parts.scheme):
            raise InvalidURIError(f"Invalid URI, missing scheme: {value!r}")

        return cls(
            scheme=parts.scheme.lower(),
            authority=parts.netloc,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
        )

    # =========================================================================
    # COMPONENTS
    # =========================================================================

    @property
    def _split(self) -> SplitResult:
        return SplitResult(self.scheme, self.authority, self.path, self.query, self.fragment)

    @property
    def host(self) -> Optional[str]:
        return self._split.hostname

    @property
    def port(self) -> Optional[int]:
        """Explicit port from the authority, or None."""
        return self._split.port

    @property
    def inferred_port(self) -> Optional[int]:
        """Explicit port, falling back to the scheme's default port."""
        port = self.port
        return port if port is not None else DEFAULT_PORTS.get(self.scheme)

    @property
    def normalized_authority(self) -> str:
        """
        Authority with a lowercase host and the default port dropped.

        User information, if any, is kept as written.
        """
        host = self.host or ""
        if ":" in host:
            host = f"[{host}]"
        userinfo = ""
        if "@" in self.authority:
            userinfo = self.authority.rsplit("@", 1)[0] + "@"
        port = self.port
        if port is not None and port != DEFAULT_PORTS.get(self.scheme):
            return f"{userinfo}{host}:{port}"
        return f"{userinfo}{host}"

    @property
    def request_target(self) -> str:
        """The URI with scheme, authority and fragment removed."""
        target = self.path or "/"
        if self.query:
            target += "?" + self.query
        return target

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def join(self, reference: str) -> "URI":
        """Resolve reference (absolute or relative) against this URI."""
        return URI.parse(urljoin(str(self), reference))

    def __str__(self) -> str:
        return urlunsplit(self._split)
