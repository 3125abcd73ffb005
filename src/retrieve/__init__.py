"""
=============================================================================
RETRIEVE - URI RESOURCES WITH PLUGGABLE SCHEME CLIENTS
=============================================================================

Open anything addressed by a URI through one small interface:

    import retrieve

    with retrieve.open("http://example.com/") as resource:
        resource.read()                    # b"<!doctype html>..."
        resource.metadata["status"]        # "200"
        resource.metadata["headers"]       # {"Content-Type": "text/html"}

    with retrieve.open("file:///tmp/notes.txt", mode="wb") as resource:
        resource.write(b"hello")

=============================================================================
PROJECT STRUCTURE
=============================================================================

    src/retrieve/
    ├── __init__.py          # open(), package exports
    ├── uri.py               # URI parsing on top of urllib.parse
    ├── client.py            # Client base class and scheme registry
    ├── resource.py          # Resource: URI + metadata + bound client
    ├── config.py            # ClientConfig (defaults, env vars)
    ├── clients/
    │   ├── http.py          # HTTP/1.1 client over raw sockets
    │   └── file.py          # local files
    └── http/
        ├── stream.py        # push-back buffered socket reader
        ├── request.py       # request serialization
        ├── response.py      # response parser state machine
        ├── headers.py       # case-insensitive header multimap
        ├── connection.py    # connection pool and lifecycle
        ├── redirects.py     # redirect policy, permanent URI
        └── errors.py        # HTTPClientError hierarchy

=============================================================================
SCOPE
=============================================================================

The HTTP engine is synchronous and blocking. There is no TLS, no proxy
support and no HTTP/2. A Resource is not thread-safe; use one per thread.
A connection pool shared between threads must be guarded by the caller.

=============================================================================
"""

__version__ = "1.0.0"

from typing import Any, Union

from .client import (
    Client,
    ClientRegistry,
    NoClientError,
    ResourceStateError,
    UnsupportedOperation,
    registry,
)
from .clients import FileClient, HTTPClient, register_default_clients
from .config import ClientConfig
from .http import ConnectionPool, HTTPClientError, HTTPParserError
from .resource import Resource, ResponseMetadata
from .uri import URI, InvalidURIError

register_default_clients(registry)


def open(uri: Union[str, URI], **options: Any) -> Resource:
    """
    Create a Resource for uri and open it.

    Options are passed to the scheme's client (see HTTPClient.open and
    FileClient.open).

    Raises:
        TypeError: uri is not a string.
        InvalidURIError: uri is not an absolute URI.
        NoClientError: No client handles the URI's scheme.
    """
    return Resource(uri).open(**options)


__all__ = [
    "open",
    "Resource",
    "ResponseMetadata",
    "Client",
    "ClientRegistry",
    "registry",
    "HTTPClient",
    "FileClient",
    "ClientConfig",
    "ConnectionPool",
    "URI",
    "InvalidURIError",
    "NoClientError",
    "ResourceStateError",
    "UnsupportedOperation",
    "HTTPClientError",
    "HTTPParserError",
    "__version__",
]
