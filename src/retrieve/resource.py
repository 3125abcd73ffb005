"""
=============================================================================
RESOURCES
=============================================================================

A Resource is the caller's handle on "the thing at this URI". It knows its
URI, carries whatever metadata the client reported, and forwards the I/O
operations to exactly one bound client:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       RESOURCE LIFECYCLE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Resource(uri)        uri parsed, no client yet                    │
    │        │                                                             │
    │   .open(**options)     client resolved by scheme and bound,         │
    │        │               client.open() fills in metadata              │
    │        │                                                             │
    │   .read() / .write()   forwarded to the client                      │
    │        │                                                             │
    │   .close()             client releases socket / file                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Two URIs are tracked. `uri` follows every redirect. `permanent_uri` only
moves through permanent (301) redirects; it is what should be stored.

Used as a context manager, a resource closes itself:

    with retrieve.open("http://example.com/") as resource:
        body = resource.read()

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .client import Client, ClientRegistry, NoClientError, OPERATIONS, UnsupportedOperation, registry
from .uri import URI


@dataclass(frozen=True)
class ResponseMetadata:
    """Read-only view of what the client reported about the last response."""

    http_version: Optional[str] = None
    status: Optional[str] = None
    reason: Optional[str] = None
    headers: Any = None


class Resource:
    """
    A URI plus the client that services it.

    Attributes:
        uri: Current URI; updated when a redirect is followed.
        permanent_uri: Durable identity; updated only by leading 301s.
        metadata: Filled in by the client (status, headers...). Treat it
                  as read-only.
    """

    def __init__(self, uri: Union[str, URI], client_registry: Optional[ClientRegistry] = None):
        self.uri = URI.parse(uri)
        self.permanent_uri = self.uri
        self.metadata: Dict[str, Any] = {}
        self._registry = client_registry or registry
        self._client: Optional[Client] = None

    # =========================================================================
    # CLIENT BINDING
    # =========================================================================

    @property
    def client(self) -> Client:
        """
        The client for this resource's scheme, created on first access.

        Raises:
            NoClientError: No client is registered for the scheme.
        """
        if self._client is None:
            client_class = self._registry.resolve(self.uri.scheme)
            if client_class is None:
                raise NoClientError(f"No client registered for scheme '{self.uri.scheme}'.")
            self._client = client_class(self)
        return self._client

    def supports(self, operation: str) -> bool:
        """True if the bound client provides `operation`."""
        if operation not in OPERATIONS:
            return False
        return operation in type(self.client).capabilities()

    # =========================================================================
    # I/O OPERATIONS (forwarded to the client)
    # =========================================================================

    def open(self, **options: Any) -> "Resource":
        """Open the resource with client-specific options; returns self."""
        self.client.open(**options)
        return self

    def read(self, n: Optional[int] = None) -> bytes:
        return self.client.read(n)

    def write(self, data: bytes) -> int:
        if not self.supports("write"):
            raise UnsupportedOperation(
                f"Resource with scheme '{self.uri.scheme}' does not support write."
            )
        return self.client.write(data)

    def close(self) -> None:
        self.client.close()

    @property
    def response(self) -> ResponseMetadata:
        """
        Sugar over metadata, primarily for HTTP:
        resource.response.status == resource.metadata["status"].
        """
        return ResponseMetadata(
            http_version=self.metadata.get("http_version"),
            status=self.metadata.get("status"),
            reason=self.metadata.get("reason"),
            headers=self.metadata.get("headers"),
        )

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self) -> "Resource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"<Resource:{id(self):#x} URI:{self.uri}>"
