"""
=============================================================================
CLIENTS AND THE CLIENT REGISTRY
=============================================================================

A client handles one URI scheme. The registry maps scheme strings to
client classes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SCHEME DISPATCH                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Resource("http://example.com/")                                   │
    │        │                                                             │
    │        ▼  registry.resolve("http")                                  │
    │   ┌─────────────┬──────────────┐                                    │
    │   │ "http"      │ HTTPClient   │ ◄── match                          │
    │   │ "file"      │ FileClient   │                                    │
    │   └─────────────┴──────────────┘                                    │
    │        │                                                             │
    │        ▼  HTTPClient(resource)                                      │
    │   resource.client                                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Registration is explicit (registry.register(MyClient)); nothing happens
just because a class subclasses Client. A client that lacks a valid scheme
or one of open/read/close is rejected WHEN IT IS REGISTERED, not the first
time someone tries to use it.

=============================================================================
CAPABILITIES
=============================================================================

Every client supports open, read and close. write is optional: the base
class raises UnsupportedOperation, and a client that can write overrides
it. capabilities() reports which of the four a client class provides.

=============================================================================
"""

import inspect
import io
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, FrozenSet, Iterator, List, Optional, Type

if TYPE_CHECKING:
    from .resource import Resource


SCHEME_PATTERN = re.compile(r"^[^:/?#]+$")

REQUIRED_OPERATIONS = ("open", "read", "close")
OPERATIONS = REQUIRED_OPERATIONS + ("write",)


class NoClientError(LookupError):
    """No registered client handles the requested URI scheme."""


class UnsupportedOperation(io.UnsupportedOperation):
    """The resource's client does not provide the requested operation."""


class ResourceStateError(OSError):
    """
    An operation was attempted in the wrong state, e.g. reading a resource
    that was never opened or closing one twice.
    """


class Client(ABC):
    """
    Base class for scheme clients.

    Subclasses set `scheme` and implement open(), read() and close().
    read() and open() should fill in the resource's metadata. State that
    lives between open and close belongs on the client, not the resource.

    Attributes:
        resource: The Resource this client operates on.
    """

    scheme: ClassVar[str]

    def __init__(self, resource: "Resource"):
        from .resource import Resource

        if not isinstance(resource, Resource):
            raise TypeError(f"Expected Resource, got {type(resource).__name__}.")
        self.resource = resource

    @abstractmethod
    def open(self, **options: Any) -> "Resource":
        """Open the resource and return it."""

    @abstractmethod
    def read(self, n: Optional[int] = None) -> bytes:
        """Read up to n bytes, or everything remaining if n is None."""

    @abstractmethod
    def close(self) -> None:
        """Release whatever open() acquired."""

    def write(self, data: bytes) -> int:
        raise UnsupportedOperation(
            f"{type(self).__name__} does not support write."
        )

    @classmethod
    def capabilities(cls) -> FrozenSet[str]:
        """Names of the operations this client class implements."""
        supported = set(REQUIRED_OPERATIONS)
        if cls.write is not Client.write:
            supported.add("write")
        return frozenset(supported)


class ClientRegistry:
    """
    Process-wide, append-only list of scheme clients.

    Lookups are a linear scan; there are only ever a handful of clients.
    """

    def __init__(self):
        self._clients: List[Type[Client]] = []

    def register(self, client_class: Type[Client]) -> Type[Client]:
        """
        Register a client class. Returns it, so this works as a decorator.

        Raises:
            TypeError: Not a Client subclass, non-string scheme, or a
                       required method is missing or abstract.
            ValueError: Scheme is not a valid URI scheme, or another class
                        already handles it.
        """
        if not inspect.isclass(client_class) or not issubclass(client_class, Client):
            raise TypeError(f"Expected a Client subclass, got {client_class!r}.")

        scheme = getattr(client_class, "scheme", None)
        if scheme is None:
            raise TypeError(f"{client_class.__name__} must declare a scheme.")
        if not isinstance(scheme, str):
            raise TypeError(f"Can't convert {type(scheme).__name__} into String.")
        if not SCHEME_PATTERN.match(scheme):
            raise ValueError(f"Invalid scheme: '{scheme}'")

        abstract = getattr(client_class, "__abstractmethods__", frozenset())
        for name in REQUIRED_OPERATIONS:
            if not callable(getattr(client_class, name, None)) or name in abstract:
                raise TypeError(f"Client instance must implement {name}().")

        existing = self.resolve(scheme)
        if existing is client_class:
            return client_class
        if existing is not None:
            raise ValueError(
                f"Scheme '{scheme}' is already handled by {existing.__name__}."
            )

        self._clients.append(client_class)
        return client_class

    def resolve(self, scheme: str) -> Optional[Type[Client]]:
        """
        Find the client for a scheme.

        Returns:
            The client class, or None if no client handles the scheme.
        """
        if not isinstance(scheme, str):
            raise TypeError(f"Can't convert {type(scheme).__name__} into String.")
        for client_class in self._clients:
            if client_class.scheme == scheme:
                return client_class
        return None

    def __contains__(self, scheme: object) -> bool:
        return isinstance(scheme, str) and self.resolve(scheme) is not None

    def __iter__(self) -> Iterator[Type[Client]]:
        return iter(list(self._clients))

    def __len__(self) -> int:
        return len(self._clients)


registry = ClientRegistry()
