"""
Built-in scheme clients.

    http  → HTTPClient  (HTTP/1.1 over a raw socket)
    file  → FileClient  (local files)
"""

from ..client import ClientRegistry
from .file import FileClient
from .http import HTTPClient


def register_default_clients(client_registry: ClientRegistry) -> None:
    """Register every built-in client with `client_registry`."""
    client_registry.register(HTTPClient)
    client_registry.register(FileClient)


__all__ = ["FileClient", "HTTPClient", "register_default_clients"]
