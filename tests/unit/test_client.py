"""
Unit tests for the Client base class and the scheme registry.
"""

import pytest

from retrieve.client import Client, ClientRegistry, UnsupportedOperation, registry
from retrieve.clients import FileClient, HTTPClient
from retrieve.resource import Resource

from conftest import MemoryClient, WritableMemoryClient


class TestClientRegistry:
    """Tests for register() and resolve()."""

    def test_defaults_registered(self):
        """Test that http and file are available out of the box."""
        assert registry.resolve("http") is HTTPClient
        assert registry.resolve("file") is FileClient
        assert "http" in registry

    def test_register_and_resolve(self):
        """Test registering a new scheme."""
        clients = ClientRegistry()
        clients.register(MemoryClient)

        assert clients.resolve("memory") is MemoryClient
        assert clients.resolve("unknown") is None
        assert list(clients) == [MemoryClient]
        assert len(clients) == 1

    def test_register_as_decorator(self):
        """Test that register() returns the class."""
        clients = ClientRegistry()

        @clients.register
        class DecoratedClient(MemoryClient):
            scheme = "decorated"

        assert clients.resolve("decorated") is DecoratedClient

    def test_register_twice_is_noop(self):
        """Test that re-registering the same class is allowed."""
        clients = ClientRegistry()
        clients.register(MemoryClient)
        clients.register(MemoryClient)

        assert len(clients) == 1

    def test_scheme_conflict(self):
        """Test that a second class for the same scheme is rejected."""
        class OtherMemoryClient(MemoryClient):
            scheme = "memory"

        clients = ClientRegistry()
        clients.register(MemoryClient)

        with pytest.raises(ValueError, match="already handled"):
            clients.register(OtherMemoryClient)

    def test_not_a_client(self):
        """Test that arbitrary classes are rejected."""
        with pytest.raises(TypeError):
            ClientRegistry().register(dict)

    def test_missing_operation(self):
        """Test that a client with an abstract required method is rejected."""
        class IncompleteClient(Client):
            scheme = "incomplete"

            def open(self, **options):
                return self.resource

            def read(self, n=None):
                return b""

        with pytest.raises(TypeError, match="close"):
            ClientRegistry().register(IncompleteClient)

    @pytest.mark.parametrize("scheme,error", [
        (42, TypeError),
        ("bad:scheme", ValueError),
        ("", ValueError),
    ])
    def test_invalid_scheme(self, scheme, error):
        """Test scheme validation."""
        BadClient = type("BadClient", (MemoryClient,), {"scheme": scheme})

        with pytest.raises(error):
            ClientRegistry().register(BadClient)

    def test_resolve_non_string(self):
        """Test that resolve() insists on a string."""
        with pytest.raises(TypeError):
            registry.resolve(None)


class TestClient:
    """Tests for the Client base class."""

    def test_requires_resource(self):
        """Test that clients are bound to Resource objects only."""
        with pytest.raises(TypeError):
            MemoryClient("http://example.com/")

    def test_capabilities(self):
        """Test that write shows up only when overridden."""
        assert MemoryClient.capabilities() == {"open", "read", "close"}
        assert "write" in WritableMemoryClient.capabilities()
        assert "write" in FileClient.capabilities()
        assert "write" not in HTTPClient.capabilities()

    def test_default_write_unsupported(self):
        """Test that the base write() raises."""
        clients = ClientRegistry()
        clients.register(MemoryClient)
        client = MemoryClient(Resource("memory:thing", client_registry=clients))

        with pytest.raises(UnsupportedOperation):
            client.write(b"data")
