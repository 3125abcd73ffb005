"""
=============================================================================
CLIENT CONFIGURATION
=============================================================================

Defaults for the HTTP client, in one typed place.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Options passed to open()                                       │
    │      └── retrieve.open(uri, timeout=5)                              │
    │                                                                      │
    │   2. An explicit ClientConfig                                       │
    │      └── HTTPClient(resource, config=ClientConfig(timeout=5))       │
    │                                                                      │
    │   3. Environment variables                                          │
    │      └── RETRIEVE_TIMEOUT=5 python app.py                           │
    │                                                                      │
    │   4. Defaults (defined here)                                        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
import sys
from dataclasses import dataclass, field
from typing import Optional

from . import __version__


def default_user_agent() -> str:
    return f"retrieve/{__version__} ({sys.platform})"


@dataclass
class ClientConfig:
    """
    HTTP client settings.

    =========================================================================
    FIELDS
    =========================================================================

    timeout        Seconds to wait for the first byte of a response, also
                   used as the socket timeout.
    read_size      Largest single read from the socket (16 KB).
    max_redirects  Redirects followed per open() before giving up.
    user_agent     Sent as the User-Agent header.

    =========================================================================
    """

    timeout: Optional[float] = 20.0
    """
    None = block forever (only sensible in tests against local servers).
    """

    read_size: int = 16 * 1024

    max_redirects: int = 20
    """
    A misbehaving server can redirect forever; this bounds the chain.
    """

    user_agent: str = field(default_factory=default_user_agent)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Create configuration from environment variables.

        RETRIEVE_TIMEOUT        Response timeout in seconds (default: 20)
        RETRIEVE_READ_SIZE      Socket read size in bytes (default: 16384)
        RETRIEVE_MAX_REDIRECTS  Redirect limit (default: 20)
        RETRIEVE_USER_AGENT     User-Agent header (default: retrieve/<version>)
        """
        return cls(
            timeout=float(os.getenv("RETRIEVE_TIMEOUT", "20")),
            read_size=int(os.getenv("RETRIEVE_READ_SIZE", str(16 * 1024))),
            max_redirects=int(os.getenv("RETRIEVE_MAX_REDIRECTS", "20")),
            user_agent=os.getenv("RETRIEVE_USER_AGENT") or default_user_agent(),
        )

    def validate(self) -> None:
        """Fail fast on nonsensical values."""
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.read_size < 1:
            raise ValueError("read_size must be >= 1")

        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")
