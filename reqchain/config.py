"""Transport settings carried by a request chain."""

from __future__ import annotations

import ssl
from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class TransportSettings:
    """Settings copied into the transport used at execution.

    Instances are immutable and hashable so a Client can keep one
    connection pool per distinct settings value.

    Attributes:
        timeout: Connect and read/write timeout in seconds. None disables it.
        verify: TLS verification flag or a prepared SSL context.
        proxy: Proxy URL (e.g., "http://host:port"). None means no proxy.
        max_redirects: Redirect hops allowed when no custom policy is set.
    """

    timeout: float | None = None
    verify: bool | ssl.SSLContext = True
    proxy: str | None = None
    max_redirects: int = 10

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")
        if self.proxy == "":
            raise ValueError("proxy must be a URL or None")

    def httpx_timeout(self) -> httpx.Timeout:
        """Timeout applied to connect, read, write and pool acquisition."""
        return httpx.Timeout(self.timeout)

    def build_transport(self) -> httpx.HTTPTransport:
        """Create a fresh httpx transport for these settings."""
        return httpx.HTTPTransport(
            verify=self.verify,
            proxy=self.proxy,
            http2=False,
        )
