"""Response, cookie and method models plus the exception hierarchy."""

from __future__ import annotations

import io
import json as json_module
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx


class Method(str, Enum):
    """HTTP methods a request chain can be terminated with."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    PATCH = "PATCH"

    @property
    def has_body(self) -> bool:
        """Whether the dispatcher attaches a body for this method."""
        return self in (Method.POST, Method.PUT, Method.PATCH)


@dataclass
class Cookie:
    """Cookie attached to an outgoing request.

    Attributes:
        name: Cookie name.
        value: Cookie value.
        domain: Cookie domain.
        path: Cookie path.
        expires: Expiration timestamp (None for session cookie).
        secure: Whether cookie requires HTTPS.
        http_only: Whether cookie is HTTP-only.
    """

    name: str
    value: str
    domain: str = ""
    path: str = "/"
    expires: float | None = None
    secure: bool = False
    http_only: bool = False

    def header_value(self) -> str:
        """Render as a ``name=value`` pair for the Cookie header."""
        return f"{self.name}={self.value}"


@dataclass
class Response:
    """HTTP response with its body fully read into memory.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers.
        content: Raw response content as bytes.
        url: Final URL after redirects.
        reason_phrase: Status line reason phrase.
        http_version: Protocol version reported by the transport.
        cookies: Cookies set by the response.
        elapsed: Request duration in seconds.
        request: The request that produced this response.
        history: Redirect responses that preceded this one.
    """

    status_code: int
    headers: dict[str, str]
    content: bytes
    url: str
    reason_phrase: str = ""
    http_version: str = "HTTP/1.1"
    cookies: dict[str, str] = field(default_factory=dict)
    elapsed: float = 0.0
    request: httpx.Request | None = None
    history: list["Response"] = field(default_factory=list)

    @classmethod
    def from_httpx(cls, resp: httpx.Response) -> "Response":
        """Convert a read httpx.Response into our model."""
        return cls(
            status_code=resp.status_code,
            headers=dict(resp.headers),
            content=resp.content,
            url=str(resp.url),
            reason_phrase=resp.reason_phrase,
            http_version=resp.http_version,
            cookies={c.name: c.value for c in resp.cookies.jar},
            elapsed=resp.elapsed.total_seconds() if _has_elapsed(resp) else 0.0,
            request=resp.request,
            history=[cls.from_httpx(r) for r in resp.history],
        )

    @property
    def body(self) -> io.BytesIO:
        """Fresh readable stream over the content, independent per access."""
        return io.BytesIO(self.content)

    @property
    def text(self) -> str:
        """Decode content as UTF-8 text."""
        return self.content.decode("utf-8", errors="replace")

    @property
    def ok(self) -> bool:
        """Check if status code indicates success (2xx)."""
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Parse content as JSON."""
        return json_module.loads(self.content)

    def raise_for_status(self) -> None:
        """Raise HTTPStatusError if status code indicates an error."""
        if not self.ok:
            raise HTTPStatusError(
                f"HTTP {self.status_code} for {self.url}",
                response=self,
            )


def _has_elapsed(resp: httpx.Response) -> bool:
    # elapsed is only set once the response stream has been closed
    try:
        resp.elapsed
    except RuntimeError:
        return False
    return True


class ReqChainError(Exception):
    """Base exception for reqchain errors."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class QueryError(ReqChainError):
    """Query content could not be parsed or flattened."""
    pass


class BodyError(ReqChainError):
    """Body content could not be marshalled into structured data."""
    pass


class ProxyError(ReqChainError):
    """Proxy URL could not be parsed."""
    pass


class ConfigError(ReqChainError):
    """Transport setting rejected by validation."""
    pass


class MethodError(ReqChainError):
    """Request chain was terminated without a usable method."""
    pass


class TransportError(ReqChainError):
    """Error during HTTP transport (connection, timeout, TLS, redirects)."""
    pass


class RedirectError(TransportError):
    """A redirect was refused by the redirect policy."""

    def __init__(
        self,
        message: str,
        request: httpx.Request | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message, original_error=original_error)
        self.request = request


class HTTPStatusError(ReqChainError):
    """HTTP error response (4xx, 5xx status codes)."""

    def __init__(self, message: str, response: Response | None = None):
        super().__init__(message)
        self.response = response
