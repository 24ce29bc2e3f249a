"""Debug mode: wire-format request/response dumps."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger("reqchain")


def _header_lines(headers: httpx.Headers) -> list[str]:
    # raw keeps the original header name casing
    return [f"{name.decode('latin-1')}: {value.decode('latin-1')}" for name, value in headers.raw]


def dump_request(request: httpx.Request) -> str:
    """Render a request as it would appear on the wire.

    Args:
        request: Request to render. Its body must already be in memory.

    Returns:
        Request line, headers and body separated by CRLF.
    """
    target = request.url.raw_path.decode("ascii")
    lines = [f"{request.method} {target} HTTP/1.1"]
    if "host" not in request.headers:
        lines.append(f"Host: {request.url.netloc.decode('ascii')}")
    lines.extend(_header_lines(request.headers))
    head = "\r\n".join(lines) + "\r\n\r\n"
    return head + request.content.decode("utf-8", errors="replace")


def dump_response(response: httpx.Response) -> str:
    """Render a response as it was received.

    Args:
        response: Response whose content has been read.

    Returns:
        Status line, headers and body separated by CRLF.
    """
    lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}"]
    lines.extend(_header_lines(response.headers))
    head = "\r\n".join(lines) + "\r\n\r\n"
    return head + response.content.decode("utf-8", errors="replace")


class DebugOutput:
    """Handles debug dump formatting and dispatch to a logger."""

    def __init__(
        self,
        enabled: bool = False,
        sink: logging.Logger | None = None,
    ):
        """Initialize debug output handler.

        Args:
            enabled: Whether dumps are produced.
            sink: Logger receiving the dumps (defaults to "reqchain").
        """
        self.enabled = enabled
        self.sink = sink or logger

    def log_request(self, request: httpx.Request) -> None:
        """Dump an outbound request. Dump failures are logged, not raised."""
        if not self.enabled:
            return
        try:
            dump = dump_request(request)
        except (httpx.HTTPError, RuntimeError, UnicodeError) as e:
            self.sink.error("[http] Error: %s", e)
            return
        self.sink.debug("[http] HTTP Request: %s", dump)

    def log_response(self, response: httpx.Response) -> None:
        """Dump an inbound response. Dump failures are logged, not raised."""
        if not self.enabled:
            return
        try:
            dump = dump_response(response)
        except (httpx.HTTPError, RuntimeError, UnicodeError) as e:
            self.sink.error("[http] Error: %s", e)
            return
        self.sink.debug("[http] HTTP Response: %s", dump)
