"""Fluent request builder.

A RequestBuilder accumulates everything needed for one HTTP request across
chained calls and executes it on ``end()`` or ``end_bytes()``:

    resp, body, errs = (
        RequestBuilder()
        .post("https://example.com/users")
        .content_type("json")
        .send_map_string('{"name": "Jerry"}')
        .end()
    )
    if errs:
        print(errs)

Setters never raise. Input that cannot be used is recorded in ``errors``
and the chain carries on; the terminal call returns those errors without
touching the network.
"""

from __future__ import annotations

import dataclasses
import logging
import ssl
from typing import Any, Iterable, Mapping

import httpx

from ._debug import logger as default_logger
from .client import Client, RedirectPolicy
from .config import TransportSettings
from .dispatcher import (
    BytesCallback,
    Dispatcher,
    StringCallback,
    default_header,
    replace_header,
)
from .encoding import (
    FORM_TYPE,
    JSON_TYPE,
    marshal_object,
    parse_form,
    parse_json_object,
    parse_json_strings,
)
from .models import (
    BodyError,
    ConfigError,
    Cookie,
    Method,
    ProxyError,
    QueryError,
    Response,
)

SHORT_CONTENT_TYPES: dict[str, str] = {
    "html": "text/html",
    "text": "text/plain",
    "json": JSON_TYPE,
    "xml": "application/xml",
    "urlencoded": FORM_TYPE,
    "form": FORM_TYPE,
    "form-data": FORM_TYPE,
    "stream": "application/octet-stream",
}


def _is_string_like(value: Any) -> bool:
    if isinstance(value, str):
        return True
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _query_text(value: Any) -> str | None:
    """Query string text for a decoded JSON scalar, None if it has none."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return str(value)
    return None


class RequestBuilder:
    """Mutable accumulator of one request's intent.

    Args:
        client: Client to execute with. Created lazily when omitted and kept
            across ``reset()``.
        debug: Whether to log wire-format dumps of requests and responses.
        logger: Logger receiving the dumps.
    """

    def __init__(
        self,
        client: Client | None = None,
        debug: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.debug = debug
        self.logger = logger or default_logger
        self._clear()

    def _clear(self) -> None:
        self.url = ""
        self.method: Method | None = None
        self.headers: dict[str, str] = {}
        self.data: dict[str, Any] = {}
        self.query_data: dict[str, list[str]] = {}
        self.raw_string = ""
        self.raw_bytes = b""
        self.cookies: list[Cookie] = []
        self.basic_auth: tuple[str, str] = ("", "")
        self.transport = TransportSettings()
        self.check_redirect: RedirectPolicy | None = None
        self.errors: list[Exception] = []

    def reset(self) -> "RequestBuilder":
        """Clear request state for another request, keeping the client."""
        self._clear()
        return self

    # -------------------------------------------------------------------------
    # Builder configuration
    # -------------------------------------------------------------------------

    def set_debug(self, enabled: bool) -> "RequestBuilder":
        """Enable or disable wire-format dumps."""
        self.debug = enabled
        return self

    def set_logger(self, logger: logging.Logger) -> "RequestBuilder":
        """Set the logger receiving debug dumps."""
        self.logger = logger
        return self

    def set_client(self, client: Client) -> "RequestBuilder":
        """Execute with ``client``, sharing its pools and cookie jar."""
        self.client = client
        return self

    # -------------------------------------------------------------------------
    # HTTP Methods
    # -------------------------------------------------------------------------

    def _target(self, method: Method, url: str) -> "RequestBuilder":
        self.method = method
        self.url = url
        return self

    def get(self, url: str) -> "RequestBuilder":
        return self._target(Method.GET, url)

    def post(self, url: str) -> "RequestBuilder":
        return self._target(Method.POST, url)

    def put(self, url: str) -> "RequestBuilder":
        return self._target(Method.PUT, url)

    def delete(self, url: str) -> "RequestBuilder":
        return self._target(Method.DELETE, url)

    def head(self, url: str) -> "RequestBuilder":
        return self._target(Method.HEAD, url)

    def patch(self, url: str) -> "RequestBuilder":
        return self._target(Method.PATCH, url)

    # -------------------------------------------------------------------------
    # Headers, auth and cookies
    # -------------------------------------------------------------------------

    def set_header(self, name: str, value: str) -> "RequestBuilder":
        """Set a header, replacing any previous value."""
        replace_header(self.headers, name, value)
        return self

    def set_headers(self, headers: Mapping[str, str]) -> "RequestBuilder":
        """Set several headers at once."""
        for name, value in headers.items():
            replace_header(self.headers, name, value)
        return self

    def set_basic_auth(self, username: str, password: str) -> "RequestBuilder":
        self.basic_auth = (username, password)
        return self

    def add_cookie(self, cookie: Cookie) -> "RequestBuilder":
        self.cookies.append(cookie)
        return self

    def add_cookies(self, cookies: Iterable[Cookie]) -> "RequestBuilder":
        self.cookies.extend(cookies)
        return self

    def content_type(self, type_name: str) -> "RequestBuilder":
        """Set Content-Type from a short alias or a full media type.

        Aliases: html, text, json, xml, urlencoded, form, form-data, stream.
        Anything else is used verbatim.
        """
        replace_header(
            self.headers, "Content-Type", SHORT_CONTENT_TYPES.get(type_name, type_name)
        )
        return self

    # -------------------------------------------------------------------------
    # Query string
    # -------------------------------------------------------------------------

    def query(self, content: Any) -> "RequestBuilder":
        """Add query parameters from a JSON or form string, or an object.

        Strings are tried as a flat JSON object first, then as
        ``key=value&...`` pairs. Mappings, dataclasses and plain objects are
        flattened to string pairs.

        Example:
            builder.get("/search").query("query=bicycle&size=50x50").query('{"weight": "20kg"}')
        """
        if isinstance(content, str):
            return self._query_string(content)
        if isinstance(content, (bytes, bytearray, int, float, bool)) or content is None:
            self.errors.append(
                QueryError(f"unsupported query content type {type(content).__name__}")
            )
            return self
        return self._query_struct(content)

    def _query_string(self, content: str) -> "RequestBuilder":
        result = parse_json_strings(content)
        if not result.ok:
            result = parse_form(content)
            if not result.ok:
                self.errors.append(
                    QueryError(str(result.error), original_error=result.error)
                )
                return self
            for key, value in result.value:
                self.param(key, value)
            return self
        for key, value in result.value.items():
            self.param(key, str(value))
        return self

    def _query_struct(self, content: Any) -> "RequestBuilder":
        result = marshal_object(content)
        if not result.ok:
            self.errors.append(QueryError(str(result.error), original_error=result.error))
            return self
        for key, value in result.value.items():
            if value is None:
                continue
            texts = [_query_text(v) for v in (value if isinstance(value, list) else [value])]
            if None in texts:
                self.errors.append(QueryError(f"cannot flatten query value for {key!r}"))
                continue
            for text in texts:
                self.param(key, text)
        return self

    def param(self, key: str, value: str) -> "RequestBuilder":
        """Add one query pair verbatim.

        Useful for values a query string cannot carry, such as ``f1;f2``.
        """
        self.query_data.setdefault(key, []).append(value)
        return self

    # -------------------------------------------------------------------------
    # Body
    # -------------------------------------------------------------------------

    def _merge_data(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, widening string values to a list.

        The newest value comes first in the widened list.
        """
        old = self.data.get(key)
        if key in self.data and _is_string_like(old) and _is_string_like(value):
            new = value if isinstance(value, list) else [value]
            prior = old if isinstance(old, list) else [old]
            self.data[key] = [*new, *prior]
        else:
            self.data[key] = value

    def send(self, content: Any) -> "RequestBuilder":
        """Set body content, choosing the setter from the content's type."""
        if isinstance(content, (bytes, bytearray)):
            return self.send_raw_bytes(bytes(content))
        if isinstance(content, str):
            return self.send_map_string(content)
        return self.send_struct(content)

    def send_map_string(self, content: str) -> "RequestBuilder":
        """Set body content from a JSON object, form pairs or raw text.

        A JSON object is merged into the structured data. Otherwise form
        pairs are merged and the content type defaults to form encoding.
        Content that is neither is sent verbatim.
        """
        result = parse_json_object(content)
        if result.ok:
            for key, value in result.value.items():
                self._merge_data(key, value)
            return self

        result = parse_form(content)
        if result.ok:
            for key, value in result.value:
                self._merge_data(key, value)
            default_header(self.headers, "Content-Type", FORM_TYPE)
            return self

        self.raw_string = content
        return self

    def send_struct(self, content: Any) -> "RequestBuilder":
        """Merge a mapping, dataclass or object into the structured data."""
        result = marshal_object(content)
        if not result.ok:
            self.errors.append(BodyError(str(result.error), original_error=result.error))
            return self
        for key, value in result.value.items():
            self._merge_data(key, value)
        return self

    def send_raw_string(self, content: str) -> "RequestBuilder":
        self.raw_string = content
        return self

    def send_raw_bytes(self, content: bytes) -> "RequestBuilder":
        """Send ``content`` verbatim, defaulting to application/octet-stream."""
        default_header(self.headers, "Content-Type", "application/octet-stream")
        self.raw_bytes = content
        return self

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _update_transport(self, **changes: Any) -> None:
        try:
            self.transport = dataclasses.replace(self.transport, **changes)
        except (TypeError, ValueError) as e:
            self.errors.append(ConfigError(str(e), original_error=e))

    def timeout(self, seconds: float) -> "RequestBuilder":
        """Bound connection setup and each read/write by ``seconds``."""
        self._update_transport(timeout=seconds)
        return self

    def tls_client_config(self, verify: bool | ssl.SSLContext) -> "RequestBuilder":
        """Set TLS verification: a flag or a prepared SSL context.

        Example:
            builder.tls_client_config(False).get("https://self-signed.example")
        """
        self._update_transport(verify=verify)
        return self

    def proxy(self, proxy_url: str) -> "RequestBuilder":
        """Route requests through ``proxy_url``; an empty string clears it."""
        if proxy_url == "":
            self._update_transport(proxy=None)
            return self
        try:
            httpx.Proxy(proxy_url)
        except (httpx.InvalidURL, ValueError) as e:
            self.errors.append(ProxyError(str(e), original_error=e))
            return self
        self._update_transport(proxy=proxy_url)
        return self

    def redirect_policy(self, policy: RedirectPolicy) -> "RequestBuilder":
        """Decide on each redirect with ``policy(pending, via)``.

        The policy returns None to follow the redirect or an exception to
        stop. It is installed on whichever client executes the request.
        """
        self.check_redirect = policy
        if self.client is not None:
            self.client.check_redirect = policy
        return self

    # -------------------------------------------------------------------------
    # Terminal calls
    # -------------------------------------------------------------------------

    def end(
        self, callback: StringCallback | None = None
    ) -> tuple[Response | None, str | None, list[Exception]]:
        """Execute the request, returning the body as text."""
        return Dispatcher().execute_text(self, callback)

    def end_bytes(
        self, callback: BytesCallback | None = None
    ) -> tuple[Response | None, bytes | None, list[Exception]]:
        """Execute the request, returning the body as bytes."""
        return Dispatcher().execute(self, callback)


def new(**kwargs: Any) -> RequestBuilder:
    """Create a RequestBuilder. Keyword arguments go to its constructor."""
    return RequestBuilder(**kwargs)

