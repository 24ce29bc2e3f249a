"""Terminal execution of a request chain."""

from __future__ import annotations

import base64
import dataclasses
from typing import TYPE_CHECKING, Callable
from urllib.parse import urlsplit, urlunsplit

import httpx

from ._debug import DebugOutput
from .client import Client
from .encoding import FORM_TYPE, JSON_TYPE, encode_form, encode_json, merge_query
from .models import BodyError, Cookie, MethodError, Response, TransportError

if TYPE_CHECKING:
    from .builder import RequestBuilder

BytesCallback = Callable[[Response, bytes, "list[Exception]"], None]
StringCallback = Callable[[Response, str, "list[Exception]"], None]


def _media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


def find_header(headers: dict[str, str], name: str) -> str | None:
    """Key under which ``name`` is stored, compared case-insensitively."""
    wanted = name.lower()
    for key in headers:
        if key.lower() == wanted:
            return key
    return None


def replace_header(headers: dict[str, str], name: str, value: str) -> None:
    """Set ``name``, dropping any entry that differs only in case."""
    existing = find_header(headers, name)
    if existing is not None:
        del headers[existing]
    headers[name] = value


def default_header(headers: dict[str, str], name: str, value: str) -> str:
    """Set ``name`` unless some casing of it is present. Returns the value in effect."""
    existing = find_header(headers, name)
    if existing is not None:
        return headers[existing]
    headers[name] = value
    return value


class Dispatcher:
    """Resolves and executes exactly one request from a RequestBuilder.

    The dispatcher keeps no reference to the builder after ``execute``
    returns. Construction errors recorded on the builder pre-empt the
    network call entirely.
    """

    def execute(
        self,
        builder: "RequestBuilder",
        callback: BytesCallback | None = None,
    ) -> tuple[Response | None, bytes | None, list[Exception]]:
        """Execute the request described by ``builder``.

        Args:
            builder: Populated request builder.
            callback: Called with a copy of the response, the body and an
                empty error list before this method returns. Only called
                when a response was received.

        Returns:
            ``(response, body, errors)``. On any construction or transport
            error the response and body are None and the errors non-empty.
        """
        if builder.method is None:
            builder.errors.append(
                MethodError("no HTTP method set; call get(), post() or another method first")
            )
        if builder.errors:
            return None, None, self._drain(builder)

        headers = dict(builder.headers)
        content_type = self.resolve_content_type(headers)
        try:
            content = self.resolve_body(builder, content_type)
        except UnicodeEncodeError as e:
            builder.errors.append(
                BodyError(f"body cannot be encoded for {content_type}: {e}", original_error=e)
            )
            return None, None, self._drain(builder)
        try:
            url = self.resolve_url(builder.url, builder.query_data)
        except ValueError as e:
            builder.errors.append(
                TransportError(f"invalid URL {builder.url!r}: {e}", original_error=e)
            )
            return None, None, self._drain(builder)
        if builder.basic_auth != ("", ""):
            replace_header(headers, "Authorization", self.basic_auth_header(*builder.basic_auth))

        client = self.resolve_client(builder)
        settings = builder.transport
        debug = DebugOutput(enabled=builder.debug, sink=builder.logger)

        try:
            request = client.build_request(
                builder.method.value, url, headers=headers, content=content,
                settings=settings,
            )
            self.attach_cookies(request.headers, builder.cookies)
            debug.log_request(request)
            raw = client.send(request, settings)
        except TransportError as e:
            builder.logger.warning("%s %s failed: %s", builder.method.value, url, e)
            builder.errors.append(e)
            return None, None, self._drain(builder)

        debug.log_response(raw)
        response = Response.from_httpx(raw)
        body = response.content

        if callback is not None:
            callback(dataclasses.replace(response, headers=dict(response.headers)), body, [])
        return response, body, []

    def execute_text(
        self,
        builder: "RequestBuilder",
        callback: StringCallback | None = None,
    ) -> tuple[Response | None, str | None, list[Exception]]:
        """Same as ``execute`` with the body decoded as UTF-8 text."""
        bytes_callback: BytesCallback | None = None
        if callback is not None:
            def bytes_callback(resp: Response, body: bytes, errs: list[Exception]) -> None:
                callback(resp, body.decode("utf-8", errors="replace"), errs)

        response, body, errors = self.execute(builder, bytes_callback)
        if body is None:
            return response, None, errors
        return response, body.decode("utf-8", errors="replace"), errors

    # -------------------------------------------------------------------------
    # Resolution steps
    # -------------------------------------------------------------------------

    @staticmethod
    def resolve_content_type(headers: dict[str, str]) -> str:
        """Return the Content-Type header, defaulting it to JSON when unset."""
        return default_header(headers, "Content-Type", JSON_TYPE)

    @staticmethod
    def resolve_body(builder: "RequestBuilder", content_type: str) -> bytes | None:
        """Pick the body representation by method and content type.

        POST, PUT and PATCH use, in order: structured data as JSON, structured
        data as a form, raw bytes, raw string. Other methods send no body.

        Raises:
            UnicodeEncodeError: If form or raw text holds unencodable
                characters such as lone surrogates.
        """
        if builder.method is None or not builder.method.has_body:
            return None
        media_type = _media_type(content_type)
        if media_type == JSON_TYPE and builder.data:
            return encode_json(builder.data).encode("utf-8")
        if media_type == FORM_TYPE:
            return encode_form(builder.data).encode("ascii")
        if builder.raw_bytes:
            return builder.raw_bytes
        return builder.raw_string.encode("utf-8")

    @staticmethod
    def resolve_url(url: str, query_data: dict[str, list[str]]) -> str:
        """Merge query parameters into the URL's existing query string."""
        parts = urlsplit(url)
        return urlunsplit(parts._replace(query=merge_query(parts.query, query_data)))

    @staticmethod
    def basic_auth_header(username: str, password: str) -> str:
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"

    @staticmethod
    def attach_cookies(headers: httpx.Headers, cookies: list[Cookie]) -> None:
        """Prepend request cookies to any Cookie header taken from the jar."""
        if not cookies:
            return
        value = "; ".join(cookie.header_value() for cookie in cookies)
        existing = headers.get("Cookie")
        headers["Cookie"] = f"{value}; {existing}" if existing else value

    @staticmethod
    def resolve_client(builder: "RequestBuilder") -> Client:
        """Return the builder's client, creating and caching a default one.

        A redirect policy set on the builder is installed on the resolved
        client here, so swapping clients after setting it does not drop it.
        """
        if builder.client is None:
            builder.client = Client()
        if builder.check_redirect is not None:
            builder.client.check_redirect = builder.check_redirect
        return builder.client

    @staticmethod
    def _drain(builder: "RequestBuilder") -> list[Exception]:
        errors = builder.errors
        builder.errors = []
        return errors
