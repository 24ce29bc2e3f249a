"""Fluent HTTP request builder with deferred error collection.

This package builds one HTTP request across chained calls and executes it
on a terminal call, with:

- JSON, form or raw body content sniffed from plain strings
- Query strings merged from JSON, form pairs or objects
- Construction errors collected along the chain, never raised
- Shareable clients with a cookie jar and per-settings connection pools
- Redirect policies, proxies, TLS settings and timeouts per chain
- Wire-format request/response dumps in debug mode

Basic usage:

    import reqchain

    resp, body, errs = reqchain.new().get("https://example.com").end()
    if errs:
        print(errs)
    print(resp.status_code, body)

    # JSON body from a string, numbers kept exactly
    resp, body, errs = (
        reqchain.new()
        .post("https://example.com/users")
        .content_type("json")
        .send_map_string('{"name": "Jerry", "id": 12345678901234567890}')
        .end()
    )

    # Query strings merged across calls
    reqchain.new().get("https://example.com/search").query(
        "query=bicycle&size=50x50"
    ).query('{"weight": "20kg"}').end()

    # Shared client, reused across requests
    client = reqchain.Client()
    builder = reqchain.new(client=client)
    builder.get("https://example.com/login").end()
    builder.reset().get("https://example.com/dashboard").end()
"""

from .builder import SHORT_CONTENT_TYPES, RequestBuilder, new
from .client import Client, RedirectPolicy, default_redirect_policy
from .config import TransportSettings
from .dispatcher import Dispatcher
from .encoding import JsonNumber, ParseResult
from .models import (
    BodyError,
    ConfigError,
    Cookie,
    HTTPStatusError,
    Method,
    MethodError,
    ProxyError,
    QueryError,
    RedirectError,
    ReqChainError,
    Response,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    # Builder
    "RequestBuilder",
    "new",
    "SHORT_CONTENT_TYPES",
    # Execution
    "Dispatcher",
    "Client",
    "RedirectPolicy",
    "default_redirect_policy",
    # Configuration
    "TransportSettings",
    # Models
    "Method",
    "Cookie",
    "Response",
    "JsonNumber",
    "ParseResult",
    # Exceptions
    "ReqChainError",
    "QueryError",
    "BodyError",
    "ProxyError",
    "ConfigError",
    "MethodError",
    "TransportError",
    "RedirectError",
    "HTTPStatusError",
    # Version
    "__version__",
]
