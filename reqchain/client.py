"""Shareable execution client wrapping httpx connection pools.

A Client owns what outlives a single request chain: the cookie jar, the
redirect policy slot and one ``httpx.Client`` connection pool per distinct
``TransportSettings`` value. Several request builders may share one Client
to reuse connections:

    client = Client()
    a = RequestBuilder(client=client).get("https://example.com/a")
    b = RequestBuilder(client=client).get("https://example.com/b")

Pool creation is guarded by a lock; the pools themselves are httpx clients
and safe for concurrent use. Each call may pass its own settings; the
default settings and the redirect policy are last-writer-wins, matching a
plain attribute on a shared object.
"""

from __future__ import annotations

import threading
from http.cookiejar import CookieJar
from typing import Any, Callable, Optional

import httpx

from .config import TransportSettings
from .models import RedirectError, TransportError

RedirectPolicy = Callable[[httpx.Request, "list[httpx.Request]"], Optional[Exception]]
"""Decides whether to follow a redirect.

Called with the pending request and the requests already made (oldest
first). Returns None to continue or an exception describing the refusal.
"""


def default_redirect_policy(max_redirects: int) -> RedirectPolicy:
    """Policy refusing once ``max_redirects`` requests have been made.

    ``via`` holds every request already sent, the original one included, so
    a limit of 10 allows at most 10 requests in a chain.
    """

    def policy(request: httpx.Request, via: list[httpx.Request]) -> Exception | None:
        if len(via) >= max_redirects:
            return httpx.TooManyRedirects(
                f"stopped after {max_redirects} redirects", request=request
            )
        return None

    return policy


class Client:
    """Execution client with a cookie jar and per-settings connection pools.

    Args:
        transport: Transport used instead of one built from settings. Meant
            for injecting ``httpx.MockTransport`` or a custom transport.
        cookies: Cookie jar to share. A fresh jar is created when omitted.
        check_redirect: Redirect policy; the default stops once
            ``settings.max_redirects`` requests were made.
    """

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        cookies: CookieJar | None = None,
        check_redirect: RedirectPolicy | None = None,
    ) -> None:
        self.cookies: CookieJar = cookies if cookies is not None else CookieJar()
        self.check_redirect = check_redirect
        self._transport = transport
        self._settings = TransportSettings()
        self._pools: dict[TransportSettings, httpx.Client] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def settings(self) -> TransportSettings:
        """Settings the next request will be sent with."""
        return self._settings

    @property
    def is_closed(self) -> bool:
        """Check if client has been closed."""
        return self._closed

    def configure(self, settings: TransportSettings) -> None:
        """Set the settings used by calls that do not pass their own."""
        self._settings = settings

    def _get_pool(self, settings: TransportSettings) -> httpx.Client:
        """Get or create the connection pool for ``settings``."""
        with self._lock:
            if self._closed:
                raise TransportError("Client is closed")
            pool = self._pools.get(settings)
            if pool is None:
                pool = httpx.Client(
                    transport=self._transport or settings.build_transport(),
                    cookies=self.cookies,
                    timeout=settings.httpx_timeout(),
                    follow_redirects=False,
                    trust_env=False,
                )
                self._pools[settings] = pool
            return pool

    def build_request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
        settings: TransportSettings | None = None,
    ) -> httpx.Request:
        """Build a request carrying jar cookies for its URL.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            headers: Request headers.
            content: Request body.
            settings: Settings selecting the pool; defaults to ``self.settings``.

        Raises:
            TransportError: If the URL is invalid.
        """
        pool = self._get_pool(settings or self._settings)
        try:
            return pool.build_request(method, url, headers=headers, content=content)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise TransportError(str(e), original_error=e) from e

    def send(
        self,
        request: httpx.Request,
        settings: TransportSettings | None = None,
    ) -> httpx.Response:
        """Send a request, following redirects the policy allows.

        Passing ``settings`` per call keeps concurrent senders with different
        settings apart; ``configure`` only changes the default.

        Returns:
            Final response, content read, with ``history`` populated.

        Raises:
            RedirectError: If the redirect policy refused a hop.
            TransportError: On connection, TLS or timeout errors.
        """
        settings = settings or self._settings
        pool = self._get_pool(settings)
        policy = self.check_redirect or default_redirect_policy(settings.max_redirects)

        via: list[httpx.Request] = []
        history: list[httpx.Response] = []
        try:
            response = pool.send(request)
            while response.next_request is not None:
                via.append(response.request)
                pending = response.next_request
                refusal = policy(pending, list(via))
                if refusal is not None:
                    raise RedirectError(
                        str(refusal), request=pending, original_error=refusal
                    )
                history.append(response)
                response = pool.send(pending)
        except httpx.HTTPError as e:
            raise TransportError(str(e), original_error=e) from e

        response.history = history
        return response

    def close(self) -> None:
        """Close every connection pool."""
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
            self._closed = True
        for pool in pools:
            pool.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
