"""Shared test fixtures and configuration."""

import json
from typing import Callable, Generator

import httpx
import pytest

from reqchain import Client, RequestBuilder

BASE_URL = "https://example.com"


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Reply with a JSON description of the request it received."""
    return httpx.Response(
        200,
        json={
            "method": request.method,
            "url": str(request.url),
            "headers": dict(request.headers),
            "body": request.content.decode("utf-8", errors="replace"),
        },
    )


class SpyTransport(httpx.MockTransport):
    """Mock transport recording every request it handles."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] = echo_handler):
        self.requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    @property
    def calls(self) -> int:
        return len(self.requests)


def echoed(body: str) -> dict:
    """Decode the echo handler's reply."""
    return json.loads(body)


# ============== Transport Fixtures ==============

@pytest.fixture
def spy() -> SpyTransport:
    """Echoing spy transport."""
    return SpyTransport()


# ============== Client Fixtures ==============

@pytest.fixture
def client(spy: SpyTransport) -> Generator[Client, None, None]:
    """Client sending through the spy transport."""
    client = Client(transport=spy)
    yield client
    client.close()


@pytest.fixture
def builder(client: Client) -> RequestBuilder:
    """Request builder bound to the spy client."""
    return RequestBuilder(client=client)


@pytest.fixture
def offline_builder() -> RequestBuilder:
    """Request builder that never executes."""
    return RequestBuilder()
