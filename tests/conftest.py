"""Shared test fixtures and configuration."""

import json
from collections.abc import AsyncIterator, Iterator
from typing import Any, Callable, Union
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from taskforceai import Client, ClientConfig

BASE_URL = "https://api.test/developer"

Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], Any]]


def json_response(status_code: int = 200, payload: Any = None) -> httpx.Response:
    """Build a JSON response for the fake API."""
    return httpx.Response(status_code, json=payload)


class FakeAPI:
    """Records requests and replays queued replies in order.

    The last queued reply is repeated once the queue runs dry.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._replies: list[Reply] = []

    def queue(self, *replies: Reply) -> "FakeAPI":
        self._replies.extend(replies)
        return self

    def body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)

    def handler(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        if not self._replies:
            raise AssertionError(f"Unexpected request {request.method} {request.url}")
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply) and not isinstance(reply, httpx.Response):
            return reply(request)
        return reply


@pytest.fixture
def fake_api() -> FakeAPI:
    """Provide a fake API backing the mocked HTTP transport."""
    return FakeAPI()


@pytest.fixture
async def http_client(fake_api: FakeAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Provide an httpx client routed to the fake API."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)) as client:
        yield client


@pytest.fixture
def client_config() -> ClientConfig:
    """Provide a client configuration with fast polling."""
    return ClientConfig(
        api_key="test-key",
        base_url=BASE_URL,
        poll_interval=0.0,
        max_poll_attempts=5,
    )


@pytest.fixture
def client(client_config: ClientConfig, http_client: httpx.AsyncClient) -> Client:
    """Provide a test client using the fake API."""
    return Client(client_config, http_client=http_client)


@pytest.fixture
def no_sleep() -> Iterator[AsyncMock]:
    """Skip real backoff and poll delays, recording the requested durations."""
    with patch("taskforceai.transport.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep
