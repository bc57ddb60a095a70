import json
from urllib.parse import parse_qs

import httpx
import pytest

from crosspost.config import Settings
from crosspost.infrastructure.retry import RetryPolicy

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
MP4 = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 32


class MockApi:
    """Client factory backed by httpx.MockTransport that records every request."""

    def __init__(self, handler):
        self._handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def matching(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        """Decode an urlencoded request body into single values."""
        return {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}

    @staticmethod
    def json(request: httpx.Request):
        return json.loads(request.content)


@pytest.fixture
def mock_api():
    return MockApi


@pytest.fixture
def png():
    return PNG


@pytest.fixture
def mp4():
    return MP4


@pytest.fixture
def settings():
    return Settings(
        instagram_poll_interval=0,
        instagram_poll_max_attempts=3,
        media_retry_max_attempts=1,
        media_retry_base_delay=0,
        object_store_bucket="",
    )


@pytest.fixture
def no_retry():
    return RetryPolicy(max_attempts=1)
