"""Pytest configuration and fixtures for fantasylink tests."""

import pytest
from unittest.mock import Mock
import httpx

from fantasylink.oauth import Credentials, OAuthSigner


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_response(status_code=200, body=b'{"ok": true}', headers=None):
    """Create a mock httpx response."""
    response = Mock(spec=httpx.Response)
    response.status_code = status_code
    response.headers = headers if headers is not None else {"Content-Type": "application/json"}
    response.content = body
    response.text = body.decode("utf-8")
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def credentials():
    """Consumer credentials with an access token pair."""
    return Credentials(
        consumer_key="test_key",
        consumer_secret="test_secret",
        access_token="test_token",
        access_token_secret="test_token_secret",
    )


@pytest.fixture
def consumer_credentials():
    """Consumer credentials without an access token."""
    return Credentials(consumer_key="test_key", consumer_secret="test_secret")


@pytest.fixture
def fixed_signer():
    """Signer with a fixed nonce and timestamp."""
    return OAuthSigner(
        nonce_factory=lambda: "0123456789abcdef0123456789abcdef",
        timestamp_factory=lambda: "1700000000",
    )


@pytest.fixture
def mock_response_200():
    """Create a mock 200 OK response."""
    return make_response(200, b'{"fantasy_content": {"games": []}}')


@pytest.fixture
def mock_response_429():
    """Create a mock 429 rate limit response."""
    return make_response(
        429,
        b'{"error": "rate_limited"}',
        {"Retry-After": "30", "Content-Type": "application/json"},
    )


@pytest.fixture
def mock_response_401():
    return make_response(401, b'{"error": "token_expired"}')


@pytest.fixture
def mock_response_404():
    return make_response(404, b'{"error": "not_found"}')


@pytest.fixture
def mock_response_503():
    return make_response(503, b"Service Unavailable", {})
