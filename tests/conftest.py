"""
Root test configuration and fixtures.

Provides:
- fake_server: in-memory Seenn API behind an httpx MockTransport
- client: SeennClient wired to fake_server
- no_sleep: patches the executor's backoff sleep
"""

import pytest
from unittest.mock import AsyncMock, patch

from seenn.client import SeennClient
from tests.mocks.fake_seenn import FakeSeennServer

TEST_API_KEY = "sk_test_abc123"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep SEENN_* variables from the host environment out of tests."""
    for name in (
        "SEENN_API_KEY",
        "SEENN_BASE_URL",
        "SEENN_TIMEOUT_SECONDS",
        "SEENN_MAX_RETRIES",
        "SEENN_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_server():
    return FakeSeennServer()


@pytest.fixture
def client(fake_server):
    return SeennClient(api_key=TEST_API_KEY, transport=fake_server.get_mock_transport())


@pytest.fixture
def no_sleep():
    with patch("seenn.http.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep
