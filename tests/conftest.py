# tests/conftest.py
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from chartfeed.marketdata import FeedRegistry, TickPoint  # noqa: E402
from chartfeed.providers import InMemoryOracleClient  # noqa: E402

BTC_FEED = "0xF04B8cf2CB29cbE2FcFD0d6CdcD64A3d96b0e944"

# 2026-01-01 00:00:00 UTC, aligned to every supported period
BASE_TS = 1767225600


class AsyncContextManagerMock:
    """Helper class to mock async context managers."""
    def __init__(self, return_value=None):
        self.return_value = return_value or MagicMock()

    async def __aenter__(self):
        return self.return_value

    async def __aexit__(self, *args):
        return None


class FakeClock:
    """Manually advanced clock for interval gating tests."""
    def __init__(self, now: float = BASE_TS + 3600):
        self.now = float(now)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(payload, status=200):
    response = MagicMock()
    response.status = status
    response.reason = "OK" if status < 400 else "Bad Gateway"
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value="" if status < 400 else "upstream error")
    return response


@pytest.fixture
def mock_http_response():
    """Create a mock HTTP response with an empty GraphQL result."""
    return make_response({"data": {"chainlinkPrices": []}})


@pytest.fixture
def mock_aiohttp_session(mock_http_response):
    """Mock aiohttp ClientSession."""
    response_context = AsyncContextManagerMock(mock_http_response)

    mock_session = MagicMock()
    mock_session.post = MagicMock(return_value=response_context)
    mock_session.get = MagicMock(return_value=response_context)
    mock_session.close = AsyncMock()
    mock_session.headers = {}

    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)

    return mock_session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def feeds():
    return FeedRegistry()


@pytest.fixture
def btc_ticks():
    """Fifteen minutes of BTC ticks, one per minute, ending just before BASE_TS + 1h."""
    start = BASE_TS + 3600 - 900
    return [TickPoint(timestamp=start + i * 60, price=64000.0 + i) for i in range(15)]


@pytest.fixture
def oracle(btc_ticks):
    return InMemoryOracleClient.from_ticks({BTC_FEED: btc_ticks})


@pytest.fixture
def response_factory():
    """Build mock aiohttp responses: ``response_factory(payload, status=200)``."""
    return make_response


@pytest.fixture
def session_factory():
    """Build a mock aiohttp session whose get/post return *response*."""
    def _make(response):
        session = MagicMock()
        session.post = MagicMock(return_value=AsyncContextManagerMock(response))
        session.get = MagicMock(return_value=AsyncContextManagerMock(response))
        session.close = AsyncMock()
        return session
    return _make
