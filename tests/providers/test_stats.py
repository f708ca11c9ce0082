"""Tests for the fallback REST candle client."""

import asyncio
from unittest.mock import MagicMock

import pytest

from chartfeed.errors import InsufficientDataError, StaleDataError, TransportError
from chartfeed.providers.stats import StatsCandleClient

NOW = 1767225600


def _payload(count=12, updated_at=NOW - 60):
    return {
        "prices": [
            {"t": NOW - (count - i) * 300, "o": 10.0 + i, "c": 10.5 + i, "h": 11.0 + i, "l": 9.5 + i}
            for i in range(count)
        ],
        "updatedAt": updated_at,
    }


@pytest.mark.asyncio
async def test_maps_points_to_candles(session_factory, response_factory):
    session = session_factory(response_factory(_payload()))
    client = StatsCandleClient("https://stats.example/", session=session, tz_offset=3600)

    candles = await client.fetch_candles("43114", "WBTC", "5m", now=NOW)

    assert len(candles) == 12
    first = candles[0]
    assert first.time == NOW - 12 * 300 + 3600
    assert (first.open, first.high, first.low, first.close) == (10.0, 11.0, 9.5, 10.5)

    args, kwargs = session.get.call_args
    assert args[0] == "https://stats.example/api/candles/BTC"
    assert kwargs["params"]["period"] == "5m"
    assert kwargs["params"]["from"] == str(NOW - 300 * 3000)
    assert kwargs["params"]["preferableSource"] == "fast"


@pytest.mark.asyncio
async def test_too_few_points_rejected(session_factory, response_factory):
    client = StatsCandleClient("https://stats", session=session_factory(response_factory(_payload(count=9))))

    with pytest.raises(InsufficientDataError) as exc_info:
        await client.fetch_candles("43114", "ETH", "5m", now=NOW)
    assert exc_info.value.count == 9


@pytest.mark.asyncio
async def test_missing_prices_rejected(session_factory, response_factory):
    client = StatsCandleClient("https://stats", session=session_factory(response_factory({"updatedAt": NOW})))

    with pytest.raises(InsufficientDataError):
        await client.fetch_candles("43114", "ETH", "5m", now=NOW)


@pytest.mark.asyncio
async def test_stale_payload_rejected(session_factory, response_factory):
    payload = _payload(updated_at=NOW - 31 * 60)
    client = StatsCandleClient("https://stats", session=session_factory(response_factory(payload)))

    with pytest.raises(StaleDataError):
        await client.fetch_candles("43114", "ETH", "5m", now=NOW)


@pytest.mark.asyncio
async def test_payload_just_inside_threshold_accepted(session_factory, response_factory):
    payload = _payload(updated_at=NOW - 30 * 60)
    client = StatsCandleClient("https://stats", session=session_factory(response_factory(payload)))

    candles = await client.fetch_candles("43114", "ETH", "5m", now=NOW)
    assert len(candles) == 12


@pytest.mark.asyncio
async def test_http_error_raises_transport_error(session_factory, response_factory):
    client = StatsCandleClient("https://stats", session=session_factory(response_factory({}, status=500)))

    with pytest.raises(TransportError) as exc_info:
        await client.fetch_candles("43114", "ETH", "5m", now=NOW)
    assert exc_info.value.status == 500


@pytest.mark.asyncio
async def test_timeout_raises_transport_error(response_factory):
    class HangingContext:
        async def __aenter__(self):
            await asyncio.sleep(10)

        async def __aexit__(self, *args):
            return None

    session = MagicMock()
    session.get = MagicMock(return_value=HangingContext())
    client = StatsCandleClient("https://stats", session=session, timeout=0.01)

    with pytest.raises(TransportError, match="timeout"):
        await client.fetch_candles("43114", "ETH", "5m", now=NOW)


@pytest.mark.asyncio
async def test_malformed_point_raises_transport_error(session_factory, response_factory):
    payload = _payload()
    del payload["prices"][3]["h"]
    client = StatsCandleClient("https://stats", session=session_factory(response_factory(payload)))

    with pytest.raises(TransportError, match="malformed"):
        await client.fetch_candles("43114", "ETH", "5m", now=NOW)
