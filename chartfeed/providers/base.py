"""
Source-neutral interfaces.

The cache and pipeline depend only on these contracts so tests and offline
runs can swap in in-memory implementations.
"""

import abc
from typing import Any

from chartfeed.marketdata import Candle
from chartfeed.types import Period


__all__ = [
    "CandleSource",
    "OracleClient",
]


class OracleClient(abc.ABC):
    """Abstract base for an oracle price-history service."""

    async def start(self) -> None:
        """Initialise the client (e.g. open an HTTP session)."""

    async def close(self) -> None:
        """Close any underlying resources."""

    @abc.abstractmethod
    async def fetch_page(self, feed_id: str, *, first: int, skip: int) -> list[dict[str, Any]]:
        """
        Fetch one page of raw price records for a feed.

        Args:
            feed_id: Oracle feed identifier.
            first: Page size.
            skip: Number of most recent records to skip.

        Returns:
            Up to ``first`` records shaped ``{"timestamp": int, "value": str}``,
            newest first.

        Raises:
            TransportError: On any network or protocol failure.
        """
        raise NotImplementedError


class CandleSource(abc.ABC):
    """Abstract base for anything that can produce a candle list for a chart."""

    @abc.abstractmethod
    async def fetch_candles(
        self, network: str, symbol: str, period: Period | str
    ) -> list[Candle]:
        """
        Fetch candles for a chart.

        Returns:
            A list of `Candle` objects, ordered from oldest to newest.
        """
        raise NotImplementedError
