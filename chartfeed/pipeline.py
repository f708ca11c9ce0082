"""Oracle ticks to chart candles."""

import logging
from typing import Optional

from chartfeed.config import ChartConfig
from chartfeed.errors import RecoverableChartDataError, UnknownFeedError
from chartfeed.marketdata import Candle, FeedRegistry, aggregate_ticks
from chartfeed.providers.base import CandleSource, OracleClient
from chartfeed.providers.oracle import fetch_ticks
from chartfeed.time_utils import TIMEZONE_OFFSET
from chartfeed.types import Period


log = logging.getLogger(__name__)


__all__ = [
    "ChartPriceSource",
]


class ChartPriceSource(CandleSource):
    """
    Builds chart candles from the oracle feed.

    Resolve feed -> fetch all pages -> reconcile ticks -> aggregate. Gap
    filling and live-price reconciliation happen in the cache, per view.

    If a ``fallback`` source is given it is tried when the oracle path fails
    with a recoverable error. Configuration errors are never retried.
    """

    def __init__(
        self,
        oracle: OracleClient,
        *,
        feeds: Optional[FeedRegistry] = None,
        config: Optional[ChartConfig] = None,
        fallback: Optional[CandleSource] = None,
        tz_offset: int = TIMEZONE_OFFSET,
    ):
        self.oracle = oracle
        self.feeds = feeds or FeedRegistry()
        self.config = config or ChartConfig()
        self.fallback = fallback
        self.tz_offset = tz_offset

    def resolve_feed(self, symbol: str) -> str:
        try:
            return self.feeds.resolve(symbol)
        except UnknownFeedError:
            log.error("No oracle feed configured for %s", symbol)
            raise

    async def fetch_oracle_candles(self, symbol: str, period: Period | str) -> list[Candle]:
        feed_id = self.resolve_feed(symbol)
        ticks = await fetch_ticks(
            self.oracle,
            feed_id,
            page_size=self.config.page_size,
            page_count=self.config.page_count,
            decimals=self.config.price_decimals,
        )
        candles = aggregate_ticks(ticks, period, tz_offset=self.tz_offset)
        log.debug(
            "Built %d candles from %d ticks for %s/%s",
            len(candles),
            len(ticks),
            symbol,
            Period.parse(period).value,
        )
        return candles

    async def fetch_candles(
        self, network: str, symbol: str, period: Period | str
    ) -> list[Candle]:
        try:
            return await self.fetch_oracle_candles(symbol, period)
        except RecoverableChartDataError as exc:
            if self.fallback is None:
                log.warning("Oracle fetch failed for %s/%s: %s", network, symbol, exc)
                raise
            log.warning(
                "Oracle fetch failed for %s/%s: %s; switching to fallback candles",
                network,
                symbol,
                exc,
            )

        try:
            return await self.fallback.fetch_candles(network, symbol, period)
        except RecoverableChartDataError as exc:
            log.warning("Fallback candle fetch failed for %s/%s: %s", network, symbol, exc)
            raise
