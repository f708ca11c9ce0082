from dataclasses import dataclass
from typing import Optional

from chartfeed.marketdata import Candle, CandleSeries
from chartfeed.types import Period


@dataclass(frozen=True)
class SeriesKey:
    """Cache key for one chart."""

    network: str
    symbol: str
    period: Period

    @classmethod
    def of(cls, network: str | int, symbol: str, period: Period | str) -> "SeriesKey":
        return cls(
            network=str(network),
            symbol=symbol.strip().upper(),
            period=Period.parse(period),
        )

    def __str__(self) -> str:
        return f"{self.network}:{self.symbol}:{self.period.value}"


@dataclass
class CacheEntry:
    """
    Cached state for one key.

    Every fetch is tagged with a generation number. A result is applied only
    if its generation is newer than both the last applied result and the last
    invalidation (``min_generation``); anything older is a late response and
    is dropped.

    ``live`` is the tail candle as last amended by the live price. It carries
    live highs and lows across price updates and is cleared when a fetch
    replaces the series.
    """

    key: SeriesKey
    min_generation: int
    series: Optional[CandleSeries] = None
    last_fetch_time: Optional[float] = None
    last_focus_time: Optional[float] = None
    applied_generation: int = 0
    live: Optional[Candle] = None
    subscribers: int = 0
    failures: int = 0

    @property
    def has_series(self) -> bool:
        return self.series is not None

    def accepts(self, generation: int) -> bool:
        return generation > self.min_generation and generation > self.applied_generation
