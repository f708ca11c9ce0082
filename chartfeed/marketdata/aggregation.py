"""Tick-to-candle aggregation."""

from dataclasses import dataclass
from typing import Iterable, Optional

from chartfeed.marketdata.candle import Candle, TickPoint
from chartfeed.time_utils import TIMEZONE_OFFSET
from chartfeed.types import Period, period_to_seconds


__all__ = [
    "CandleAggregator",
    "aggregate_ticks",
]


@dataclass
class _AggState:
    """Internal aggregation state for a single time bucket."""
    bucket_start: int
    open: float
    high: float
    low: float
    close: float
    tick_count: int


class CandleAggregator:
    """
    Bucket an ascending tick stream into fixed-width OHLC candles.

    - Buckets are aligned to period boundaries on raw UTC seconds.
    - Each new bucket opens at the previous bucket's close so the chart
      has no visual jumps between candles.
    - Emitted candle times are shifted by ``tz_offset`` for display.

    Usage:
        aggregator = CandleAggregator(period="5m")
        for tick in ticks:
            candle = aggregator.update(tick)  # Candle when a bucket rolls
        tail = aggregator.flush()            # in-progress bucket
    """

    def __init__(self, period: Period | str | int, *, tz_offset: int = TIMEZONE_OFFSET):
        self.period_s = period_to_seconds(period)
        self.tz_offset = tz_offset
        self._state: Optional[_AggState] = None
        self._last_ts: Optional[int] = None

    def reset(self) -> None:
        self._state = None
        self._last_ts = None

    def _emit(self, agg: _AggState) -> Candle:
        return Candle(
            time=agg.bucket_start + self.tz_offset,
            open=agg.open,
            high=agg.high,
            low=agg.low,
            close=agg.close,
        )

    def update(self, tick: TickPoint) -> Optional[Candle]:
        """
        Add the next tick.

        Returns:
            The finished candle when the tick starts a new bucket, None while accumulating

        Raises:
            ValueError: If the tick is older than the previous one
        """
        if self._last_ts is not None and tick.timestamp < self._last_ts:
            raise ValueError(
                f"Ticks must be ascending: {tick.timestamp} after {self._last_ts}"
            )
        self._last_ts = tick.timestamp

        price = float(tick.price)
        bucket = (tick.timestamp // self.period_s) * self.period_s
        agg = self._state

        if agg is None:
            self._state = _AggState(bucket, price, price, price, price, 1)
            return None

        if bucket == agg.bucket_start:
            agg.close = price
            agg.high = max(agg.high, price)
            agg.low = min(agg.low, price)
            agg.tick_count += 1
            return None

        # Bucket rolled -> emit previous candle, carry its close as the new open
        out = self._emit(agg)
        carried = agg.close
        self._state = _AggState(
            bucket_start=bucket,
            open=carried,
            high=max(carried, price),
            low=min(carried, price),
            close=price,
            tick_count=1,
        )
        return out

    def flush(self) -> Optional[Candle]:
        """Return the in-progress candle without closing it, or None if empty."""
        if self._state is None:
            return None
        return self._emit(self._state)


def aggregate_ticks(
    ticks: Iterable[TickPoint],
    period: Period | str | int,
    *,
    tz_offset: int = TIMEZONE_OFFSET,
) -> list[Candle]:
    """
    Build candles from an ascending tick sequence.

    A single tick cannot establish a candle boundary, so fewer than two ticks
    yield an empty list.
    """
    ticks = list(ticks)
    if len(ticks) < 2:
        return []

    aggregator = CandleAggregator(period, tz_offset=tz_offset)
    candles: list[Candle] = []
    for tick in ticks:
        candle = aggregator.update(tick)
        if candle is not None:
            candles.append(candle)

    tail = aggregator.flush()
    if tail is not None:
        candles.append(tail)
    return candles
