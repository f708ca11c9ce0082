"""Synthetic gap filling for candle series."""

from typing import Sequence

from chartfeed.marketdata.candle import Candle
from chartfeed.types import Period, period_to_seconds


__all__ = [
    "SYNTHETIC_HIGH_FACTOR",
    "SYNTHETIC_LOW_FACTOR",
    "fill_gaps",
]


# Cosmetic wick marking a bucket with no real price data.
SYNTHETIC_HIGH_FACTOR = 1.0003
SYNTHETIC_LOW_FACTOR = 0.9996


def _synthetic(time: int, price: float) -> Candle:
    return Candle(
        time=time,
        open=price,
        high=price * SYNTHETIC_HIGH_FACTOR,
        low=price * SYNTHETIC_LOW_FACTOR,
        close=price,
        synthetic=True,
    )


def fill_gaps(candles: Sequence[Candle], period: Period | str | int) -> list[Candle]:
    """
    Insert flat candles for missing buckets between consecutive candles.

    Synthetic candles take their price from the following real candle's open.
    The input is not modified. Applying the function to its own output is a
    no-op.

    Args:
        candles: Candles ascending by time
        period: Bucket width

    Returns:
        New list with no gap wider than one period
    """
    if len(candles) < 2:
        return list(candles)

    period_s = period_to_seconds(period)
    filled = [candles[0]]
    prev_time = candles[0].time
    for candle in candles[1:]:
        # Ceiling so misaligned neighbours never leave more than one period
        missing = -(-(candle.time - prev_time) // period_s) - 1
        # Oldest first so the output stays ascending
        for j in range(missing, 0, -1):
            filled.append(_synthetic(candle.time - j * period_s, candle.open))
        filled.append(candle)
        prev_time = candle.time

    return filled
