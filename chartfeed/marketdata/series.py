from dataclasses import replace
from typing import Iterable, Iterator, Optional

import numpy as np

from chartfeed.marketdata.candle import Candle


class CandleSeries:
    """
    Ordered candle sequence for one (network, symbol, period) chart.

    Only the tail may change: new candles are appended, and the last candle
    can be amended while its bucket is still live. Earlier candles are never
    rewritten.

    Example:
        series = CandleSeries(candles, period=300)
        series.amend_last(close=101.5, high=102.0)

        # Arrays for plotting or indicators
        closes = series.get_closes()
        highs = series.get_highs(count=20)  # Last 20 candles only
    """

    def __init__(self, candles: Iterable[Candle] = (), *, period: int):
        """
        Initialize a series.

        Args:
            candles: Initial candles, ascending by time
            period: Bucket width in seconds
        """
        self.period = period
        self._candles: list[Candle] = []
        for candle in candles:
            self.append(candle)

    def append(self, candle: Candle) -> None:
        """
        Append a candle after the current tail.

        Raises:
            ValueError: If the candle does not start after the current tail
        """
        if self._candles and candle.time <= self._candles[-1].time:
            raise ValueError(
                f"Candle at {candle.time} does not follow tail at {self._candles[-1].time}"
            )
        self._candles.append(candle)

    def amend_last(self, **changes: float) -> Candle:
        """
        Update fields of the tail candle in place.

        Raises:
            IndexError: If the series is empty
        """
        if not self._candles:
            raise IndexError("Cannot amend an empty series")
        last = self._candles[-1]
        for name, value in changes.items():
            if name not in {"open", "high", "low", "close"}:
                raise ValueError(f"Cannot amend candle field {name!r}")
            setattr(last, name, value)
        return last

    def copy(self) -> "CandleSeries":
        """Deep copy; amending the copy leaves this series untouched."""
        return CandleSeries((replace(c) for c in self._candles), period=self.period)

    def get_candles(self, count: Optional[int] = None) -> list[Candle]:
        """
        Get candle objects.

        Args:
            count: Number of most recent candles to return (None = all)

        Returns:
            List of Candle objects, oldest first
        """
        if count is None:
            return list(self._candles)
        return self._candles[-count:] if count > 0 else []

    @property
    def candles(self) -> list[Candle]:
        return self.get_candles()

    def get_times(self, count: Optional[int] = None) -> np.ndarray:
        """Get array of candle times."""
        candles = self.get_candles(count)
        return np.array([c.time for c in candles], dtype=np.int64)

    def get_opens(self, count: Optional[int] = None) -> np.ndarray:
        """Get array of opening prices."""
        candles = self.get_candles(count)
        return np.array([c.open for c in candles], dtype=np.float64)

    def get_highs(self, count: Optional[int] = None) -> np.ndarray:
        """Get array of high prices."""
        candles = self.get_candles(count)
        return np.array([c.high for c in candles], dtype=np.float64)

    def get_lows(self, count: Optional[int] = None) -> np.ndarray:
        """Get array of low prices."""
        candles = self.get_candles(count)
        return np.array([c.low for c in candles], dtype=np.float64)

    def get_closes(self, count: Optional[int] = None) -> np.ndarray:
        """Get array of closing prices."""
        candles = self.get_candles(count)
        return np.array([c.close for c in candles], dtype=np.float64)

    def has_gaps(self) -> bool:
        """True if any two consecutive candles are more than one period apart."""
        times = self.get_times()
        if len(times) < 2:
            return False
        return bool(np.any(np.diff(times) > self.period))

    @property
    def latest(self) -> Optional[Candle]:
        """Get the most recent candle, or None if empty."""
        return self._candles[-1] if self._candles else None

    def __iter__(self) -> Iterator[Candle]:
        return iter(list(self._candles))

    def __len__(self) -> int:
        """Return number of candles in the series."""
        return len(self._candles)

    def __repr__(self) -> str:
        return f"CandleSeries(period={self.period}, candles={len(self)})"
