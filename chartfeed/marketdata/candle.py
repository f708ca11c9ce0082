from dataclasses import dataclass


@dataclass(frozen=True)
class TickPoint:
    """A single oracle price observation."""

    timestamp: int
    price: float


@dataclass
class Candle:
    """
    Represents a single OHLC chart candle.

    Attributes:
        time: Bucket start in seconds, shifted by the display timezone offset
        open: Opening price
        high: Highest price during period
        low: Lowest price during period
        close: Closing price
        synthetic: True for gap-fill candles that carry no real trade data
    """

    time: int
    open: float
    high: float
    low: float
    close: float
    synthetic: bool = False

    @property
    def mid(self) -> float:
        """Calculate midpoint between high and low."""
        return (self.high + self.low) / 2

    @property
    def range(self) -> float:
        """Calculate candle range (high - low)."""
        return self.high - self.low

    def as_dict(self) -> dict[str, float]:
        """Shape consumed by the chart widget."""
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }

    def __repr__(self) -> str:
        return (
            f"Candle(time={self.time}, "
            f"O={self.open:.5f}, H={self.high:.5f}, "
            f"L={self.low:.5f}, C={self.close:.5f}"
            f"{', synthetic' if self.synthetic else ''})"
        )
