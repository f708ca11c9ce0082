"""Exceptions raised while building chart series."""


__all__ = [
    "ChartDataError",
    "InsufficientDataError",
    "RecoverableChartDataError",
    "StaleDataError",
    "TransportError",
    "UnknownFeedError",
]


class ChartDataError(Exception):
    """Base class for all chart data failures."""
    pass


class RecoverableChartDataError(ChartDataError):
    """A failure the cache absorbs by keeping the previous series."""
    pass


class TransportError(RecoverableChartDataError):
    """Network failure, timeout or bad response from an upstream source."""

    def __init__(self, url: str, message: str, status: int | None = None):
        self.url = url
        self.status = status
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status is not None:
            return f"Request to {self.url!r} failed ({self.status}): {self.message}"
        return f"Request to {self.url!r} failed: {self.message}"


class InsufficientDataError(RecoverableChartDataError):
    """Upstream returned too few points to build a usable series."""

    def __init__(self, count: int, required: int):
        self.count = count
        self.required = required
        super().__init__(f"not enough prices data: {count} (need at least {required})")


class StaleDataError(RecoverableChartDataError):
    """Upstream data is older than the staleness threshold."""

    def __init__(self, updated_at: int, now: int):
        self.updated_at = updated_at
        self.now = now
        super().__init__(
            f"chart data is obsolete, last price record at {updated_at} now: {now}"
        )


class UnknownFeedError(ChartDataError):
    """No oracle feed is configured for the requested symbol."""

    def __init__(self, symbol: str, market_name: str):
        self.symbol = symbol
        self.market_name = market_name
        super().__init__(f"No oracle feed configured for {market_name} (symbol {symbol!r})")
