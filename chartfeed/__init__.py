# chartfeed/__init__.py
"""
Chartfeed - gap-free OHLC chart series from an oracle price feed.

Fetches and reconciles paginated oracle price points, buckets them into
candles, fills gaps, merges the live average price and caches the result per
chart with stale-while-revalidate semantics.
"""

from .cache import SeriesCache, SeriesKey, Subscription
from .config import ChartConfig
from .errors import (
    ChartDataError,
    InsufficientDataError,
    StaleDataError,
    TransportError,
    UnknownFeedError,
)
from .marketdata import Candle, CandleSeries, FeedRegistry, TickPoint
from .pipeline import ChartPriceSource
from .types import Period

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Candle",
    "CandleSeries",
    "ChartConfig",
    "ChartDataError",
    "ChartPriceSource",
    "FeedRegistry",
    "InsufficientDataError",
    "Period",
    "SeriesCache",
    "SeriesKey",
    "StaleDataError",
    "Subscription",
    "TickPoint",
    "TransportError",
    "UnknownFeedError",
]
