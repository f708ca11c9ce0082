from .aggregation import CandleAggregator, aggregate_ticks
from .candle import Candle, TickPoint
from .feeds import FeedRegistry, normalize_symbol
from .gaps import fill_gaps
from .live import apply_live_price, average_price_value
from .series import CandleSeries
from .stable import stable_series

__all__ = [
    "Candle",
    "CandleAggregator",
    "CandleSeries",
    "FeedRegistry",
    "TickPoint",
    "aggregate_ticks",
    "apply_live_price",
    "average_price_value",
    "fill_gaps",
    "normalize_symbol",
    "stable_series",
]
