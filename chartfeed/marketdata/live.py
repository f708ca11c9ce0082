"""Reconcile the live on-chain average price into the tail of a series."""

import logging
from decimal import ROUND_DOWN, Decimal

from chartfeed.marketdata.candle import Candle
from chartfeed.marketdata.series import CandleSeries
from chartfeed.time_utils import TIMEZONE_OFFSET, current_bucket_time
from chartfeed.types import Period


log = logging.getLogger(__name__)


__all__ = [
    "USD_DECIMALS",
    "apply_live_price",
    "average_price_value",
]


# On-chain USD amounts are fixed-point with 30 decimals.
USD_DECIMALS = 30


def average_price_value(raw: int | str, decimals: int = USD_DECIMALS, display_decimals: int = 2) -> float:
    """Convert a fixed-point on-chain price to the float the chart shows.

    The value is truncated to ``display_decimals`` places, matching the price
    printed next to the chart.
    """
    value = Decimal(int(raw)).scaleb(-decimals)
    quantum = Decimal(1).scaleb(-display_decimals)
    return float(value.quantize(quantum, rounding=ROUND_DOWN))


def apply_live_price(
    series: CandleSeries,
    price: float,
    period: Period | str | int,
    *,
    now: int | float | None = None,
    tz_offset: int = TIMEZONE_OFFSET,
) -> CandleSeries:
    """
    Merge the current average price into the tail of *series*.

    If the tail candle is the current bucket it is amended in place,
    otherwise a new in-progress candle is appended that opens at the tail's
    close. Nothing but the tail is ever touched. An empty series is returned
    unchanged.

    Note:
        The amended low is ``max(low, price)``: the live low can rise but never
        fall below the last known low. This matches the chart's existing
        behaviour and is covered by tests; see DESIGN.md before changing it.
    """
    last = series.latest
    if last is None:
        return series

    price = float(price)
    current_time = current_bucket_time(period, now=now, tz_offset=tz_offset)

    if last.time == current_time:
        series.amend_last(
            close=price,
            high=max(last.high, price),
            low=max(last.low, price),
        )
    elif current_time > last.time:
        series.append(
            Candle(
                time=current_time,
                open=last.close,
                high=price,
                low=price,
                close=price,
            )
        )
    else:
        log.debug(
            "Live bucket %s is older than series tail %s, ignoring live price",
            current_time,
            last.time,
        )
    return series
