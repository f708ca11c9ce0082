from chartfeed.marketdata.candle import Candle
from chartfeed.time_utils import TIMEZONE_OFFSET, current_bucket_time
from chartfeed.types import Period, period_to_seconds


STABLE_PRICE = 1.0


def stable_series(
    period: Period | str | int,
    *,
    now: int | float | None = None,
    length: int = 100,
    tz_offset: int = TIMEZONE_OFFSET,
) -> list[Candle]:
    """Flat 1.0 series of *length* candles ending at the current bucket."""
    period_s = period_to_seconds(period)
    end = current_bucket_time(period_s, now=now, tz_offset=tz_offset)
    return [
        Candle(
            time=end - i * period_s,
            open=STABLE_PRICE,
            high=STABLE_PRICE,
            low=STABLE_PRICE,
            close=STABLE_PRICE,
        )
        for i in range(length - 1, -1, -1)
    ]
