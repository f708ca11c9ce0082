"""Chart period registry."""

from enum import Enum


__all__ = [
    "Period",
    "period_to_seconds",
]


class Period(str, Enum):
    """Supported chart periods.

    The value is the identifier used by the UI and the REST candle endpoint;
    ``seconds`` gives the bucket width.
    """
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    HOUR = "1h"
    FOUR_HOURS = "4h"
    DAY = "1d"

    @property
    def seconds(self) -> int:
        """Bucket width in seconds."""
        return _PERIOD_SECONDS[self]

    @classmethod
    def parse(cls, value: "Period | str") -> "Period":
        """Resolve a period identifier (case-insensitive) to a member."""
        if isinstance(value, Period):
            return value
        p = value.strip().lower()
        for member in cls:
            if member.value == p:
                return member
        raise ValueError(f"Unsupported period: {value!r}")


_PERIOD_SECONDS = {
    Period.FIVE_MINUTES: 60 * 5,
    Period.FIFTEEN_MINUTES: 60 * 15,
    Period.HOUR: 60 * 60,
    Period.FOUR_HOURS: 60 * 60 * 4,
    Period.DAY: 60 * 60 * 24,
}


def period_to_seconds(period: Period | str | int) -> int:
    """Convert a period identifier to seconds.

    Integers are taken as an already-resolved bucket width.
    """
    if isinstance(period, bool):
        raise ValueError(f"Unsupported period: {period!r}")
    if isinstance(period, int):
        if period <= 0:
            raise ValueError(f"Period must be positive, got {period}")
        return period
    return Period.parse(period).seconds
