import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Optional

from chartfeed.marketdata import Candle, average_price_value

from .keys import SeriesKey

if TYPE_CHECKING:
    from .orchestrator import SeriesCache


log = logging.getLogger(__name__)


# float: already a display price. int or str: on-chain fixed-point (30 decimals).
PriceLike = Optional[float | int | str]
UpdateCallback = Callable[[list[Candle]], None | Awaitable[None]]


def display_price(price: PriceLike) -> Optional[float]:
    """Normalise a live average price to the float the chart plots."""
    if price is None:
        return None
    if isinstance(price, bool):
        raise TypeError(f"Invalid average price: {price!r}")
    if isinstance(price, (int, str)):
        return average_price_value(price)
    return float(price)


class Subscription:
    """
    An observer attached to one chart.

    ``candles`` always holds the latest reconciled view. The ``on_update``
    callback (sync or async) receives the new view whenever the cached series
    or the live average price changes.

    Live prices given as ``int`` or ``str`` are raw on-chain values and are
    truncated to cents, as the chart header shows them. Floats are used as is.

    Example:
        sub = await cache.subscribe(43114, "WBTC", "5m", current_average_price=64250.0)
        render(sub.candles)
        await sub.set_average_price(64310.5)
        await sub.set_average_price(64312_870000000000000000000000000000)
        sub.close()
    """

    def __init__(
        self,
        cache: "SeriesCache",
        key: SeriesKey,
        *,
        stable: bool,
        average_price: PriceLike = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        self._cache = cache
        self.key = key
        self.stable = stable
        self.average_price = display_price(average_price)
        self._on_update = on_update
        self._closed = False
        self.candles: list[Candle] = self._compute()

    @property
    def closed(self) -> bool:
        return self._closed

    def _compute(self) -> list[Candle]:
        if self.stable:
            return self._cache.stable_view(self.key)
        return self._cache.view(self.key, self.average_price)

    async def _notify(self) -> None:
        if self._on_update is None:
            return
        try:
            result = self._on_update(self.candles)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            log.error("Update callback for %s failed: %s", self.key, e, exc_info=True)

    async def _series_changed(self) -> None:
        if self._closed:
            return
        self.candles = self._compute()
        await self._notify()

    async def set_average_price(self, price: PriceLike) -> list[Candle]:
        """Set the live average price and re-derive the view."""
        self.average_price = display_price(price)
        await self._series_changed()
        return self.candles

    async def refresh(self) -> list[Candle]:
        """
        Force an out-of-band refetch of this chart.

        Joins a fetch that is already running instead of starting another.
        Observers are notified by the cache when new data lands.
        """
        if self._closed:
            raise RuntimeError(f"Subscription to {self.key} is closed")
        if self.stable:
            await self._series_changed()
        else:
            await self._cache.refresh(self.key)
            # Refresh may have been absorbed by a failure; recompute anyway so
            # the live candle tracks wall-clock time.
            self.candles = self._compute()
        return self.candles

    def close(self) -> None:
        """Detach from the cache. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if not self.stable:
            self._cache._release(self)

    def __repr__(self) -> str:
        return (
            f"Subscription(key={self.key}, candles={len(self.candles)}"
            f"{', stable' if self.stable else ''}{', closed' if self._closed else ''})"
        )
