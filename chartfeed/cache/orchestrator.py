"""
Series cache and revalidation.

One cache entry per (network, symbol, period). Fetches are single-flight per
key, re-fetches are gated by a deduping interval, and results are tagged with
generation numbers so a slow, superseded response can never overwrite newer
state.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import replace
from collections.abc import Callable
from typing import Optional

from chartfeed.config import ChartConfig
from chartfeed.errors import RecoverableChartDataError, UnknownFeedError
from chartfeed.events import EventDispatcher
from chartfeed.marketdata import (
    Candle,
    CandleSeries,
    FeedRegistry,
    apply_live_price,
    fill_gaps,
    stable_series,
)
from chartfeed.providers.base import CandleSource
from chartfeed.time_utils import TIMEZONE_OFFSET
from chartfeed.types import Period

from .events import SeriesFetchFailedEvent, SeriesUpdatedEvent
from .keys import CacheEntry, SeriesKey
from .subscription import PriceLike, Subscription, UpdateCallback


log = logging.getLogger(__name__)


__all__ = [
    "SeriesCache",
]


class SeriesCache:
    """
    Stale-while-revalidate cache of chart series.

    - ``subscribe`` attaches an observer to a key and triggers revalidation.
    - ``revalidate`` joins an in-flight fetch or starts one, unless the last
      fetch started within ``deduping_interval``.
    - ``refresh`` skips the interval gate but still joins an in-flight fetch.
    - ``on_focus`` revalidates at most once per ``focus_throttle_interval``.
    - ``start``/``stop`` run a timer that revalidates every subscribed key.

    On failure the previous series is kept and a warning is logged.
    """

    def __init__(
        self,
        source: CandleSource,
        *,
        feeds: Optional[FeedRegistry] = None,
        config: Optional[ChartConfig] = None,
        dispatcher: Optional[EventDispatcher] = None,
        clock: Callable[[], float] = time.time,
        tz_offset: int = TIMEZONE_OFFSET,
    ):
        self.source = source
        if feeds is None:
            # Share the source pipeline's registry when it has one.
            feeds = getattr(source, "feeds", None)
            if not isinstance(feeds, FeedRegistry):
                feeds = FeedRegistry()
        self.feeds = feeds
        self.config = config or ChartConfig()
        self.dispatcher = dispatcher or EventDispatcher()
        self.clock = clock
        self.tz_offset = tz_offset

        self._entries: dict[SeriesKey, CacheEntry] = {}
        self._inflight: dict[SeriesKey, asyncio.Task] = {}
        self._subscriptions: dict[SeriesKey, list[Subscription]] = {}
        self._generation = itertools.count(1)
        self._scheduler: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    async def subscribe(
        self,
        network: str | int,
        symbol: str,
        period: Period | str,
        *,
        current_average_price: PriceLike = None,
        is_stable: Optional[bool] = None,
        on_update: Optional[UpdateCallback] = None,
    ) -> Subscription:
        """
        Attach an observer to a chart and wait for the initial revalidation.

        Stable assets are served a constant series and never fetched.

        Raises:
            UnknownFeedError: If the symbol has no configured feed.
        """
        key = SeriesKey.of(network, symbol, period)
        stable = self.feeds.is_stable(key.symbol) if is_stable is None else is_stable

        if stable:
            sub = Subscription(self, key, stable=True, average_price=current_average_price, on_update=on_update)
            log.debug("Serving constant series for stable asset %s", key)
            return sub

        # Configuration errors surface here rather than as an empty chart.
        self.feeds.resolve(key.symbol)

        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, min_generation=next(self._generation))
            self._entries[key] = entry
            log.debug("Created cache entry for %s", key)

        sub = Subscription(self, key, stable=False, average_price=current_average_price, on_update=on_update)
        entry.subscribers += 1
        self._subscriptions.setdefault(key, []).append(sub)

        try:
            await self.revalidate(key)
        except BaseException:
            self._release(sub)
            raise
        return sub

    def _release(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.key)
        if not subs or sub not in subs:
            return
        subs.remove(sub)
        entry = self._entries.get(sub.key)
        if entry is not None:
            entry.subscribers -= 1
        if not subs:
            self._evict(sub.key)

    def _evict(self, key: SeriesKey) -> None:
        self._subscriptions.pop(key, None)
        self._entries.pop(key, None)
        # A fetch still running for this key is left to finish; its result
        # will find no entry and be dropped.
        self._inflight.pop(key, None)
        log.debug("Evicted cache entry for %s", key)

    # ------------------------------------------------------------------
    # Revalidation
    # ------------------------------------------------------------------

    def entry(self, key: SeriesKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def is_fetching(self, key: SeriesKey) -> bool:
        return key in self._inflight

    async def revalidate(self, key: SeriesKey, *, force: bool = False) -> Optional[CandleSeries]:
        """
        Bring the cached series for *key* up to date.

        Joins an in-flight fetch if there is one. Otherwise starts a fetch,
        unless *force* is False and the last fetch started less than
        ``deduping_interval`` ago.

        Keys without subscribers have no entry and are not fetched.

        Returns:
            The cached series after revalidation (None if none was ever
            fetched or nothing is subscribed to *key*)

        Raises:
            UnknownFeedError: If the symbol has no configured feed.
        """
        entry = self._entries.get(key)
        if entry is None:
            log.debug("Not revalidating %s: no subscribers", key)
            return None

        task = self._inflight.get(key)
        if task is not None:
            log.debug("Joining in-flight fetch for %s", key)
            return await asyncio.shield(task)

        now = self.clock()
        if (
            not force
            and entry.last_fetch_time is not None
            and now - entry.last_fetch_time < self.config.deduping_interval
        ):
            log.debug("Fetch for %s deduplicated (last fetch %.1fs ago)", key, now - entry.last_fetch_time)
            return entry.series

        generation = next(self._generation)
        entry.last_fetch_time = now
        task = asyncio.create_task(self._fetch(key, generation))
        self._inflight[key] = task
        task.add_done_callback(lambda t, k=key: self._clear_inflight(k, t))
        return await asyncio.shield(task)

    async def refresh(self, key: SeriesKey) -> Optional[CandleSeries]:
        """Manual refresh: ignores the deduping interval, never duplicates a fetch."""
        return await self.revalidate(key, force=True)

    def invalidate(self, key: SeriesKey) -> None:
        """
        Mark *key* stale.

        Results of fetches already running are discarded when they land, and
        the next revalidation fetches regardless of the deduping interval.
        The cached series stays available until then.
        """
        entry = self._entries.get(key)
        if entry is None:
            return
        entry.min_generation = next(self._generation)
        entry.last_fetch_time = None
        self._inflight.pop(key, None)
        log.debug("Invalidated %s at generation %d", key, entry.min_generation)

    def _clear_inflight(self, key: SeriesKey, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _fetch(self, key: SeriesKey, generation: int) -> Optional[CandleSeries]:
        try:
            candles = await self.source.fetch_candles(key.network, key.symbol, key.period)
        except UnknownFeedError:
            log.error("Cannot fetch %s: no oracle feed configured", key)
            raise
        except RecoverableChartDataError as exc:
            return await self._record_failure(key, generation, exc)

        return await self._apply(key, generation, candles)

    async def _record_failure(
        self, key: SeriesKey, generation: int, exc: Exception
    ) -> Optional[CandleSeries]:
        entry = self._entries.get(key)
        if entry is None or not entry.accepts(generation):
            log.debug("Ignoring failure of superseded fetch for %s (generation %d): %s", key, generation, exc)
            return entry.series if entry is not None else None
        has_series = entry.has_series
        entry.failures += 1
        log.warning(
            "Chart fetch failed for %s: %s (%s)",
            key,
            exc,
            "keeping cached series" if has_series else "no cached series",
        )
        await self.dispatcher.publish(
            SeriesFetchFailedEvent(key=key, error=str(exc), has_cached_series=has_series)
        )
        return entry.series

    async def _apply(self, key: SeriesKey, generation: int, candles: list[Candle]) -> Optional[CandleSeries]:
        entry = self._entries.get(key)
        if entry is None:
            log.debug("Dropping result for evicted key %s", key)
            return None
        if not entry.accepts(generation):
            log.debug(
                "Dropping stale result for %s (generation %d, applied %d, min %d)",
                key,
                generation,
                entry.applied_generation,
                entry.min_generation,
            )
            return entry.series

        period_s = key.period.seconds
        entry.series = CandleSeries(fill_gaps(candles, period_s), period=period_s)
        entry.applied_generation = generation
        entry.live = None
        entry.failures = 0
        log.info("Updated %s with %d candles", key, len(entry.series))

        await self.dispatcher.publish(
            SeriesUpdatedEvent(key=key, candle_count=len(entry.series), generation=generation)
        )
        for sub in list(self._subscriptions.get(key, [])):
            await sub._series_changed()
        return entry.series

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def view(self, key: SeriesKey, average_price: Optional[float] = None) -> list[Candle]:
        """
        Chart-ready candles for *key* with the live price merged in.

        Works on a copy; the cached series is never modified. The amended live
        tail is kept on the entry so highs and lows seen by earlier prices in
        the same bucket carry over to later views.
        """
        entry = self._entries.get(key)
        if entry is None or entry.series is None:
            return []
        series = entry.series.copy()
        if average_price is not None and len(series):
            if entry.live is not None:
                _restore_live(series, entry.live)
            apply_live_price(
                series,
                average_price,
                key.period,
                now=self.clock(),
                tz_offset=self.tz_offset,
            )
            entry.live = replace(series.latest)
        # A live candle appended after a stale tail would leave a hole.
        return fill_gaps(series.candles, key.period)

    def stable_view(self, key: SeriesKey) -> list[Candle]:
        return stable_series(
            key.period,
            now=self.clock(),
            length=self.config.stable_length,
            tz_offset=self.tz_offset,
        )

    # ------------------------------------------------------------------
    # Background triggers
    # ------------------------------------------------------------------

    def subscribed_keys(self) -> list[SeriesKey]:
        return [k for k, subs in self._subscriptions.items() if subs]

    async def revalidate_all(self) -> None:
        """Revalidate every subscribed key, gated by the deduping interval."""
        keys = self.subscribed_keys()
        results = await asyncio.gather(
            *(self.revalidate(k) for k in keys), return_exceptions=True
        )
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                log.error("Revalidation of %s failed: %s", key, result)

    async def on_focus(self) -> None:
        """Revalidate subscribed keys not focus-revalidated within the throttle interval."""
        now = self.clock()
        due = []
        for key in self.subscribed_keys():
            entry = self._entries[key]
            if (
                entry.last_focus_time is None
                or now - entry.last_focus_time >= self.config.focus_throttle_interval
            ):
                entry.last_focus_time = now
                due.append(key)

        if not due:
            return
        log.debug("Focus revalidation for %d key%s", len(due), "s" if len(due) != 1 else "")
        results = await asyncio.gather(*(self.revalidate(k) for k in due), return_exceptions=True)
        for key, result in zip(due, results):
            if isinstance(result, Exception):
                log.error("Focus revalidation of %s failed: %s", key, result)

    async def _run_scheduler(self) -> None:
        interval = self.config.refresh_interval
        while True:
            await asyncio.sleep(interval)
            try:
                await self.revalidate_all()
            except Exception as e:
                log.exception("Scheduled revalidation failed: %s", e)

    def start(self) -> None:
        """Start the periodic revalidation timer (requires a running loop)."""
        if self._scheduler is not None and not self._scheduler.done():
            return
        if self.config.refresh_interval <= 0:
            log.info("Periodic revalidation disabled (refresh_interval=0)")
            return
        self._scheduler = asyncio.create_task(self._run_scheduler())
        log.info("Periodic revalidation every %.0fs", self.config.refresh_interval)

    async def stop(self) -> None:
        """Stop the timer and drain in-flight fetches."""
        scheduler, self._scheduler = self._scheduler, None
        tasks = list(self._inflight.values())
        if scheduler is not None:
            scheduler.cancel()
            tasks.append(scheduler)
        for task in tasks:
            if not task.done():
                task.cancel()
        # Drain; swallow exceptions so shutdown is never masked.
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    def __repr__(self) -> str:
        return (
            f"SeriesCache(entries={len(self._entries)}, "
            f"inflight={len(self._inflight)}, subscribed={len(self.subscribed_keys())})"
        )


def _restore_live(series: CandleSeries, live: Candle) -> None:
    """Put a previously amended live candle back on the tail of *series*."""
    tail = series.latest
    if live.time == tail.time:
        series.amend_last(open=live.open, high=live.high, low=live.low, close=live.close)
    elif live.time > tail.time:
        series.append(replace(live))
