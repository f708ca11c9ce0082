# examples/offline_chart.py
"""Build a chart from recorded oracle ticks without touching the network."""
import asyncio
import logging
import random

from chartfeed import ChartConfig, ChartPriceSource, FeedRegistry, SeriesCache, TickPoint
from chartfeed.cache import SeriesFetchFailedEvent, SeriesUpdatedEvent
from chartfeed.events import get_dispatcher
from chartfeed.providers import InMemoryOracleClient
from chartfeed.runner import configure_logging, describe_candles
from chartfeed.time_utils import now_seconds

log = logging.getLogger(__name__)


def random_walk(feed_id: str, start: float, *, hours: int = 6) -> dict[str, list[TickPoint]]:
    """One tick every ~90 seconds, with an hour-long hole in the middle."""
    end = now_seconds()
    ts = end - hours * 3600
    price = start
    ticks = []
    while ts < end:
        if not (end - 4 * 3600 <= ts < end - 3 * 3600):
            price *= 1 + random.gauss(0, 0.001)
            ticks.append(TickPoint(ts, round(price, 2)))
        ts += random.randint(60, 120)
    return {feed_id: ticks}


def on_series_updated(event: SeriesUpdatedEvent) -> None:
    log.info("%s refreshed: %d candles (generation %d)", event.key, event.candle_count, event.generation)


def on_fetch_failed(event: SeriesFetchFailedEvent) -> None:
    log.warning("%s failed: %s", event.key, event.error)


async def main() -> None:
    feeds = FeedRegistry()
    oracle = InMemoryOracleClient.from_ticks(
        random_walk(feeds.resolve("BTC"), 64000.0)
    )
    config = ChartConfig(page_size=100, page_count=4)

    dispatcher = get_dispatcher()
    dispatcher.subscribe(SeriesUpdatedEvent, on_series_updated)
    dispatcher.subscribe(SeriesFetchFailedEvent, on_fetch_failed)

    source = ChartPriceSource(oracle, feeds=feeds, config=config)
    cache = SeriesCache(source, config=config, dispatcher=dispatcher)

    sub = await cache.subscribe(43114, "WBTC", "15m", current_average_price=64100.0)
    log.info("Initial: %s", describe_candles(sub.candles))

    # Ticker moves; only the trailing candle changes
    for price in (64120.5, 64090.0, 64210.25):
        candles = await sub.set_average_price(price)
        log.info("Live %.2f: %s", price, describe_candles(candles))

    usdc = await cache.subscribe(43114, "USDC", "1h")
    log.info("USDC: %s", describe_candles(usdc.candles))

    sub.close()
    usdc.close()


if __name__ == "__main__":
    configure_logging("INFO")
    asyncio.run(main())
