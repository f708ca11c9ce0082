"""
Command-line chart watcher and logging setup.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from chartfeed.cache import SeriesCache, Subscription
from chartfeed.cache.subscription import PriceLike
from chartfeed.config import ChartConfig
from chartfeed.events import get_dispatcher
from chartfeed.marketdata import Candle, FeedRegistry
from chartfeed.pipeline import ChartPriceSource
from chartfeed.providers import GraphOracleClient, StatsCandleClient
from chartfeed.types import Period


log = logging.getLogger(__name__)


__all__ = [
    "configure_logging",
    "main",
    "watch_chart",
]


def configure_logging(level: str = "INFO", force: bool = False) -> None:
    """
    Configure root logger with console output.

    By default, this is non-destructive: if the root logger already has handlers,
    it will do nothing (assuming the application has configured logging).

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        force: If True, clear existing handlers and force this configuration
    """
    root_logger = logging.getLogger()

    if root_logger.hasHandlers() and not force:
        return

    root_logger.setLevel(level.upper())

    if force:
        root_logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def describe_candles(candles: list[Candle]) -> str:
    """One-line summary of a chart view for logs."""
    if not candles:
        return "empty series"
    last = candles[-1]
    synthetic = sum(1 for c in candles if c.synthetic)
    return (
        f"{len(candles)} candles ({synthetic} synthetic), "
        f"last {last.time}: O={last.open:.2f} H={last.high:.2f} "
        f"L={last.low:.2f} C={last.close:.2f}"
    )


def build_cache(config: ChartConfig, feeds: Optional[FeedRegistry] = None) -> SeriesCache:
    """Wire the oracle client, optional fallback and cache from *config*."""
    feeds = feeds or FeedRegistry()
    oracle = GraphOracleClient(config.graph_url, timeout=config.request_timeout)
    fallback = None
    if config.use_stats_fallback:
        fallback = StatsCandleClient(
            config.stats_url,
            timeout=config.stats_timeout,
            min_points=config.stats_min_points,
            stale_after=config.stats_stale_after,
        )
    source = ChartPriceSource(oracle, feeds=feeds, config=config, fallback=fallback)
    return SeriesCache(source, feeds=feeds, config=config, dispatcher=get_dispatcher())


async def watch_chart(
    network: str,
    symbol: str,
    period: Period | str,
    *,
    config: ChartConfig,
    average_price: PriceLike = None,
    duration: Optional[float] = None,
) -> list[Candle]:
    """
    Subscribe to a chart and log every update.

    Runs until cancelled, or for *duration* seconds if given. Returns the last
    view.
    """
    cache = build_cache(config)
    source = cache.source
    sub: Optional[Subscription] = None

    def on_update(candles: list[Candle]) -> None:
        log.info("%s/%s: %s", symbol, Period.parse(period).value, describe_candles(candles))

    try:
        sub = await cache.subscribe(
            network,
            symbol,
            period,
            current_average_price=average_price,
            on_update=on_update,
        )
        log.info("Initial view: %s", describe_candles(sub.candles))
        cache.start()
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
        return sub.candles
    finally:
        if sub is not None:
            sub.close()
        await cache.stop()
        await source.oracle.close()
        if source.fallback is not None:
            await source.fallback.close()


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chartfeed-watch",
        description="Watch a gap-free candle series built from the oracle feed.",
    )
    parser.add_argument("symbol", help="Asset symbol, e.g. BTC or WETH")
    parser.add_argument(
        "--period",
        default=Period.FIVE_MINUTES.value,
        choices=[p.value for p in Period],
    )
    parser.add_argument("--network", default="43114", help="Network identifier")
    price = parser.add_mutually_exclusive_group()
    price.add_argument("--price", type=float, default=None, help="Current average price in USD")
    price.add_argument(
        "--raw-price",
        default=None,
        help="Current average price as the on-chain 30-decimal integer",
    )
    parser.add_argument("--duration", type=float, default=None, help="Stop after N seconds")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for ``chartfeed-watch``."""
    args = _parse_args(argv)
    configure_logging(args.log_level)
    exit_code = 0

    try:
        config = ChartConfig.from_env()
        asyncio.run(
            watch_chart(
                args.network,
                args.symbol,
                args.period,
                config=config,
                average_price=args.price if args.raw_price is None else args.raw_price,
                duration=args.duration,
            )
        )

    except KeyboardInterrupt:
        log.info("Interrupted by user - shutting down")

    except Exception as e:
        log.exception("Fatal error in chart watcher: %s", e)
        exit_code = 1

    if exit_code:
        sys.exit(exit_code)
