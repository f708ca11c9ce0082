from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from chartfeed.errors import UnknownFeedError


__all__ = [
    "DEFAULT_FEEDS",
    "FeedRegistry",
    "market_name",
    "normalize_symbol",
]


# Wrapped tokens are charted with their underlying asset's feed.
WRAPPED_SYMBOLS = frozenset({"WBTC", "WETH", "WAVAX", "WGT"})

STABLE_SYMBOLS = frozenset({"USDC", "USDT", "DAI", "BUSD", "MIM", "FRAX", "USDC.E"})

# Ethereum network, Chainlink aggregator contracts
DEFAULT_FEEDS: Mapping[str, str] = MappingProxyType({
    "BTC_USD": "0xF04B8cf2CB29cbE2FcFD0d6CdcD64A3d96b0e944",
    "ETH_USD": "0x9359fec0A7a4180d3313208eb9F5fE335eb80F36",
    "GT_USD": "0x948c46AE6010551a7F8aBbf5D0186a44D7D47Af3",
    "BNB_USD": "0xCA4e0946138DCF6f3f12c6D44b77f12fbB5B308E",
    "DAI_USD": "0xA9B2e4E3282a39A6f76Cd7B60f3B41D071D71902",
})


def normalize_symbol(symbol: str) -> str:
    """Upper-case *symbol* and map wrapped assets to their underlying asset."""
    s = symbol.strip().upper()
    if s in WRAPPED_SYMBOLS:
        return s[1:]
    return s


def market_name(symbol: str) -> str:
    return f"{normalize_symbol(symbol)}_USD"


@dataclass(frozen=True)
class FeedRegistry:
    """
    Immutable lookup from asset symbol to oracle feed identifier.

    Built once and shared by every component that needs feed ids.

    Attributes:
        feeds: Market name (e.g. 'BTC_USD') to feed identifier.
        stable_symbols: Symbols whose price is pegged to 1.0.

    Example:
        >>> registry = FeedRegistry()
        >>> registry.resolve("WBTC")
        '0xF04B8cf2CB29cbE2FcFD0d6CdcD64A3d96b0e944'
    """
    feeds: Mapping[str, str] = field(default_factory=lambda: DEFAULT_FEEDS)
    stable_symbols: frozenset[str] = STABLE_SYMBOLS

    def __post_init__(self) -> None:
        # Freeze caller-supplied dicts so the table cannot change after startup.
        object.__setattr__(self, "feeds", MappingProxyType(dict(self.feeds)))
        object.__setattr__(
            self, "stable_symbols", frozenset(s.upper() for s in self.stable_symbols)
        )

    def resolve(self, symbol: str) -> str:
        """
        Return the feed identifier for *symbol*.

        Raises:
            UnknownFeedError: If no feed is configured for the symbol.
        """
        name = market_name(symbol)
        feed_id = self.feeds.get(name)
        if not feed_id:
            raise UnknownFeedError(symbol, name)
        return feed_id

    def has_feed(self, symbol: str) -> bool:
        return market_name(symbol) in self.feeds

    def is_stable(self, symbol: str) -> bool:
        return symbol.strip().upper() in self.stable_symbols

    def __repr__(self) -> str:
        return f"FeedRegistry(feeds={sorted(self.feeds)})"
