"""Paginated retrieval and reconciliation of oracle price points."""

import asyncio
import logging
from typing import Any, Iterable, Optional

import aiohttp

from chartfeed.errors import TransportError
from chartfeed.marketdata import TickPoint
from chartfeed.providers.base import OracleClient


log = logging.getLogger(__name__)


__all__ = [
    "GraphOracleClient",
    "PRICE_DECIMALS",
    "fetch_ticks",
    "reconcile_ticks",
]


# Oracle answers are fixed-point with 8 decimals.
PRICE_DECIMALS = 8

_PRICES_QUERY = """{
  chainlinkPrices(
    first: %(first)d,
    skip: %(skip)d,
    orderBy: timestamp,
    orderDirection: desc,
    where: {token: "%(feed_id)s"}
  ) {
    timestamp,
    value
  }
}"""


class GraphOracleClient(OracleClient):
    """
    GraphQL client for the oracle price subgraph.

    The session is created lazily on first use unless one is supplied, in
    which case the caller owns it and ``close()`` leaves it open.
    """

    def __init__(
        self,
        url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def start(self) -> None:
        self._get_session()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def query(self, query: str) -> dict[str, Any]:
        """Run a GraphQL query and return its ``data`` object."""
        session = self._get_session()
        try:
            async with session.post(self.url, json={"query": query}) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise TransportError(self.url, text[:200], status=response.status)
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(self.url, str(exc) or exc.__class__.__name__) from exc
        except ValueError as exc:
            raise TransportError(self.url, f"invalid JSON payload: {exc}") from exc

        if not isinstance(payload, dict):
            raise TransportError(self.url, f"unexpected payload type {type(payload).__name__}")
        if payload.get("errors"):
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e)
                for e in payload["errors"]
            )
            raise TransportError(self.url, f"GraphQL errors: {messages}")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise TransportError(self.url, "response has no data")
        return data

    async def fetch_page(self, feed_id: str, *, first: int, skip: int) -> list[dict[str, Any]]:
        query = _PRICES_QUERY % {"first": first, "skip": skip, "feed_id": feed_id}
        data = await self.query(query)
        records = data.get("chainlinkPrices")
        if records is None:
            raise TransportError(self.url, "response has no chainlinkPrices")
        return list(records)

    def __repr__(self) -> str:
        return f"GraphOracleClient(url={self.url!r})"


def reconcile_ticks(
    pages: Iterable[Iterable[dict[str, Any]]],
    *,
    decimals: int = PRICE_DECIMALS,
) -> list[TickPoint]:
    """
    Merge raw record pages into an ascending, de-duplicated tick list.

    The first record seen for a timestamp wins. Records without a usable
    timestamp or value are skipped.
    """
    scale = 10 ** decimals
    seen: set[int] = set()
    ticks: list[TickPoint] = []
    skipped = 0

    for page in pages:
        for record in page:
            try:
                ts = int(record["timestamp"])
                price = int(record["value"]) / scale
            except (KeyError, TypeError, ValueError):
                skipped += 1
                continue
            if ts in seen:
                continue
            seen.add(ts)
            ticks.append(TickPoint(timestamp=ts, price=price))

    if skipped:
        log.warning("Skipped %d malformed oracle record%s", skipped, "s" if skipped != 1 else "")

    ticks.sort(key=lambda t: t.timestamp)
    return ticks


async def fetch_ticks(
    client: OracleClient,
    feed_id: str,
    *,
    page_size: int = 1000,
    page_count: int = 6,
    decimals: int = PRICE_DECIMALS,
) -> list[TickPoint]:
    """
    Fetch the most recent ``page_size * page_count`` records for a feed.

    All pages are requested concurrently. If any page fails the whole fetch
    fails; there is no retry here.

    Raises:
        TransportError: If any page request fails.
    """
    requests = [
        client.fetch_page(feed_id, first=page_size, skip=i * page_size)
        for i in range(page_count)
    ]
    pages = await asyncio.gather(*requests)

    ticks = reconcile_ticks(pages, decimals=decimals)
    log.debug(
        "Fetched %d records in %d pages for feed %s -> %d unique ticks",
        sum(len(p) for p in pages),
        page_count,
        feed_id,
        len(ticks),
    )
    return ticks
