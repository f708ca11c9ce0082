from __future__ import annotations

from typing import Any, Iterable

from chartfeed.errors import TransportError
from chartfeed.marketdata import TickPoint
from chartfeed.providers.base import OracleClient
from chartfeed.providers.oracle import PRICE_DECIMALS


class InMemoryOracleClient(OracleClient):
    """
    Oracle client that serves pages from in-memory records.

    - start/close are no-ops
    - fetch_page honours first/skip over records ordered newest first
    - ``fail_feeds`` makes every page for those feeds raise TransportError
    - ``calls`` counts page requests, for asserting fetch behaviour
    """

    def __init__(self, records: dict[str, list[dict[str, Any]]] | None = None):
        self._records: dict[str, list[dict[str, Any]]] = {}
        for feed_id, feed_records in (records or {}).items():
            self.set_records(feed_id, feed_records)
        self.fail_feeds: set[str] = set()
        self.calls: list[tuple[str, int, int]] = []

    @classmethod
    def from_ticks(
        cls,
        ticks: dict[str, Iterable[TickPoint]],
        *,
        decimals: int = PRICE_DECIMALS,
    ) -> InMemoryOracleClient:
        scale = 10 ** decimals
        records = {
            feed_id: [
                {"timestamp": t.timestamp, "value": str(round(t.price * scale))}
                for t in feed_ticks
            ]
            for feed_id, feed_ticks in ticks.items()
        }
        return cls(records)

    def set_records(self, feed_id: str, records: Iterable[dict[str, Any]]) -> None:
        self._records[feed_id] = sorted(
            records, key=lambda r: int(r["timestamp"]), reverse=True
        )

    @property
    def page_requests(self) -> int:
        return len(self.calls)

    async def fetch_page(self, feed_id: str, *, first: int, skip: int) -> list[dict[str, Any]]:
        self.calls.append((feed_id, first, skip))
        if feed_id in self.fail_feeds:
            raise TransportError(f"memory://{feed_id}", "feed unavailable")
        records = self._records.get(feed_id, [])
        return [dict(r) for r in records[skip:skip + first]]
