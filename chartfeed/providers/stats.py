"""Fallback REST candle endpoint."""

import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp

from chartfeed.errors import InsufficientDataError, StaleDataError, TransportError
from chartfeed.marketdata import Candle, normalize_symbol
from chartfeed.providers.base import CandleSource
from chartfeed.time_utils import TIMEZONE_OFFSET, ts_to_iso
from chartfeed.types import Period, period_to_seconds


log = logging.getLogger(__name__)


class StatsCandleClient(CandleSource):
    """
    Client for the stats service ``/api/candles/{symbol}`` endpoint.

    The payload is rejected when it carries fewer than ``min_points`` prices
    or when ``updatedAt`` is older than ``stale_after`` seconds. A request that
    does not answer within ``timeout`` is cancelled and reported as a
    transport failure.
    """

    # How far back to ask for, in periods.
    HISTORY_PERIODS = 3000

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 5.0,
        min_points: int = 10,
        stale_after: int = 60 * 30,
        preferable_chain_id: str = "43114",
        tz_offset: int = TIMEZONE_OFFSET,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.min_points = min_points
        self.stale_after = stale_after
        self.preferable_chain_id = preferable_chain_id
        self.tz_offset = tz_offset
        self._session = session
        self._owns_session = session is None

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    def url_for(self, symbol: str) -> str:
        return f"{self.base_url}/api/candles/{normalize_symbol(symbol)}"

    async def _get_json(self, url: str, params: dict[str, str]) -> Any:
        session = self._get_session()
        async with session.get(url, params=params) as response:
            if response.status >= 400:
                raise TransportError(url, getattr(response, "reason", "") or "", status=response.status)
            return await response.json(content_type=None)

    async def fetch_candles(
        self,
        network: str,
        symbol: str,
        period: Period | str,
        *,
        now: Optional[float] = None,
    ) -> list[Candle]:
        """
        Fetch candles for *symbol*.

        ``network`` is accepted for interface compatibility; the endpoint
        selects its source with ``preferableChainId``.

        Raises:
            TransportError: On timeout, HTTP error or malformed payload.
            InsufficientDataError: If fewer than ``min_points`` prices came back.
            StaleDataError: If ``updatedAt`` is older than ``stale_after``.
        """
        period = Period.parse(period)
        now = time.time() if now is None else now
        url = self.url_for(symbol)
        params = {
            "preferableChainId": self.preferable_chain_id,
            "period": period.value,
            "from": str(int(now - period_to_seconds(period) * self.HISTORY_PERIODS)),
            "preferableSource": "fast",
        }

        try:
            payload = await asyncio.wait_for(self._get_json(url, params), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError(url, f"request timeout after {self.timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(url, str(exc) or exc.__class__.__name__) from exc
        except ValueError as exc:
            raise TransportError(url, f"invalid JSON payload: {exc}") from exc

        if not isinstance(payload, dict):
            raise TransportError(url, f"unexpected payload type {type(payload).__name__}")

        prices = payload.get("prices") or []
        if len(prices) < self.min_points:
            raise InsufficientDataError(len(prices), self.min_points)

        updated_at = int(payload.get("updatedAt") or 0)
        if updated_at < now - self.stale_after:
            log.warning(
                "Stats candles for %s are obsolete: last record %s, now %s",
                symbol,
                ts_to_iso(updated_at),
                ts_to_iso(now),
            )
            raise StaleDataError(updated_at, int(now))

        try:
            return [
                Candle(
                    time=int(p["t"]) + self.tz_offset,
                    open=float(p["o"]),
                    high=float(p["h"]),
                    low=float(p["l"]),
                    close=float(p["c"]),
                )
                for p in prices
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise TransportError(url, f"malformed price point: {exc}") from exc

    def __repr__(self) -> str:
        return f"StatsCandleClient(base_url={self.base_url!r})"
