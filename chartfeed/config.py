from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping


DEFAULT_GRAPH_URL = "https://api.thegraph.com/subgraphs/name/deividask/chainlink"
DEFAULT_STATS_URL = "https://stats.gmx.io/"

ENV_PREFIX = "CHARTFEED_"


@dataclass(frozen=True)
class ChartConfig:
    """Tunables for fetching, caching and revalidating chart series.

    Intervals and timeouts are in seconds.
    """

    graph_url: str = DEFAULT_GRAPH_URL
    stats_url: str = DEFAULT_STATS_URL
    page_size: int = 1000
    page_count: int = 6
    price_decimals: int = 8
    request_timeout: float = 30.0
    deduping_interval: float = 60.0
    focus_throttle_interval: float = 600.0
    refresh_interval: float = 60.0
    stable_length: int = 100
    stats_timeout: float = 5.0
    stats_min_points: int = 10
    stats_stale_after: int = 60 * 30
    use_stats_fallback: bool = False

    def __post_init__(self) -> None:
        for name in ("page_size", "page_count", "stable_length"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        for name in (
            "request_timeout",
            "stats_timeout",
            "deduping_interval",
            "focus_throttle_interval",
            "refresh_interval",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.price_decimals < 0:
            raise ValueError(f"price_decimals must be >= 0, got {self.price_decimals}")

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> ChartConfig:
        """Validate and construct from a raw config dict.

        Unknown keys are rejected. Raises ``ValueError`` with a clear message on
        bad values instead of letting ``TypeError`` propagate.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(raw) - set(known))
        if unknown:
            raise ValueError(f"Unknown chart config keys: {', '.join(unknown)}")

        kwargs: dict[str, Any] = {}
        for name, value in raw.items():
            default = getattr(cls, name)
            try:
                kwargs[name] = _coerce(value, type(default))
            except (TypeError, ValueError) as exc:
                raise ValueError(
                    f"chart config {name!r} has invalid value {value!r}"
                ) from exc
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ChartConfig:
        """Build from ``CHARTFEED_*`` environment variables.

        ``CHARTFEED_PAGE_SIZE=500`` sets ``page_size`` and so on; unset
        variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        raw = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            if key in env:
                raw[f.name] = env[key]
        return cls.from_raw(raw)


def _coerce(value: Any, target: type) -> Any:
    if target is bool:
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in {"1", "true", "yes", "on"}:
            return True
        if s in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if target is int and isinstance(value, float) and not value.is_integer():
        raise ValueError(f"not an integer: {value!r}")
    return target(value)
